from __future__ import annotations
from typing import Any, Dict, List


# Default assessment layout. Question weights are the points a question is
# worth when answered 5/5; section weight is the section's base points.
DEFAULT_SECTIONS: List[Dict[str, Any]] = [
	{
		"id": "regulatory-compliance",
		"title": "Regulatory Compliance Production Configuration",
		"description": "Production-ready for therapy-specific regulatory submissions",
		"weight": 25,
		"is_critical_blocker": True,
		"questions": [
			("reg-001", "Are your existing AI system outputs production-configured and validated for immediate therapy-specific FDA submission?", 5),
			("reg-002", "Is your current automated regulatory documentation generation production-configured for your therapeutic area requirements?", 4),
			("reg-003", "Is your PCCP (Predetermined Change Control Plan) production-implemented and FDA-approved for your specific AI model types?", 5),
		],
	},
	{
		"id": "clinical-validation",
		"title": "Clinical Validation Production Configuration",
		"description": "Production-ready for therapy-appropriate clinical evidence generation",
		"weight": 22,
		"is_critical_blocker": True,
		"questions": [
			("clin-001", "Is your existing data lake production-configured to automatically generate clinical study reports meeting ICH E3 standards?", 5),
			("clin-002", "Are your AI-generated clinical endpoints production-configured and automatically formatted for regulatory submissions?", 4),
			("clin-003", "Is your external validation system production-deployed across multiple geographic regions and clinical sites?", 4),
		],
	},
	{
		"id": "safety-bias",
		"title": "Safety & Bias Production Configuration",
		"description": "Bias detection and safety monitoring for therapy-specific populations",
		"weight": 20,
		"is_critical_blocker": True,
		"questions": [
			("safety-001", "Are your existing bias detection algorithms production-configured for therapy-specific demographic considerations?", 5),
			("safety-002", "Is your current safety monitoring system production-configured for therapy-specific adverse events?", 4),
		],
	},
	{
		"id": "human-in-loop",
		"title": "Human-in-the-Loop Production Configuration",
		"description": "Human oversight and override for AI-driven decisions",
		"weight": 15,
		"is_critical_blocker": True,
		"questions": [
			("human-001", "Are your existing human override capabilities production-configured and extensively tested across all AI system components?", 5),
		],
	},
	{
		"id": "explainable-ai",
		"title": "Explainable AI Production Configuration",
		"description": "Traceable decision pathways for every AI recommendation",
		"weight": 15,
		"is_critical_blocker": True,
		"questions": [
			("explain-001", "Is your decision pathway documentation production-configured for all AI recommendations?", 5),
		],
	},
	{
		"id": "technical-infrastructure",
		"title": "Technical Infrastructure Production Configuration",
		"description": "Pipelines and platforms able to carry continuous clinical data",
		"weight": 20,
		"is_critical_blocker": True,
		"questions": [
			("tech-001", "Are your existing real-time data pipelines production-configured for continuous clinical streams?", 5),
		],
	},
	{
		"id": "organizational-readiness",
		"title": "Organizational Production Readiness",
		"description": "Teams, roles and support structures for AI in production",
		"weight": 15,
		"is_critical_blocker": False,
		"questions": [
			("org-001", "Is your multidisciplinary team production-configured with support capabilities for your therapeutic area?", 4),
		],
	},
	{
		"id": "data-observability",
		"title": "Data Observability Production Configuration",
		"description": "Monitoring of data quality, drift and lineage",
		"weight": 15,
		"is_critical_blocker": True,
		"questions": [
			("obs-001", "Is your synthetic data generation production-configured for model enhancement?", 4),
		],
	},
	{
		"id": "data-rights-licensing",
		"title": "Data Rights & Licensing Production Compliance",
		"description": "Contractual permission to use data for AI training",
		"weight": 15,
		"is_critical_blocker": True,
		"questions": [
			("rights-001", "Are your existing 3rd party data agreements production-validated to explicitly permit AI model training for your specific therapeutic applications?", 5),
		],
	},
	{
		"id": "data-classification",
		"title": "Automated Data Classification Production Configuration",
		"description": "Automatic classification of sensitive data across sources",
		"weight": 15,
		"is_critical_blocker": True,
		"questions": [
			("class-001", "Is your existing automated data classification engine production-configured across all data sources for your therapeutic area?", 4),
		],
	},
	{
		"id": "ai-output-storage",
		"title": "AI Output Storage Production Configuration",
		"description": "Retention and retrieval of AI outputs for audit",
		"weight": 15,
		"is_critical_blocker": True,
		"questions": [
			("storage-001", "Is your comprehensive AI output storage production-configured for all your production models?", 4),
		],
	},
	{
		"id": "ai-system-operations",
		"title": "AI System Operations Production Configuration",
		"description": "Versioning, deployment and rollback of AI components",
		"weight": 15,
		"is_critical_blocker": True,
		"questions": [
			("ops-001", "Is your comprehensive model versioning production-configured across all AI components?", 5),
		],
	},
]


# Static remediation advice shown with insights, keyed by section id
RECOMMENDATIONS: Dict[str, List[str]] = {
	"regulatory-compliance": [
		"Map every AI output to the FDA submission format it must support",
		"Automate regulatory documentation from validated templates per therapeutic area",
		"Prepare and file a Predetermined Change Control Plan for each model type",
	],
	"clinical-validation": [
		"Automate clinical study report generation against ICH E3",
		"Validate AI-derived endpoints before they enter submission packages",
		"Run external validation across multiple sites and regions",
	],
	"safety-bias": [
		"Deploy bias detection covering therapy-specific demographic groups",
		"Connect safety monitoring to adverse event reporting workflows",
	],
	"human-in-loop": [
		"Define override points for every AI-driven decision and test them",
		"Train reviewers on when and how to reject AI recommendations",
	],
	"explainable-ai": [
		"Record the decision pathway for each AI recommendation",
		"Expose explanations to clinical users alongside each output",
	],
	"technical-infrastructure": [
		"Harden real-time data pipelines for continuous clinical streams",
		"Add capacity planning and failover for model serving",
	],
	"organizational-readiness": [
		"Staff a multidisciplinary AI governance team",
		"Set up a support rota for AI systems in production",
	],
	"data-observability": [
		"Monitor data quality, drift and lineage for every training source",
		"Alert on anomalies before they reach model retraining",
	],
	"data-rights-licensing": [
		"Review third-party data agreements for explicit AI training rights",
		"Track licensing restrictions alongside each dataset",
	],
	"data-classification": [
		"Roll out automated classification across all data sources",
		"Review classification rules with privacy and legal teams",
	],
	"ai-output-storage": [
		"Retain AI outputs with the inputs and model version that produced them",
		"Define retention periods that satisfy audit requirements",
	],
	"ai-system-operations": [
		"Version every model, dataset and configuration together",
		"Automate rollback for model deployments",
	],
}
