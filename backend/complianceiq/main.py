import asyncio
import logging

from fastapi import FastAPI

from .db import Base, engine, SessionLocal, ensure_schema
from .cleanup import purge_stale_rows
from .health import HealthSampleBuffer
from .seed import seed_reference_data
from .services import recompute_all
from .settings import settings
from .routers import auth
from .routers import organizations
from .routers import sections
from .routers import assessments
from .routers import scoring
from .routers import monitoring
from .routers import askrexi

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ComplianceIQ Readiness API")
app.include_router(auth.router)
app.include_router(organizations.router)
app.include_router(sections.router)
app.include_router(assessments.router)
app.include_router(scoring.router)
app.include_router(monitoring.router)
app.include_router(askrexi.router)

# Process-wide health history, injected into the monitoring routes
app.state.health_buffer = HealthSampleBuffer(settings.health_buffer_size)
app.state.health_heuristic = monitoring.build_heuristic()


@app.get("/info")
def root():
	return {
		"status": "ok",
		"chat_llm_configured": bool(settings.chat_llm_enabled and settings.gemini_api_key),
		"pass_threshold": settings.pass_threshold,
		"insight_threshold": settings.insight_threshold,
		"health_samples": len(app.state.health_buffer),
	}


def _run_cleanup() -> None:
	db = SessionLocal()
	try:
		removed = purge_stale_rows(db, settings.cleanup_retention_days)
		if removed:
			logger.info("Cleanup removed %d stale rows", removed)
	except Exception:
		db.rollback()
		logger.exception("Cleanup failed")
	finally:
		db.close()


def refresh_stored_scores(session_factory=SessionLocal) -> int:
	# Thresholds or reference rows may have changed since the scores were stored
	db = session_factory()
	try:
		count = recompute_all(db)
		db.commit()
		return count
	finally:
		db.close()


async def _cleanup_watcher():
	# Startup already ran one pass; repeat daily
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_run_cleanup()


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	ensure_schema()
	if settings.seed_reference_data:
		db = SessionLocal()
		try:
			seed_reference_data(db)
		finally:
			db.close()
	db = SessionLocal()
	try:
		auth.ensure_seed_user(db)
	finally:
		db.close()
	refresh_stored_scores()
	_run_cleanup()
	asyncio.create_task(_cleanup_watcher())
	logger.info("ComplianceIQ API started")
