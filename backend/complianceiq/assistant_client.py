from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings


SYSTEM_PROMPT = (
	"You are AskRexi, a regulatory compliance assistant for pharmaceutical AI programmes. "
	"Answer concisely (under 150 words) and stay within FDA, EMA and ICH guidance, "
	"assessment support and compliance analytics. If unsure, say so."
)


class AssistantClient:
	"""Phrases AskRexi answers through the Gemini generateContent REST API."""

	def __init__(self, api_key: Optional[str] = None, *, base_url: Optional[str] = None, model: Optional[str] = None, timeout: float = 20) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
		self._client = httpx.AsyncClient(timeout=timeout)

	@staticmethod
	def build_prompt(question: str, category: str, keywords: List[str]) -> str:
		focus = ", ".join(keywords) if keywords else "none detected"
		return (
			f"{SYSTEM_PROMPT}\n\n"
			f"Question category: {category}\n"
			f"Compliance keywords: {focus}\n\n"
			f"Question:\n{question}"
		)

	async def answer(self, question: str, category: str, keywords: Optional[List[str]] = None) -> str:
		payload: Dict[str, Any] = {
			"contents": [{"parts": [{"text": self.build_prompt(question, category, keywords or [])}]}],
		}
		r = await self._client.post(self.base_url, params={"key": self.api_key}, json=payload)
		r.raise_for_status()
		try:
			data = r.json()
			text = data["candidates"][0]["content"]["parts"][0]["text"]
		except (ValueError, KeyError, IndexError, TypeError) as err:
			raise RuntimeError(f"Unexpected Gemini response: {r.text[:200]}") from err
		text = (text or "").strip()
		if not text:
			raise RuntimeError("Gemini returned an empty answer")
		return text

	async def aclose(self) -> None:
		await self._client.aclose()
