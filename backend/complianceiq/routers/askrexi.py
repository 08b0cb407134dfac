from __future__ import annotations
import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..assistant import AskRexiAnswer, build_answer, question_hash
from ..assistant_client import AssistantClient
from ..db import get_db
from ..models import ChatResponseCache, ChatUsageLog
from ..settings import settings


router = APIRouter(prefix="/askrexi", tags=["askrexi"])

logger = logging.getLogger(__name__)


class AskRexiQuery(BaseModel):
	question: str
	context: Optional[Dict[str, Any]] = None


def _read_cache(db: Session, key: str) -> Optional[AskRexiAnswer]:
	row = db.get(ChatResponseCache, key)
	if row is None:
		return None
	try:
		answer = AskRexiAnswer.model_validate_json(row.response_json)
	except ValueError:
		# Corrupt entry; drop it and answer fresh
		db.delete(row)
		db.flush()
		return None
	row.hit_count += 1
	row.last_accessed_at = datetime.utcnow()
	db.add(row)
	return answer


def _write_cache(db: Session, key: str, question: str, answer: AskRexiAnswer) -> None:
	db.merge(ChatResponseCache(
		question_hash=key,
		question=question,
		category=answer.category,
		response_json=answer.model_dump_json(),
		hit_count=0,
	))


async def _phrase_with_llm(question: str, answer: AskRexiAnswer) -> AskRexiAnswer:
	if not settings.chat_llm_enabled or not settings.gemini_api_key or answer.off_topic:
		return answer
	client = AssistantClient()
	try:
		text = await client.answer(question, answer.category, answer.keywords)
		return answer.model_copy(update={"answer": text})
	except (httpx.HTTPError, RuntimeError) as err:
		logger.warning("AskRexi LLM phrasing failed, using canned answer: %s", err)
		return answer
	finally:
		await client.aclose()


@router.post("")
async def ask(req: AskRexiQuery, db: Session = Depends(get_db)):
	question = (req.question or "").strip()
	if not question:
		raise HTTPException(status_code=400, detail="question is required")
	started = time.monotonic()
	key = question_hash(question, req.context)

	cached = _read_cache(db, key) if settings.chat_cache_enabled else None
	if cached is not None:
		answer = cached
		logger.info("AskRexi cache hit (%s)", answer.category)
	else:
		answer = await _phrase_with_llm(question, build_answer(question))
		if settings.chat_cache_enabled:
			_write_cache(db, key, question, answer)

	db.add(ChatUsageLog(
		question=question[:200],
		category=answer.category,
		response_ms=int((time.monotonic() - started) * 1000),
		cached=cached is not None,
	))
	try:
		db.commit()
	except SQLAlchemyError:
		# Analytics and caching are best-effort; the answer is still returned
		db.rollback()
		logger.exception("Failed to record AskRexi usage")

	payload = answer.model_dump(by_alias=True)
	payload["cached"] = cached is not None
	return payload


@router.get("/stats")
def stats(db: Session = Depends(get_db)):
	rows = db.query(ChatUsageLog.category, ChatUsageLog.cached).all()
	by_category: Dict[str, int] = {}
	cached_hits = 0
	for category, was_cached in rows:
		by_category[category] = by_category.get(category, 0) + 1
		if was_cached:
			cached_hits += 1
	return {"total": len(rows), "cachedHits": cached_hits, "byCategory": by_category, "cacheEntries": db.query(ChatResponseCache).count()}
