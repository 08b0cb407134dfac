from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import AuthSession, ChatResponseCache, ChatUsageLog


def purge_stale_rows(db: Session, retention_days: int = 7, now: Optional[datetime] = None) -> int:
	threshold = (now or datetime.utcnow()) - timedelta(days=retention_days)
	removed = 0

	# Cached chatbot answers not read within the retention window
	res = db.execute(delete(ChatResponseCache).where(ChatResponseCache.last_accessed_at < threshold))
	removed += res.rowcount or 0

	res = db.execute(delete(ChatUsageLog).where(ChatUsageLog.created_at < threshold))
	removed += res.rowcount or 0

	# Sessions idle for longer than the window
	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	removed += res.rowcount or 0

	db.commit()
	return removed
