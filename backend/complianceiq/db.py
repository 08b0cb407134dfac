from __future__ import annotations
import logging

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url or "sqlite:///./complianceiq.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema(bind=None) -> None:
	bind = bind or engine
	try:
		inspector = inspect(bind)
		tables = set(inspector.get_table_names())
	except Exception:
		logger.warning("Schema inspection failed; skipping migrations", exc_info=True)
		return
	if "assessments" in tables:
		cols = {c["name"] for c in inspector.get_columns("assessments")}
		with bind.begin() as conn:
			if "blockers_json" not in cols:
				conn.exec_driver_sql("ALTER TABLE assessments ADD COLUMN blockers_json TEXT")
			if "completed_at" not in cols:
				conn.exec_driver_sql("ALTER TABLE assessments ADD COLUMN completed_at DATETIME")
	if "auth_users" in tables:
		cols = {c["name"] for c in inspector.get_columns("auth_users")}
		with bind.begin() as conn:
			if "email" not in cols:
				conn.exec_driver_sql("ALTER TABLE auth_users ADD COLUMN email VARCHAR(256)")
	if "chat_response_cache" in tables:
		cols = {c["name"] for c in inspector.get_columns("chat_response_cache")}
		with bind.begin() as conn:
			if "hit_count" not in cols:
				conn.exec_driver_sql("ALTER TABLE chat_response_cache ADD COLUMN hit_count INTEGER DEFAULT 0 NOT NULL")
