from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from .db import Base


class AuthUser(Base):
	__tablename__ = "auth_users"
	# Primary key is username
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT jti
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Organization(Base):
	__tablename__ = "organizations"
	id = Column(Integer, primary_key=True, autoincrement=True)
	name = Column(String(256), nullable=False, unique=True)
	industry_type = Column(String(128), nullable=True)
	is_active = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	assessments = relationship("Assessment", back_populates="organization")


class Section(Base):
	__tablename__ = "sections"
	# Slug, e.g. "regulatory-compliance"
	id = Column(String(64), primary_key=True)
	title = Column(String(256), nullable=False)
	description = Column(Text, nullable=True)
	position = Column(Integer, default=0, nullable=False)
	weight = Column(Integer, default=0, nullable=False)
	is_critical_blocker = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	questions = relationship("Question", back_populates="section", order_by="Question.position")


class Question(Base):
	__tablename__ = "questions"
	id = Column(String(64), primary_key=True)
	section_id = Column(String(64), ForeignKey("sections.id"), nullable=False, index=True)
	text = Column(Text, nullable=False)
	weight = Column(Integer, default=1, nullable=False)
	position = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	section = relationship("Section", back_populates="questions")


class Assessment(Base):
	__tablename__ = "assessments"
	id = Column(String(32), primary_key=True)
	organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
	name = Column(String(256), nullable=False)
	# Derived from responses; written only by services.recompute_assessment
	current_score = Column(Integer, default=0, nullable=False)
	status = Column(String(16), default="not_started", nullable=False)
	blockers_json = Column(Text, nullable=True)
	completed_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	organization = relationship("Organization", back_populates="assessments")
	responses = relationship("Response", back_populates="assessment", cascade="all, delete-orphan")


class Response(Base):
	__tablename__ = "responses"
	__table_args__ = (UniqueConstraint("assessment_id", "question_id", name="uq_response_assessment_question"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	assessment_id = Column(String(32), ForeignKey("assessments.id"), nullable=False, index=True)
	question_id = Column(String(64), ForeignKey("questions.id"), nullable=False)
	value = Column(Float, nullable=False)
	answered_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	assessment = relationship("Assessment", back_populates="responses")


class ChatResponseCache(Base):
	__tablename__ = "chat_response_cache"
	question_hash = Column(String(64), primary_key=True)
	question = Column(Text, nullable=False)
	category = Column(String(32), nullable=False)
	response_json = Column(Text, nullable=False)  # JSON string snapshot
	hit_count = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_accessed_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ChatUsageLog(Base):
	__tablename__ = "chat_usage_log"
	id = Column(Integer, primary_key=True, autoincrement=True)
	question = Column(String(200), nullable=False)
	category = Column(String(32), nullable=False)
	response_ms = Column(Integer, default=0, nullable=False)
	cached = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
