from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Question, Section
from ..services import recompute_all
from .auth import User, get_current_user


router = APIRouter(prefix="/sections", tags=["sections"])


class QuestionCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    text: str = Field(min_length=1)
    weight: int = Field(default=1, ge=0)
    position: Optional[int] = None


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    section_id: str
    text: str
    weight: int
    position: int


class SectionCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    position: Optional[int] = None
    weight: int = Field(default=0, ge=0)
    is_critical_blocker: bool = False


class SectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    position: int
    weight: int
    is_critical_blocker: bool
    total_points: int = 0
    questions: List[QuestionOut] = Field(default_factory=list)


def _section_out(section: Section, include_questions: bool) -> SectionOut:
    return SectionOut(
        id=section.id,
        title=section.title,
        description=section.description,
        position=section.position,
        weight=section.weight,
        is_critical_blocker=section.is_critical_blocker,
        total_points=sum(q.weight for q in section.questions),
        questions=[QuestionOut.model_validate(q) for q in section.questions] if include_questions else [],
    )


def _get_section_or_404(db: Session, section_id: str) -> Section:
    section = db.get(Section, section_id)
    if section is None:
        raise HTTPException(status_code=404, detail="section not found")
    return section


@router.get("", response_model=List[SectionOut])
def list_sections(include_questions: bool = False, db: Session = Depends(get_db)):
    sections = db.query(Section).order_by(Section.position, Section.id).all()
    return [_section_out(s, include_questions) for s in sections]


@router.post("", response_model=SectionOut, status_code=201)
def create_section(req: SectionCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if db.get(Section, req.id) is not None:
        raise HTTPException(status_code=409, detail="section already exists")
    position = req.position
    if position is None:
        position = db.query(Section).count() + 1
    section = Section(
        id=req.id,
        title=req.title,
        description=req.description,
        position=position,
        weight=req.weight,
        is_critical_blocker=req.is_critical_blocker,
    )
    db.add(section)
    db.flush()
    recompute_all(db)
    db.commit()
    db.refresh(section)
    return _section_out(section, include_questions=True)


@router.get("/{section_id}", response_model=SectionOut)
def get_section(section_id: str, db: Session = Depends(get_db)):
    return _section_out(_get_section_or_404(db, section_id), include_questions=True)


@router.get("/{section_id}/questions", response_model=List[QuestionOut])
def list_questions(section_id: str, db: Session = Depends(get_db)):
    return _get_section_or_404(db, section_id).questions


@router.post("/{section_id}/questions", response_model=QuestionOut, status_code=201)
def create_question(section_id: str, req: QuestionCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    section = _get_section_or_404(db, section_id)
    if db.get(Question, req.id) is not None:
        raise HTTPException(status_code=409, detail="question already exists")
    position = req.position if req.position is not None else len(section.questions) + 1
    question = Question(id=req.id, section_id=section.id, text=req.text, weight=req.weight, position=position)
    db.add(question)
    db.flush()
    recompute_all(db)
    db.commit()
    db.refresh(question)
    return question
