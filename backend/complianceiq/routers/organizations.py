from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Organization
from .auth import User, get_current_user


router = APIRouter(prefix="/organizations", tags=["organizations"])

logger = logging.getLogger(__name__)


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    industry_type: Optional[str] = "Pharmaceutical"


class OrganizationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    industry_type: Optional[str] = None
    is_active: bool
    created_at: datetime


def get_organization_or_404(db: Session, organization_id: int) -> Organization:
    org = db.get(Organization, organization_id)
    if org is None or not org.is_active:
        raise HTTPException(status_code=404, detail="organization not found")
    return org


@router.get("", response_model=List[OrganizationOut])
def list_organizations(db: Session = Depends(get_db)):
    return db.query(Organization).filter(Organization.is_active.is_(True)).order_by(Organization.name).all()


@router.post("", response_model=OrganizationOut, status_code=201)
def create_organization(req: OrganizationCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    org = Organization(name=name, industry_type=req.industry_type)
    db.add(org)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="organization already exists")
    db.refresh(org)
    logger.info("Organization %s created by %s", org.id, user.username)
    return org


@router.get("/{organization_id}", response_model=OrganizationOut)
def get_organization(organization_id: int, db: Session = Depends(get_db)):
    return get_organization_or_404(db, organization_id)


@router.delete("/{organization_id}", status_code=204)
def delete_organization(organization_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    org = get_organization_or_404(db, organization_id)
    # Soft delete: assessments keep their organization reference
    org.is_active = False
    db.add(org)
    db.commit()
    logger.info("Organization %s deactivated by %s", organization_id, user.username)
