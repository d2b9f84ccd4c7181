# backend/app/services/projects.py
"""
Challenge projects. Only active ones are handed out to new applicants.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.db.session import transaction
from app.models import Project

logger = logging.getLogger("codingchallenge")


class ProjectInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    active: bool


def add_project(db: Session, title: str, description: Optional[str] = None, active: bool = True) -> ProjectInfo:
    with transaction(db):
        project = Project(title=title.strip(), description=description, active=active)
        db.add(project)
        db.flush()
        info = ProjectInfo.model_validate(project)

    logger.info("Added project id=%s title=%s active=%s", info.id, info.title, info.active)
    return info


def fetch_all_projects(db: Session) -> List[ProjectInfo]:
    return [ProjectInfo.model_validate(p) for p in db.query(Project).order_by(Project.id).all()]
