# backend/app/api/v1/admin.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.security import get_current_email, require_admin
from app.db.session import get_db
from app.models import UserRole
from app.services import projects as project_service
from app.services import users as user_service
from app.services.submissions import SubmissionInfo, change_state_to_reviewed

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ---------- Schemas ----------

class InviteRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    is_admin: bool = False


class ChangeUserRoleRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    new_role: UserRole


class CreateProjectRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=10000)
    active: bool = True


# ---------- Routes ----------

@router.post("/project/add", response_model=project_service.ProjectInfo)
def add_project(payload: CreateProjectRequest, db: Session = Depends(get_db)):
    return project_service.add_project(db, payload.title, payload.description, payload.active)


@router.get("/project/fetch/all", response_model=List[project_service.ProjectInfo])
def fetch_all_projects(db: Session = Depends(get_db)):
    return project_service.fetch_all_projects(db)


@router.get("/fetch/users/all", response_model=List[user_service.UserInfo])
def fetch_all_users(db: Session = Depends(get_db)):
    return user_service.fetch_all_user_infos(db)


@router.get("/fetch/user/{email}", response_model=user_service.UserInfo)
def fetch_user(email: str, db: Session = Depends(get_db)):
    return user_service.fetch_user_info(db, email)


@router.delete("/user/{email}", response_model=user_service.DeletedUserInfo)
def delete_user(
    email: str,
    current_email: str = Depends(get_current_email),
    db: Session = Depends(get_db),
):
    return user_service.delete_user(db, email, current_email)


@router.put("/change/role", response_model=user_service.UserInfo)
def change_role(payload: ChangeUserRoleRequest, db: Session = Depends(get_db)):
    return user_service.change_user_role(db, payload.email, payload.new_role)


@router.post("/invite", response_model=user_service.UserInfo)
def create_invite(payload: InviteRequest, db: Session = Depends(get_db)):
    return user_service.handle_invite(db, payload.email, payload.is_admin)


@router.post("/invite/resend", response_model=user_service.UserInfo)
def resend_invite(payload: InviteRequest, db: Session = Depends(get_db)):
    return user_service.resend_invite(db, payload.email, payload.is_admin)


@router.put("/change/submissionstate/reviewed/{email}", response_model=SubmissionInfo)
def change_submission_state_reviewed(email: str, db: Session = Depends(get_db)):
    return change_state_to_reviewed(db, email)
