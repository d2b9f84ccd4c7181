# backend/app/models.py
import enum

import sqlalchemy as sa
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text

from app.db.base import Base

# Cross-DB timestamp default (SQLite + Postgres)
DB_NOW = text("CURRENT_TIMESTAMP")


class UserRole(str, enum.Enum):
    INIT = "INIT"
    USER = "USER"
    ADMIN = "ADMIN"


class SubmissionStates(str, enum.Enum):
    INIT = "INIT"
    IN_IMPLEMENTATION = "IN_IMPLEMENTATION"
    SUBMITTED = "SUBMITTED"
    REVIEWED = "REVIEWED"


class User(Base):
    """
    Applicant or admin account, keyed by (normalized) email.

    Role INIT means "invited, not registered yet"; the password of an INIT
    user is a random throwaway that nobody knows.
    """
    __tablename__ = "user"

    email = Column(String(255), primary_key=True)
    hashed_password = Column(String, nullable=False)
    role = Column(
        sa.Enum(UserRole, name="user_role", native_enum=False, length=16),
        nullable=False,
        default=UserRole.INIT,
        server_default=UserRole.INIT.value,
    )

    created_at = Column(DateTime(timezone=True), server_default=DB_NOW, nullable=False)

    submissions = relationship("Submission", back_populates="user")


class Project(Base):
    __tablename__ = "project"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Only active projects are handed out to new applicants
    active = Column(Boolean, nullable=False, default=True, server_default=sa.true())

    created_at = Column(DateTime(timezone=True), server_default=DB_NOW, nullable=False)

    submissions = relationship("Submission", back_populates="project")


class Submission(Base):
    __tablename__ = "submission"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String(255), ForeignKey("user.email"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("project.id"), nullable=False, index=True)

    status = Column(
        sa.Enum(SubmissionStates, name="submission_state", native_enum=False, length=32),
        nullable=False,
        default=SubmissionStates.INIT,
        server_default=SubmissionStates.INIT.value,
    )

    # Epoch zero until the applicant starts the challenge / turns in
    expiration_date = Column(DateTime(timezone=True), nullable=False)
    turn_in_date = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=DB_NOW, nullable=False)

    user = relationship("User", back_populates="submissions")
    project = relationship("Project", back_populates="submissions")

    __table_args__ = (
        Index("ix_submission_status", "status"),
    )


class InviteTokenExpiration(Base):
    """
    Expiration (epoch millis) of the most recently issued invite link per email.

    The invite token carries its own `exp`; this row lets a resend supersede
    earlier links and is removed on registration or user deletion.
    """
    __tablename__ = "invite_token_expiration"

    email = Column(String(255), primary_key=True)
    expiration_millis = Column(BigInteger, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=DB_NOW, onupdate=DB_NOW, nullable=False)


class ResetPasswordTokenUsage(Base):
    """
    Consumed password reset tokens. Only the SHA-256 hash is stored.
    """
    __tablename__ = "reset_password_token_usage"

    # sha256 hex = 64 chars
    token_hash = Column(String(64), primary_key=True)
    used_at = Column(DateTime(timezone=True), nullable=False)
