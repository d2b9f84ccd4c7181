# backend/app/services/submissions.py
"""
Submission assignment and status transitions.

States: INIT -> IN_IMPLEMENTATION -> SUBMITTED -> REVIEWED (terminal).
"""
from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.core.errors import NoActiveProjectError, ResourceNotFoundError, SubmissionStateError
from app.db.session import transaction
from app.models import Project, Submission, SubmissionStates, User
from app.services.invites import normalize_email

logger = logging.getLogger("codingchallenge")

# Placeholder for expiration/turn-in until the applicant starts the challenge
EPOCH_ZERO = datetime(1970, 1, 1, tzinfo=timezone.utc)

SUBMISSION_TRANSITIONS: Dict[SubmissionStates, FrozenSet[SubmissionStates]] = {
    SubmissionStates.INIT: frozenset({SubmissionStates.IN_IMPLEMENTATION}),
    SubmissionStates.IN_IMPLEMENTATION: frozenset({SubmissionStates.SUBMITTED}),
    SubmissionStates.SUBMITTED: frozenset({SubmissionStates.REVIEWED}),
    SubmissionStates.REVIEWED: frozenset(),
}


class SubmissionInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_email: str
    project_id: int
    status: SubmissionStates


def validate_submission_transition(current: SubmissionStates, target: SubmissionStates) -> None:
    if target not in SUBMISSION_TRANSITIONS.get(current, frozenset()):
        raise SubmissionStateError(
            f"Submission cannot change from '{current.value}' to '{target.value}'"
        )


def fetch_active_project_ids(db: Session) -> List[int]:
    rows = db.query(Project.id).filter(Project.active.is_(True)).order_by(Project.id).all()
    return [r[0] for r in rows if r[0] is not None]


def assign_submission(db: Session, user: User) -> Submission:
    """
    Bind a new INIT submission for `user` to a random active project.

    Runs inside the caller's transaction (flush only). Raises
    NoActiveProjectError when there is nothing to assign, which makes the
    caller roll back the user it just created.
    """
    active_ids = fetch_active_project_ids(db)
    if not active_ids:
        logger.error("No active project available for submission of %s", user.email)
        raise NoActiveProjectError("No active project available to assign")

    submission = Submission(
        user_email=user.email,
        project_id=random.choice(active_ids),
        status=SubmissionStates.INIT,
        expiration_date=EPOCH_ZERO,
        turn_in_date=EPOCH_ZERO,
    )
    db.add(submission)
    db.flush()
    return submission


def fetch_submissions_for_user(db: Session, email: str) -> List[Submission]:
    return db.query(Submission).filter(Submission.user_email == email).order_by(Submission.id).all()


def change_state_to_reviewed(db: Session, email: str) -> SubmissionInfo:
    email = normalize_email(email)
    submission = (
        db.query(Submission)
        .filter(Submission.user_email == email)
        .order_by(Submission.id.desc())
        .first()
    )
    if submission is None:
        raise ResourceNotFoundError(f"Submission for user with email {email} was not found")

    current = SubmissionStates(submission.status)
    if current != SubmissionStates.SUBMITTED:
        logger.warning("Rejected review of submission for %s in state %s", email, current.value)
        raise SubmissionStateError(
            f"Submission of {email} is in state {current.value} and cannot be set to reviewed"
        )

    with transaction(db):
        validate_submission_transition(current, SubmissionStates.REVIEWED)
        submission.status = SubmissionStates.REVIEWED
        db.add(submission)

    logger.info("Submission of %s marked as reviewed", email)
    return SubmissionInfo.model_validate(submission)
