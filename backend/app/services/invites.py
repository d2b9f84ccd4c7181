# backend/app/services/invites.py
"""
Invite expiration store: email -> epoch millis of the newest invite link.

Writes only stage changes on the session; the caller's unit of work
(app.db.session.transaction) decides when they are committed.
"""
from typing import Optional

from sqlalchemy.orm import Session

from app.models import InviteTokenExpiration


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def upsert(db: Session, email: str, expiration_millis: int) -> InviteTokenExpiration:
    email = normalize_email(email)
    rec = db.get(InviteTokenExpiration, email)
    if rec is None:
        rec = InviteTokenExpiration(email=email, expiration_millis=int(expiration_millis))
    else:
        rec.expiration_millis = int(expiration_millis)
    db.add(rec)
    db.flush()
    return rec


def get(db: Session, email: str) -> Optional[int]:
    rec = db.get(InviteTokenExpiration, normalize_email(email))
    return int(rec.expiration_millis) if rec is not None else None


def delete(db: Session, email: str) -> bool:
    rec = db.get(InviteTokenExpiration, normalize_email(email))
    if rec is None:
        return False
    db.delete(rec)
    db.flush()
    return True
