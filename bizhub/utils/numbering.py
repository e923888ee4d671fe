"""
Document number generation.

Numbers are `<prefix><period><seq>` where the sequence restarts for every
period. The next value is the highest existing suffix for the period plus
one; the unique constraint on the number column rejects concurrent
duplicates.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session


def next_sequence(db: Session, column, prefix: str) -> int:
    rows = db.query(column).filter(column.like(f"{prefix}%")).all()
    highest = 0
    for (value,) in rows:
        suffix = (value or "")[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


def ticket_number(db: Session, column, now: Optional[datetime] = None) -> str:
    """Helpdesk numbering: `{year}{seq:03d}`."""
    now = now or datetime.now()
    prefix = f"{now.year}"
    return f"{prefix}{next_sequence(db, column, prefix):03d}"


def monthly_number(db: Session, column, kind: str, now: Optional[datetime] = None) -> str:
    """Service order / quote numbering: `{kind}{YYYY}{MM}{seq:04d}`."""
    now = now or datetime.now()
    prefix = f"{kind}{now.year}{now.month:02d}"
    return f"{prefix}{next_sequence(db, column, prefix):04d}"


def quotation_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"COT-{int(now.timestamp() * 1000)}"
