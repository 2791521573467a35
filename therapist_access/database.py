"""
Database engine initialisation and read-only lookups for the policy.
"""

import sys
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from therapist_access.config import get_env, MEMBERSHIP_LOOKUP_TIMEOUT_SECONDS
from therapist_access.errors import ActorResolutionDegraded
from therapist_access.models import TherapistRecord, TherapistVisibility

THERAPIST_COLUMNS = "id, user_id, organisation_id, visibility, published_at, is_active"


def init_engine():
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = get_env("DB_URI")
    engine = create_engine(
        db_uri, echo=False, future=True, pool_timeout=MEMBERSHIP_LOOKUP_TIMEOUT_SECONDS,
    )
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def fetch_membership_role(engine, user_id: str, organisation_id: str) -> Optional[str]:
    """Return the raw member_type for (user, organisation), or None."""
    sql = text("""
        SELECT member_type
        FROM organisation_member
        WHERE user_id = :u AND organisation_id = :o
    """)
    try:
        with engine.connect() as conn:
            row = conn.execute(sql, {"u": user_id, "o": organisation_id}).mappings().first()
    except SQLAlchemyError as e:
        raise ActorResolutionDegraded(f"membership lookup failed: {e}") from e

    if not row:
        return None
    return row["member_type"]


def membership_lookup(engine):
    """Return a lookup callable for resolve_actor bound to *engine*."""
    def lookup(user_id, organisation_id):
        return fetch_membership_role(engine, user_id, organisation_id)
    return lookup


def fetch_therapist(engine, therapist_id: str) -> Optional[TherapistRecord]:
    sql = text(f"SELECT {THERAPIST_COLUMNS} FROM therapist WHERE id = :id")
    with engine.connect() as conn:
        row = conn.execute(sql, {"id": therapist_id}).mappings().first()
    return TherapistRecord.from_row(row) if row else None


def fetch_therapists(
    engine,
    organisation_id: Optional[str] = None,
    visibility: Optional[TherapistVisibility] = None,
) -> List[TherapistRecord]:
    """
    Fetch record snapshots, oldest first. The optional arguments only narrow
    the query; who may see what is left to the policy.
    """
    clauses = []
    params = {}
    if organisation_id is not None:
        clauses.append("organisation_id = :o")
        params["o"] = organisation_id
    if visibility is not None:
        clauses.append("UPPER(visibility) = :v")
        params["v"] = visibility.value
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    sql = text(f"SELECT {THERAPIST_COLUMNS} FROM therapist {where} ORDER BY created_at, id")
    with engine.connect() as conn:
        rows = conn.execute(sql, params).mappings().all()
    return [TherapistRecord.from_row(r) for r in rows]
