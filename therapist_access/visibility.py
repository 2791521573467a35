"""
Visibility evaluation – who may see and manage a therapist profile.
"""

import sys
from datetime import datetime
from typing import Optional

from therapist_access.errors import Forbidden, InvalidRecord
from therapist_access.models import (
    Action,
    Actor,
    Decision,
    FULL_ACCESS,
    HIDDEN,
    OrganisationRole,
    OWNER_ACCESS,
    READ_ONLY,
    TherapistRecord,
    TherapistVisibility,
)


def validate_record(record: TherapistRecord) -> None:
    """Raise InvalidRecord if *record* cannot be safely evaluated."""
    if not isinstance(record, TherapistRecord):
        raise InvalidRecord(None, f"not a therapist record: {type(record).__name__}")
    if _is_blank(record.id):
        raise InvalidRecord(record.id, "missing id")
    if _is_blank(record.owner_user_id):
        raise InvalidRecord(record.id, "missing owner_user_id")
    if _is_blank(record.organisation_id):
        raise InvalidRecord(record.id, "missing organisation_id")
    if not isinstance(record.visibility, TherapistVisibility):
        raise InvalidRecord(record.id, f"unknown visibility {record.visibility!r}")
    if record.published_at is not None and not isinstance(record.published_at, datetime):
        raise InvalidRecord(record.id, f"published_at is not a timestamp: {record.published_at!r}")
    if not isinstance(record.is_active, bool):
        raise InvalidRecord(record.id, f"is_active is not a flag: {record.is_active!r}")


def _is_blank(value) -> bool:
    # Opaque ids may be falsy (0); only absence counts.
    return value is None or (isinstance(value, str) and not value.strip())


def is_owner(actor: Actor, record: TherapistRecord) -> bool:
    return (
        actor.is_authenticated
        and actor.user_id is not None
        and actor.user_id == record.owner_user_id
    )


def is_organisation_admin(actor: Actor, record: TherapistRecord) -> bool:
    return (
        actor.organisation_role is OrganisationRole.ADMINISTRATOR
        and actor.organisation_id is not None
        and actor.organisation_id == record.organisation_id
    )


def is_organisation_member(actor: Actor, record: TherapistRecord) -> bool:
    """Member or administrator of the organisation owning *record*."""
    return (
        actor.is_authenticated
        and actor.organisation_role is not OrganisationRole.NONE
        and actor.organisation_id is not None
        and actor.organisation_id == record.organisation_id
    )


def evaluate(actor: Actor, record: TherapistRecord) -> Decision:
    """
    Decide whether *actor* may see *record* and which management actions
    are open to them. Malformed records are hidden from everyone.
    """
    try:
        validate_record(record)
    except InvalidRecord as e:
        print(f"[WARN] [policy] {e}; treating as hidden.", file=sys.stderr)
        return HIDDEN

    # Administrators manage the full lifecycle, drafts included.
    if is_organisation_admin(actor, record):
        return FULL_ACCESS

    # Publish and delete stay with administrators, even for the owner.
    if is_owner(actor, record):
        return OWNER_ACCESS

    # Deactivated profiles drop out of every public and member surface.
    if not record.is_active or not record.is_published:
        return HIDDEN

    visibility = record.visibility
    if visibility is TherapistVisibility.PUBLIC:
        return READ_ONLY
    if visibility is TherapistVisibility.ORGANISATION_ONLY:
        return READ_ONLY if is_organisation_member(actor, record) else HIDDEN
    if visibility is TherapistVisibility.PRIVATE:
        return HIDDEN

    # unreachable while validate_record guards the enum
    return HIDDEN


def authorize(actor: Actor, record: Optional[TherapistRecord], action: Action) -> Decision:
    """Return the decision if it grants *action*, otherwise raise Forbidden."""
    if record is None:
        raise Forbidden(action=action)

    decision = evaluate(actor, record)
    if not decision.visible:
        raise Forbidden(action=action)
    if not decision.allows(action):
        raise Forbidden(
            f"Not allowed to {action.value} this therapist profile",
            action=action,
            hidden=False,
        )
    return decision


def require_visible(actor: Actor, record: Optional[TherapistRecord]) -> TherapistRecord:
    """
    Single-record fetch guard. A missing record and a hidden record raise
    the same Forbidden so callers cannot tell them apart.
    """
    authorize(actor, record, Action.VIEW)
    return record
