"""
Actor resolution – turning a session and a membership lookup into an Actor.
"""

import sys
from typing import Any, Callable, Mapping, Optional

from therapist_access.errors import ActorResolutionDegraded
from therapist_access.models import ANONYMOUS, Actor, OrganisationRole, parse_enum

# (user_id, organisation_id) -> raw member type ("MEMBER", "ADMINISTRATOR") or None
MembershipLookup = Callable[[str, str], Optional[str]]


def session_user_id(session: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Extract the user id from a decoded session, or None if there is none."""
    if not session:
        return None
    user_id = session.get("user_id")
    if user_id is None:
        return None
    user_id = str(user_id).strip()
    return user_id or None


def resolve_actor(
    session: Optional[Mapping[str, Any]],
    organisation_id: Optional[str],
    membership_lookup: MembershipLookup,
) -> Actor:
    """
    Build the Actor for one request against *organisation_id*.

    Never raises: a failed or ambiguous lookup yields the anonymous actor.
    """
    user_id = session_user_id(session)
    if user_id is None:
        return ANONYMOUS

    if not organisation_id:
        return Actor(is_authenticated=True, user_id=user_id)

    try:
        raw_role = membership_lookup(user_id, organisation_id)
    except ActorResolutionDegraded as e:
        print(f"[WARN] [policy] Membership lookup degraded for user {user_id}: {e}", file=sys.stderr)
        return ANONYMOUS
    except Exception as e:
        print(f"[ERROR] [policy] Membership lookup failed for user {user_id}: {e}", file=sys.stderr)
        return ANONYMOUS

    if raw_role is None:
        return Actor(is_authenticated=True, user_id=user_id, organisation_id=organisation_id)

    role = parse_enum(OrganisationRole, raw_role)
    if role is None:
        print(f"[WARN] [policy] Unsupported member type {raw_role!r} for user {user_id}.", file=sys.stderr)
        return ANONYMOUS

    return Actor(
        is_authenticated=True,
        user_id=user_id,
        organisation_id=organisation_id,
        organisation_role=role,
    )


def actor_resolver(session, membership_lookup: MembershipLookup) -> Callable[[Optional[str]], Actor]:
    """Bind a session so actors can be resolved per organisation."""
    def resolve(organisation_id):
        return resolve_actor(session, organisation_id, membership_lookup)
    return resolve
