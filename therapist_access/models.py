"""
Domain dataclasses and enums used across the policy engine.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union


class OrganisationRole(str, Enum):
    """Role of an actor within one organisation."""
    NONE = "NONE"
    MEMBER = "MEMBER"
    ADMINISTRATOR = "ADMINISTRATOR"


class TherapistVisibility(str, Enum):
    """Declared audience of a therapist profile."""
    PUBLIC = "PUBLIC"
    ORGANISATION_ONLY = "ORGANISATION_ONLY"
    PRIVATE = "PRIVATE"


class Action(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    DELETE = "delete"


def parse_enum(enum_cls, value):
    """Return the enum member for *value*, or None if it is not recognised."""
    if isinstance(value, enum_cls):
        return value
    if value is None:
        return None
    key = str(value).strip().upper()
    # proto-style prefixes, e.g. MEMBER_TYPE_ADMINISTRATOR
    for prefix in ("MEMBER_TYPE_", "THERAPIST_VISIBILITY_", "VISIBILITY_"):
        if key.startswith(prefix):
            key = key[len(prefix):]
    try:
        return enum_cls(key)
    except ValueError:
        return None


@dataclass(frozen=True)
class Actor:
    """Who is asking, for one evaluation. Built per request, never persisted."""
    is_authenticated: bool
    user_id: Optional[str] = None
    organisation_id: Optional[str] = None  # organisation the role applies to
    organisation_role: OrganisationRole = OrganisationRole.NONE

    def __post_init__(self):
        if not isinstance(self.organisation_role, OrganisationRole):
            raise ValueError(f"Unknown organisation role: {self.organisation_role!r}")
        if self.organisation_role is not OrganisationRole.NONE and not self.is_authenticated:
            raise ValueError("An organisation role requires an authenticated actor.")
        if self.is_authenticated and not self.user_id:
            raise ValueError("An authenticated actor must carry a user_id.")

    @property
    def is_member(self) -> bool:
        return self.organisation_role is not OrganisationRole.NONE

    @property
    def is_administrator(self) -> bool:
        return self.organisation_role is OrganisationRole.ADMINISTRATOR


ANONYMOUS = Actor(is_authenticated=False)


@dataclass(frozen=True)
class TherapistRecord:
    """Snapshot of a therapist profile, as far as access decisions need it."""
    id: Optional[str]
    owner_user_id: Optional[str]
    organisation_id: Optional[str]
    # Unrecognised raw values are kept so the evaluator can reject them.
    visibility: Union[TherapistVisibility, Any]
    published_at: Optional[datetime] = None
    is_active: bool = True

    @property
    def is_published(self) -> bool:
        return self.published_at is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TherapistRecord":
        """Build a record from a storage row (therapist table columns)."""
        raw_visibility = row.get("visibility")
        visibility = parse_enum(TherapistVisibility, raw_visibility)
        return cls(
            id=_as_id(row.get("id")),
            owner_user_id=_as_id(row.get("user_id")),
            organisation_id=_as_id(row.get("organisation_id")),
            visibility=visibility if visibility is not None else raw_visibility,
            published_at=_as_timestamp(row.get("published_at")),
            # rows from before the column existed count as active
            is_active=_as_flag(row.get("is_active", True)),
        )

    def to_dict(self) -> dict:
        visibility = self.visibility
        return {
            "id": self.id,
            "user_id": self.owner_user_id,
            "organisation_id": self.organisation_id,
            "visibility": visibility.value if isinstance(visibility, Enum) else visibility,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class Decision:
    """Evaluator output. Recomputed on every call."""
    visible: bool
    can_edit: bool = False
    can_publish: bool = False
    can_delete: bool = False

    def allows(self, action: Action) -> bool:
        if action is Action.VIEW:
            return self.visible
        if action is Action.EDIT:
            return self.can_edit
        if action in (Action.PUBLISH, Action.UNPUBLISH):
            return self.can_publish
        if action is Action.DELETE:
            return self.can_delete
        return False

    def to_dict(self) -> dict:
        return asdict(self)


HIDDEN = Decision(visible=False)
FULL_ACCESS = Decision(visible=True, can_edit=True, can_publish=True, can_delete=True)
OWNER_ACCESS = Decision(visible=True, can_edit=True)
READ_ONLY = Decision(visible=True)


def _as_id(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_flag(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "t", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"0", "false", "f", "no"}:
        return False
    # anything else is left for the evaluator to reject
    return value


def _as_timestamp(value):
    # SQLite and JSON payloads hand timestamps back as ISO strings.
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return value
    return value
