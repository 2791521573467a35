"""
Unit tests for the visibility evaluator and single-record guards.
"""

from datetime import datetime, timezone
from itertools import product

import pytest

from therapist_access.errors import Forbidden, InvalidRecord
from therapist_access.models import (
    ANONYMOUS,
    Action,
    Actor,
    Decision,
    OrganisationRole,
    TherapistRecord,
    TherapistVisibility,
)
from therapist_access.visibility import authorize, evaluate, require_visible, validate_record


ORG_X = "org-x"
ORG_Y = "org-y"
OWNER = "user-owner"
PUBLISHED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────

def record(visibility=TherapistVisibility.PUBLIC, published_at=PUBLISHED,
           organisation_id=ORG_X, owner_user_id=OWNER, id="t-1"):
    return TherapistRecord(
        id=id, owner_user_id=owner_user_id, organisation_id=organisation_id,
        visibility=visibility, published_at=published_at,
    )


def member(org=ORG_X, user_id="user-member"):
    return Actor(True, user_id, org, OrganisationRole.MEMBER)


def admin(org=ORG_X, user_id="user-admin"):
    return Actor(True, user_id, org, OrganisationRole.ADMINISTRATOR)


def outsider(user_id="user-outsider"):
    return Actor(True, user_id, ORG_X, OrganisationRole.NONE)


def owner():
    return Actor(True, OWNER, ORG_X, OrganisationRole.NONE)


ALL_VISIBILITIES = list(TherapistVisibility)
PUBLICATION_STATES = [PUBLISHED, None]


# ── Tests: administrators ────────────────────────────────────────────

@pytest.mark.parametrize("visibility,published_at", list(product(ALL_VISIBILITIES, PUBLICATION_STATES)))
def test_admin_of_owning_organisation_sees_and_manages_everything(visibility, published_at):
    d = evaluate(admin(), record(visibility, published_at))
    assert d == Decision(visible=True, can_edit=True, can_publish=True, can_delete=True)


def test_admin_of_private_draft_scenario():
    d = evaluate(admin(ORG_X), record(TherapistVisibility.PRIVATE, None))
    assert d.visible and d.can_edit and d.can_publish and d.can_delete


def test_admin_of_other_organisation_gets_no_capabilities():
    d = evaluate(admin(ORG_Y), record(TherapistVisibility.PUBLIC))
    assert d.visible is True
    assert not (d.can_edit or d.can_publish or d.can_delete)


def test_admin_of_other_organisation_cannot_see_drafts():
    assert evaluate(admin(ORG_Y), record(TherapistVisibility.PUBLIC, None)).visible is False


def test_admin_of_other_organisation_cannot_see_organisation_only():
    d = evaluate(admin(ORG_Y), record(TherapistVisibility.ORGANISATION_ONLY))
    assert d.visible is False


# ── Tests: owner ─────────────────────────────────────────────────────

@pytest.mark.parametrize("visibility,published_at", list(product(ALL_VISIBILITIES, PUBLICATION_STATES)))
def test_owner_sees_and_edits_but_cannot_publish_or_delete(visibility, published_at):
    d = evaluate(owner(), record(visibility, published_at))
    assert d == Decision(visible=True, can_edit=True, can_publish=False, can_delete=False)


def test_owner_exception_survives_private_draft():
    d = evaluate(owner(), record(TherapistVisibility.PRIVATE, None))
    assert d.visible is True
    assert d.can_edit is True
    assert d.can_publish is False


def test_owner_needs_authentication():
    # same user id, but not authenticated
    ghost = Actor(is_authenticated=False, user_id=OWNER)
    assert evaluate(ghost, record(TherapistVisibility.PRIVATE)).visible is False


def test_owner_who_is_also_member_keeps_owner_capabilities():
    d = evaluate(member(user_id=OWNER), record(TherapistVisibility.PRIVATE, None))
    assert d.visible and d.can_edit
    assert not d.can_publish and not d.can_delete


# ── Tests: general resolution ────────────────────────────────────────

@pytest.mark.parametrize("visibility", ALL_VISIBILITIES)
@pytest.mark.parametrize("actor", [ANONYMOUS, outsider(), member(), member(ORG_Y), admin(ORG_Y)])
def test_drafts_are_invisible_to_non_admin_non_owner(actor, visibility):
    assert evaluate(actor, record(visibility, None)).visible is False


@pytest.mark.parametrize("actor", [ANONYMOUS, outsider(), member(), member(ORG_Y), admin(ORG_Y)])
def test_published_public_reaches_everyone(actor):
    d = evaluate(actor, record(TherapistVisibility.PUBLIC))
    assert d.visible is True
    assert not (d.can_edit or d.can_publish or d.can_delete)


@pytest.mark.parametrize("actor", [ANONYMOUS, outsider(), member(), member(ORG_Y), admin(ORG_Y)])
def test_published_private_is_locked_out(actor):
    assert evaluate(actor, record(TherapistVisibility.PRIVATE)).visible is False


def test_organisation_only_visible_to_member_of_same_organisation():
    d = evaluate(member(ORG_X), record(TherapistVisibility.ORGANISATION_ONLY))
    assert d.visible is True
    assert d.can_edit is False


def test_organisation_only_hidden_from_member_of_other_organisation():
    assert evaluate(member(ORG_Y), record(TherapistVisibility.ORGANISATION_ONLY)).visible is False


def test_organisation_only_hidden_from_anonymous_and_non_members():
    r = record(TherapistVisibility.ORGANISATION_ONLY)
    assert evaluate(ANONYMOUS, r).visible is False
    assert evaluate(outsider(), r).visible is False


# ── Tests: malformed records fail closed ─────────────────────────────

@pytest.mark.parametrize("actor", [ANONYMOUS, member(), admin(), owner()])
def test_unknown_visibility_hidden_from_everyone(actor):
    assert evaluate(actor, record("FRIENDS_ONLY")) == Decision(visible=False)


@pytest.mark.parametrize("actor", [ANONYMOUS, member(), admin(), admin(None), owner()])
def test_missing_organisation_hidden_from_everyone(actor):
    assert evaluate(actor, record(organisation_id=None)).visible is False


def test_missing_owner_hidden():
    assert evaluate(admin(), record(owner_user_id=None)).visible is False


def test_non_timestamp_published_at_hidden():
    assert evaluate(ANONYMOUS, record(published_at="yesterday")).visible is False


def test_malformed_record_is_reported(capsys):
    evaluate(ANONYMOUS, record("FRIENDS_ONLY"))
    err = capsys.readouterr().err
    assert "[policy]" in err
    assert "FRIENDS_ONLY" in err


def test_validate_record_raises_invalid_record():
    with pytest.raises(InvalidRecord, match="missing organisation_id"):
        validate_record(record(organisation_id=None))
    with pytest.raises(ValueError, match="unknown visibility"):
        validate_record(record(visibility=7))


# ── Tests: authorize / require_visible ───────────────────────────────

def test_require_visible_returns_record():
    r = record(TherapistVisibility.PUBLIC)
    assert require_visible(ANONYMOUS, r) is r


def test_require_visible_hidden_and_missing_look_the_same():
    with pytest.raises(Forbidden) as hidden:
        require_visible(ANONYMOUS, record(TherapistVisibility.PRIVATE))
    with pytest.raises(Forbidden) as missing:
        require_visible(ANONYMOUS, None)
    assert str(hidden.value) == str(missing.value)
    assert hidden.value.hidden and missing.value.hidden


def test_authorize_owner_can_edit_not_publish():
    r = record(TherapistVisibility.PRIVATE, None)
    assert authorize(owner(), r, Action.EDIT).can_edit is True
    for action in (Action.PUBLISH, Action.UNPUBLISH, Action.DELETE):
        with pytest.raises(Forbidden) as e:
            authorize(owner(), r, action)
        assert e.value.hidden is False
        assert e.value.action is action


def test_authorize_admin_can_delete():
    assert authorize(admin(), record(), Action.DELETE).can_delete is True


def test_authorize_hidden_record_reports_hidden():
    with pytest.raises(Forbidden) as e:
        authorize(member(ORG_Y), record(TherapistVisibility.PRIVATE), Action.EDIT)
    assert e.value.hidden is True


# ── Tests: ids and deactivated profiles ──────────────────────────────

def test_falsy_ids_are_still_ids():
    r = TherapistRecord(0, 0, 0, TherapistVisibility.PUBLIC, PUBLISHED)
    assert evaluate(ANONYMOUS, r).visible is True


def test_blank_string_id_is_missing():
    assert evaluate(ANONYMOUS, record(id="  ")).visible is False


@pytest.mark.parametrize("actor", [ANONYMOUS, outsider(), member(), member(ORG_Y), admin(ORG_Y)])
def test_inactive_profile_hidden_from_non_admin_non_owner(actor):
    r = TherapistRecord("t-1", OWNER, ORG_X, TherapistVisibility.PUBLIC, PUBLISHED, is_active=False)
    assert evaluate(actor, r).visible is False


def test_inactive_profile_still_managed_by_admin_and_owner():
    r = TherapistRecord("t-1", OWNER, ORG_X, TherapistVisibility.PUBLIC, PUBLISHED, is_active=False)
    assert evaluate(admin(), r).can_delete is True
    assert evaluate(owner(), r).can_edit is True


def test_non_flag_is_active_is_hidden_from_everyone():
    r = TherapistRecord("t-1", OWNER, ORG_X, TherapistVisibility.PUBLIC, PUBLISHED, is_active="maybe")
    assert evaluate(admin(), r).visible is False


@pytest.mark.parametrize("entry", [None, {"id": "t-1"}, "t-1"])
def test_non_record_is_hidden_not_raised(entry, capsys):
    assert evaluate(admin(), entry) == Decision(visible=False)
    assert "not a therapist record" in capsys.readouterr().err


def test_validate_record_rejects_non_record():
    with pytest.raises(InvalidRecord, match="not a therapist record: NoneType"):
        validate_record(None)
