import pytest

from models import ADMIN, MEMBER
from service_modules.errors import Forbidden
from service_modules.field_policy import CLIENT_FIELDS, authorize


def test_admin_may_write_every_field():
    assert authorize(ADMIN, CLIENT_FIELDS) == CLIENT_FIELDS


def test_member_may_write_nutrition_and_progress():
    assert authorize(MEMBER, ["progress"]) == {"progress"}
    assert authorize(MEMBER, ["nutrition", "progress"]) == {"nutrition", "progress"}


def test_empty_request_is_allowed_for_any_role():
    assert authorize(ADMIN, []) == frozenset()
    assert authorize(MEMBER, []) == frozenset()


@pytest.mark.parametrize("field", ["name", "active", "routine", "goal_weight", "assigned_user_id"])
def test_member_denied_admin_fields(field):
    with pytest.raises(Forbidden):
        authorize(MEMBER, ["progress", field])


def test_member_denied_unknown_fields():
    with pytest.raises(Forbidden) as exc:
        authorize(MEMBER, ["nutrition", "shoe_size"])
    assert "shoe_size" in exc.value.detail


def test_unknown_role_is_forbidden():
    with pytest.raises(Forbidden):
        authorize("trainer", ["progress"])
