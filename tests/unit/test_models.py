# tests/unit/test_models.py
from datetime import UTC, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from ugc_leaks.domain.models import (
    CacheEntry,
    GrantAccessRequest,
    ScheduledItemCreate,
    ScheduledItemUpdate,
    SigninRequest,
    SignupRequest,
    StockError,
    StockErrorReason,
    StockLevel,
    StockResult,
    TokenPayload,
    UgcItemUpdate,
    password_problem,
)


def test_stock_result_discriminates_on_status() -> None:
    adapter = TypeAdapter(StockResult)

    ok = adapter.validate_python({"status": "ok", "current_stock": 3, "total_stock": 10})
    err = adapter.validate_python(
        {"status": "error", "reason": "not_limited", "message": "Not a limited item"}
    )

    assert isinstance(ok, StockLevel)
    assert isinstance(err, StockError)
    assert err.reason is StockErrorReason.NOT_LIMITED


def test_cache_entry_is_error() -> None:
    level = CacheEntry(result=StockLevel(current_stock=1, total_stock=1), timestamp=0.0)
    error = CacheEntry(
        result=StockError(reason=StockErrorReason.RATE_LIMITED, message="Rate limited"),
        timestamp=0.0,
    )

    assert not level.is_error
    assert error.is_error


@pytest.mark.parametrize(
    ("password", "problem"),
    [
        ("Short1A", "at least 8 characters"),
        ("alllowercase1", "uppercase"),
        ("ALLUPPERCASE1", "lowercase"),
        ("NoDigitsHere", "number"),
    ],
)
def test_password_rules(password: str, problem: str) -> None:
    assert problem in (password_problem(password) or "")


def test_valid_password_has_no_problem() -> None:
    assert password_problem("Secret123") is None


def test_signup_request_normalizes_fields() -> None:
    request = SignupRequest(username="  alice ", email=" Alice@Example.COM ", password="Secret123")

    assert request.username == "alice"
    assert request.email == "alice@example.com"


def test_signup_request_rejects_bad_email_and_weak_password() -> None:
    with pytest.raises(ValidationError):
        SignupRequest(username="alice", email="not-an-email", password="Secret123")
    with pytest.raises(ValidationError):
        SignupRequest(username="alice", email="alice@example.com", password="weak")


def test_signin_request_lowercases_email() -> None:
    assert SigninRequest(email=" Bob@Example.com", password="x").email == "bob@example.com"


def test_token_payload_uses_wire_aliases() -> None:
    payload = TokenPayload.model_validate({"userId": "u-1", "email": "a@b.co", "role": "owner"})

    assert payload.user_id == "u-1"
    assert payload.model_dump(by_alias=True)["userId"] == "u-1"


def test_grant_access_request_accepts_camel_case() -> None:
    request = GrantAccessRequest.model_validate({"targetUserId": "u-2", "newRole": "editor"})

    assert request.target_user_id == "u-2"
    assert request.new_role == "editor"


@pytest.mark.parametrize("raw", ["Unlimited", -1, "-1", None])
def test_scheduled_limit_per_user_unlimited_forms(raw: object) -> None:
    item = ScheduledItemCreate(title="Hat", item_name="Hat", creator="Bob", limit_per_user=raw)
    assert item.limit_per_user is None


@pytest.mark.parametrize("raw", [[1], {"n": 1}, 2.5])
def test_scheduled_limit_per_user_rejects_non_numbers(raw: object) -> None:
    with pytest.raises(ValidationError):
        ScheduledItemCreate(title="Hat", item_name="Hat", creator="Bob", limit_per_user=raw)


def test_scheduled_create_defaults() -> None:
    item = ScheduledItemCreate(title="Hat", item_name="Hat", creator="Bob", limit_per_user="3")

    assert item.limit_per_user == 3
    assert item.method == "Web Drop"
    assert item.stock == 0
    assert item.item_link == ""


def test_scheduled_update_changes_skips_empty_strings_but_keeps_null_limit() -> None:
    update = ScheduledItemUpdate.model_validate(
        {"title": "", "creator": "Carol", "limit_per_user": "Unlimited", "stock": None}
    )

    assert update.changes() == {"creator": "Carol", "limit_per_user": None}


def test_item_update_changes_drops_nulls_for_required_columns() -> None:
    update = UgcItemUpdate.model_validate(
        {
            "title": None,
            "instruction": None,
            "stock": 10,
            "release_date_time": datetime(2024, 1, 1, tzinfo=UTC).isoformat(),
        }
    )

    changes = update.changes()

    assert "title" not in changes
    assert changes["instruction"] is None
    assert changes["stock"] == 10
    assert changes["release_date_time"] == datetime(2024, 1, 1, tzinfo=UTC)
