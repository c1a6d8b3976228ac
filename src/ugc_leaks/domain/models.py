# src/ugc_leaks/domain/models.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Field limits
# ---------------------------------------------------------------------------

TITLE_MAX = 200
CREATOR_MAX = 100
INSTRUCTION_MAX = 5000
LINK_MAX = 500
IMAGE_URL_MAX = 1000
UGC_CODE_MAX = 100
EMAIL_MAX = 254
USERNAME_MAX = 50
PASSWORD_MIN = 8
PASSWORD_MAX = 128

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class Role(StrEnum):
    USER = "user"
    EDITOR = "editor"
    OWNER = "owner"


# Ordered from least to most privileged.
ROLE_HIERARCHY: tuple[str, ...] = (Role.USER, Role.EDITOR, Role.OWNER)


# ---------------------------------------------------------------------------
# Stock: upstream lookups and cached results
# ---------------------------------------------------------------------------


class LimitedItem(BaseModel):
    """Upstream reports a collectible item with a finite unit count."""

    kind: Literal["limited"] = "limited"
    available: int = Field(ge=0)
    total: int = Field(ge=0)

    model_config = {"frozen": True}


class NotLimitedItem(BaseModel):
    kind: Literal["not_limited"] = "not_limited"

    model_config = {"frozen": True}


CatalogLookup = Annotated[LimitedItem | NotLimitedItem, Field(discriminator="kind")]


class StockErrorReason(StrEnum):
    NOT_LIMITED = "not_limited"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"


class StockLevel(BaseModel):
    status: Literal["ok"] = "ok"
    current_stock: int
    total_stock: int

    model_config = {"frozen": True}


class StockError(BaseModel):
    status: Literal["error"] = "error"
    reason: StockErrorReason
    message: str

    model_config = {"frozen": True}


StockResult = Annotated[StockLevel | StockError, Field(discriminator="status")]


@dataclass(frozen=True)
class CacheEntry:
    result: StockLevel | StockError
    timestamp: float

    @property
    def is_error(self) -> bool:
        return isinstance(self.result, StockError)


@dataclass
class RateLimitState:
    last_request_time: float = 0.0
    is_rate_limited: bool = False
    rate_limit_reset_time: float = 0.0


# ---------------------------------------------------------------------------
# Login throttling
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateLimitConfig:
    window_seconds: float
    max_requests: int
    block_duration_seconds: float


@dataclass
class LoginAttemptRecord:
    count: int
    window_start: float
    window_seconds: float
    blocked_until: float | None = None


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    blocked: bool
    reset_in: float
    remaining: int = 0


# ---------------------------------------------------------------------------
# Users & tokens
# ---------------------------------------------------------------------------


class TokenPayload(BaseModel):
    user_id: str = Field(alias="userId")
    email: str
    # Kept as a plain string: unknown roles must reach the hierarchy check.
    role: str
    iat: int | None = None
    exp: int | None = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class User(BaseModel):
    id: str
    username: str
    email: str
    role: Role
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCredentials(User):
    """User row including the password hash. Never returned by the API."""

    password_hash: str


class SignupRequest(BaseModel):
    username: str = Field(min_length=1, max_length=USERNAME_MAX)
    email: str = Field(min_length=3, max_length=EMAIL_MAX)
    password: str = Field(max_length=PASSWORD_MAX)

    @field_validator("username", "email")
    @classmethod
    def strip_whitespace(cls, value: str) -> str:
        return value.strip()

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        if not _EMAIL_RE.match(value):
            raise ValueError("Invalid email address")
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_complexity(cls, value: str) -> str:
        problem = password_problem(value)
        if problem:
            raise ValueError(problem)
        return value


class SigninRequest(BaseModel):
    email: str = Field(min_length=1, max_length=EMAIL_MAX)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SigninResponse(BaseModel):
    message: str
    token: str
    user: User


class SignupResponse(BaseModel):
    message: str
    user: User


class GrantAccessRequest(BaseModel):
    target_user_id: str = Field(alias="targetUserId")
    new_role: str = Field(alias="newRole")

    model_config = ConfigDict(populate_by_name=True)


class GrantAccessResponse(BaseModel):
    message: str
    user: User


def password_problem(password: str) -> str | None:
    """Returns a human readable complaint, or None if the password is acceptable."""
    if len(password) < PASSWORD_MIN:
        return f"Password must be at least {PASSWORD_MIN} characters long"
    if len(password) > PASSWORD_MAX:
        return f"Password must not exceed {PASSWORD_MAX} characters"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain at least one number"
    return None


# ---------------------------------------------------------------------------
# Catalog items
# ---------------------------------------------------------------------------


def _normalize_limit_per_user(value: Any) -> int | None:
    # "Unlimited", -1 and null all mean no per-user limit.
    if value is None or value == "Unlimited" or value == -1:
        return None
    if isinstance(value, str):
        try:
            parsed = int(value)
        except ValueError:
            return None
        return None if parsed == -1 else parsed
    # Anything else is left to the ``int | None`` field validation.
    return value


class UgcItem(BaseModel):
    id: int
    uuid: str
    title: str
    item_name: str
    creator: str
    creator_link: str | None = None
    stock: int
    release_date_time: datetime
    method: str
    instruction: str | None = None
    game_link: str | None = None
    item_link: str | None = None
    image_url: str | None = None
    limit_per_user: int
    color: str | None = None
    is_published: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UgcItemCreate(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX)
    item_name: str = Field(min_length=1, max_length=TITLE_MAX)
    creator: str = Field(min_length=1, max_length=CREATOR_MAX)
    creator_link: str | None = Field(default=None, max_length=LINK_MAX)
    stock: int = Field(default=1000, ge=0)
    release_date_time: datetime
    method: str = Field(default="Unknown", max_length=CREATOR_MAX)
    instruction: str | None = Field(default=None, max_length=INSTRUCTION_MAX)
    game_link: str | None = Field(default=None, max_length=LINK_MAX)
    item_link: str | None = Field(default=None, max_length=LINK_MAX)
    image_url: str | None = Field(default=None, max_length=IMAGE_URL_MAX)
    limit_per_user: int = Field(default=1, ge=1)
    color: str | None = Field(default=None, max_length=CREATOR_MAX)


class UgcItemUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX)
    item_name: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX)
    creator: str | None = Field(default=None, min_length=1, max_length=CREATOR_MAX)
    creator_link: str | None = Field(default=None, max_length=LINK_MAX)
    stock: int | None = Field(default=None, ge=0)
    release_date_time: datetime | None = None
    method: str | None = Field(default=None, max_length=CREATOR_MAX)
    instruction: str | None = Field(default=None, max_length=INSTRUCTION_MAX)
    game_link: str | None = Field(default=None, max_length=LINK_MAX)
    item_link: str | None = Field(default=None, max_length=LINK_MAX)
    image_url: str | None = Field(default=None, max_length=IMAGE_URL_MAX)
    limit_per_user: int | None = Field(default=None, ge=1)
    color: str | None = Field(default=None, max_length=CREATOR_MAX)
    is_published: bool | None = None

    def changes(self) -> dict[str, Any]:
        """Fields the caller sent; nulls are dropped for columns that cannot be empty."""
        sent = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in sent.items()
            if value is not None or key not in _REQUIRED_ITEM_FIELDS
        }


_REQUIRED_ITEM_FIELDS = frozenset(
    {
        "title",
        "item_name",
        "creator",
        "stock",
        "release_date_time",
        "method",
        "limit_per_user",
        "is_published",
    }
)


class ScheduledItem(BaseModel):
    id: int
    uuid: str
    title: str
    item_name: str
    creator: str
    stock: int
    release_date_time: datetime | None = None
    method: str
    instruction: str = ""
    game_link: str = ""
    item_link: str = ""
    image_url: str = ""
    limit_per_user: int | None = None
    ugc_code: str | None = None
    color: str | None = None
    is_abandoned: bool = False
    sold_out: bool = False
    final_current_stock: int | None = None
    final_total_stock: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ScheduledItemWithStock(ScheduledItem):
    live_stock: StockResult | None = None


class ScheduledItemCreate(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX)
    item_name: str = Field(min_length=1, max_length=TITLE_MAX)
    creator: str = Field(min_length=1, max_length=CREATOR_MAX)
    stock: int = Field(default=0, ge=0)
    release_date_time: datetime | None = None
    method: str = Field(default="Web Drop", max_length=CREATOR_MAX)
    instruction: str = Field(default="", max_length=INSTRUCTION_MAX)
    game_link: str = Field(default="", max_length=LINK_MAX)
    item_link: str = Field(default="", max_length=LINK_MAX)
    image_url: str = Field(default="", max_length=IMAGE_URL_MAX)
    limit_per_user: int | None = None
    ugc_code: str | None = Field(default=None, max_length=UGC_CODE_MAX)
    is_abandoned: bool = False

    @field_validator("limit_per_user", mode="before")
    @classmethod
    def normalize_limit(cls, value: Any) -> int | None:
        return _normalize_limit_per_user(value)


class ScheduledItemUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=TITLE_MAX)
    item_name: str | None = Field(default=None, max_length=TITLE_MAX)
    creator: str | None = Field(default=None, max_length=CREATOR_MAX)
    stock: int | None = Field(default=None, ge=0)
    release_date_time: datetime | None = None
    method: str | None = Field(default=None, max_length=CREATOR_MAX)
    instruction: str | None = Field(default=None, max_length=INSTRUCTION_MAX)
    game_link: str | None = Field(default=None, max_length=LINK_MAX)
    item_link: str | None = Field(default=None, max_length=LINK_MAX)
    image_url: str | None = Field(default=None, max_length=IMAGE_URL_MAX)
    limit_per_user: int | None = None
    color: str | None = Field(default=None, max_length=CREATOR_MAX)
    is_abandoned: bool | None = None
    sold_out: bool | None = None

    @field_validator("limit_per_user", mode="before")
    @classmethod
    def normalize_limit(cls, value: Any) -> int | None:
        return _normalize_limit_per_user(value)

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent; empty strings are ignored, a null limit is kept."""
        sent = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in sent.items()
            if key == "limit_per_user" or (value is not None and value != "")
        }
