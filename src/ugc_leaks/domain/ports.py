# src/ugc_leaks/domain/ports.py
from abc import ABC, abstractmethod

from ugc_leaks.domain.models import LimitedItem, NotLimitedItem


class CatalogSourcePort(ABC):
    """
    Abstract interface for the marketplace that owns stock counts.
    The stock cache only ever talks to this interface.
    """

    @abstractmethod
    async def fetch_stock(self, asset_id: str) -> LimitedItem | NotLimitedItem:
        """
        Looks up a single catalog asset.

        Raises:
            UpstreamRateLimitedError: The upstream answered HTTP 429.
            ExternalApiError: Any other transport, status or parsing failure.
        """
        ...


# ---------------------------------------------------------------------------
# Custom Domain Exceptions
# ---------------------------------------------------------------------------


class ExternalApiError(Exception):
    def __init__(self, source: str, detail: str):
        super().__init__(f"External API error from '{source}': {detail}")
        self.source = source
        self.detail = detail


class UpstreamRateLimitedError(ExternalApiError):
    def __init__(self, source: str):
        super().__init__(source, "Too many requests")


class InvalidAssetIdsError(ValueError):
    pass


class InvalidRoleError(ValueError):
    def __init__(self, role: str):
        super().__init__(f"Invalid role '{role}'. Must be \"user\", \"editor\", or \"owner\"")
        self.role = role


class InvalidCredentialsError(Exception):
    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class UserAlreadyExistsError(Exception):
    def __init__(self) -> None:
        super().__init__("User already exists with that email or username")


class UserNotFoundError(Exception):
    def __init__(self, lookup: str):
        super().__init__(f"User '{lookup}' not found")
        self.lookup = lookup


class ItemNotFoundError(Exception):
    def __init__(self, item_id: str, kind: str = "Item"):
        super().__init__(f"{kind} '{item_id}' not found")
        self.item_id = item_id
        self.kind = kind
