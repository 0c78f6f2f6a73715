"""Item cache exception hierarchy."""


class ItemCacheError(Exception):
    """Base exception for all item cache errors."""


class ValidationError(ItemCacheError):
    """Input rejected before touching the store."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class ItemNotFoundError(ItemCacheError):
    """No item with the requested id exists in the store."""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Item {item_id} not found")


class StoreUnavailableError(ItemCacheError):
    """Durable store connection or query failure."""


class SharedCacheUnavailableError(ItemCacheError):
    """Shared cache timed out or refused the connection."""
