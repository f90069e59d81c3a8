class StoreError(Exception):
    """Base class for file store failures."""


class NodeNotFound(StoreError):
    def __init__(self, node_id: int):
        super().__init__(f"Node {node_id} not found")
        self.node_id = node_id


class ValidationError(StoreError):
    """Malformed create/update payload or broken parent reference."""


class QuotaExceeded(StoreError):
    """File size or total storage limit breached. Raised by callers, not stores."""


class StorageIOError(StoreError):
    """Underlying persistence failure."""


class UserExists(StoreError):
    def __init__(self, username: str):
        super().__init__(f"User {username!r} already exists")
        self.username = username


class FileTooLarge(QuotaExceeded):
    def __init__(self, size: int, limit: int):
        super().__init__(f"File too large: {size} bytes exceeds the {limit} byte limit")
        self.size = size
        self.limit = limit


class StorageLimitExceeded(QuotaExceeded):
    def __init__(self, requested: int, available: int):
        super().__init__(f"Storage limit exceeded: {requested} bytes requested, {available} available")
        self.requested = requested
        self.available = available
