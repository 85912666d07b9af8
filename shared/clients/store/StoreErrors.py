class StoreError(Exception):
    """Base exception for vector store failures."""

    pass


class StoreDimensionError(StoreError):
    """A record's vector length differs from the store schema."""

    def __init__(self, expected: int, actual: int, path: str = ""):
        super().__init__(f"Vector length {actual} does not match store schema dimension {expected}" + (f" ({path})" if path else ""))
        self.expected = expected
        self.actual = actual


class StorePersistError(StoreError):
    """Writing the snapshot to disk failed. The in-memory store is unchanged."""

    pass
