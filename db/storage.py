"""
db/storage.py
-------------
The contract every storage backend fulfils for repositories.
A backend executes reads and writes against a named collection (a table,
for SQL backends) and hands rows back as plain mappings.
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

Row = Mapping[str, Any]
Criteria = Mapping[str, Any]


class StorageError(Exception):
    """
    Raised by storage backends when the underlying medium fails.

    Attributes:
        collection: Name of the collection the failing operation targeted.
    """

    def __init__(self, message: str, collection: Optional[str] = None):
        super().__init__(message)
        self.collection = collection


@runtime_checkable
class Storage(Protocol):
    """Operations a repository needs from its storage collaborator."""

    def fetch_all(self, collection: str) -> list[Row]:
        """Return every row in `collection`, in storage order."""
        ...

    def fetch_all_by(self, criteria: Criteria, collection: str) -> list[Row]:
        """Return every row whose fields equal all values in `criteria`."""
        ...

    def find(self, criteria: Criteria, collection: str) -> Optional[Row]:
        """Return the first row matching `criteria`, or None."""
        ...

    def save(self, data: Row, collection: str) -> Any:
        """Insert or update `data` and return its identifier."""
        ...
