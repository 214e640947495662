"""
repositories/base.py
--------------------
Generic repository: binds a storage backend, a collection name and an entity
type, and turns the rows the storage returns into entities.
"""

from typing import Any, Generic, Optional, TypeVar, Union

from db.storage import Criteria, Row, Storage
from repositories.mapping import entity_to_row, row_to_entity, rows_to_entities
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Repository(Generic[T]):
    """
    Fetch, find and save entities of one type in one collection.

    Subclasses usually pin the collection with class attributes::

        class ItemRepository(Repository[Item]):
            table = "items"

        items = ItemRepository(storage, Item)

    Args:
        storage: Backend implementing the Storage protocol.
        entity_type: Class to build for each row. An instance is also
            accepted, in which case its class is used.
        table: Collection name; overrides the class attribute.
        identifier_column: Field `find` matches on; overrides the class attribute.

    Raises:
        ValueError: If no collection name is given either way.

    Errors raised by the storage propagate unchanged.
    """

    table: Optional[str] = None
    identifier_column: str = "id"

    def __init__(
        self,
        storage: Storage,
        entity_type: Union[type[T], T],
        table: Optional[str] = None,
        identifier_column: Optional[str] = None,
    ):
        self.storage = storage
        self.entity_type: type[T] = (
            entity_type if isinstance(entity_type, type) else type(entity_type)
        )
        if table is not None:
            self.table = table
        if identifier_column is not None:
            self.identifier_column = identifier_column
        if not self.table:
            raise ValueError(f"{type(self).__name__} needs a table name")

    # ── READ ──────────────────────────────────────────────

    def fetch_all(self) -> list[T]:
        """Return every entity in the collection, in storage order."""
        rows = self.storage.fetch_all(self.table)
        logger.debug(f"Fetched {len(rows)} rows from {self.table}")
        return rows_to_entities(rows, self.entity_type)

    def fetch_all_by(self, criteria: Criteria) -> list[T]:
        """
        Return every entity matching `criteria`.

        Args:
            criteria: {column: value} equality filters, combined with AND.
        """
        rows = self.storage.fetch_all_by(criteria, self.table)
        logger.debug(f"Fetched {len(rows)} rows from {self.table} by {criteria}")
        return rows_to_entities(rows, self.entity_type)

    def find(self, identifier: Any) -> Optional[T]:
        """Return the entity whose identifier column equals `identifier`, or None."""
        return self.find_by({self.identifier_column: identifier})

    def find_by(self, criteria: Criteria) -> Optional[T]:
        """
        Return the first entity matching `criteria`, or None when nothing does.
        """
        row = self.storage.find(criteria, self.table)
        if not row:
            logger.debug(f"No row in {self.table} for {criteria}")
            return None
        return row_to_entity(row, self.entity_type)

    # ── WRITE ─────────────────────────────────────────────

    def save(self, data: Row) -> Any:
        """
        Hand `data` to the storage and return the identifier it reports
        (the new key on insert, the existing key on update).
        """
        return self.storage.save(data, self.table)

    def save_entity(self, entity: T) -> Any:
        """Save an entity by flattening it into a row first."""
        return self.save(entity_to_row(entity))
