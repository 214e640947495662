"""
db/ - Storage Layer
===================
The storage contract consumed by repositories, plus the concrete backends
that fulfil it: PostgreSQL (through a psycopg2 connection pool) and an
in-process memory store.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""

from db.memory_storage import MemoryStorage
from db.postgres_storage import PostgresStorage
from db.storage import Criteria, Row, Storage, StorageError

__all__ = [
    "Criteria",
    "MemoryStorage",
    "PostgresStorage",
    "Row",
    "Storage",
    "StorageError",
]
