"""
repositories/ - Data Mapping Layer
==================================
Repositories receive raw rows from a storage backend and return domain objects.
Each repository is bound to one collection and one entity type.
"""

from repositories.base import Repository
from repositories.mapping import entity_fields, entity_to_row, row_to_entity, rows_to_entities

__all__ = [
    "Repository",
    "entity_fields",
    "entity_to_row",
    "row_to_entity",
    "rows_to_entities",
]
