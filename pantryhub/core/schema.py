"""Table and secondary-index definitions for the item store (code-first approach).

Every table stores one JSON-encoded attribute map per row. Key and index
attributes are lifted into their own columns so that lookups by a
non-primary field can use an index instead of a scan.

Attribute maps use typed values:
    {"S": "text"}, {"BOOL": True}, {"M": {"street": {"S": "..."}}}
Key and index attributes must always be "S" values.
"""

from dataclasses import dataclass
from typing import Any

from pantryhub.core.config import constants


AttributeMap = dict[str, dict[str, Any]]


@dataclass(frozen=True)
class IndexDefinition:
    """A secondary index: partition attribute plus optional sort attribute."""

    name: str
    partition_key: str
    sort_key: str | None = None


@dataclass(frozen=True)
class TableDefinition:
    """A table keyed by a partition attribute and an optional sort attribute."""

    name: str
    partition_key: str
    sort_key: str | None = None
    indexes: tuple[IndexDefinition, ...] = ()

    @property
    def key_attributes(self) -> tuple[str, ...]:
        """Attributes forming the primary key, partition first."""
        return (self.partition_key,) if self.sort_key is None else (self.partition_key, self.sort_key)

    @property
    def indexed_attributes(self) -> tuple[str, ...]:
        """All attributes stored in their own column, primary key first."""
        columns = list(self.key_attributes)
        for index in self.indexes:
            for attribute in (index.partition_key, index.sort_key):
                if attribute is not None and attribute not in columns:
                    columns.append(attribute)
        return tuple(columns)

    def get_index(self, index_name: str) -> IndexDefinition:
        """Look up an index by name, raising ValueError if the table has no such index."""
        for index in self.indexes:
            if index.name == index_name:
                return index
        msg = f"Table {self.name} has no index named {index_name}"
        raise ValueError(msg)


TABLES: dict[str, TableDefinition] = {
    constants.USERS_TABLE: TableDefinition(
        name=constants.USERS_TABLE,
        partition_key="id",
        indexes=(
            # Authentication lookups
            IndexDefinition(name=constants.EMAIL_INDEX, partition_key="email"),
            # Administrative functions
            IndexDefinition(name=constants.ROLE_INDEX, partition_key="role"),
        ),
    ),
    constants.PANTRIES_TABLE: TableDefinition(
        name=constants.PANTRIES_TABLE,
        partition_key="id",
        indexes=(IndexDefinition(name=constants.SELF_MANAGED_INDEX, partition_key="is_self_managed"),),
    ),
    constants.PANTRY_ACCESS_TABLE: TableDefinition(
        name=constants.PANTRY_ACCESS_TABLE,
        partition_key="pantry_id",
        sort_key="user_id",
        indexes=(
            # Pantries a user can reach
            IndexDefinition(name=constants.USER_ACCESS_INDEX, partition_key="user_id", sort_key="pantry_id"),
            # Users holding a given access level for a pantry
            IndexDefinition(name=constants.ACCESS_LEVEL_INDEX, partition_key="pantry_id", sort_key="access_level"),
            # The designated contact for a pantry
            IndexDefinition(
                name=constants.CONTACT_AGENT_INDEX, partition_key="pantry_id", sort_key="is_contact_agent"
            ),
        ),
    ),
}


def get_table(table_name: str) -> TableDefinition:
    """Return the definition for a table, raising ValueError for unknown names."""
    table = TABLES.get(table_name)
    if table is None:
        msg = f"Unknown table: {table_name}"
        raise ValueError(msg)
    return table


def create_table_sql(table: TableDefinition) -> str:
    """Build the CREATE TABLE statement for a table definition."""
    columns = []
    for attribute in table.indexed_attributes:
        constraint = " NOT NULL" if attribute in table.key_attributes else ""
        columns.append(f'"{attribute}" TEXT{constraint}')
    primary_key = ", ".join(f'"{attribute}"' for attribute in table.key_attributes)

    return (
        f'CREATE TABLE IF NOT EXISTS "{table.name}" (\n'
        f"    {', '.join(columns)},\n"
        f"    item TEXT NOT NULL,\n"
        f"    PRIMARY KEY ({primary_key})\n"
        f")"
    )


def create_index_sql(table: TableDefinition, index: IndexDefinition) -> str:
    """Build the CREATE INDEX statement for a secondary index."""
    attributes = [index.partition_key] if index.sort_key is None else [index.partition_key, index.sort_key]
    columns = ", ".join(f'"{attribute}"' for attribute in attributes)
    return f'CREATE INDEX IF NOT EXISTS "idx_{table.name}_{index.name}" ON "{table.name}" ({columns})'
