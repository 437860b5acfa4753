"""Per-call statement options.

``Options`` is passed alongside entities to every CRUD entry point.  It
accepts both the snake_case field names and the PascalCase names used by
configuration files, so ``Options(TableName="people")`` and
``Options.model_validate({"table_name": "people"})`` are equivalent.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Options(BaseModel):
    """Statement generation options.

    Attributes:
        table_name: Overrides the entity's resolved table name for every
            statement built with these options.
        select_after_mutation: When ``True``, INSERT and UPDATE statements
            are followed by a read-back ``SELECT`` of the affected row.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    table_name: str | None = Field(default=None, alias="TableName")
    select_after_mutation: bool = Field(default=False, alias="SelectAfterMutation")

    def resolve_table(self, declared: str) -> str:
        """Return the override table name if set, else ``declared``."""
        return self.table_name or declared


#: Shared default instance used when callers pass ``None``.
DEFAULT_OPTIONS = Options()
