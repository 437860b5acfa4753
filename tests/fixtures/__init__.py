"""Test fixtures: sample entity types and schema DDL."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel

from brickorm.schema.entity import Column, EntityMetadata, Generated, entity

_FIXTURES_DIR = Path(__file__).parent


@entity(
    Column(name="Id", key=True, generated=Generated.IDENTITY),
    Column(name="CreateDateUTC", generated=Generated.COMPUTED),
    Column(name="FullName", not_mapped=True),
    table="Person",
)
@dataclass
class Person:
    Id: int | None = None
    FirstName: str = ""
    LastName: str = ""
    Age: int = 0
    CreateDateUTC: datetime | None = None
    FullName: str = ""


@dataclass
@entity(
    Column(name="SSN", key=True),
    Column(name="Id", key=True),
    table="Citizen",
)
class Citizen:
    """Composite key; the decorator sits under ``@dataclass`` on purpose."""

    Id: int = 0
    SSN: str = ""
    Name: str = ""


@entity(
    Column(name="Id", key=True),
    Column(name="DisplayName", column="display_name"),
    table="dbo.Widgets",
)
@dataclass
class Widget:
    Id: int = 0
    DisplayName: str = ""
    Price: float = 0.0


@entity(
    Column(name="OrderId", key=True, generated=Generated.IDENTITY),
    table="Orders",
)
@dataclass
class Order:
    OrderId: int | None = None
    PersonId: int = 0
    Total: float = 0.0


@dataclass
class AuditEntry:
    """No declared metadata and no keys; table name is the type name."""

    Message: str = ""
    Level: int = 0


class Account(BaseModel):
    """Pydantic entity with a complete, explicit descriptor."""

    __entity__ = EntityMetadata(
        name="Account",
        table="accounts",
        columns=[
            Column(name="AccountId", column="account_id", key=True),
            Column(name="Owner", column="owner_name"),
            Column(name="Balance"),
        ],
    )

    AccountId: int
    Owner: str
    Balance: float = 0.0


def load_ddl(target: str = "sqlite") -> str:
    """Return the sample DDL SQL string for the given backend."""
    return (_FIXTURES_DIR / f"ddl_{target}.sql").read_text()
