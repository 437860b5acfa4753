"""brickORM schema models: entity metadata, predicates, options and the SQL-AST."""
from brickorm.schema.entity import (
    Column,
    EntityMetadata,
    Generated,
    entity,
    metadata_for,
)
from brickorm.schema.expressions import (
    ComparisonOp,
    Comparison,
    Constant,
    Logical,
    LogicalOp,
    Member,
    Membership,
    Not,
    Predicate,
    member,
    parse_predicate,
)
from brickorm.schema.options import Options
from brickorm.schema.sql_ast import FunctionSource, JoinDescriptor, OrderTerm, SqlSelectNode

__all__ = [
    "Column",
    "Comparison",
    "ComparisonOp",
    "Constant",
    "EntityMetadata",
    "FunctionSource",
    "Generated",
    "JoinDescriptor",
    "Logical",
    "LogicalOp",
    "Member",
    "Membership",
    "Not",
    "Options",
    "OrderTerm",
    "Predicate",
    "SqlSelectNode",
    "entity",
    "member",
    "metadata_for",
    "parse_predicate",
]
