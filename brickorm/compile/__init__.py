"""brickORM compilation layer: query chains and entities → parameterized SQL."""
from brickorm.compile.base import CompiledSQL, ParamStyle, SqlDialect
from brickorm.compile.builder import QueryBuilder
from brickorm.compile.context import CompilationContext, ParameterSet
from brickorm.compile.postgres import CaseFolding, PostgresDialect
from brickorm.compile.predicate import PredicateTranslator
from brickorm.compile.sqlite import SQLiteDialect
from brickorm.compile.sqlserver import SqlServerDialect
from brickorm.compile.statements import KeyInfo, StatementBuilder

__all__ = [
    "CaseFolding",
    "CompilationContext",
    "CompiledSQL",
    "KeyInfo",
    "ParamStyle",
    "ParameterSet",
    "PostgresDialect",
    "PredicateTranslator",
    "QueryBuilder",
    "SQLiteDialect",
    "SqlDialect",
    "SqlServerDialect",
    "StatementBuilder",
]
