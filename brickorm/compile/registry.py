"""Dialect registry (Open/Closed Principle).

``DialectFactory`` maps target names to :class:`~brickorm.compile.base.SqlDialect`
classes so new backends can be plugged in without editing the package.
The built-in dialects are registered in ``brickorm/__init__.py``.

Usage::

    from brickorm.compile.registry import DialectFactory

    @DialectFactory.register("mysql")
    class MySQLDialect(SqlDialect):
        ...

    dialect = DialectFactory.create("postgres", case_folding="lower_snake")
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from brickorm.compile.base import SqlDialect
from brickorm.errors import ConfigurationError


class DialectFactory:
    """Registry mapping target names to :class:`SqlDialect` classes."""

    _dialects: ClassVar[dict[str, type[SqlDialect]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[SqlDialect]], type[SqlDialect]]:
        """Decorator that registers a dialect class under ``name``.

        Args:
            name: The target name (e.g. ``"postgres"``).

        Returns:
            A decorator that registers and returns the dialect class.
        """

        def decorator(dialect_cls: type[SqlDialect]) -> type[SqlDialect]:
            cls._dialects[name] = dialect_cls
            return dialect_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, dialect_cls: type[SqlDialect]) -> None:
        """Register a dialect class without using the decorator form."""
        cls._dialects[name] = dialect_cls

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> SqlDialect:
        """Instantiate the dialect registered for ``name``.

        Args:
            name: The target name.
            **kwargs: Constructor options (``param_style``, ``case_folding``).

        Returns:
            A fresh :class:`SqlDialect` instance.

        Raises:
            ConfigurationError: If no dialect is registered for ``name``.
        """
        dialect_cls = cls._dialects.get(name)
        if dialect_cls is None:
            registered = sorted(cls._dialects)
            raise ConfigurationError(
                f"Unsupported dialect target: '{name}'. Registered targets: {registered}."
            )
        return dialect_cls(**kwargs)

    @classmethod
    def registered_targets(cls) -> list[str]:
        """Return the sorted list of registered target names."""
        return sorted(cls._dialects)
