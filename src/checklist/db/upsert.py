"""Dialect-aware INSERT .. ON CONFLICT helper."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS: dict[str, Any] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(db: AsyncSession, table: Any) -> Any:  # noqa: ANN401
    """Return an INSERT for ``table`` that supports ``on_conflict_do_update``."""
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        msg = f"Upsert not supported for dialect: {dialect}"
        raise RuntimeError(msg)
    return insert(table)
