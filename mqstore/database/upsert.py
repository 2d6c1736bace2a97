"""Insert-or-replace statements for the dialects we support."""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_upsert
from sqlalchemy.dialects.sqlite import insert as sqlite_upsert
from sqlalchemy.sql.dml import Insert

SUPPORTED_DIALECTS = ("postgresql", "sqlite", "mysql")


def upsert(
    dialect: str,
    model: Any,
    rows: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    *,
    conflict_columns: Sequence[str],
    update_columns: Sequence[str],
) -> Insert:
    """Build one INSERT that replaces ``update_columns`` when the key already exists.

    ``conflict_columns`` must match a unique constraint on ``model``. MySQL
    infers the constraint from the duplicate key, so it ignores them.
    """
    if dialect in ("postgresql", "sqlite"):
        insert = pg_upsert if dialect == "postgresql" else sqlite_upsert
        stmt = insert(model).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_={name: stmt.excluded[name] for name in update_columns},
        )
    if dialect == "mysql":
        stmt = mysql_insert(model).values(rows)
        return stmt.on_duplicate_key_update({name: stmt.inserted[name] for name in update_columns})
    raise NotImplementedError(f"upsert is not supported for dialect {dialect!r}")


__all__ = ["SUPPORTED_DIALECTS", "upsert"]
