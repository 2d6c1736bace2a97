from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from mqstore.database.dbm import DBM
from mqstore.database.schema import metadata
from mqstore.errors import ProvisioningError

logger = logging.getLogger(__name__)


async def provision_schema(dbm: DBM) -> list[str]:
    """Create every mqstore table and index that does not exist yet.

    Existing tables are left alone, so running this against a provisioned
    database is a no-op. Returns the table names checked.
    """
    tables = sorted(metadata.tables)
    try:
        async with dbm.engine.begin() as conn:
            await conn.run_sync(metadata.create_all, checkfirst=True)
    except (SQLAlchemyError, OSError) as exc:
        logger.error({"mqstore_db": {"event": "provision_failed", "error": str(exc)}})
        raise ProvisioningError(str(exc), orig=exc) from exc
    logger.info({"mqstore_db": {"event": "schema_ready", "tables": tables}})
    return tables


__all__ = ["provision_schema"]
