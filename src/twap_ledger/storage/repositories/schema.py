"""Schema repository: creates destination tables and indexes."""

import logging

from twap_ledger.infrastructure.database.ports import IDatabaseAdapter
from twap_ledger.infrastructure.database.postgres import DATABASE_ERRORS
from twap_ledger.storage.schemas.ddl import SCHEMA_STATEMENTS

logger = logging.getLogger(__name__)


class SchemaRepository:
    """Idempotent DDL for production, staging and leaderboard tables."""

    def __init__(self, db: IDatabaseAdapter):
        self.db = db
        logger.info("SchemaRepository initialized")

    async def ensure_schema(self) -> int:
        """
        Create every missing table and index.

        Returns:
            Number of statements executed
        """
        for statement in SCHEMA_STATEMENTS:
            try:
                await self.db.execute(statement)
            except DATABASE_ERRORS as e:
                first_line = statement.strip().splitlines()[0]
                logger.error(f"❌ Schema statement failed ({first_line}): {e}")
                raise

        logger.info(f"✅ Schema ready ({len(SCHEMA_STATEMENTS)} statements)")
        return len(SCHEMA_STATEMENTS)
