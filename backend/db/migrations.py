"""Database migration utilities"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


# table -> {column: (type, default)}; columns added after the first deployments
LATE_COLUMNS = {
    "inventory": {
        "low_stock_threshold": ("INTEGER", None),
        "unit_cost": ("NUMERIC(12, 2)", None),
        "image_url": ("VARCHAR", None),
    },
    "user_settings": {
        "low_stock_threshold": ("INTEGER", "5"),
        "email_alerts": ("BOOLEAN", "TRUE"),
        "notifications": ("BOOLEAN", "TRUE"),
    },
}


async def add_missing_columns(engine: AsyncEngine):
    """Add columns that older Postgres schemas lack. No-op on other dialects."""
    if engine.dialect.name != "postgresql":
        return

    async with engine.begin() as conn:
        for table_name, columns in LATE_COLUMNS.items():
            result = await conn.execute(
                text("""
                    SELECT column_name
                    FROM information_schema.columns
                    WHERE table_name = :table_name
                """),
                {"table_name": table_name},
            )
            existing_columns = {row[0] for row in result.fetchall()}
            if not existing_columns:
                # Table not created yet; create_all() handles it
                continue

            for column_name, (column_type, default_value) in columns.items():
                if column_name in existing_columns:
                    continue
                logger.info("Adding %s column to %s table...", column_name, table_name)
                default_sql = f" DEFAULT {default_value}" if default_value is not None else ""
                await conn.execute(
                    text(f"""
                        ALTER TABLE {table_name}
                        ADD COLUMN {column_name} {column_type}{default_sql}
                    """)
                )
                logger.info("Successfully added %s column to %s table", column_name, table_name)
