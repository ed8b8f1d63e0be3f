from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from signals_dispatch.core.config import DATABASE_URL, IS_PROD

logger = logging.getLogger(__name__)
SCHEMA_PREFIX = "[SCHEMA]"

# tabelas do pipeline; o jobstore do scheduler cria a sua sozinho
REQUIRED_TABLES = ("dispatch_logs", "dispatch_mappings", "consent_records")


def validate_database_environment(database_url: str = DATABASE_URL, *, is_prod: bool = IS_PROD) -> None:
    if is_prod and database_url.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", SCHEMA_PREFIX)
        raise RuntimeError("SQLite não é permitido em produção")


def expected_migration_heads(alembic_config_path: Path) -> set[str]:
    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", SCHEMA_PREFIX, alembic_config_path)
        raise RuntimeError(f"alembic.ini não encontrado: {alembic_config_path}")

    alembic_cfg = Config(str(alembic_config_path))
    alembic_cfg.set_main_option("script_location", str(alembic_config_path.parent / "alembic"))
    return set(ScriptDirectory.from_config(alembic_cfg).get_heads())


def missing_dispatch_tables(engine: Engine) -> list[str]:
    existing = set(inspect(engine).get_table_names())
    return [table for table in REQUIRED_TABLES if table not in existing]


def ensure_schema_ready(*, engine: Engine, alembic_config_path: Path) -> None:
    """Recusa subir com migration pendente ou sem as tabelas de dispatch."""
    expected_heads = expected_migration_heads(alembic_config_path)

    with engine.connect() as connection:
        if "alembic_version" not in inspect(connection).get_table_names():
            logger.critical("%s alembic_version table missing", SCHEMA_PREFIX)
            raise RuntimeError("Banco sem estado de migration: rode `alembic upgrade head`")
        rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()

    current_heads = {row[0] for row in rows if row and row[0]}
    if current_heads != expected_heads:
        logger.critical(
            "%s pending migration current=%s expected=%s",
            SCHEMA_PREFIX,
            sorted(current_heads),
            sorted(expected_heads),
        )
        raise RuntimeError("Migrations pendentes: rode `alembic upgrade head`")

    missing = missing_dispatch_tables(engine)
    if missing:
        logger.critical("%s dispatch tables missing tables=%s", SCHEMA_PREFIX, missing)
        raise RuntimeError(f"Tabelas de dispatch ausentes: {', '.join(missing)}")

    logger.info("%s schema verified heads=%s", SCHEMA_PREFIX, sorted(current_heads))
