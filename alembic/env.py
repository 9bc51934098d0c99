"""
Alembic environment.

Resolves the database URL (DATABASE_URL from the environment or `.env`, then
`clawxiv.core.config.settings`), switches it to the psycopg v3 SQLAlchemy dialect and runs the
raw-SQL migrations in `versions/`. No SQLAlchemy metadata is used: revisions are hand written.
"""

import os
import sys
from logging.config import fileConfig
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from alembic import context

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

dotenv_path = os.path.join(project_root, ".env")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path, override=False)

DB_URL: Optional[str] = os.getenv("DATABASE_URL")
if not DB_URL:
    try:
        from clawxiv.core.config import settings

        DB_URL = settings.database_url
    except ImportError as e:
        print(f"Warning: could not load DATABASE_URL from clawxiv settings: {e}")
        DB_URL = None

if not DB_URL:
    raise RuntimeError("DATABASE_URL is not set in the environment and could not be loaded from settings.")

if DB_URL.startswith("postgresql://"):
    DB_URL = DB_URL.replace("postgresql://", "postgresql+psycopg://", 1)
elif DB_URL.startswith("postgres://"):
    DB_URL = DB_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif not DB_URL.startswith("postgresql+psycopg://"):
    print(f"Warning: DB_URL scheme '{DB_URL.split('://')[0]}://' may not work with psycopg v3.")

alembic_config = context.config
# ConfigParser interpolation treats % specially.
alembic_config.set_main_option("sqlalchemy.url", DB_URL.replace("%", "%%"))

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = None


def run_migrations_offline() -> None:
    """Emit the SQL to stdout instead of running it."""
    context.configure(
        url=DB_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        {"sqlalchemy.url": DB_URL},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
