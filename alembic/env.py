import sys
from pathlib import Path
import os

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from logging.config import fileConfig
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool
from alembic import context
from dotenv import load_dotenv

from homematch.models import Base

# Pick up DATABASE_URL from .env in development
load_dotenv()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# read DB URL directly (don't pass through configparser)
db_url = os.environ.get("DATABASE_URL")
if not db_url:
    raise RuntimeError("DATABASE_URL not set. Export it (or add in .env).")


def to_sync_url(url: str) -> str:
    """postgres:// and postgresql+asyncpg:// both become plain psycopg2 URLs."""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    parsed = make_url(url)
    if parsed.drivername == "postgresql+asyncpg":
        parsed = parsed.set(drivername="postgresql")
    elif parsed.drivername == "sqlite+aiosqlite":
        parsed = parsed.set(drivername="sqlite")
    return parsed.render_as_string(hide_password=False)


sync_db_url = to_sync_url(db_url)

# Managed Postgres requires TLS; add sslmode once
if sync_db_url.startswith("postgresql") and "sslmode=" not in sync_db_url.lower() and os.environ.get("DATABASE_SSL", "true").lower() != "false":
    sep = "&" if "?" in sync_db_url else "?"
    sync_db_url = f"{sync_db_url}{sep}sslmode=require"


def run_migrations_offline():
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    context.configure(
        url=sync_db_url,
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode against a sync engine."""
    # No pooling to avoid pooler issues
    connectable = create_engine(sync_db_url, poolclass=NullPool, future=True)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=Base.metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
