from sqlalchemy import engine_from_config, pool
from alembic import context
from swiftlocal.core.config import settings
from swiftlocal.db.session import Base
import swiftlocal.db.models  # noqa

config = context.config
target_metadata = Base.metadata

# one version table per project sharing the database
VERSION_TABLE = "alembic_version_swiftlocal"

def _configure(**kw):
    context.configure(target_metadata=target_metadata, version_table=VERSION_TABLE, compare_type=True, **kw)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_offline():
    _configure(url=settings.POSTGRES_DSN, literal_binds=True, dialect_opts={"paramstyle": "named"})

def run_migrations_online():
    connectable = engine_from_config({"sqlalchemy.url": settings.POSTGRES_DSN}, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
