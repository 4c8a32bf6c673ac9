"""
Alembic environment for the identity store.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from healthvault.config import settings
from healthvault.database import Base
# Import all models so autogenerate sees every table
from healthvault.auth import models as auth_models  # noqa: F401
from healthvault.patients import models as patient_models  # noqa: F401
from healthvault.doctors import models as doctor_models  # noqa: F401
from healthvault.staff import models as staff_models  # noqa: F401
from healthvault.core import audit_models  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        # batch mode lets ALTER work on SQLite
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
