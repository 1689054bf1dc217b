import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool, create_engine

from headway.core.config import settings
from headway.db.session import Base

# Import all models so Alembic sees them in metadata
from headway.models.user import User  # noqa: F401
from headway.models.trip import Trip  # noqa: F401
from headway.models.client import Client  # noqa: F401
from headway.models.booking import Booking  # noqa: F401
from headway.models.booking_payment import BookingPayment  # noqa: F401
from headway.models.passenger import BookingPassenger  # noqa: F401
from headway.models.email_log import EmailLog  # noqa: F401
from headway.models.audit_log import AuditLog  # noqa: F401


config = context.config

# Runtime DATABASE_URL wins over alembic.ini
db_url = getattr(settings, "DATABASE_URL", None) or os.getenv("DATABASE_URL")
if not db_url:
    raise RuntimeError("DATABASE_URL is not set (check .env / headway.core.config.settings)")

config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    url = config.get_main_option("sqlalchemy.url")

    # engine_from_config would not expand env vars in alembic.ini
    connectable = create_engine(url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
