import asyncio
import re
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from ledger.infrastructure.config import load_config
from ledger.infrastructure.db.base import Base
# Import all models to ensure they're registered with the Base
from ledger.infrastructure.db.account.model import Account
from ledger.infrastructure.db.cache.model import AddressCache, CoinCache
from ledger.infrastructure.db.payment.model import Payment
from ledger.infrastructure.db.token.model import Base62Token, Base62TokenUse
from ledger.infrastructure.db.wallet.model import Wallet

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config
envConfig = load_config()
async_dsn = re.sub(
    r"^postgresql(\+[\w]+)?://", "postgresql+asyncpg://", envConfig.postgres_dsn
)
# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Emits the SQL to the script output instead of executing it; no
    database connection is needed.
    """
    context.configure(
        url=envConfig.postgres_dsn,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_async_engine(
        async_dsn,
        poolclass=pool.NullPool,
    )

    async def run():
        async with connectable.connect() as async_connection:

            def do_run_migrations(sync_connection):
                context.configure(
                    connection=sync_connection,
                    target_metadata=target_metadata,
                    dialect_opts={"paramstyle": "named"},
                )
                with context.begin_transaction():
                    context.run_migrations()

            await async_connection.run_sync(do_run_migrations)

        await connectable.dispose()

    asyncio.run(run())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
