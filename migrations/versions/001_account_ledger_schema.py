"""account ledger schema

Revision ID: 001_account_ledger
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_account_ledger'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

secret_type_enum = postgresql.ENUM('phrase', 'seed', 'xprv', name='secret_type_enum', create_type=False)


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    secret_type_enum.create(op.get_bind(), checkfirst=True)

    op.create_table('wallet',
        sa.Column('id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('secret_type', secret_type_enum, nullable=True),
        sa.Column('secret', sa.String(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint('id')
    )

    # the derivation index counter: one atomic sequence, strictly increasing
    op.execute(sa.schema.CreateSequence(sa.Sequence('account_index_seq')))
    op.create_table('account',
        sa.Column('ulid', sa.CHAR(26), nullable=False),
        sa.Column('wallet_id', sa.BigInteger(), nullable=False),
        sa.Column('index', sa.Integer(), server_default=sa.text("nextval('account_index_seq')"), nullable=False),
        sa.Column('xpub', sa.String(111), server_default='', nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('webhook', sa.String(), nullable=True),
        sa.Column('soft_quota', sa.Integer(), nullable=True),
        sa.Column('hard_quota', sa.Integer(), nullable=True),
        sa.Column('stale_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint('ulid'),
        sa.UniqueConstraint('wallet_id', 'index', name='uq_account_wallet_index'),
        sa.ForeignKeyConstraint(['wallet_id'], ['wallet.id'], deferrable=True, initially='DEFERRED'),
    )
    op.execute("ALTER SEQUENCE account_index_seq OWNED BY account.index")

    op.create_table('payment',
        sa.Column('ulid', sa.CHAR(26), nullable=False),
        sa.Column('account_ulid', sa.CHAR(26), nullable=False),
        sa.Column('index', sa.Integer(), nullable=False),
        sa.Column('satoshis', sa.BigInteger(), nullable=False),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        *timestamps(),
        sa.PrimaryKeyConstraint('ulid'),
        sa.UniqueConstraint('account_ulid', 'index', name='uq_payment_account_index'),
        sa.ForeignKeyConstraint(['account_ulid'], ['account.ulid'], deferrable=True, initially='DEFERRED'),
    )

    op.create_table('base62_token',
        sa.Column('hash_id', sa.CHAR(24), nullable=False),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('account_ulid', sa.CHAR(26), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('hash_id'),
        sa.ForeignKeyConstraint(['account_ulid'], ['account.ulid'], deferrable=True, initially='DEFERRED'),
    )
    op.create_index('ix_base62_token_account_ulid', 'base62_token', ['account_ulid'])

    op.create_table('base62_token_use',
        sa.Column('id', sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column('base62_token_hash_id', sa.CHAR(24), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['base62_token_hash_id'], ['base62_token.hash_id'], deferrable=True, initially='DEFERRED'),
    )
    op.create_index('ix_base62_token_use_base62_token_hash_id', 'base62_token_use', ['base62_token_hash_id'])

    # owned by the address watcher
    op.create_table('address_cache',
        sa.Column('address', sa.CHAR(34), nullable=False),
        sa.Column('wallet_id', sa.BigInteger(), nullable=False),
        sa.Column('account_ulid', sa.CHAR(26), nullable=False),
        sa.Column('index', sa.Integer(), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint('address'),
        sa.ForeignKeyConstraint(['account_ulid'], ['account.ulid'], deferrable=True, initially='DEFERRED'),
    )
    op.create_table('coin_cache',
        sa.Column('ulid', sa.CHAR(26), nullable=False),
        sa.Column('address', sa.CHAR(34), nullable=False),
        sa.Column('satoshis', sa.BigInteger(), nullable=False),
        *timestamps(),
        sa.PrimaryKeyConstraint('ulid'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('coin_cache')
    op.drop_table('address_cache')
    op.drop_table('base62_token_use')
    op.drop_table('base62_token')
    op.drop_table('payment')
    op.drop_table('account')
    op.drop_table('wallet')
    secret_type_enum.drop(op.get_bind(), checkfirst=True)
