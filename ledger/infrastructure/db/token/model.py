from sqlalchemy import BigInteger, CHAR, Column, DateTime, ForeignKey, String, func

from ledger.infrastructure.db.base import Base


class Base62Token(Base):
    __tablename__ = "base62_token"
    # truncated digest; the primary key enforces uniqueness
    hash_id = Column(CHAR(24), primary_key=True)
    token = Column(String, nullable=False)
    account_ulid = Column(
        CHAR(26),
        ForeignKey("account.ulid", deferrable=True, initially="DEFERRED"),
        nullable=False,
        index=True,
    )
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Base62TokenUse(Base):
    __tablename__ = "base62_token_use"
    id = Column(BigInteger, primary_key=True, autoincrement=True)
    base62_token_hash_id = Column(
        CHAR(24),
        ForeignKey("base62_token.hash_id", deferrable=True, initially="DEFERRED"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
