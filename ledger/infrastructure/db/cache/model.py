from sqlalchemy import BigInteger, CHAR, Column, DateTime, ForeignKey, Integer, func

from ledger.infrastructure.db.base import Base

# Populated by the address watcher; declared here so migrations know about them.


class AddressCache(Base):
    __tablename__ = "address_cache"
    address = Column(CHAR(34), primary_key=True)
    wallet_id = Column(BigInteger, nullable=False)
    account_ulid = Column(
        CHAR(26),
        ForeignKey("account.ulid", deferrable=True, initially="DEFERRED"),
        nullable=False,
    )
    index = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), nullable=False)


class CoinCache(Base):
    __tablename__ = "coin_cache"
    ulid = Column(CHAR(26), primary_key=True)
    address = Column(CHAR(34), nullable=False)
    satoshis = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), nullable=False)
