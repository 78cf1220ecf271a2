import datetime

from sqlalchemy import (BigInteger, CHAR, Column, DateTime, ForeignKey, Integer,
                        Sequence, String, UniqueConstraint, func)

from ledger.infrastructure.db.base import Base

account_index_seq = Sequence("account_index_seq")


class Account(Base):
    __tablename__ = "account"
    __table_args__ = (UniqueConstraint("wallet_id", "index", name="uq_account_wallet_index"),)

    ulid = Column(CHAR(26), primary_key=True)
    wallet_id = Column(
        BigInteger,
        ForeignKey("wallet.id", deferrable=True, initially="DEFERRED"),
        nullable=False,
    )
    # shared sequence: strictly increasing per wallet, gaps allowed
    index = Column(Integer, account_index_seq, server_default=account_index_seq.next_value(), nullable=False)
    xpub = Column(String(111), nullable=False, default="", server_default="")
    # notification targets
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    webhook = Column(String, nullable=True)
    # quota
    soft_quota = Column(Integer, nullable=True)
    hard_quota = Column(Integer, nullable=True)
    stale_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=datetime.datetime.now,
        nullable=False,
    )
