import datetime

from sqlalchemy import (BigInteger, CHAR, Column, DateTime, ForeignKey, Integer,
                        UniqueConstraint, func)

from ledger.infrastructure.db.base import Base


class Payment(Base):
    __tablename__ = "payment"
    __table_args__ = (UniqueConstraint("account_ulid", "index", name="uq_payment_account_index"),)

    ulid = Column(CHAR(26), primary_key=True)
    account_ulid = Column(
        CHAR(26),
        ForeignKey("account.ulid", deferrable=True, initially="DEFERRED"),
        nullable=False,
    )
    index = Column(Integer, nullable=False)
    satoshis = Column(BigInteger, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=datetime.datetime.now,
        nullable=False,
    )
