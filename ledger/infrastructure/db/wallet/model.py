import datetime

from sqlalchemy import BigInteger, Column, DateTime, Enum, String, func

from ledger.infrastructure.db.base import Base

SECRET_TYPES = ("phrase", "seed", "xprv")


class Wallet(Base):
    __tablename__ = "wallet"
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    secret_type = Column(Enum(*SECRET_TYPES, name="secret_type_enum"), nullable=True)
    secret = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=datetime.datetime.now,
        nullable=False,
    )
