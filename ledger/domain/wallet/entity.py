from typing import Literal, Optional
import datetime
from pydantic import BaseModel, Field

SecretType = Literal["phrase", "seed", "xprv"]


class Wallet(BaseModel):
    id: int = Field(..., description="64-bit wallet identifier")
    secret_type: Optional[SecretType] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
