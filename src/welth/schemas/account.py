"""Pydantic schemas for accounts.

Learn: `balance` is accepted as text or number and parsed by the
service, so a non-numeric balance comes back as a VALIDATION_FAILED
action error rather than a schema error.
"""

import uuid
from datetime import datetime
from typing import Union

from pydantic import BaseModel, Field


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field(default="CURRENT", pattern=r"^(CURRENT|SAVINGS)$")
    balance: Union[str, float]
    is_default: bool = False


class AccountRead(BaseModel):
    id: uuid.UUID
    name: str
    type: str
    balance: float
    is_default: bool
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class AccountSummary(AccountRead):
    """Listing row: adds the account's transaction count."""
    transaction_count: int = 0
