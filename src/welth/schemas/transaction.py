"""Pydantic schemas for transactions and the dashboard."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from welth.schemas.account import AccountSummary


class TransactionRead(BaseModel):
    id: uuid.UUID
    type: str
    amount: float
    description: Optional[str] = None
    date: datetime
    category: str
    receipt_url: Optional[str] = None
    is_recurring: bool
    recurring_interval: Optional[str] = None
    next_recurring_date: Optional[datetime] = None
    last_processed: Optional[datetime] = None
    status: str
    user_id: uuid.UUID
    account_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class DashboardRead(BaseModel):
    accounts: list[AccountSummary]
    transactions: list[TransactionRead]
