from __future__ import annotations

from typing import List, Literal, Union
from pydantic import BaseModel, Field


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    vault: str = "KipuBank"
    account: str
    tags: List[str] = []


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: BaseEvent


# ---- Event types ----
# Amounts are wei; `balance` is the account's vault balance after the operation.

class Deposit(BaseEvent):
    event_type: Literal["deposit"] = "deposit"
    amount: int = Field(gt=0)
    balance: int = Field(ge=0)


class Withdrawal(BaseEvent):
    event_type: Literal["withdrawal"] = "withdrawal"
    amount: int = Field(gt=0)
    balance: int = Field(ge=0)


VaultEvent = Union[Deposit, Withdrawal]
