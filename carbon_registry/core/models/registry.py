from typing import Any

from pydantic import BaseModel
from sqlalchemy import JSON, Column
from sqlmodel import Field, Session

from carbon_registry import utils

COUNTERS_ROW_ID = 1


class RegistryCounters(utils.LedgerRecord, table=True):
    """Platform-wide totals. They only ever increase, and each new credit or
    project takes the value of its counter after the increment as its id, so
    id 0 is never allocated and ids are never reused."""

    id: int = Field(default=COUNTERS_ROW_ID, primary_key=True)
    total_credits: int = Field(default=0)
    total_projects: int = Field(default=0)
    total_participants: int = Field(default=0)

    @classmethod
    def load(cls, session: Session) -> "RegistryCounters":
        counters = session.get(cls, COUNTERS_ROW_ID)
        if counters is None:
            counters = cls(id=COUNTERS_ROW_ID)
            session.add(counters)
            session.flush()
        return counters

    def next_credit_id(self) -> int:
        self.total_credits += 1
        return self.total_credits

    def next_project_id(self) -> int:
        self.total_projects += 1
        return self.total_projects

    def count_participant(self) -> int:
        self.total_participants += 1
        return self.total_participants


class LedgerEvent(utils.LedgerRecord, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    subject: str = Field(index=True)
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


class PlatformStatistics(BaseModel):
    total_credits: int
    total_projects: int
    total_participants: int
    ledger_balance: int
