import datetime

from sqlmodel import Field

from carbon_registry import utils
from carbon_registry.core.models.base import utc_datetime_now
from carbon_registry.credit.schemas import CarbonCreditBase


class CarbonCredit(CarbonCreditBase, utils.LedgerRecord, table=True):
    # Ids come from the registry counters, never from the database sequence
    id: int = Field(primary_key=True)
    issuer: str = Field(index=True)
    current_owner: str = Field(index=True)
    is_verified: bool = Field(default=True)
    is_retired: bool = Field(default=False, index=True)
    issued_at: datetime.datetime = Field(default_factory=utc_datetime_now)
