import datetime

from sqlmodel import Field

from carbon_registry import utils
from carbon_registry.core.models.base import utc_datetime_now
from carbon_registry.participant.schemas import ParticipantBase

# Participants are keyed by their identity rather than a counter-issued id,
# so the identity string doubles as the existence sentinel.


class Participant(ParticipantBase, utils.LedgerRecord, table=True):
    identity: str = Field(primary_key=True)
    carbon_credits_owned: int = Field(default=0)
    carbon_credits_retired: int = Field(default=0)
    total_contribution: int = Field(default=0)
    projects_supported: int = Field(default=0)
    is_verified: bool = Field(default=False)
    registered_at: datetime.datetime = Field(default_factory=utc_datetime_now)


class AuthorizedIssuer(utils.LedgerRecord, table=True):
    # Independent of Participant: issuance rights may be granted before registration
    identity: str = Field(primary_key=True)
