import datetime

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


class ParticipantBase(SQLModel):
    """A registered identity that may hold credits and create or fund projects.

    Participants are created once through registration and are never removed.
    Their balances are maintained by the ledger as credits and projects move,
    and only the registry administrator may mark them verified.
    """

    name: str = Field(description="Display name of the participant.")
    organization_type: str = Field(
        description="Free-form organisation category, e.g. individual, company, NGO."
    )
    verification_document: str = Field(
        default="",
        description="Opaque reference to the document supporting verification.",
    )


class ParticipantCreate(ParticipantBase):
    pass


class ParticipantRead(ParticipantBase):
    identity: str
    carbon_credits_owned: int
    carbon_credits_retired: int
    total_contribution: int
    projects_supported: int
    is_verified: bool
    registered_at: datetime.datetime


class IssuerAuthorizationUpdate(BaseModel):
    allowed: bool = Field(description="Grant (true) or revoke (false) issuance rights.")


class IssuerAuthorizationRead(BaseModel):
    identity: str
    is_authorized_issuer: bool
