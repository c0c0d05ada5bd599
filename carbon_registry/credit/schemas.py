import datetime

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


class CarbonCreditBase(SQLModel):
    """A claimed quantity of CO2 offset, issued by an authorised issuer.

    A credit is owned by exactly one identity from issuance until it is retired.
    Ownership moves only through a direct purchase at the issuance price, and
    retirement is terminal: a retired credit never moves again.
    """

    project_name: str = Field(
        description="Name of the offset project the credit was generated by."
    )
    amount: int = Field(description="Tonnes of CO2 represented by the credit.")
    price_per_tonne: int = Field(
        description="Price per tonne, in the smallest unit of the settlement currency."
    )
    verification_hash: str = Field(
        description="Opaque reference to the external verification attestation."
    )
    methodology: str = Field(
        default="", description="Label of the methodology used to quantify the offset."
    )


class CarbonCreditIssue(CarbonCreditBase):
    pass


class CarbonCreditRead(CarbonCreditBase):
    id: int
    issuer: str
    current_owner: str
    is_verified: bool
    is_retired: bool
    issued_at: datetime.datetime


class CarbonCreditPurchase(BaseModel):
    payment_amount: int = Field(
        description="Value offered; any excess over amount * price_per_tonne is refunded."
    )


class CarbonCreditPurchaseRead(BaseModel):
    credit: CarbonCreditRead
    seller: str
    total_price: int
    refund: int
