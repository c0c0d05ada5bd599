import datetime

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


class ClimateProjectBase(SQLModel):
    """A funded initiative targeting a CO2 reduction goal.

    Projects are tracked independently of credits. Funding is forwarded to the
    project owner as it arrives, and reaching the funding goal closes the project
    to further contributions without changing any other state.
    """

    name: str = Field(description="Project name.")
    description: str = Field(default="", description="Free-text project description.")
    location: str = Field(default="", description="Where the project operates.")
    target_co2_reduction: int = Field(
        description="Tonnes of CO2 the project aims to remove or avoid."
    )
    funding_goal: int = Field(
        description="Funding required, in the smallest unit of the settlement currency."
    )


class ClimateProjectCreate(ClimateProjectBase):
    pass


class ClimateProjectRead(ClimateProjectBase):
    id: int
    owner: str
    current_co2_reduction: int
    current_funding: int
    is_active: bool
    is_verified: bool
    created_at: datetime.datetime
    milestones: list[str]


class ProjectFunding(BaseModel):
    amount: int = Field(description="Value contributed to the project.")


class ProjectProgressUpdate(BaseModel):
    co2_reduced: int = Field(
        description="Absolute CO2 reduction achieved so far; replaces the previous value."
    )


class ProjectMilestoneCreate(BaseModel):
    label: str


class ProjectActivationUpdate(BaseModel):
    active: bool


class ProjectContributionRead(BaseModel):
    project_id: int
    contributor: str
    amount: int
