from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field

from carbon_registry import utils
from carbon_registry.project.schemas import ClimateProjectBase


class ClimateProject(ClimateProjectBase, utils.LedgerRecord, table=True):
    id: int = Field(primary_key=True)
    owner: str = Field(index=True)
    current_co2_reduction: int = Field(default=0)
    current_funding: int = Field(default=0)
    is_active: bool = Field(default=True)
    is_verified: bool = Field(default=False)
    # JSON columns are not change-tracked; always assign a new list
    milestones: list[str] = Field(default_factory=list, sa_column=Column(JSON))


# One row per (project, contributor). The surrogate id records the order of first
# contribution, so the contributor list is the rows of a project ordered by id.


class ProjectContribution(utils.LedgerRecord, table=True):
    __table_args__ = (UniqueConstraint("project_id", "contributor"),)

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="climateproject.id", index=True)
    contributor: str = Field(index=True)
    amount: int = Field(default=0)
