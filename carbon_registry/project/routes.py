from fastapi import APIRouter, Depends

from carbon_registry.authentication.services import get_caller_identity
from carbon_registry.ledger import RegistryLedger, get_ledger
from carbon_registry.project.schemas import (
    ClimateProjectCreate,
    ClimateProjectRead,
    ProjectActivationUpdate,
    ProjectContributionRead,
    ProjectFunding,
    ProjectMilestoneCreate,
    ProjectProgressUpdate,
)

# Router initialisation
router = APIRouter(tags=["Projects"])


@router.post("/create", response_model=ClimateProjectRead, status_code=201)
def create_project(
    project: ClimateProjectCreate,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Create a climate project owned by the caller."""
    return ledger.create_project(
        caller,
        project.name,
        project.description,
        project.location,
        project.target_co2_reduction,
        project.funding_goal,
    )


@router.get("/", response_model=list[ClimateProjectRead])
def list_projects(ledger: RegistryLedger = Depends(get_ledger)):
    return ledger.list_projects()


@router.get("/{project_id}", response_model=ClimateProjectRead)
def read_project(project_id: int, ledger: RegistryLedger = Depends(get_ledger)):
    return ledger.get_project(project_id)


@router.get("/{project_id}/contributors", response_model=list[str])
def read_contributors(project_id: int, ledger: RegistryLedger = Depends(get_ledger)):
    """Contributors in order of their first contribution."""
    return ledger.get_project_contributors(project_id)


@router.get(
    "/{project_id}/contributions/{contributor}", response_model=ProjectContributionRead
)
def read_contribution(
    project_id: int, contributor: str, ledger: RegistryLedger = Depends(get_ledger)
):
    return ProjectContributionRead(
        project_id=project_id,
        contributor=contributor,
        amount=ledger.get_contribution(project_id, contributor),
    )


@router.post("/{project_id}/fund", response_model=ClimateProjectRead)
def fund_project(
    project_id: int,
    funding: ProjectFunding,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Contribute to a project; funds are forwarded to the project owner."""
    return ledger.fund_project(caller, project_id, funding.amount)


@router.post("/{project_id}/verify", response_model=ClimateProjectRead)
def verify_project(
    project_id: int,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    return ledger.verify_project(caller, project_id)


@router.post("/{project_id}/progress", response_model=ClimateProjectRead)
def update_project_progress(
    project_id: int,
    progress: ProjectProgressUpdate,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    return ledger.update_project_progress(caller, project_id, progress.co2_reduced)


@router.post("/{project_id}/milestone", response_model=ClimateProjectRead)
def add_project_milestone(
    project_id: int,
    milestone: ProjectMilestoneCreate,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    return ledger.add_project_milestone(caller, project_id, milestone.label)


@router.put("/{project_id}/active", response_model=ClimateProjectRead)
def set_project_active(
    project_id: int,
    activation: ProjectActivationUpdate,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    return ledger.set_project_active(caller, project_id, activation.active)
