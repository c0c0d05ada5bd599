from carbon_registry.core.errors import InactiveOrFullyFunded, InvalidInput
from carbon_registry.logging_config import logger
from carbon_registry.project.models import ClimateProject
from carbon_registry.project.schemas import ClimateProjectCreate


def _invalid(err_msg: str, **details):
    logger.error(err_msg)
    raise InvalidInput(err_msg, **details)


def validate_project_create(project_create: ClimateProjectCreate):
    if not project_create.name.strip():
        _invalid("Project name must not be empty")
    if project_create.target_co2_reduction <= 0:
        _invalid(
            f"Target CO2 reduction must be greater than 0, got {project_create.target_co2_reduction}"
        )
    if project_create.funding_goal <= 0:
        _invalid(f"Funding goal must be greater than 0, got {project_create.funding_goal}")


def validate_fundable(project: ClimateProject, amount: int):
    """A project accepts contributions while active and short of its goal."""
    if not project.is_active:
        err_msg = f"Project {project.id} is not active"
        logger.error(err_msg)
        raise InactiveOrFullyFunded(err_msg, project_id=project.id)

    if project.current_funding >= project.funding_goal:
        err_msg = f"Project {project.id} has already reached its funding goal"
        logger.error(err_msg)
        raise InactiveOrFullyFunded(err_msg, project_id=project.id)

    if amount <= 0:
        _invalid(f"Contribution must be greater than 0, got {amount}")


def validate_progress(project: ClimateProject, co2_reduced: int):
    if co2_reduced < 0:
        _invalid(f"CO2 reduction must not be negative, got {co2_reduced}")
    if co2_reduced > project.target_co2_reduction:
        _invalid(
            f"CO2 reduction {co2_reduced} exceeds project {project.id} target "
            f"of {project.target_co2_reduction}",
            project_id=project.id,
        )


def validate_milestone(label: str):
    if not label.strip():
        _invalid("Milestone label must not be empty")
