from typing import Sequence

from sqlmodel import Session, select

from carbon_registry.access.validation import (
    is_owner,
    validate_owner,
    validate_registered,
)
from carbon_registry.core.context import LedgerContext
from carbon_registry.core.errors import NotFound, Unauthorized
from carbon_registry.core.models.base import LedgerEventName
from carbon_registry.logging_config import logger
from carbon_registry.participant.services import get_participant
from carbon_registry.project.models import ClimateProject, ProjectContribution
from carbon_registry.project.schemas import ClimateProjectCreate
from carbon_registry.project.validation import (
    validate_fundable,
    validate_milestone,
    validate_progress,
    validate_project_create,
)


def get_project(project_id: int, session: Session) -> ClimateProject:
    project = session.get(ClimateProject, project_id) if project_id else None
    if project is None:
        raise NotFound(f"Project {project_id} not found", project_id=project_id)
    return project


def list_projects(session: Session) -> Sequence[ClimateProject]:
    return session.exec(select(ClimateProject).order_by(ClimateProject.id)).all()  # type: ignore


def get_contributions(project_id: int, session: Session) -> Sequence[ProjectContribution]:
    stmt = (
        select(ProjectContribution)
        .where(ProjectContribution.project_id == project_id)
        .order_by(ProjectContribution.id)  # type: ignore
    )
    return session.exec(stmt).all()


def get_contributors(project_id: int, session: Session) -> list[str]:
    """Distinct contributors of a project, in order of first contribution."""
    get_project(project_id, session)
    return [c.contributor for c in get_contributions(project_id, session)]


def _get_contribution_record(
    project_id: int, contributor: str, session: Session
) -> ProjectContribution | None:
    stmt = select(ProjectContribution).where(
        ProjectContribution.project_id == project_id,
        ProjectContribution.contributor == contributor,
    )
    return session.exec(stmt).first()


def get_contribution(project_id: int, contributor: str, session: Session) -> int:
    get_project(project_id, session)
    record = _get_contribution_record(project_id, contributor, session)
    return record.amount if record else 0


def funding_goal_reached_noop(ctx: LedgerContext, project: ClimateProject) -> None:
    """Default hook for a project reaching its funding goal.

    Reaching the goal deliberately triggers nothing; deployments that want an
    implementation phase pass their own hook to the ledger.
    """
    logger.info(
        f"Project {project.id} reached its funding goal "
        f"({project.current_funding}/{project.funding_goal})"
    )


def create_project(
    ctx: LedgerContext, project_create: ClimateProjectCreate
) -> ClimateProject:
    """Create a project owned by the caller with no funding and no progress.

    Raises:
        Unauthorized: If the caller is not a registered participant
        InvalidInput: If the name is empty or the target or goal is not positive
    """
    validate_registered(ctx)
    validate_project_create(project_create)

    project = ClimateProject(
        id=ctx.counters.next_project_id(),
        owner=ctx.caller,
        name=project_create.name,
        description=project_create.description,
        location=project_create.location,
        target_co2_reduction=project_create.target_co2_reduction,
        funding_goal=project_create.funding_goal,
        current_co2_reduction=0,
        current_funding=0,
        is_active=True,
        is_verified=False,
        milestones=[],
    )
    ctx.session.add(project)
    ctx.session.flush()

    ctx.emit(
        LedgerEventName.PROJECT_CREATED,
        project.id,
        owner=project.owner,
        name=project.name,
        target_co2_reduction=project.target_co2_reduction,
        funding_goal=project.funding_goal,
    )
    logger.info(f"Project {project.id} created by {project.owner}")
    return project


def fund_project(ctx: LedgerContext, project_id: int, amount: int) -> ClimateProject:
    """Contribute to a project; the contribution goes straight to its owner.

    Owners may fund their own projects. A contribution may take the total past
    the goal, after which the project accepts no more funding.

    Raises:
        Unauthorized: If the contributor is not a registered participant
        NotFound: If the project does not exist
        InactiveOrFullyFunded: If the project is inactive or already at its goal
        InvalidInput: If the amount is not positive
        PaymentFailed: If the contribution cannot be settled
    """
    validate_registered(ctx)
    project = get_project(project_id, ctx.session)
    validate_fundable(project, amount)

    contributor = get_participant(ctx.caller, ctx.session)
    record = _get_contribution_record(project.id, contributor.identity, ctx.session)
    if record is None:
        record = ProjectContribution(
            project_id=project.id, contributor=contributor.identity, amount=0
        )
        contributor.projects_supported += 1

    record.amount += amount
    project.current_funding += amount
    contributor.total_contribution += amount
    ctx.session.add_all([record, project, contributor])
    ctx.session.flush()

    ctx.settlement.collect(contributor.identity, amount)
    ctx.settlement.pay(project.owner, amount)

    ctx.emit(
        LedgerEventName.PROJECT_FUNDED,
        project.id,
        contributor=contributor.identity,
        amount=amount,
        current_funding=project.current_funding,
    )
    logger.info(f"Project {project.id} funded by {contributor.identity}: {amount}")

    if project.current_funding >= project.funding_goal:
        ctx.funding_goal_reached(ctx, project)

    return project


def verify_project(ctx: LedgerContext, project_id: int) -> ClimateProject:
    validate_owner(ctx)
    project = get_project(project_id, ctx.session)

    project.is_verified = True
    ctx.session.add(project)

    ctx.emit(LedgerEventName.PROJECT_VERIFIED, project.id)
    logger.info(f"Project {project.id} verified")
    return project


def update_project_progress(
    ctx: LedgerContext, project_id: int, co2_reduced: int
) -> ClimateProject:
    """Overwrite a project's achieved CO2 reduction with an absolute value."""
    validate_owner(ctx)
    project = get_project(project_id, ctx.session)
    validate_progress(project, co2_reduced)

    previous = project.current_co2_reduction
    project.current_co2_reduction = co2_reduced
    ctx.session.add(project)

    ctx.emit(
        LedgerEventName.PROJECT_PROGRESS_UPDATED,
        project.id,
        previous_co2_reduction=previous,
        current_co2_reduction=co2_reduced,
    )
    logger.info(f"Project {project.id} progress set to {co2_reduced}")
    return project


def add_project_milestone(
    ctx: LedgerContext, project_id: int, label: str
) -> ClimateProject:
    project = get_project(project_id, ctx.session)
    if ctx.caller != project.owner and not is_owner(ctx.caller, ctx.registry_owner):
        err_msg = f"{ctx.caller} may not add milestones to project {project.id}"
        logger.error(err_msg)
        raise Unauthorized(err_msg, project_id=project.id)
    validate_milestone(label)

    project.milestones = [*project.milestones, label]
    ctx.session.add(project)

    ctx.emit(LedgerEventName.PROJECT_MILESTONE_ADDED, project.id, label=label)
    logger.info(f"Milestone added to project {project.id}: {label}")
    return project


def set_project_active(
    ctx: LedgerContext, project_id: int, active: bool
) -> ClimateProject:
    validate_owner(ctx)
    project = get_project(project_id, ctx.session)

    project.is_active = active
    ctx.session.add(project)

    ctx.emit(LedgerEventName.PROJECT_ACTIVATION_CHANGED, project.id, active=active)
    logger.info(f"Project {project.id} active set to {active}")
    return project
