from sqlmodel import Session

from carbon_registry.access.validation import (
    is_authorized_issuer,
    validate_caller,
    validate_identity,
    validate_owner,
)
from carbon_registry.core.context import LedgerContext
from carbon_registry.core.errors import NotFound
from carbon_registry.core.models.base import LedgerEventName
from carbon_registry.logging_config import logger
from carbon_registry.participant.models import AuthorizedIssuer, Participant
from carbon_registry.participant.schemas import ParticipantCreate
from carbon_registry.participant.validation import validate_participant


def get_participant(identity: str, session: Session) -> Participant:
    participant = session.get(Participant, identity) if identity else None
    if participant is None:
        raise NotFound(f"Participant not registered: {identity}", identity=identity)
    return participant


def register_participant(
    ctx: LedgerContext, participant_create: ParticipantCreate
) -> Participant:
    """Register the caller as a participant with zeroed balances.

    Args:
        ctx (LedgerContext): The open transition; the caller is the identity registered
        participant_create (ParticipantCreate): Display name, organisation type and
            verification document reference

    Returns:
        Participant: The new participant record

    Raises:
        AlreadyRegistered: If the caller already has a record
        InvalidInput: If the name or organisation type is empty
    """
    validate_caller(ctx)
    validate_participant(ctx.caller, participant_create, ctx.session)

    participant = Participant(
        identity=ctx.caller,
        name=participant_create.name,
        organization_type=participant_create.organization_type,
        verification_document=participant_create.verification_document,
    )
    ctx.session.add(participant)
    ctx.counters.count_participant()
    ctx.session.flush()

    ctx.emit(
        LedgerEventName.PARTICIPANT_REGISTERED,
        participant.identity,
        name=participant.name,
        organization_type=participant.organization_type,
    )
    logger.info(f"Participant registered: {participant.identity}")
    return participant


def verify_participant(ctx: LedgerContext, identity: str) -> Participant:
    """Mark a participant verified. Repeated calls leave it verified."""
    validate_owner(ctx)
    participant = get_participant(identity, ctx.session)

    participant.is_verified = True
    ctx.session.add(participant)

    ctx.emit(LedgerEventName.PARTICIPANT_VERIFIED, identity)
    logger.info(f"Participant verified: {identity}")
    return participant


def set_issuer_authorization(ctx: LedgerContext, identity: str, allowed: bool) -> bool:
    """Grant or revoke issuance rights.

    The target need not be registered yet; issuing still requires registration.
    """
    validate_owner(ctx)
    validate_identity(identity)

    authorization = ctx.session.get(AuthorizedIssuer, identity)
    if allowed and authorization is None:
        ctx.session.add(AuthorizedIssuer(identity=identity))
    elif not allowed and authorization is not None:
        ctx.session.delete(authorization)
    ctx.session.flush()

    ctx.emit(
        LedgerEventName.ISSUER_AUTHORIZATION_CHANGED, identity, allowed=allowed
    )
    logger.info(f"Issuer authorization for {identity} set to {allowed}")
    return allowed


def check_issuer_authorization(identity: str, session: Session) -> bool:
    return is_authorized_issuer(identity, session)
