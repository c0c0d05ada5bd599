from sqlmodel import Session

from carbon_registry.core.errors import AlreadyRegistered, InvalidInput
from carbon_registry.logging_config import logger
from carbon_registry.participant.models import Participant
from carbon_registry.participant.schemas import ParticipantCreate


def validate_participant(identity: str, participant: ParticipantCreate, session: Session):
    """Validates registration requests."""

    if Participant.exists(identity, session):
        err_msg = f"Participant already registered: {identity}"
        logger.error(err_msg)
        raise AlreadyRegistered(err_msg, identity=identity)

    if not participant.name.strip():
        err_msg = "Participant name must not be empty"
        logger.error(err_msg)
        raise InvalidInput(err_msg)

    if not participant.organization_type.strip():
        err_msg = "Organisation type must not be empty"
        logger.error(err_msg)
        raise InvalidInput(err_msg)
