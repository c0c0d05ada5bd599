from sqlmodel import Session

from carbon_registry.core.context import LedgerContext
from carbon_registry.core.errors import InvalidInput, NotFound, Unauthorized
from carbon_registry.core.models.base import NULL_IDENTITY
from carbon_registry.logging_config import logger
from carbon_registry.participant.models import AuthorizedIssuer, Participant


def is_owner(identity: str, registry_owner: str) -> bool:
    return identity != NULL_IDENTITY and identity == registry_owner


def is_registered(identity: str, session: Session) -> bool:
    return Participant.exists(identity, session)


def is_authorized_issuer(identity: str, session: Session) -> bool:
    return AuthorizedIssuer.exists(identity, session)


def _reject(message: str) -> None:
    logger.error(message)
    raise Unauthorized(message)


def validate_identity(identity: str):
    """Reject the null identity as the target of an operation."""
    if not identity or identity == NULL_IDENTITY:
        msg = "Identity must not be empty"
        logger.error(msg)
        raise InvalidInput(msg)


def validate_caller(ctx: LedgerContext):
    if not ctx.caller or ctx.caller == NULL_IDENTITY:
        _reject("Operation requires an acting identity")


def validate_owner(ctx: LedgerContext):
    """
    Validate that the caller is the registry administrator.

    Raises:
        Unauthorized: If the caller is anyone else.
    """
    validate_caller(ctx)
    if not is_owner(ctx.caller, ctx.registry_owner):
        _reject(f"{ctx.caller} is not the registry owner")


def validate_registered(ctx: LedgerContext):
    """
    Validate that the caller is a registered participant.

    Raises:
        Unauthorized: If the caller has no participant record.
    """
    validate_caller(ctx)
    if not is_registered(ctx.caller, ctx.session):
        _reject(f"{ctx.caller} is not a registered participant")


def validate_authorized_issuer(ctx: LedgerContext):
    """
    Validate that the caller is registered and holds issuance rights.

    Raises:
        Unauthorized: If either membership is missing.
    """
    validate_registered(ctx)
    if not is_authorized_issuer(ctx.caller, ctx.session):
        _reject(f"{ctx.caller} is not an authorized issuer")


def validate_exists(record_cls, id_, session: Session):
    """Fetch a record, treating the reserved id 0 as absent."""
    if not record_cls.exists(id_, session):
        msg = f"{record_cls.__name__} with id {id_} not found"
        logger.error(msg)
        raise NotFound(msg)
    return session.get(record_cls, id_)
