from fastapi import APIRouter, Depends

from carbon_registry.authentication.services import get_caller_identity
from carbon_registry.ledger import RegistryLedger, get_ledger
from carbon_registry.participant.schemas import (
    IssuerAuthorizationRead,
    IssuerAuthorizationUpdate,
    ParticipantCreate,
    ParticipantRead,
)

# Router initialisation
router = APIRouter(tags=["Participants"])


@router.post("/register", response_model=ParticipantRead, status_code=201)
def register_participant(
    participant: ParticipantCreate,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Register the calling identity as a participant."""
    return ledger.register_participant(
        caller,
        participant.name,
        participant.organization_type,
        participant.verification_document,
    )


@router.get("/{identity}", response_model=ParticipantRead)
def read_participant(identity: str, ledger: RegistryLedger = Depends(get_ledger)):
    return ledger.get_participant(identity)


@router.get("/{identity}/credits", response_model=list[int])
def read_owned_credits(identity: str, ledger: RegistryLedger = Depends(get_ledger)):
    """Ids of the credits the participant currently holds."""
    return ledger.get_owned_credit_ids(identity)


@router.post("/{identity}/verify", response_model=ParticipantRead)
def verify_participant(
    identity: str,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Mark a participant verified. Registry owner only."""
    return ledger.verify_participant(caller, identity)


@router.get("/{identity}/issuer", response_model=IssuerAuthorizationRead)
def read_issuer_authorization(
    identity: str, ledger: RegistryLedger = Depends(get_ledger)
):
    return IssuerAuthorizationRead(
        identity=identity, is_authorized_issuer=ledger.is_authorized_issuer(identity)
    )


@router.put("/{identity}/issuer", response_model=IssuerAuthorizationRead)
def update_issuer_authorization(
    identity: str,
    authorization: IssuerAuthorizationUpdate,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Grant or revoke issuance rights. Registry owner only."""
    allowed = ledger.set_issuer_authorization(caller, identity, authorization.allowed)
    return IssuerAuthorizationRead(identity=identity, is_authorized_issuer=allowed)
