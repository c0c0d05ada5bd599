from fastapi import APIRouter, Depends
from fastapi.responses import Response

from carbon_registry.authentication.services import get_caller_identity
from carbon_registry.credit.schemas import (
    CarbonCreditIssue,
    CarbonCreditPurchase,
    CarbonCreditPurchaseRead,
    CarbonCreditRead,
)
from carbon_registry.ledger import RegistryLedger, get_ledger

# Router initialisation
router = APIRouter(tags=["Credits"])


@router.post("/issue", response_model=CarbonCreditRead, status_code=201)
def issue_credit(
    credit: CarbonCreditIssue,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Issue a credit to the calling authorised issuer."""
    return ledger.issue_credit(
        caller,
        credit.project_name,
        credit.amount,
        credit.price_per_tonne,
        credit.verification_hash,
        credit.methodology,
    )


@router.get("/export")
def export_credits(ledger: RegistryLedger = Depends(get_ledger)):
    """Every credit in the registry as CSV, retired ones included."""
    return Response(
        content=ledger.export_credits_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=carbon_credits.csv"},
    )


@router.get("/", response_model=list[CarbonCreditRead])
def list_credits(
    owner: str | None = None,
    include_retired: bool = True,
    ledger: RegistryLedger = Depends(get_ledger),
):
    return ledger.list_credits(owner, include_retired)


@router.get("/{credit_id}", response_model=CarbonCreditRead)
def read_credit(credit_id: int, ledger: RegistryLedger = Depends(get_ledger)):
    return ledger.get_credit(credit_id)


@router.post("/{credit_id}/purchase", response_model=CarbonCreditPurchaseRead)
def purchase_credit(
    credit_id: int,
    purchase: CarbonCreditPurchase,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    """Buy a credit at its issuance price; any overpayment is refunded."""
    return ledger.purchase_credit(caller, credit_id, purchase.payment_amount)


@router.post("/{credit_id}/retire", response_model=CarbonCreditRead)
def retire_credit(
    credit_id: int,
    caller: str = Depends(get_caller_identity),
    ledger: RegistryLedger = Depends(get_ledger),
):
    return ledger.retire_credit(caller, credit_id)
