from carbon_registry.core.errors import AlreadyRetired, InvalidInput, Unauthorized
from carbon_registry.credit.models import CarbonCredit
from carbon_registry.credit.schemas import CarbonCreditIssue
from carbon_registry.logging_config import logger


def validate_credit_issue(credit_issue: CarbonCreditIssue):
    """Amount and price are fixed at issuance, so both must be positive here."""
    errors = []

    if credit_issue.amount <= 0:
        errors.append(f"Credit amount must be greater than 0, got {credit_issue.amount}")
    if credit_issue.price_per_tonne <= 0:
        errors.append(
            f"Price per tonne must be greater than 0, got {credit_issue.price_per_tonne}"
        )
    if not credit_issue.project_name.strip():
        errors.append("Project name must not be empty")
    if not credit_issue.verification_hash.strip():
        errors.append("Verification hash must not be empty")

    if errors:
        err_msg = "; ".join(errors)
        logger.error(err_msg)
        raise InvalidInput(err_msg, errors=errors)


def validate_transferable(credit: CarbonCredit):
    if credit.is_retired:
        err_msg = f"Credit {credit.id} is retired and can no longer move"
        logger.error(err_msg)
        raise AlreadyRetired(err_msg, credit_id=credit.id)


def validate_credit_owner(credit: CarbonCredit, identity: str):
    if credit.current_owner != identity:
        err_msg = f"{identity} does not own credit {credit.id}"
        logger.error(err_msg)
        raise Unauthorized(err_msg, credit_id=credit.id)
