from typing import Sequence

from sqlmodel import Session, select

from carbon_registry.access.validation import (
    validate_authorized_issuer,
    validate_exists,
    validate_registered,
)
from carbon_registry.core.context import LedgerContext
from carbon_registry.core.errors import InsufficientPayment, NotFound, SelfTransfer
from carbon_registry.core.models.base import LedgerEventName
from carbon_registry.credit.models import CarbonCredit
from carbon_registry.credit.schemas import CarbonCreditIssue, CarbonCreditPurchaseRead
from carbon_registry.credit.validation import (
    validate_credit_issue,
    validate_credit_owner,
    validate_transferable,
)
from carbon_registry.logging_config import logger
from carbon_registry.participant.models import Participant
from carbon_registry.participant.services import get_participant


def get_credit(credit_id: int, session: Session) -> CarbonCredit:
    credit = session.get(CarbonCredit, credit_id) if credit_id else None
    if credit is None:
        raise NotFound(f"Credit {credit_id} not found", credit_id=credit_id)
    return credit


def get_owned_credit_ids(identity: str, session: Session) -> list[int]:
    """Ids of the non-retired credits currently held by `identity`.

    The set is derived from each credit's owner column, so a credit can never be
    listed under two holders and a retired credit is listed under none.
    """
    stmt = (
        select(CarbonCredit.id)
        .where(
            CarbonCredit.current_owner == identity,
            CarbonCredit.is_retired == False,  # noqa: E712
        )
        .order_by(CarbonCredit.id)  # type: ignore
    )
    return list(session.exec(stmt).all())


def list_credits(
    session: Session, owner: str | None = None, include_retired: bool = True
) -> Sequence[CarbonCredit]:
    stmt = select(CarbonCredit).order_by(CarbonCredit.id)  # type: ignore
    if owner is not None:
        stmt = stmt.where(CarbonCredit.current_owner == owner)
    if not include_retired:
        stmt = stmt.where(CarbonCredit.is_retired == False)  # noqa: E712
    return session.exec(stmt).all()


def issue_credit(ctx: LedgerContext, credit_issue: CarbonCreditIssue) -> CarbonCredit:
    """Issue a new credit to the calling issuer.

    Only pre-authorised issuers reach this path, so credits are verified at
    issuance and there is no pending state.

    Args:
        ctx (LedgerContext): The open transition; the caller is the issuer
        credit_issue (CarbonCreditIssue): Project name, amount, price per tonne,
            verification hash and methodology

    Returns:
        CarbonCredit: The issued credit, owned by the issuer

    Raises:
        Unauthorized: If the caller is not both registered and an authorised issuer
        InvalidInput: If amount or price is not positive or a label is empty
    """
    validate_authorized_issuer(ctx)
    validate_credit_issue(credit_issue)

    credit = CarbonCredit(
        id=ctx.counters.next_credit_id(),
        issuer=ctx.caller,
        current_owner=ctx.caller,
        project_name=credit_issue.project_name,
        amount=credit_issue.amount,
        price_per_tonne=credit_issue.price_per_tonne,
        verification_hash=credit_issue.verification_hash,
        methodology=credit_issue.methodology,
        is_verified=True,
        is_retired=False,
    )
    ctx.session.add(credit)

    issuer = get_participant(ctx.caller, ctx.session)
    issuer.carbon_credits_owned += credit.amount
    ctx.session.add(issuer)
    ctx.session.flush()

    ctx.emit(
        LedgerEventName.CREDIT_ISSUED,
        credit.id,
        issuer=credit.issuer,
        project_name=credit.project_name,
        amount=credit.amount,
        price_per_tonne=credit.price_per_tonne,
    )
    logger.info(f"Credit {credit.id} issued to {credit.issuer}: {credit.amount}t")
    return credit


def purchase_credit(
    ctx: LedgerContext, credit_id: int, payment_amount: int
) -> CarbonCreditPurchaseRead:
    """Buy a credit outright at its issuance price.

    The ownership change and its settlement form one transition: the payment
    is collected from the buyer, the price paid to the seller and any excess
    refunded. If any leg fails the ownership change is discarded with it.

    Raises:
        Unauthorized: If the buyer is not a registered participant
        NotFound: If the credit does not exist
        AlreadyRetired: If the credit has been retired
        SelfTransfer: If the buyer already owns the credit
        InsufficientPayment: If the payment is below amount * price_per_tonne
        PaymentFailed: If a settlement leg fails
    """
    validate_registered(ctx)
    credit = get_credit(credit_id, ctx.session)
    validate_transferable(credit)

    seller_identity = credit.current_owner
    if ctx.caller == seller_identity:
        err_msg = f"{ctx.caller} already owns credit {credit.id}"
        logger.error(err_msg)
        raise SelfTransfer(err_msg, credit_id=credit.id)

    total_price = credit.amount * credit.price_per_tonne
    if payment_amount < total_price:
        err_msg = f"Credit {credit.id} costs {total_price}, received {payment_amount}"
        logger.error(err_msg)
        raise InsufficientPayment(
            err_msg, credit_id=credit.id, total_price=total_price
        )

    seller = validate_exists(Participant, seller_identity, ctx.session)
    buyer = get_participant(ctx.caller, ctx.session)

    seller.carbon_credits_owned -= credit.amount
    buyer.carbon_credits_owned += credit.amount
    credit.current_owner = buyer.identity
    ctx.session.add_all([seller, buyer, credit])
    ctx.session.flush()

    refund = payment_amount - total_price
    ctx.settlement.collect(buyer.identity, payment_amount)
    ctx.settlement.pay(seller.identity, total_price)
    ctx.settlement.pay(buyer.identity, refund)

    ctx.emit(
        LedgerEventName.CREDIT_TRANSFERRED,
        credit.id,
        seller=seller.identity,
        buyer=buyer.identity,
        amount=credit.amount,
        total_price=total_price,
    )
    logger.info(
        f"Credit {credit.id} sold by {seller.identity} to {buyer.identity} for {total_price}"
    )
    return CarbonCreditPurchaseRead(
        credit=credit.model_dump(),
        seller=seller.identity,
        total_price=total_price,
        refund=refund,
    )


def retire_credit(ctx: LedgerContext, credit_id: int) -> CarbonCredit:
    """Permanently take a credit out of circulation.

    Raises:
        NotFound: If the credit does not exist
        Unauthorized: If the caller does not own the credit
        AlreadyRetired: If the credit is already retired
    """
    credit = get_credit(credit_id, ctx.session)
    validate_credit_owner(credit, ctx.caller)
    validate_transferable(credit)

    owner = get_participant(ctx.caller, ctx.session)
    owner.carbon_credits_owned -= credit.amount
    owner.carbon_credits_retired += credit.amount
    credit.is_retired = True
    ctx.session.add_all([owner, credit])
    ctx.session.flush()

    ctx.emit(
        LedgerEventName.CREDIT_RETIRED,
        credit.id,
        owner=owner.identity,
        amount=credit.amount,
    )
    logger.info(f"Credit {credit.id} retired by {owner.identity}")
    return credit
