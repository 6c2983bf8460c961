"""Registration-side payment start and the user-triggered status poll."""
import logging

from sqlalchemy.orm import Session

from app.errors import InvalidTransition, TrxAlreadyAssigned, TrxMismatch
from app.gateway import CreatedPayment, GatewayClient, GatewayCredentials, StatusReport
from app.models import PaymentStatus
from app.reconciliation import ReconcileOutcome, apply, attach_transaction, get_team

logger = logging.getLogger(__name__)


def start_payment(
    db: Session,
    team_id: str,
    client: GatewayClient,
    credentials: GatewayCredentials,
    amount: int,
) -> CreatedPayment:
    """Return the team's payment link, creating a gateway transaction only
    when the team does not hold one yet."""
    team = get_team(db, team_id)
    if team.payment_status in (PaymentStatus.PAID.value, PaymentStatus.VERIFIED.value):
        raise InvalidTransition(team.payment_status, PaymentStatus.PENDING.value, "already paid")
    if team.payment_status == PaymentStatus.EXPIRED.value:
        raise InvalidTransition(team.payment_status, PaymentStatus.PENDING.value, "payment expired")
    if team.payment_trx_id:
        return CreatedPayment(trx_id=team.payment_trx_id, payment_url=team.payment_url or "")

    created = client.create_transaction(amount, credentials)
    try:
        team = attach_transaction(db, team_id, created.trx_id, created.payment_url)
    except TrxAlreadyAssigned as e:
        # A concurrent request bound its transaction first; ours is abandoned.
        logger.warning(
            "Team %s already bound to %s, abandoning gateway trx %s",
            team_id, e.existing_trx_id, created.trx_id,
        )
        team = get_team(db, team_id)
        if not team.payment_trx_id:
            raise
        return CreatedPayment(trx_id=team.payment_trx_id, payment_url=team.payment_url or "")
    return created


def poll_payment(
    db: Session,
    team_id: str,
    client: GatewayClient,
    credentials: GatewayCredentials,
) -> tuple[StatusReport, ReconcileOutcome]:
    team = get_team(db, team_id)
    if not team.payment_trx_id:
        raise TrxMismatch(team_id, "")

    trx_id = team.payment_trx_id
    report = client.check_status(trx_id, credentials)
    logger.info("Poll for team %s trx %s returned %s", team_id, trx_id, report.status)
    outcome = apply(db, team_id, trx_id, report.status)
    return report, outcome
