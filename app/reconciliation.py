"""Payment reconciliation engine.

Both the webhook and the user-triggered poll funnel into `apply`. Every state
change is a single conditional UPDATE guarded by the expected current status,
so the database decides which of several concurrent callers wins and no
in-process lock is needed.

    PENDING -> PAID      (gateway SUCCESS, sets paid_at)
    PENDING -> EXPIRED   (gateway EXPIRED)
    PAID    -> VERIFIED  (admin action, `mark_verified`)
"""
import logging
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.errors import InvalidTransition, TeamNotFound, TrxAlreadyAssigned, TrxMismatch
from app.gateway import ExternalStatus
from app.models import PaymentStatus, Team

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({
    PaymentStatus.PAID.value,
    PaymentStatus.VERIFIED.value,
    PaymentStatus.EXPIRED.value,
})

# external status -> local status it moves a PENDING team to
_TRANSITIONS = {
    ExternalStatus.SUCCESS.value: PaymentStatus.PAID,
    ExternalStatus.EXPIRED.value: PaymentStatus.EXPIRED,
}


class ReconcileOutcome(str, Enum):
    APPLIED_PAID = "APPLIED_PAID"
    APPLIED_EXPIRED = "APPLIED_EXPIRED"
    NOOP_TERMINAL = "NOOP_TERMINAL"
    NOOP_IGNORED = "NOOP_IGNORED"


def _now():
    return datetime.now(timezone.utc)


def get_team(db: Session, team_id: str) -> Team:
    team = db.get(Team, team_id)
    if team is None:
        raise TeamNotFound(team_id)
    return team


def find_team_by_trx(db: Session, trx_id: str) -> Team | None:
    return db.query(Team).filter(Team.payment_trx_id == trx_id).first()


def apply(db: Session, team_id: str, trx_id: str, external_status: str) -> ReconcileOutcome:
    """Merge a gateway-reported status into the team record at most once."""
    team = get_team(db, team_id)
    # payment_trx_id is immutable once set
    if not trx_id or team.payment_trx_id != trx_id:
        logger.warning(
            "Rejected status %s for team %s: trx %s does not match stored trx",
            external_status, team_id, trx_id,
        )
        raise TrxMismatch(team_id, trx_id)

    if team.payment_status in TERMINAL_STATUSES:
        logger.info("Team %s already %s, ignoring %s", team_id, team.payment_status, external_status)
        return ReconcileOutcome.NOOP_TERMINAL

    normalized = (external_status or "").strip().upper()
    target = _TRANSITIONS.get(normalized)
    if target is None:
        return ReconcileOutcome.NOOP_IGNORED

    values = {"payment_status": target.value}
    if target is PaymentStatus.PAID:
        values["paid_at"] = _now()

    result = db.execute(
        update(Team)
        .where(
            Team.id == team_id,
            Team.payment_trx_id == trx_id,
            Team.payment_status == PaymentStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount == 0:
        # Someone else moved the team out of PENDING between our read and write.
        logger.info("Team %s left PENDING concurrently, %s is a no-op", team_id, normalized)
        return ReconcileOutcome.NOOP_TERMINAL

    logger.info("Team %s payment %s -> %s (trx %s)", team_id, PaymentStatus.PENDING.value, target.value, trx_id)
    if target is PaymentStatus.PAID:
        return ReconcileOutcome.APPLIED_PAID
    return ReconcileOutcome.APPLIED_EXPIRED


def attach_transaction(db: Session, team_id: str, trx_id: str, payment_url: str | None) -> Team:
    """Bind a freshly created gateway transaction to a pending team.

    An existing binding is never overwritten; re-attaching the same id is a
    no-op.
    """
    team = get_team(db, team_id)
    if team.payment_trx_id == trx_id:
        return team

    result = db.execute(
        update(Team)
        .where(
            Team.id == team_id,
            Team.payment_trx_id.is_(None),
            Team.payment_status == PaymentStatus.PENDING.value,
        )
        .values(payment_trx_id=trx_id, payment_url=payment_url)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount == 0:
        if team.payment_trx_id == trx_id:
            return team
        raise TrxAlreadyAssigned(team_id, team.payment_trx_id)

    logger.info("Team %s bound to transaction %s", team_id, trx_id)
    return team


def mark_verified(db: Session, team_id: str) -> Team:
    """Administrative PAID -> VERIFIED confirmation."""
    team = get_team(db, team_id)
    if team.payment_status == PaymentStatus.VERIFIED.value:
        return team

    result = db.execute(
        update(Team)
        .where(Team.id == team_id, Team.payment_status == PaymentStatus.PAID.value)
        .values(payment_status=PaymentStatus.VERIFIED.value, verified_at=_now())
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount == 0:
        if team.payment_status == PaymentStatus.VERIFIED.value:
            return team
        raise InvalidTransition(team.payment_status, PaymentStatus.VERIFIED.value, "payment not received")

    logger.info("Team %s payment verified", team_id)
    return team
