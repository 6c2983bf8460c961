import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from app.errors import ValidationError
from app.fees import compute_payout, format_idr
from app.models import PayoutStatus, Team
from app.reconciliation import get_team

logger = logging.getLogger(__name__)

PAYOUT_STATUS_LABELS = {
    PayoutStatus.WAITING_VERIFICATION: "Menunggu Verifikasi",
    PayoutStatus.PROCESSING: "Sedang Diproses",
    PayoutStatus.TRANSFERRED: "Berhasil Ditransfer",
}


def payout_summary(team: Team, places: int = 0) -> dict:
    """Stored payout fields plus figures derived from the recorded amount.

    The derived figures are recomputed on every call and never stored.
    """
    status = PayoutStatus(team.payout_status or PayoutStatus.WAITING_VERIFICATION.value)
    computed = compute_payout(team.recorded_amount).as_dict(places)
    return {
        "team_id": team.id,
        "team_name": team.name,
        "payment_status": team.payment_status,
        "recorded_amount": team.recorded_amount,
        "status": status.value,
        "status_label": PAYOUT_STATUS_LABELS[status],
        "bank_account_name": team.bank_account_name,
        "bank_account_number": team.bank_account_number,
        "admin_notes": team.payout_admin_notes,
        "updated_at": team.payout_updated_at,
        "computed": computed,
        "computed_display": {name: format_idr(value, places) for name, value in computed.items()},
    }


def payout_dashboard(db: Session) -> list[dict]:
    teams = db.query(Team).order_by(Team.name).all()
    return [payout_summary(team) for team in teams]


def record_payout(
    db: Session,
    team_id: str,
    admin_id: str,
    recorded_amount: Decimal | None = None,
    status: PayoutStatus | None = None,
    admin_notes: str | None = None,
) -> Team:
    team = get_team(db, team_id)

    if recorded_amount is not None:
        team.recorded_amount = max(Decimal("0"), Decimal(str(recorded_amount)))
    if status is not None:
        team.payout_status = PayoutStatus(status).value
    if admin_notes is not None:
        team.payout_admin_notes = admin_notes

    team.payout_updated_by = admin_id
    team.payout_updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(team)

    logger.info("Payout for team %s updated by %s", team_id, admin_id)
    return team


def submit_bank_info(db: Session, team_id: str, account_name: str, account_number: str) -> Team:
    name = (account_name or "").strip()
    number = "".join((account_number or "").split())
    if not name:
        raise ValidationError("Bank account name is required")
    if not number:
        raise ValidationError("Bank account number is required")

    team = get_team(db, team_id)
    team.bank_account_name = name
    team.bank_account_number = number
    db.commit()
    db.refresh(team)
    return team
