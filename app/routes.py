from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.auth import require_admin, require_team_access
from app.database import SessionLocal
from app.errors import (
    ConfigurationError,
    GatewayError,
    InvalidTransition,
    TeamNotFound,
    TrxAlreadyAssigned,
    TrxMismatch,
    ValidationError,
)
from app.gateway import ExternalStatus, GatewayClient
from app.models import PaymentStatus, PayoutStatus
from app.payments import poll_payment, start_payment
from app.payouts import payout_dashboard, payout_summary, record_payout, submit_bank_info
from app.reconciliation import get_team, mark_verified
from app.settings_store import load_gateway_credentials, registration_fee


router = APIRouter()


class PayoutUpdateRequest(BaseModel):
    recorded_amount: Decimal | None = None
    status: PayoutStatus | None = None
    admin_notes: str | None = None


class BankInfoRequest(BaseModel):
    account_name: str
    account_number: str


def get_gateway() -> GatewayClient:
    return GatewayClient()


def _raise_http(e: Exception):
    if isinstance(e, TeamNotFound):
        raise HTTPException(status_code=404, detail="Team not found")
    if isinstance(e, ConfigurationError):
        raise HTTPException(status_code=503, detail="Payment temporarily unavailable")
    if isinstance(e, GatewayError):
        raise HTTPException(status_code=502, detail="Could not reach payment gateway, please try again")
    if isinstance(e, (InvalidTransition, TrxAlreadyAssigned, TrxMismatch)):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=422, detail=str(e))
    raise e


@router.post("/teams/{team_id}/payment")
def start_payment_api(team_id: str, auth=Depends(require_team_access), gateway: GatewayClient = Depends(get_gateway)):
    db = SessionLocal()
    try:
        get_team(db, team_id)
        credentials = load_gateway_credentials(db)
        created = start_payment(db, team_id, gateway, credentials, registration_fee(db))
        return {
            "trx_id": created.trx_id,
            "payment_url": created.payment_url,
            "payment_status": get_team(db, team_id).payment_status,
        }
    except Exception as e:
        _raise_http(e)
    finally:
        db.close()


@router.post("/teams/{team_id}/payment/check")
def check_payment_api(team_id: str, auth=Depends(require_team_access), gateway: GatewayClient = Depends(get_gateway)):
    db = SessionLocal()
    try:
        report, outcome = poll_payment(db, team_id, gateway, load_gateway_credentials(db))
        payment_status = get_team(db, team_id).payment_status
    except Exception as e:
        _raise_http(e)
    finally:
        db.close()

    paid = payment_status in (PaymentStatus.PAID.value, PaymentStatus.VERIFIED.value)
    if paid:
        message = "Payment verified! You can now proceed."
    elif payment_status == PaymentStatus.EXPIRED.value:
        message = "Payment has EXPIRED. Please register again or contact admin."
    else:
        message = f"Status: {report.status or ExternalStatus.PENDING.value}. Please wait or try again."
    return {
        "status": paid,
        "payment_status": payment_status,
        "gateway_status": report.status,
        "outcome": outcome.value,
        "message": message,
    }


@router.get("/teams/{team_id}/payout")
def my_payout(team_id: str, auth=Depends(require_team_access)):
    db = SessionLocal()
    try:
        return payout_summary(get_team(db, team_id))
    except Exception as e:
        _raise_http(e)
    finally:
        db.close()


@router.put("/teams/{team_id}/payout/bank")
def submit_bank_info_api(team_id: str, request: BankInfoRequest, auth=Depends(require_team_access)):
    db = SessionLocal()
    try:
        team = submit_bank_info(db, team_id, request.account_name, request.account_number)
        return payout_summary(team)
    except Exception as e:
        _raise_http(e)
    finally:
        db.close()


@router.get("/admin/payouts")
def payout_dashboard_api(admin=Depends(require_admin)):
    db = SessionLocal()
    try:
        return payout_dashboard(db)
    finally:
        db.close()


@router.put("/admin/teams/{team_id}/payout")
def save_payout_api(team_id: str, request: PayoutUpdateRequest, admin=Depends(require_admin)):
    db = SessionLocal()
    try:
        team = record_payout(
            db,
            team_id,
            admin_id=str(admin.get("sub", "")),
            recorded_amount=request.recorded_amount,
            status=request.status,
            admin_notes=request.admin_notes,
        )
        return payout_summary(team)
    except Exception as e:
        _raise_http(e)
    finally:
        db.close()


@router.post("/admin/teams/{team_id}/payment/verify")
def verify_payment_api(team_id: str, admin=Depends(require_admin)):
    db = SessionLocal()
    try:
        team = mark_verified(db, team_id)
        return {"team_id": team.id, "payment_status": team.payment_status}
    except Exception as e:
        _raise_http(e)
    finally:
        db.close()
