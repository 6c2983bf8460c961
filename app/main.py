import logging
import os
from pathlib import Path
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Header
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.routes import router
from app.database import SessionLocal, init_db
from app.errors import ConfigurationError, TeamNotFound, TrxMismatch, ValidationError
from app.reconciliation import apply, find_team_by_trx
from app.webhook import SIGNATURE_HEADER, CallbackPayload, SignatureVerificationError, construct_callback

# Force-load .env (Windows-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Bazaar Payment Service")

app.include_router(router)

init_db()


def _ack(ok: bool, status_code: int = 200):
    return JSONResponse(status_code=status_code, content={"status": ok})


def _reconcile_callback(callback: CallbackPayload) -> JSONResponse:
    db = SessionLocal()
    try:
        team = find_team_by_trx(db, callback.trxid)
        if team is None:
            raise TrxMismatch(None, callback.trxid)
        outcome = apply(db, team.id, callback.trxid, callback.status)
        logger.info("Payment callback trx %s status %s -> %s", callback.trxid, callback.status, outcome.value)
    except (TrxMismatch, TeamNotFound) as e:
        logger.warning("Payment callback ignored: %s", e)
        return _ack(False)
    except Exception:
        logger.exception("Payment callback error for trx %s", callback.trxid)
        return _ack(False, 500)
    finally:
        db.close()

    return _ack(True)


@app.post("/payment/callback")
async def payment_callback(request: Request, signature: str = Header(None, alias=SIGNATURE_HEADER)):
    payload = await request.body()

    try:
        callback = construct_callback(payload, signature, os.getenv("PAYMENT_WEBHOOK_SECRET"))
    except ConfigurationError:
        logger.error("Payment callback received but PAYMENT_WEBHOOK_SECRET is not set")
        return _ack(False, 500)
    except SignatureVerificationError as e:
        logger.warning("Payment callback rejected: %s", e)
        return _ack(False, 401)
    except ValidationError:
        logger.warning("Payment callback rejected: malformed payload")
        return _ack(False, 400)

    return await run_in_threadpool(_reconcile_callback, callback)
