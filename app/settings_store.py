import os

from sqlalchemy.orm import Session

from app.errors import ConfigurationError
from app.gateway import GatewayCredentials
from app.models import GlobalSetting

GATEWAY_KEY_SETTING = "payment_gateway_key"
GATEWAY_ID_SETTING = "payment_gateway_id"
REGISTRATION_FEE_SETTING = "registration_fee"

DEFAULT_REGISTRATION_FEE = 10000


def get_setting(db: Session, key: str) -> str | None:
    row = db.get(GlobalSetting, key)
    if row is None:
        return None
    value = (row.value or "").strip()
    return value or None


def load_gateway_credentials(db: Session) -> GatewayCredentials:
    """Read the gateway credentials fresh from the settings table.

    Called once per gateway call so a rotated key applies immediately.
    """
    api_key = get_setting(db, GATEWAY_KEY_SETTING)
    if not api_key:
        raise ConfigurationError("Payment gateway API key is not configured")
    return GatewayCredentials(api_key=api_key, gateway_id=get_setting(db, GATEWAY_ID_SETTING))


def registration_fee(db: Session) -> int:
    raw = get_setting(db, REGISTRATION_FEE_SETTING) or os.getenv("PAYMENT_AMOUNT")
    if not raw:
        return DEFAULT_REGISTRATION_FEE
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Registration fee '{raw}' is not an integer amount")
