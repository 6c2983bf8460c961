"""Inbound gateway callback: authenticity check and payload parsing."""
import hashlib
import hmac
import json

from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator

from app.errors import ConfigurationError, ValidationError

SIGNATURE_HEADER = "X-YoGateway-Signature"


class SignatureVerificationError(Exception):
    pass


class CallbackPayload(BaseModel):
    trxid: str
    status: str

    @field_validator("trxid", "status")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def construct_callback(payload: bytes, signature: str | None, secret: str | None) -> CallbackPayload:
    """Verify `signature` over the raw body, then parse it.

    Raises ConfigurationError when no secret is configured,
    SignatureVerificationError on a missing or wrong signature and
    ValidationError on a malformed body.
    """
    if not secret:
        raise ConfigurationError("PAYMENT_WEBHOOK_SECRET is not set")
    if not signature:
        raise SignatureVerificationError("Missing signature")

    expected = compute_signature(payload, secret)
    if not hmac.compare_digest(expected, signature.strip().lower()):
        raise SignatureVerificationError("Invalid signature")

    try:
        body = json.loads(payload)
    except (UnicodeDecodeError, ValueError) as e:
        raise ValidationError("Invalid payload") from e
    if not isinstance(body, dict):
        raise ValidationError("Invalid payload")

    try:
        return CallbackPayload.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError("Invalid payload") from e
