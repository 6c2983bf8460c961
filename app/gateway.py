"""Client for the YoGateway payment API.

Every response body is parsed into one of the known shapes below before any
field is used; anything else becomes `Unrecognized` and is surfaced to the
caller as a GatewayError.
"""
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union

import requests
from pydantic import AliasChoices, BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from app.errors import GatewayError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://yogateway.id/api.php"
DEFAULT_TIMEOUT = 10.0
MINIMUM_AMOUNT = 1000


class ExternalStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class GatewayCredentials:
    api_key: str
    # Stored alongside the key but not part of the current protocol.
    gateway_id: str | None = None

    def __repr__(self):
        return f"GatewayCredentials(api_key='***', gateway_id={self.gateway_id!r})"


@dataclass(frozen=True)
class CreatedPayment:
    trx_id: str
    payment_url: str
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class StatusReport:
    status: str
    raw: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Unrecognized:
    reason: str
    raw: Any = None


GatewayResponse = Union[CreatedPayment, StatusReport, Unrecognized]


class _CreatedData(BaseModel):
    trx_id: str = Field(validation_alias=AliasChoices("trxId", "trx_id", "trxid"))
    payment_url: str = Field(validation_alias=AliasChoices("paymentUrl", "payment_url"))

    @field_validator("trx_id", "payment_url")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class _StatusData(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def normalize(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("must not be blank")
        return value


class _CreateEnvelope(BaseModel):
    status: Literal[True] = Field(strict=True)
    data: _CreatedData


class _StatusEnvelope(BaseModel):
    status: Literal[True] = Field(strict=True)
    data: _StatusData


def _describe(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    )


def parse_create_response(body: Any) -> GatewayResponse:
    try:
        envelope = _CreateEnvelope.model_validate(body)
    except PydanticValidationError as e:
        return Unrecognized(_describe(e), body)
    return CreatedPayment(
        trx_id=envelope.data.trx_id,
        payment_url=envelope.data.payment_url,
        raw=body["data"],
    )


def parse_status_response(body: Any) -> GatewayResponse:
    try:
        envelope = _StatusEnvelope.model_validate(body)
    except PydanticValidationError as e:
        return Unrecognized(_describe(e), body)
    return StatusReport(status=envelope.data.status, raw=body["data"])


class GatewayClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or os.getenv("PAYMENT_GATEWAY_BASE_URL", DEFAULT_BASE_URL)
        self.timeout = timeout if timeout is not None else float(
            os.getenv("PAYMENT_GATEWAY_TIMEOUT", DEFAULT_TIMEOUT)
        )

    def create_transaction(self, amount: int, credentials: GatewayCredentials) -> CreatedPayment:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"Amount must be an integer, got {amount!r}")
        if amount < MINIMUM_AMOUNT:
            raise ValidationError(f"Amount must be at least {MINIMUM_AMOUNT}, got {amount}")

        body = self._get(
            {"action": "createpayment", "apikey": credentials.api_key, "amount": amount},
        )
        result = parse_create_response(body)
        if isinstance(result, Unrecognized):
            logger.error("Gateway createpayment rejected: %s", result.reason)
            raise GatewayError(f"Failed to create payment link: {result.reason}")
        logger.info("Gateway created transaction %s for amount %s", result.trx_id, amount)
        return result

    def check_status(self, trx_id: str, credentials: GatewayCredentials) -> StatusReport:
        body = self._get(
            {"action": "checkstatus", "apikey": credentials.api_key, "trxid": trx_id},
            headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
        )
        result = parse_status_response(body)
        if isinstance(result, Unrecognized):
            logger.error("Gateway checkstatus for %s unusable: %s", trx_id, result.reason)
            raise GatewayError(f"Invalid response from gateway: {result.reason}")
        return result

    def _get(self, params: dict, headers: dict | None = None) -> Any:
        action = params.get("action")
        try:
            resp = requests.get(self.base_url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning("Gateway %s timed out after %ss", action, self.timeout)
            raise GatewayError("Payment gateway timed out") from e
        except requests.exceptions.RequestException as e:
            logger.warning("Gateway %s connection error: %s", action, type(e).__name__)
            raise GatewayError("Payment gateway unreachable") from e

        if not 200 <= resp.status_code < 300:
            logger.warning("Gateway %s returned HTTP %s", action, resp.status_code)
            raise GatewayError(f"Payment gateway returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise GatewayError("Payment gateway returned a non-JSON body") from e
