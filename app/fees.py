"""Payout fee model.

The organizer only ever sees the net amount settled to the bank account,
after the gateway has withheld its processing fee. Both fee rates are
defined against the gross amount, so the gross is recovered first and every
other figure is derived from it.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ORGANIZER_FEE_RATE = Decimal("0.10")     # 10%
PROCESSING_FEE_RATE = Decimal("0.007")   # 0.7%

ZERO = Decimal("0")


@dataclass(frozen=True)
class PayoutComputation:
    recorded_amount: Decimal
    before_processing: Decimal
    processing_fee_amount: Decimal
    organizer_fee_amount: Decimal
    participant_take_home: Decimal

    def rounded(self, places: int = 0) -> "PayoutComputation":
        """Presentation copy with every figure quantized to `places` decimals."""
        exponent = Decimal(1).scaleb(-places)
        return PayoutComputation(**{
            name: value.quantize(exponent, rounding=ROUND_HALF_UP)
            for name, value in asdict(self).items()
        })

    def as_dict(self, places: int = 0) -> dict:
        return asdict(self.rounded(places))


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            # str() keeps float input from dragging binary noise into the chain
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if amount.is_nan() or amount.is_infinite():
        return ZERO
    return amount


def compute_payout(recorded_amount) -> PayoutComputation:
    """Reverse-compute gross and fees from the net `recorded_amount`.

    Absent, unparsable and non-positive input is a valid "no payout yet"
    state and yields an all-zero result.
    """
    recorded = _to_decimal(recorded_amount)
    if recorded <= ZERO:
        return PayoutComputation(ZERO, ZERO, ZERO, ZERO, ZERO)

    before_processing = recorded / (1 - PROCESSING_FEE_RATE)
    processing_fee_amount = before_processing * PROCESSING_FEE_RATE
    organizer_fee_amount = before_processing * ORGANIZER_FEE_RATE
    participant_take_home = before_processing - organizer_fee_amount

    return PayoutComputation(
        recorded_amount=recorded,
        before_processing=before_processing,
        processing_fee_amount=processing_fee_amount,
        organizer_fee_amount=organizer_fee_amount,
        participant_take_home=participant_take_home,
    )


def format_idr(value, places: int = 0) -> str:
    """Format an amount the way the dashboard shows rupiah, e.g. ``Rp 10.000``."""
    amount = _to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.{places}f}"
    # id-ID uses "." for thousands and "," for decimals
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}Rp {text}"
