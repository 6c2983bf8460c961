from decimal import Decimal

import pytest

from app.fees import (
    ORGANIZER_FEE_RATE,
    PROCESSING_FEE_RATE,
    PayoutComputation,
    compute_payout,
    format_idr,
)


def test_net_after_processing_fee_recovers_gross():
    result = compute_payout(9930)

    assert result.recorded_amount == Decimal("9930")
    assert result.before_processing == Decimal("10000")
    assert result.processing_fee_amount == Decimal("70")
    assert result.organizer_fee_amount == Decimal("1000")
    assert result.participant_take_home == Decimal("9000")


@pytest.mark.parametrize("value", [0, None, -500, "", "abc", float("nan")])
def test_no_payout_yet_is_all_zero(value):
    result = compute_payout(value)

    assert result == PayoutComputation(*([Decimal("0")] * 5))


def test_take_home_is_not_reduced_by_processing_fee():
    result = compute_payout(Decimal("150000"))

    assert result.participant_take_home == result.before_processing - result.organizer_fee_amount
    assert result.before_processing - result.processing_fee_amount == Decimal("150000")


def test_no_rounding_inside_the_chain():
    result = compute_payout(1000)

    # 1000 / 0.993 is not a terminating decimal
    assert result.before_processing != result.before_processing.quantize(Decimal("0.01"))
    assert result.before_processing * (1 - PROCESSING_FEE_RATE) == pytest.approx(Decimal("1000"))
    assert result.organizer_fee_amount == result.before_processing * ORGANIZER_FEE_RATE


def test_float_input_goes_through_str():
    assert compute_payout(0.1 + 0.2).recorded_amount == Decimal("0.30000000000000004")
    assert compute_payout(19860.0).before_processing == Decimal("20000")


def test_rounded_for_presentation():
    result = compute_payout(1000).as_dict()

    assert result == {
        "recorded_amount": Decimal("1000"),
        "before_processing": Decimal("1007"),
        "processing_fee_amount": Decimal("7"),
        "organizer_fee_amount": Decimal("101"),
        "participant_take_home": Decimal("906"),
    }
    assert compute_payout(1000).rounded(2).before_processing == Decimal("1007.05")


def test_deterministic():
    assert compute_payout("45678") == compute_payout(Decimal("45678"))


def test_format_idr():
    assert format_idr(Decimal("10000")) == "Rp 10.000"
    assert format_idr(1234567.891, places=2) == "Rp 1.234.567,89"
    assert format_idr(None) == "Rp 0"
