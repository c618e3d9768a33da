"""
Property-based tests for the pure parts of trade recording.

Boundaries fuzzed here:
- References: any booking date and sequence format and parse consistently
- Quote amounts: base x rate rounds half-up to exactly 4 places
- Amount validation: in-range amounts at scale pass, extra digits never do
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from fx_config.schema import ValidationSettings
from fx_trading.db.types import round_money
from fx_trading.domain.dtos import TradeRequest
from fx_trading.domain.reference import format_trade_reference, parse_trade_reference
from fx_trading.domain.validation import parse_request, check_rules

TODAY = date(2025, 10, 12)
SETTINGS = ValidationSettings()

booking_dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))
sequences = st.integers(min_value=1, max_value=99999)
amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("10000000"),
    places=4,
    allow_nan=False,
    allow_infinity=False,
)
rates = st.decimals(
    min_value=Decimal("0.000001"),
    max_value=Decimal("1000000"),
    places=6,
    allow_nan=False,
    allow_infinity=False,
)


def _violations_for(**overrides):
    values = dict(
        trade_date=TODAY,
        value_date=TODAY + timedelta(days=2),
        direction="BUY",
        base_currency="EUR",
        quote_currency="USD",
        base_amount="1000",
        exchange_rate="1.1",
    )
    values.update(overrides)
    fields, violations = parse_request(TradeRequest(**values))
    return violations + check_rules(fields, SETTINGS, TODAY)


class TestReferenceProperties:

    @given(booking_dates, sequences)
    @settings(max_examples=300, deadline=None)
    def test_parse_inverts_format(self, booking_date, sequence):
        reference = format_trade_reference(booking_date, sequence)
        assert reference.startswith(f"FX-{booking_date:%Y%m%d}-")
        assert parse_trade_reference(reference) == (booking_date, sequence)

    @given(booking_dates, st.lists(st.integers(1, 9999), min_size=2, unique=True))
    @settings(deadline=None)
    def test_four_digit_references_sort_numerically(self, booking_date, seqs):
        references = [format_trade_reference(booking_date, s) for s in seqs]
        assert [parse_trade_reference(r)[1] for r in sorted(references)] == sorted(seqs)


class TestQuoteAmountProperties:

    @given(amounts, rates)
    @settings(max_examples=300, deadline=None)
    def test_rounded_to_four_places_half_up(self, base, rate):
        exact = base * rate
        quote = round_money(exact)
        assert quote.as_tuple().exponent == -4
        assert abs(quote - exact) <= Decimal("0.00005")


class TestAmountValidationProperties:

    @given(amounts.filter(lambda a: a >= Decimal("0.01")), rates)
    @settings(deadline=None)
    def test_in_range_values_at_scale_pass(self, base, rate):
        assert _violations_for(base_amount=base, exchange_rate=rate) == []

    @given(
        st.integers(min_value=0, max_value=999999),
        st.integers(min_value=1, max_value=99999).filter(lambda k: k % 10),
    )
    @settings(deadline=None)
    def test_fifth_decimal_place_rejected(self, whole, fraction):
        base = Decimal(whole) + Decimal(fraction).scaleb(-5)
        violations = _violations_for(base_amount=base)
        rules = {v.rule for v in violations if v.field == "base_amount"}
        assert "precision" in rules

    @given(st.decimals(max_value=Decimal("0"), allow_nan=False, allow_infinity=False))
    @settings(deadline=None)
    def test_non_positive_amount_rejected(self, base):
        violations = _violations_for(base_amount=base)
        assert ("base_amount", "positive") in {(v.field, v.rule) for v in violations}
