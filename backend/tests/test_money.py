from decimal import Decimal

import pytest

from pos_backend.money import (
    expected_tax,
    extract_tax,
    quantize_money,
    resolve_discount,
    split_money,
)


class TestResolveDiscount:
    def test_percentage_is_share_of_base(self):
        assert resolve_discount("percentage", Decimal("10"), Decimal("200")) == Decimal("20")

    def test_amount_is_capped_at_base(self):
        assert resolve_discount("amount", Decimal("500"), Decimal("120")) == Decimal("120")

    def test_amount_below_base(self):
        assert resolve_discount("amount", Decimal("15.50"), Decimal("120")) == Decimal("15.50")

    @pytest.mark.parametrize("kind", [None, "none"])
    def test_no_discount(self, kind):
        assert resolve_discount(kind, Decimal("10"), Decimal("200")) == 0

    def test_zero_base_gives_zero(self):
        assert resolve_discount("amount", Decimal("10"), Decimal("0")) == 0

    def test_percentage_never_exceeds_base(self):
        assert resolve_discount("percentage", Decimal("150"), Decimal("80")) == Decimal("80")

    def test_negative_value_rejected(self):
        with pytest.raises(ValueError):
            resolve_discount("amount", Decimal("-1"), Decimal("10"))

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            resolve_discount("bogo", Decimal("1"), Decimal("10"))

    @pytest.mark.parametrize("kind,value,base", [
        ("percentage", Decimal("33.333"), Decimal("9.99")),
        ("amount", Decimal("0.01"), Decimal("0.01")),
        ("amount", Decimal("1000000"), Decimal("3")),
        ("percentage", Decimal("100"), Decimal("12.34")),
    ])
    def test_result_within_base(self, kind, value, base):
        amount = resolve_discount(kind, value, base)
        assert Decimal("0") <= amount <= base


class TestExtractTax:
    def test_straight_percentage_of_inclusive_amount(self):
        base, tax = extract_tax(Decimal("200"), Decimal("15"))
        assert tax == Decimal("30")
        assert base == Decimal("170")

    def test_not_the_algebraic_inverse(self):
        # 115 * 15 / 115 would be 15; the contract is 115 * 15 / 100
        _, tax = extract_tax(Decimal("115"), Decimal("15"))
        assert tax == Decimal("17.25")

    def test_zero_rate_passes_through(self):
        assert extract_tax(Decimal("42"), Decimal("0")) == (Decimal("42"), Decimal("0"))

    def test_expected_tax_matches_extract(self):
        assert expected_tax(Decimal("180"), Decimal("15")) == Decimal("27")


def test_quantize_money_rounds_half_away_from_zero():
    assert quantize_money(Decimal("1.005")) == Decimal("1.01")
    assert quantize_money(Decimal("-1.005")) == Decimal("-1.01")
    assert quantize_money(None) == Decimal("0.00")
    assert quantize_money(2.675) == Decimal("2.68")


class TestSplitMoney:
    def test_shares_sum_to_amount(self):
        shares = split_money(Decimal("0.05"), [Decimal("0.0045")] * 10)

        assert sum(shares) == Decimal("0.05")
        assert shares == [Decimal("0.01")] * 5 + [Decimal("0.00")] * 5

    def test_leftover_goes_to_largest_remainder(self):
        shares = split_money(Decimal("1.00"), [Decimal("1"), Decimal("1"), Decimal("1")])

        assert shares == [Decimal("0.34"), Decimal("0.33"), Decimal("0.33")]

    def test_proportional_when_exact(self):
        assert split_money(Decimal("20"), [Decimal("150"), Decimal("50")]) == [Decimal("15.00"), Decimal("5.00")]

    def test_zero_amount(self):
        assert split_money(Decimal("0"), [Decimal("0"), Decimal("3")]) == [Decimal("0.00"), Decimal("0.00")]

    def test_nonzero_amount_needs_weight(self):
        with pytest.raises(ValueError):
            split_money(Decimal("1"), [Decimal("0")])
