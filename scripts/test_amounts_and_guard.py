from __future__ import annotations

import unittest
from decimal import Decimal

from dex_gateway.trading import guard
from dex_gateway.trading.amounts import (
    from_base_units,
    invert_price,
    parse_positive_amount,
    to_base_units,
    to_significant,
)
from dex_gateway.trading.errors import ValidationError
from dex_gateway.trading.types import SWAP_PRICE_EXCEEDS_MAX, SWAP_PRICE_LOWER_THAN_MAX, Direction


class AmountCodecTests(unittest.TestCase):
    def test_to_base_units_scales_by_eighteen_decimals(self) -> None:
        self.assertEqual(to_base_units("1"), 10**18)
        self.assertEqual(to_base_units(Decimal("0.1")), 10**17)
        self.assertEqual(to_base_units("2.5"), 25 * 10**17)

    def test_to_base_units_truncates_sub_unit_precision(self) -> None:
        self.assertEqual(to_base_units("0.0000000000000000019"), 1)
        self.assertEqual(to_base_units("1.0000000000000000009"), 10**18)

    def test_from_base_units_never_exceeds_original_amount(self) -> None:
        for raw in ("0.1", "3.14159265358979323846", "1000000.000000000000000001", "7"):
            amount = Decimal(raw)
            restored = from_base_units(to_base_units(amount))
            self.assertLessEqual(restored, amount)
            self.assertLess(amount - restored, Decimal("1e-18"))

    def test_non_positive_and_non_numeric_amounts_are_rejected(self) -> None:
        for bad in ("0", "-1", "abc", "", "NaN", "Infinity", None, True):
            with self.subTest(value=bad):
                with self.assertRaises(ValidationError):
                    parse_positive_amount(bad)

    def test_to_significant_pads_to_eight_digits(self) -> None:
        self.assertEqual(to_significant(Decimal("150")), "150.00000")
        self.assertEqual(to_significant(Decimal("95")), "95.000000")
        self.assertEqual(to_significant(Decimal("1")), "1.0000000")

    def test_to_significant_truncates_instead_of_rounding(self) -> None:
        self.assertEqual(to_significant(Decimal("2.99999999999")), "2.9999999")
        self.assertEqual(to_significant(Decimal("0.0066666666666")), "0.0066666666")
        self.assertEqual(to_significant(Decimal("123456789.9")), "123456780")

    def test_to_significant_absorbs_inversion_noise(self) -> None:
        self.assertEqual(to_significant(invert_price(invert_price(Decimal("150")))), "150.00000")
        self.assertEqual(to_significant(invert_price(Decimal("0.005"))), "200.00000")

    def test_invert_price_rejects_zero(self) -> None:
        with self.assertRaises(ZeroDivisionError):
            invert_price(Decimal("0"))


class PriceGuardTests(unittest.TestCase):
    def test_no_bound_always_passes(self) -> None:
        for direction in Direction:
            decision = guard.check(Decimal("123"), None, direction)
            self.assertTrue(decision.passed)
            self.assertIsNone(decision.reason)

    def test_sell_bound_is_a_floor(self) -> None:
        self.assertTrue(guard.check(Decimal("101"), Decimal("100"), Direction.SELL).passed)
        self.assertTrue(guard.check(Decimal("100"), Decimal("100"), Direction.SELL).passed)

        rejected = guard.check(Decimal("95.000000"), Decimal("100"), Direction.SELL)
        self.assertFalse(rejected.passed)
        self.assertEqual(rejected.reason, SWAP_PRICE_LOWER_THAN_MAX)
        self.assertEqual(rejected.message, "Swap price 95.000000 lower than maxPrice 100")

    def test_buy_bound_is_a_ceiling(self) -> None:
        self.assertTrue(guard.check(Decimal("99"), Decimal("100"), Direction.BUY).passed)
        self.assertTrue(guard.check(Decimal("100"), Decimal("100"), Direction.BUY).passed)

        rejected = guard.check(Decimal("200.00000"), Decimal("150"), Direction.BUY)
        self.assertFalse(rejected.passed)
        self.assertEqual(rejected.reason, SWAP_PRICE_EXCEEDS_MAX)
        self.assertIn("exceeds maxPrice 150", rejected.message or "")


if __name__ == "__main__":
    unittest.main()
