from __future__ import annotations

from decimal import Decimal

from .types import (
    SWAP_PRICE_EXCEEDS_MAX,
    SWAP_PRICE_LOWER_THAN_MAX,
    Direction,
    GuardDecision,
)


def check(
    observed_price: Decimal,
    bound: Decimal | None,
    direction: Direction,
    *,
    display_price: str | None = None,
) -> GuardDecision:
    """Decide whether a trade at ``observed_price`` respects the caller's ``bound``.

    Prices are quote per base. A seller's bound is a floor and a buyer's bound is
    a ceiling; equality passes in both directions. ``observed_price`` must carry
    full precision; ``display_price`` is only used in the rejection message.
    """
    shown = display_price if display_price is not None else observed_price
    if bound is None:
        return GuardDecision(passed=True, observed_price=observed_price)

    if direction is Direction.SELL:
        if observed_price >= bound:
            return GuardDecision(passed=True, observed_price=observed_price, bound=bound)
        return GuardDecision(
            passed=False,
            observed_price=observed_price,
            bound=bound,
            reason=SWAP_PRICE_LOWER_THAN_MAX,
            message=f"Swap price {shown} lower than maxPrice {bound}",
        )

    if observed_price <= bound:
        return GuardDecision(passed=True, observed_price=observed_price, bound=bound)
    return GuardDecision(
        passed=False,
        observed_price=observed_price,
        bound=bound,
        reason=SWAP_PRICE_EXCEEDS_MAX,
        message=f"Swap price {shown} exceeds maxPrice {bound}",
    )
