"""
Display mappings for rarity and price. Pure functions, no failure modes
for valid integer input.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# Base units per display unit.
PRICE_DIVISOR = 1_000_000

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class RarityDisplay:
    name: str
    color: str


UNKNOWN_RARITY = RarityDisplay(name="Unknown", color="#9ca3af")

RARITY_TABLE: dict[int, RarityDisplay] = {
    1: RarityDisplay(name="Common", color="#9ca3af"),
    2: RarityDisplay(name="Rare", color="#3b82f6"),
    3: RarityDisplay(name="Epic", color="#8b5cf6"),
    4: RarityDisplay(name="Legendary", color="#f59e0b"),
}


def rarity_display(rarity: int) -> RarityDisplay:
    """Return the display entry for a rarity, or ``UNKNOWN_RARITY``."""
    return RARITY_TABLE.get(rarity, UNKNOWN_RARITY)


def rarity_name(rarity: int) -> str:
    return rarity_display(rarity).name


def rarity_color(rarity: int) -> str:
    return rarity_display(rarity).color


def format_price(price: int | str) -> str:
    """Render a base-unit price with two decimals.

    >>> format_price(2_500_000)
    '2.50'
    """
    amount = Decimal(int(price)) / PRICE_DIVISOR
    return str(amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def parse_price(text: str) -> int:
    """Convert a display price back to base units.

    Raises:
        ValueError: If the text is not a decimal number or carries more
            precision than one base unit.
    """
    try:
        amount = Decimal(text.strip())
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal price: {text!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"not a decimal price: {text!r}")
    scaled = amount * PRICE_DIVISOR
    if scaled != scaled.to_integral_value():
        raise ValueError(f"price {text!r} is finer than one base unit")
    return int(scaled)
