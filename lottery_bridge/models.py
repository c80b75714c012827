"""
Domain records decoded from contract state.

These are read-only views. The contract owns every field; the client
only displays them. In particular ``tickets_sold <= max_tickets`` is
enforced on-chain and is never repaired here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Rarity(IntEnum):
    """Closed rarity classification of an NFT prize."""

    COMMON = 1
    RARE = 2
    EPIC = 3
    LEGENDARY = 4


@dataclass(frozen=True)
class NFTMetadata:
    """Prize attached to a lottery.

    ``rarity`` is kept as the raw integer: values outside 1-4 are an
    unrecognized-rarity condition, not a decode error.
    """

    name: str
    image_url: str
    rarity: int

    @property
    def rarity_level(self) -> Rarity | None:
        """The rarity as an enum member, or None when unrecognized."""
        try:
            return Rarity(self.rarity)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "image_url": self.image_url, "rarity": self.rarity}


@dataclass(frozen=True)
class Lottery:
    """A lottery as returned by ``get_lottery``.

    Attributes:
        id: Lottery identity (u64).
        ticket_price: Price per ticket in base units (i128).
        max_tickets: Ticket cap (u32).
        tickets_sold: Tickets sold so far (u32).
        is_active: False once a winner has been drawn.
        winner: Winner account, or None when no winner is known.
        nft_prize: The prize metadata.
    """

    id: int
    ticket_price: int
    max_tickets: int
    tickets_sold: int
    is_active: bool
    winner: str | None
    nft_prize: NFTMetadata

    @property
    def has_winner(self) -> bool:
        return self.winner is not None

    @property
    def tickets_remaining(self) -> int:
        return max(self.max_tickets - self.tickets_sold, 0)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "ticket_price": str(self.ticket_price),
            "max_tickets": self.max_tickets,
            "tickets_sold": self.tickets_sold,
            "is_active": self.is_active,
            "winner": self.winner,
            "nft_prize": self.nft_prize.to_dict(),
        }
