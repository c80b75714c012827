"""
Contract call surface of the NFT lottery.

Every argument is tagged with its wire type because the contract host
does no type inference: a ``5`` meant as u32 and a ``5`` meant as u64
encode differently. ``CallArg`` checks the value against the wire
type's range when constructed, so an out-of-range value fails locally
instead of in simulation.

Builders for the six contract methods live at module level and are the
only way the rest of the client constructs calls. The mutating builders
also apply the lottery's business bounds (price, ticket cap, rarity).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from stellar_sdk import StrKey, scval
from stellar_sdk import xdr as stellar_xdr

from lottery_bridge.errors import ValidationError

MAX_TICKETS_LIMIT = 10_000
MIN_RARITY = 1
MAX_RARITY = 4

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1
_I128_MIN = -(2**127)
_I128_MAX = 2**127 - 1


class WireType(StrEnum):
    """Contract argument types used by the lottery."""

    ADDRESS = "address"
    I128 = "i128"
    U32 = "u32"
    U64 = "u64"
    STRING = "string"


_INT_RANGES: dict[WireType, tuple[int, int]] = {
    WireType.U32: (0, _U32_MAX),
    WireType.U64: (0, _U64_MAX),
    WireType.I128: (_I128_MIN, _I128_MAX),
}


def _is_address(value: str) -> bool:
    return StrKey.is_valid_ed25519_public_key(value) or StrKey.is_valid_contract(value)


@dataclass(frozen=True)
class CallArg:
    """A single wire-typed contract argument.

    Raises:
        ValidationError: If the value does not fit the wire type.
    """

    wire_type: WireType
    value: int | str

    def __post_init__(self) -> None:
        if self.wire_type in _INT_RANGES:
            if isinstance(self.value, bool) or not isinstance(self.value, int):
                raise ValidationError(
                    f"{self.wire_type} argument must be an integer, got: {self.value!r}"
                )
            low, high = _INT_RANGES[self.wire_type]
            if not low <= self.value <= high:
                raise ValidationError(
                    f"{self.wire_type} argument out of range: {self.value}"
                )
        elif self.wire_type == WireType.ADDRESS:
            if not isinstance(self.value, str) or not _is_address(self.value):
                raise ValidationError(f"invalid address: {self.value!r}")
        elif not isinstance(self.value, str):
            raise ValidationError(f"string argument must be text, got: {self.value!r}")

    def to_scval(self) -> stellar_xdr.SCVal:
        if self.wire_type == WireType.ADDRESS:
            return scval.to_address(str(self.value))
        if self.wire_type == WireType.I128:
            return scval.to_int128(int(self.value))
        if self.wire_type == WireType.U32:
            return scval.to_uint32(int(self.value))
        if self.wire_type == WireType.U64:
            return scval.to_uint64(int(self.value))
        return scval.to_string(str(self.value))


def address(value: str) -> CallArg:
    return CallArg(WireType.ADDRESS, value)


def i128(value: int) -> CallArg:
    return CallArg(WireType.I128, value)


def u32(value: int) -> CallArg:
    return CallArg(WireType.U32, value)


def u64(value: int) -> CallArg:
    return CallArg(WireType.U64, value)


def string(value: str) -> CallArg:
    return CallArg(WireType.STRING, value)


@dataclass(frozen=True)
class ContractCall:
    """A method name plus its wire-typed arguments.

    Attributes:
        method: Contract function name.
        args: Positional arguments in contract order.
        mutating: True when the call changes state and must go through
            the full sign-and-submit pipeline.
    """

    method: str
    args: tuple[CallArg, ...] = ()
    mutating: bool = False

    def parameters(self) -> list[stellar_xdr.SCVal]:
        return [arg.to_scval() for arg in self.args]


# =========================================================================
# Local validation
# =========================================================================


def validate_create_lottery(ticket_price: int, max_tickets: int, rarity: int) -> None:
    """Apply the lottery's business bounds to a create request.

    Raises:
        ValidationError: On the first violated bound.
    """
    if ticket_price <= 0:
        raise ValidationError("ticket price must be positive")
    if not 1 <= max_tickets <= MAX_TICKETS_LIMIT:
        raise ValidationError(
            f"max tickets must be between 1 and {MAX_TICKETS_LIMIT}",
            details={"max_tickets": max_tickets},
        )
    if not MIN_RARITY <= rarity <= MAX_RARITY:
        raise ValidationError(
            f"rarity must be between {MIN_RARITY} and {MAX_RARITY}",
            details={"rarity": rarity},
        )


def validate_buy_ticket(num_tickets: int) -> None:
    if num_tickets < 1:
        raise ValidationError("num tickets must be at least 1")


# =========================================================================
# Call builders
# =========================================================================


def get_lottery_count() -> ContractCall:
    return ContractCall("get_lottery_count")


def get_lottery(lottery_id: int) -> ContractCall:
    return ContractCall("get_lottery", (u64(lottery_id),))


def get_user_tickets(user: str, lottery_id: int) -> ContractCall:
    return ContractCall("get_user_tickets", (address(user), u64(lottery_id)))


def create_lottery(
    admin: str,
    ticket_price: int,
    max_tickets: int,
    name: str,
    image_url: str,
    rarity: int,
) -> ContractCall:
    validate_create_lottery(ticket_price, max_tickets, rarity)
    return ContractCall(
        "create_lottery",
        (
            address(admin),
            i128(ticket_price),
            u32(max_tickets),
            string(name),
            string(image_url),
            u32(rarity),
        ),
        mutating=True,
    )


def buy_ticket(buyer: str, lottery_id: int, num_tickets: int) -> ContractCall:
    validate_buy_ticket(num_tickets)
    return ContractCall(
        "buy_ticket",
        (address(buyer), u64(lottery_id), u32(num_tickets)),
        mutating=True,
    )


def draw_winner(admin: str, lottery_id: int) -> ContractCall:
    return ContractCall(
        "draw_winner",
        (address(admin), u64(lottery_id)),
        mutating=True,
    )
