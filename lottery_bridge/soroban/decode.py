"""
Return-value decoder — contract ScVals to domain records.

Simulated calls return a self-describing ScVal. ``retval_to_native``
turns it into Python values (ints, bools, bytes for contract strings,
dicts for structs, ``stellar_sdk.Address`` for addresses), and the
``*_from_native`` functions coerce those into typed records.

Policy:
    - Required fields are coerced explicitly. A field that cannot be
      coerced raises DecodeFailure: a lottery is never partially valid.
    - The winner (``Option<Address>``) is optional. "None" in any of
      its representations decodes to None. A present winner that no
      strategy can read also becomes None, logged as a decode warning,
      so one odd address never drops a whole lottery from a listing.

Winner strategies:
    ``decode_winner`` walks ``WINNER_STRATEGIES`` in order and returns
    the first address produced. The chain is a compatibility shim for
    the several shapes an address can surface in; it lives here alone
    so a pinned-down encoding only has to touch this list.
"""

from __future__ import annotations

import logging
import re
import struct
from collections.abc import Callable, Mapping
from typing import Any

from stellar_sdk import Address, StrKey, scval
from stellar_sdk import xdr as stellar_xdr
from stellar_sdk.address import AddressType

from lottery_bridge.errors import DecodeFailure, ErrorCode, LotteryClientError
from lottery_bridge.models import Lottery, NFTMetadata

logger = logging.getLogger(__name__)

# Declared field order of the contract structs (used for tuple-shaped values).
LOTTERY_FIELDS = (
    "id",
    "ticket_price",
    "max_tickets",
    "tickets_sold",
    "is_active",
    "winner",
    "nft_prize",
)
NFT_FIELDS = ("name", "image_url", "rarity")

_PUBLIC_KEY_LENGTH = 32
_INT_TEXT_RE = re.compile(r"^-?\d+$")
XDR_ERRORS = (ValueError, TypeError, EOFError, IndexError, struct.error)


class UndecodableWinner(LotteryClientError):
    """A winner value is present but no strategy could read it."""

    default_code = ErrorCode.DECODE_WARNING


# =========================================================================
# ScVal → native
# =========================================================================


def retval_to_native(retval: str | stellar_xdr.SCVal) -> Any:
    """Convert a base64 ScVal (or an SCVal) to native Python values.

    Raises:
        DecodeFailure: If the XDR cannot be parsed.
    """
    try:
        if isinstance(retval, str):
            retval = stellar_xdr.SCVal.from_xdr(retval)
        return scval.to_native(retval)
    except XDR_ERRORS as exc:
        raise DecodeFailure(f"unreadable return value: {exc}") from exc


# =========================================================================
# Coercions
# =========================================================================


def _as_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise DecodeFailure(f"{field}: expected integer, got bool", details={"field": field})
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and _INT_TEXT_RE.match(value):
        number = int(value)
    else:
        raise DecodeFailure(
            f"{field}: expected integer, got {type(value).__name__}",
            details={"field": field},
        )
    if minimum is not None and number < minimum:
        raise DecodeFailure(f"{field}: {number} is below {minimum}", details={"field": field})
    return number


def _as_text(value: Any, field: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeFailure(
                f"{field}: not valid UTF-8", details={"field": field}
            ) from exc
    raise DecodeFailure(
        f"{field}: expected text, got {type(value).__name__}",
        details={"field": field},
    )


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise DecodeFailure(
        f"{field}: expected bool, got {type(value).__name__}",
        details={"field": field},
    )


def _struct_fields(value: Any, names: tuple[str, ...], record: str) -> dict[str, Any]:
    """Read a struct either by field name or positionally."""
    if isinstance(value, Mapping):
        return {name: value.get(name) for name in names}
    if isinstance(value, (list, tuple)) and len(value) == len(names):
        return dict(zip(names, value))
    raise DecodeFailure(
        f"{record}: expected a struct, got {type(value).__name__}",
        details={"record": record},
    )


# =========================================================================
# Winner strategies
# =========================================================================


def _field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def _bytes_like(value: Any) -> bytes | None:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if (
        isinstance(value, (list, tuple))
        and value
        and all(isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in value)
    ):
        return bytes(value)
    return None


def _encode_public_key(raw: bytes) -> str | None:
    if len(raw) != _PUBLIC_KEY_LENGTH:
        return None
    return StrKey.encode_ed25519_public_key(raw)


def _is_address_text(text: str) -> bool:
    return StrKey.is_valid_ed25519_public_key(text) or StrKey.is_valid_contract(text)


def _from_raw_payload(value: Any) -> str | None:
    """Raw key bytes, either the value itself or its ``_value``/``key`` payload."""
    if isinstance(value, Address) and value.type != AddressType.ACCOUNT:
        return None
    raw = _bytes_like(value)
    if raw is None:
        for name in ("_value", "key"):
            raw = _bytes_like(_field(value, name))
            if raw is not None:
                break
    if raw is None:
        return None
    return _encode_public_key(raw)


def _from_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    return None


def _from_nested_address(value: Any) -> str | None:
    nested = _field(value, "address")
    if nested is None:
        return None
    if isinstance(nested, str):
        return nested
    raw = _bytes_like(nested)
    if raw is None:
        return None
    return _encode_public_key(raw)


def _from_custom_str(value: Any) -> str | None:
    if isinstance(value, (bytes, bytearray, memoryview, Mapping, list, tuple)):
        return None
    if type(value).__str__ is object.__str__:
        return None
    text = str(value)
    if not _is_address_text(text):
        return None
    return text


def _from_byte_fields(value: Any) -> str | None:
    # Last resort: first field holding 32 bytes that encodes as a key.
    if isinstance(value, Mapping):
        fields = list(value.values())
    elif hasattr(value, "__dict__"):
        fields = list(vars(value).values())
    else:
        return None
    for candidate in fields:
        raw = _bytes_like(candidate)
        if raw is None:
            continue
        encoded = _encode_public_key(raw)
        if encoded is not None:
            return encoded
    return None


WINNER_STRATEGIES: tuple[Callable[[Any], str | None], ...] = (
    _from_raw_payload,
    _from_text,
    _from_nested_address,
    _from_custom_str,
    _from_byte_fields,
)


def _unwrap_option(value: Any) -> Any:
    """Strip Option wrappers; returns None for every form of "no value"."""
    if isinstance(value, stellar_xdr.SCVal):
        if value.type == stellar_xdr.SCValType.SCV_VOID:
            return None
        value = retval_to_native(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        if len(value) == 1 and not isinstance(value[0], int):
            return _unwrap_option(value[0])
    return value


def decode_winner(value: Any) -> str | None:
    """Decode an ``Option<Address>`` winner field.

    Returns:
        The winner's address string, or None when the option is empty.

    A strategy that raises counts as not matching.

    Raises:
        UndecodableWinner: The option holds a value no strategy reads.
    """
    value = _unwrap_option(value)
    if value is None:
        return None
    for strategy in WINNER_STRATEGIES:
        try:
            decoded = strategy(value)
        except Exception as exc:
            logger.debug("winner strategy %s failed: %r", strategy.__name__, exc)
            continue
        if decoded is not None:
            return decoded
    raise UndecodableWinner(f"unrecognized winner shape: {type(value).__name__}")


# =========================================================================
# Records
# =========================================================================


def nft_from_native(value: Any) -> NFTMetadata:
    fields = _struct_fields(value, NFT_FIELDS, "nft_prize")
    return NFTMetadata(
        name=_as_text(fields["name"], "nft_prize.name"),
        image_url=_as_text(fields["image_url"], "nft_prize.image_url"),
        rarity=_as_int(fields["rarity"], "nft_prize.rarity"),
    )


def lottery_from_native(value: Any) -> Lottery:
    """Coerce a native lottery struct into a ``Lottery``.

    Raises:
        DecodeFailure: If any required field cannot be coerced.
    """
    fields = _struct_fields(value, LOTTERY_FIELDS, "lottery")
    lottery_id = _as_int(fields["id"], "id", minimum=0)

    try:
        winner = decode_winner(fields["winner"])
    except UndecodableWinner as exc:
        logger.warning(
            "%s lottery %d: winner could not be decoded, treating as absent (%s)",
            exc.error_code,
            lottery_id,
            exc.message,
        )
        winner = None

    return Lottery(
        id=lottery_id,
        ticket_price=_as_int(fields["ticket_price"], "ticket_price"),
        max_tickets=_as_int(fields["max_tickets"], "max_tickets", minimum=0),
        tickets_sold=_as_int(fields["tickets_sold"], "tickets_sold", minimum=0),
        is_active=_as_bool(fields["is_active"], "is_active"),
        winner=winner,
        nft_prize=nft_from_native(fields["nft_prize"]),
    )


def count_from_native(value: Any) -> int:
    return _as_int(value, "count", minimum=0)


def tickets_from_native(value: Any) -> list[int]:
    """Coerce a ticket-number vector. An empty vector is a valid result."""
    if not isinstance(value, (list, tuple)):
        raise DecodeFailure(
            f"tickets: expected a sequence, got {type(value).__name__}",
            details={"record": "tickets"},
        )
    return [_as_int(t, f"tickets[{i}]", minimum=0) for i, t in enumerate(value)]


def decode_count(retval_xdr: str) -> int:
    return count_from_native(retval_to_native(retval_xdr))


def decode_lottery(retval_xdr: str) -> Lottery:
    return lottery_from_native(retval_to_native(retval_xdr))


def decode_tickets(retval_xdr: str) -> list[int]:
    return tickets_from_native(retval_to_native(retval_xdr))


def decode_return_value(method: str, retval_xdr: str) -> Any:
    """Decode the return value of a state-changing call.

    ``create_lottery`` returns the new id and ``draw_winner`` the winner
    address. Anything else is returned as native values.
    """
    native = retval_to_native(retval_xdr)
    if method == "create_lottery":
        return count_from_native(native)
    if method == "draw_winner":
        try:
            return decode_winner(native)
        except UndecodableWinner as exc:
            logger.warning(
                "%s draw_winner: winner could not be decoded (%s)", exc.error_code, exc.message
            )
            return None
    return native
