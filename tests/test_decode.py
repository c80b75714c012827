"""
Tests for the return-value decoder.

Test plan:
- Scalars: count, tickets (empty vector is a valid result), bad XDR
  → DecodeFailure
- Lottery: struct by name and by position, every required field
  coerced, bad required field → DecodeFailure
- Winner: every accepted shape (raw bytes, text, Address, nested
  address, custom __str__, byte field) decodes to the same key as the
  raw bytes; every "none" form decodes to None; an unreadable winner
  becomes None with a warning instead of failing the lottery
- Write return values: create_lottery → id, draw_winner → address
"""

import logging
from types import SimpleNamespace
from typing import Any

import pytest
from stellar_sdk import Address, Keypair, StrKey, scval

from lottery_bridge.errors import DecodeFailure, ErrorCode
from lottery_bridge.soroban.decode import (
    WINNER_STRATEGIES,
    UndecodableWinner,
    decode_count,
    decode_lottery,
    decode_return_value,
    decode_tickets,
    decode_winner,
    lottery_from_native,
    retval_to_native,
)

WINNER = Keypair.random().public_key
WINNER_RAW = StrKey.decode_ed25519_public_key(WINNER)
CONTRACT_ID = "CDEHL3FHJEO2RDYILJCPPNYWMKF2PGUJKAKGUU5MW6GWLETJOKLKI53Y"


def _nft_scval(**overrides: Any) -> Any:
    fields = {
        "name": scval.to_string("Dragon"),
        "image_url": scval.to_string("https://img.example/dragon.png"),
        "rarity": scval.to_uint32(4),
    }
    fields.update(overrides)
    return scval.to_struct(fields)


def _lottery_xdr(**overrides: Any) -> str:
    fields = {
        "id": scval.to_uint64(1),
        "ticket_price": scval.to_int128(5_000_000),
        "max_tickets": scval.to_uint32(100),
        "tickets_sold": scval.to_uint32(3),
        "is_active": scval.to_bool(True),
        "winner": scval.to_void(),
        "nft_prize": _nft_scval(),
    }
    fields.update(overrides)
    return scval.to_struct(fields).to_xdr()


class CustomStrAddress:
    """Object whose only readable form is its string conversion."""

    def __init__(self, text: str) -> None:
        self._text = text

    def __str__(self) -> str:
        return self._text


class RaisingStr:
    """Object whose string conversion fails."""

    def __str__(self) -> str:
        raise RuntimeError("boom")


class RaisingProperty:
    """Address property that fails; the key sits in a plain field."""

    def __init__(self, payload: bytes) -> None:
        self.payload = payload

    @property
    def address(self) -> str:
        raise RuntimeError("lookup failed")


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


class TestScalars:
    def test_count(self) -> None:
        assert decode_count(scval.to_uint32(12).to_xdr()) == 12

    def test_zero_count(self) -> None:
        assert decode_count(scval.to_uint32(0).to_xdr()) == 0

    def test_count_wrong_type(self) -> None:
        with pytest.raises(DecodeFailure):
            decode_count(scval.to_string("12x").to_xdr())

    def test_tickets(self) -> None:
        xdr = scval.to_vec([scval.to_uint32(4), scval.to_uint32(9)]).to_xdr()
        assert decode_tickets(xdr) == [4, 9]

    def test_empty_tickets_is_valid(self) -> None:
        assert decode_tickets(scval.to_vec([]).to_xdr()) == []

    def test_tickets_not_a_vector(self) -> None:
        with pytest.raises(DecodeFailure):
            decode_tickets(scval.to_uint32(1).to_xdr())

    def test_bad_xdr(self) -> None:
        with pytest.raises(DecodeFailure) as info:
            retval_to_native("not-xdr!!")
        assert info.value.error_code == ErrorCode.DECODE_FAILED


# ---------------------------------------------------------------------------
# Lottery
# ---------------------------------------------------------------------------


class TestLottery:
    def test_all_fields(self) -> None:
        lottery = decode_lottery(_lottery_xdr())
        assert lottery.id == 1
        assert lottery.ticket_price == 5_000_000
        assert lottery.max_tickets == 100
        assert lottery.tickets_sold == 3
        assert lottery.is_active is True
        assert lottery.winner is None
        assert lottery.nft_prize.name == "Dragon"
        assert lottery.nft_prize.image_url == "https://img.example/dragon.png"
        assert lottery.nft_prize.rarity == 4

    def test_winner_present(self) -> None:
        lottery = decode_lottery(
            _lottery_xdr(winner=scval.to_address(WINNER), is_active=scval.to_bool(False))
        )
        assert lottery.winner == WINNER
        assert lottery.has_winner is True

    def test_positional_struct(self) -> None:
        lottery = lottery_from_native(
            [2, 1_000_000, 10, 0, True, None, [b"Cat", b"https://img/cat.png", 1]]
        )
        assert lottery.id == 2
        assert lottery.nft_prize.name == "Cat"
        assert lottery.tickets_remaining == 10

    def test_unknown_rarity_is_not_a_decode_error(self) -> None:
        lottery = decode_lottery(_lottery_xdr(nft_prize=_nft_scval(rarity=scval.to_uint32(9))))
        assert lottery.nft_prize.rarity == 9
        assert lottery.nft_prize.rarity_level is None

    def test_bad_price_fails_whole_record(self) -> None:
        with pytest.raises(DecodeFailure, match="ticket_price"):
            decode_lottery(_lottery_xdr(ticket_price=scval.to_string("free")))

    def test_bad_name_fails_whole_record(self) -> None:
        with pytest.raises(DecodeFailure, match="nft_prize.name"):
            decode_lottery(_lottery_xdr(nft_prize=_nft_scval(name=scval.to_uint32(1))))

    def test_bool_is_not_a_count(self) -> None:
        with pytest.raises(DecodeFailure, match="tickets_sold"):
            decode_lottery(_lottery_xdr(tickets_sold=scval.to_bool(True)))

    def test_not_a_struct(self) -> None:
        with pytest.raises(DecodeFailure):
            decode_lottery(scval.to_uint32(7).to_xdr())

    def test_undecodable_winner_is_absent_with_warning(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="lottery_bridge.soroban.decode"):
            lottery = decode_lottery(_lottery_xdr(winner=scval.to_uint32(77)))
        assert lottery.winner is None
        assert lottery.ticket_price == 5_000_000
        assert "winner could not be decoded" in caplog.text

    def test_winner_that_raises_keeps_the_lottery(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="lottery_bridge.soroban.decode"):
            lottery = lottery_from_native(
                {
                    "id": 6,
                    "ticket_price": 1_000_000,
                    "max_tickets": 10,
                    "tickets_sold": 10,
                    "is_active": False,
                    "winner": RaisingStr(),
                    "nft_prize": {"name": b"Cat", "image_url": b"https://img/cat.png", "rarity": 1},
                }
            )
        assert lottery.id == 6
        assert lottery.winner is None
        assert "DECODE_WARNING" in caplog.text

    def test_to_dict_price_is_string(self) -> None:
        data = decode_lottery(_lottery_xdr()).to_dict()
        assert data["ticket_price"] == "5000000"
        assert data["nft_prize"] == {
            "name": "Dragon",
            "image_url": "https://img.example/dragon.png",
            "rarity": 4,
        }


# ---------------------------------------------------------------------------
# Winner
# ---------------------------------------------------------------------------


class TestWinnerShapes:
    """Every accepted shape yields the key the raw bytes encode to."""

    @pytest.mark.parametrize(
        "shape",
        [
            pytest.param(WINNER_RAW, id="raw-bytes"),
            pytest.param(bytearray(WINNER_RAW), id="bytearray"),
            pytest.param(list(WINNER_RAW), id="byte-list"),
            pytest.param(WINNER, id="text"),
            pytest.param(Address(WINNER), id="sdk-address"),
            pytest.param(scval.to_address(WINNER), id="scval"),
            pytest.param(SimpleNamespace(_value=WINNER_RAW), id="value-payload"),
            pytest.param({"address": WINNER}, id="nested-text"),
            pytest.param(SimpleNamespace(address=WINNER_RAW), id="nested-bytes"),
            pytest.param(CustomStrAddress(WINNER), id="custom-str"),
            pytest.param(SimpleNamespace(label="x", payload=WINNER_RAW), id="byte-field"),
            pytest.param([WINNER_RAW], id="option-wrapped"),
        ],
    )
    def test_same_key_as_raw_bytes(self, shape: Any) -> None:
        assert decode_winner(shape) == decode_winner(WINNER_RAW) == WINNER

    @pytest.mark.parametrize(
        "none_form",
        [
            pytest.param(None, id="none"),
            pytest.param(scval.to_void(), id="scv-void"),
            pytest.param([], id="empty-list"),
            pytest.param((), id="empty-tuple"),
            pytest.param([None], id="wrapped-none"),
        ],
    )
    def test_none_forms(self, none_form: Any) -> None:
        assert decode_winner(none_form) is None

    def test_contract_address(self) -> None:
        assert decode_winner(Address(CONTRACT_ID)) == CONTRACT_ID

    def test_custom_str_must_be_an_address(self) -> None:
        with pytest.raises(UndecodableWinner):
            decode_winner(CustomStrAddress("not an address"))

    def test_raising_conversion_is_undecodable(self) -> None:
        with pytest.raises(UndecodableWinner) as info:
            decode_winner(RaisingStr())
        assert info.value.error_code == ErrorCode.DECODE_WARNING

    def test_raising_strategy_falls_through(self) -> None:
        assert decode_winner(RaisingProperty(WINNER_RAW)) == WINNER

    def test_short_bytes_are_not_a_key(self) -> None:
        with pytest.raises(UndecodableWinner):
            decode_winner(b"\x01\x02")

    def test_byte_field_scan_skips_unencodable_fields(self) -> None:
        shape = SimpleNamespace(junk=b"\x00" * 5, payload=WINNER_RAW)
        assert decode_winner(shape) == WINNER

    def test_strategy_order(self) -> None:
        names = [s.__name__ for s in WINNER_STRATEGIES]
        assert names == [
            "_from_raw_payload",
            "_from_text",
            "_from_nested_address",
            "_from_custom_str",
            "_from_byte_fields",
        ]


# ---------------------------------------------------------------------------
# Write return values
# ---------------------------------------------------------------------------


class TestReturnValues:
    def test_create_lottery_returns_id(self) -> None:
        assert decode_return_value("create_lottery", scval.to_uint64(5).to_xdr()) == 5

    def test_draw_winner_returns_address(self) -> None:
        assert decode_return_value("draw_winner", scval.to_address(WINNER).to_xdr()) == WINNER

    def test_draw_winner_unreadable_is_none(self) -> None:
        assert decode_return_value("draw_winner", scval.to_uint32(1).to_xdr()) is None

    def test_other_methods_are_native(self) -> None:
        assert decode_return_value("buy_ticket", scval.to_void().to_xdr()) is None
