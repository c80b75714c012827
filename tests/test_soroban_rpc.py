"""
Tests for SorobanRpcClient — canned JSON-RPC responses, no network.

Uses a FakeTransport that returns pre-built response dicts,
exercising the parsing logic in rpc_client.py.

Test plan:
- Simulate: success parses retval/footprint/fee/auth, host error and
  JSON-RPC error → success=False with verbatim text, malformed payload
  → success=False with a shape diagnostic, read-only envelope sent
- Send: each status carried through unchanged, PENDING/DUPLICATE are
  accepted, RPC error → SERVER_ERROR
- getTransaction: SUCCESS with returnValue, NOT_FOUND, FAILED
- Sequence: Horizon record parsed, 404 → AccountNotFound, bad record
  → ValueError
- Transport: exceptions propagate to the caller
- Status mapping: send/transaction statuses → ErrorCode
"""

from typing import Any

import pytest
from stellar_sdk import Keypair, TransactionEnvelope, scval

from lottery_bridge.config import LotteryConfig
from lottery_bridge.errors import AccountNotFound, ErrorCode
from lottery_bridge.soroban import contract
from lottery_bridge.soroban.errors import (
    classify_connection_error,
    classify_send_status,
    classify_transaction_status,
)
from lottery_bridge.soroban.rpc_client import SorobanRpcClient
from lottery_bridge.soroban.transport import JsonTransport

RPC_URL = "http://localhost:8000/soroban/rpc"
HORIZON_URL = "http://localhost:8000/"
PASSPHRASE = "Test SDF Network ; September 2015"
CONTRACT_ID = "CDEHL3FHJEO2RDYILJCPPNYWMKF2PGUJKAKGUU5MW6GWLETJOKLKI53Y"
TX_HASH = "c" * 64


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """Returns canned responses for testing."""

    def __init__(
        self,
        response: dict[str, Any] | None = None,
        *,
        account: dict[str, Any] | None = None,
    ) -> None:
        self._response = response or {}
        self._account = account
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.gets: list[str] = []

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((url, payload))
        return self._response

    async def get_json(self, url: str) -> dict[str, Any] | None:
        self.gets.append(url)
        return self._account


class ErrorTransport:
    """Raises on every call to simulate transport failures."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        raise self._exc

    async def get_json(self, url: str) -> dict[str, Any] | None:
        raise self._exc


def _client(transport: Any) -> SorobanRpcClient:
    return SorobanRpcClient(RPC_URL, HORIZON_URL, PASSPHRASE, transport=transport)


def _envelope(result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": 1, "result": result}


# ---------------------------------------------------------------------------
# Canned responses
# ---------------------------------------------------------------------------

RETVAL_XDR = scval.to_uint32(3).to_xdr()

SIMULATE_SUCCESS = _envelope(
    {
        "transactionData": "AAAAAA==",
        "minResourceFee": "51234",
        "results": [{"xdr": RETVAL_XDR, "auth": ["AUTH1", "AUTH2"]}],
        "latestLedger": 1200,
    }
)

SIMULATE_HOST_ERROR = _envelope(
    {
        "error": "HostError: Error(Contract, #1)",
        "latestLedger": 1201,
    }
)

SIMULATE_NO_RESULTS = _envelope({"latestLedger": 1202})

RPC_ERROR = {
    "jsonrpc": "2.0",
    "id": 1,
    "error": {"code": -32602, "message": "invalid parameters"},
}

SEND_PENDING = _envelope({"status": "PENDING", "hash": TX_HASH, "latestLedger": 1300})
SEND_ERROR = _envelope(
    {
        "status": "ERROR",
        "hash": TX_HASH,
        "latestLedger": 1300,
        "errorResultXdr": "AAAAAAAAAGT////7AAAAAA==",
    }
)

GET_TX_SUCCESS = _envelope(
    {"status": "SUCCESS", "ledger": 1305, "returnValue": RETVAL_XDR, "resultXdr": "AAAA"}
)
GET_TX_NOT_FOUND = _envelope({"status": "NOT_FOUND", "latestLedger": 1306})


# ---------------------------------------------------------------------------
# Simulate
# ---------------------------------------------------------------------------


class TestSimulateSuccess:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        result = await _client(FakeTransport(SIMULATE_SUCCESS)).simulate_transaction("ENV")
        assert result.success is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_fields_parsed(self) -> None:
        result = await _client(FakeTransport(SIMULATE_SUCCESS)).simulate_transaction("ENV")
        assert result.retval_xdr == RETVAL_XDR
        assert result.transaction_data_xdr == "AAAAAA=="
        assert result.min_resource_fee == 51234
        assert result.auth_xdr == ("AUTH1", "AUTH2")
        assert result.latest_ledger == 1200

    @pytest.mark.asyncio
    async def test_request_shape(self) -> None:
        transport = FakeTransport(SIMULATE_SUCCESS)
        await _client(transport).simulate_transaction("ENV")
        url, payload = transport.calls[0]
        assert url == RPC_URL
        assert payload["jsonrpc"] == "2.0"
        assert payload["method"] == "simulateTransaction"
        assert payload["params"] == {"transaction": "ENV"}
        assert isinstance(payload["id"], int)

    @pytest.mark.asyncio
    async def test_request_ids_increase(self) -> None:
        transport = FakeTransport(SIMULATE_SUCCESS)
        client = _client(transport)
        await client.simulate_transaction("ENV")
        await client.simulate_transaction("ENV")
        assert transport.calls[1][1]["id"] > transport.calls[0][1]["id"]

    @pytest.mark.asyncio
    async def test_read_only_simulate_builds_unsigned_envelope(self) -> None:
        transport = FakeTransport(SIMULATE_SUCCESS)
        await _client(transport).simulate(CONTRACT_ID, contract.get_lottery(7))
        sent = transport.calls[0][1]["params"]["transaction"]
        envelope = TransactionEnvelope.from_xdr(sent, PASSPHRASE)
        assert envelope.signatures == []
        assert envelope.transaction.sequence == 1

    @pytest.mark.asyncio
    async def test_read_only_identity_is_fresh_each_call(self) -> None:
        transport = FakeTransport(SIMULATE_SUCCESS)
        client = _client(transport)
        await client.simulate(CONTRACT_ID, contract.get_lottery_count())
        await client.simulate(CONTRACT_ID, contract.get_lottery_count())
        sources = {
            TransactionEnvelope.from_xdr(payload["params"]["transaction"], PASSPHRASE)
            .transaction.source.account_id
            for _, payload in transport.calls
        }
        assert len(sources) == 2


class TestSimulateFailure:
    @pytest.mark.asyncio
    async def test_host_error_verbatim(self) -> None:
        result = await _client(FakeTransport(SIMULATE_HOST_ERROR)).simulate_transaction("ENV")
        assert result.success is False
        assert result.error == "HostError: Error(Contract, #1)"
        assert result.latest_ledger == 1201

    @pytest.mark.asyncio
    async def test_rpc_error(self) -> None:
        result = await _client(FakeTransport(RPC_ERROR)).simulate_transaction("ENV")
        assert result.success is False
        assert result.error == "invalid parameters"

    @pytest.mark.asyncio
    async def test_no_results(self) -> None:
        result = await _client(FakeTransport(SIMULATE_NO_RESULTS)).simulate_transaction("ENV")
        assert result.success is False
        assert result.error == "simulation returned no result"

    @pytest.mark.asyncio
    async def test_malformed_payload(self) -> None:
        bad = _envelope({"results": "nope"})
        result = await _client(FakeTransport(bad)).simulate_transaction("ENV")
        assert result.success is False
        assert result.error is not None
        assert result.error.startswith("malformed response at results")

    @pytest.mark.asyncio
    async def test_missing_result(self) -> None:
        result = await _client(FakeTransport({"jsonrpc": "2.0", "id": 1})).simulate_transaction(
            "ENV"
        )
        assert result.success is False
        assert result.error is not None


# ---------------------------------------------------------------------------
# Send
# ---------------------------------------------------------------------------


class TestSubmit:
    @pytest.mark.asyncio
    async def test_pending_is_accepted(self) -> None:
        result = await _client(FakeTransport(SEND_PENDING)).submit("SIGNED")
        assert result.status == "PENDING"
        assert result.accepted is True
        assert result.tx_hash == TX_HASH
        assert result.latest_ledger == 1300

    @pytest.mark.asyncio
    async def test_duplicate_is_accepted(self) -> None:
        result = await _client(FakeTransport(_envelope({"status": "DUPLICATE"}))).submit("S")
        assert result.accepted is True

    @pytest.mark.asyncio
    async def test_error_carried_through(self) -> None:
        result = await _client(FakeTransport(SEND_ERROR)).submit("SIGNED")
        assert result.status == "ERROR"
        assert result.accepted is False
        assert result.error_result_xdr == "AAAAAAAAAGT////7AAAAAA=="

    @pytest.mark.asyncio
    async def test_try_again_later(self) -> None:
        result = await _client(FakeTransport(_envelope({"status": "TRY_AGAIN_LATER"}))).submit(
            "S"
        )
        assert result.accepted is False
        assert result.detail is not None

    @pytest.mark.asyncio
    async def test_rpc_error_is_server_error(self) -> None:
        result = await _client(FakeTransport(RPC_ERROR)).submit("SIGNED")
        assert result.status == "SERVER_ERROR"
        assert result.detail == "invalid parameters"

    @pytest.mark.asyncio
    async def test_unknown_status_is_server_error(self) -> None:
        result = await _client(FakeTransport(_envelope({"status": "WHATEVER"}))).submit("S")
        assert result.status == "SERVER_ERROR"
        assert result.accepted is False

    @pytest.mark.asyncio
    async def test_signed_envelope_forwarded_verbatim(self) -> None:
        transport = FakeTransport(SEND_PENDING)
        await _client(transport).submit("SIGNED")
        assert transport.calls[0][1]["method"] == "sendTransaction"
        assert transport.calls[0][1]["params"] == {"transaction": "SIGNED"}


# ---------------------------------------------------------------------------
# getTransaction
# ---------------------------------------------------------------------------


class TestGetTransaction:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        result = await _client(FakeTransport(GET_TX_SUCCESS)).get_transaction(TX_HASH)
        assert result.status == "SUCCESS"
        assert result.terminal is True
        assert result.ledger == 1305
        assert result.return_value_xdr == RETVAL_XDR

    @pytest.mark.asyncio
    async def test_not_found_is_not_terminal(self) -> None:
        result = await _client(FakeTransport(GET_TX_NOT_FOUND)).get_transaction(TX_HASH)
        assert result.status == "NOT_FOUND"
        assert result.terminal is False

    @pytest.mark.asyncio
    async def test_failed_is_terminal(self) -> None:
        result = await _client(FakeTransport(_envelope({"status": "FAILED"}))).get_transaction(
            TX_HASH
        )
        assert result.terminal is True

    @pytest.mark.asyncio
    async def test_request_params(self) -> None:
        transport = FakeTransport(GET_TX_NOT_FOUND)
        await _client(transport).get_transaction(TX_HASH)
        assert transport.calls[0][1]["method"] == "getTransaction"
        assert transport.calls[0][1]["params"] == {"hash": TX_HASH}

    @pytest.mark.asyncio
    async def test_rpc_error(self) -> None:
        result = await _client(FakeTransport(RPC_ERROR)).get_transaction(TX_HASH)
        assert result.status == "SERVER_ERROR"


# ---------------------------------------------------------------------------
# Sequence lookup
# ---------------------------------------------------------------------------


class TestLoadSequence:
    @pytest.mark.asyncio
    async def test_parses_sequence(self) -> None:
        address = Keypair.random().public_key
        transport = FakeTransport(account={"id": address, "sequence": "123456789012"})
        sequence = await _client(transport).load_sequence(address)
        assert sequence == 123456789012
        assert transport.gets == [f"http://localhost:8000/accounts/{address}"]

    @pytest.mark.asyncio
    async def test_missing_account(self) -> None:
        address = Keypair.random().public_key
        with pytest.raises(AccountNotFound) as info:
            await _client(FakeTransport(account=None)).load_sequence(address)
        assert info.value.error_code == ErrorCode.ACCOUNT_NOT_FOUND
        assert info.value.details == {"address": address}

    @pytest.mark.asyncio
    async def test_bad_record(self) -> None:
        transport = FakeTransport(account={"sequence": 12})
        with pytest.raises(ValueError, match="malformed response at sequence"):
            await _client(transport).load_sequence(Keypair.random().public_key)


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class TestTransportErrors:
    @pytest.mark.asyncio
    async def test_simulate_propagates(self) -> None:
        client = _client(ErrorTransport(ConnectionError("refused")))
        with pytest.raises(ConnectionError, match="refused"):
            await client.simulate_transaction("ENV")

    @pytest.mark.asyncio
    async def test_load_sequence_propagates(self) -> None:
        client = _client(ErrorTransport(TimeoutError("timed out")))
        with pytest.raises(TimeoutError):
            await client.load_sequence(Keypair.random().public_key)


class TestConstruction:
    def test_fake_transport_satisfies_protocol(self) -> None:
        assert isinstance(FakeTransport(), JsonTransport)

    def test_from_config(self) -> None:
        config = LotteryConfig(rpc_url=RPC_URL, horizon_url=HORIZON_URL)
        client = SorobanRpcClient.from_config(config, transport=FakeTransport())
        assert client.rpc_url == RPC_URL
        assert client.horizon_url == "http://localhost:8000"


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("status", "code"),
        [
            ("ERROR", ErrorCode.REJECTED),
            ("TRY_AGAIN_LATER", ErrorCode.SUBMISSION_FAILED),
            ("SERVER_ERROR", ErrorCode.BACKEND_UNAVAILABLE),
            ("SOMETHING_NEW", ErrorCode.SUBMISSION_FAILED),
            (None, ErrorCode.SUBMISSION_FAILED),
        ],
    )
    def test_send_status(self, status: str | None, code: ErrorCode) -> None:
        assert classify_send_status(status) == code

    @pytest.mark.parametrize(
        ("status", "code"),
        [
            ("FAILED", ErrorCode.REJECTED),
            ("NOT_FOUND", ErrorCode.TIMEOUT),
            ("SERVER_ERROR", ErrorCode.BACKEND_UNAVAILABLE),
        ],
    )
    def test_transaction_status(self, status: str, code: ErrorCode) -> None:
        assert classify_transaction_status(status) == code

    def test_connection_error(self) -> None:
        assert classify_connection_error() == ErrorCode.BACKEND_UNAVAILABLE
