"""
Soroban JSON-RPC client — real network implementation of ChainClient.

Translates simulateTransaction / sendTransaction / getTransaction
responses and Horizon account records into the result types in
client.py. Uses an injectable transport (JsonTransport) so the HTTP
layer can be swapped for test fakes without changing parsing logic.

No retry loops. No secrets. No interpretation beyond response parsing:
a rejected send comes back as a SubmissionResult with the node's
status, not as an exception.

Response parsing targets Soroban RPC (JSON-RPC 2.0) conventions:
    - Successful responses: {"jsonrpc": "2.0", "id": n, "result": {...}}
    - Error responses: {"jsonrpc": "2.0", "id": n, "error": {"code", "message"}}
    - Simulation errors arrive inside a successful response as
      result.error (host error text).
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

from stellar_sdk import Account

from lottery_bridge.config import LotteryConfig
from lottery_bridge.errors import AccountNotFound
from lottery_bridge.soroban.client import (
    SimulationResult,
    SubmissionResult,
    TransactionStatusResult,
)
from lottery_bridge.soroban.contract import ContractCall
from lottery_bridge.soroban.schema import (
    ACCOUNT_SCHEMA,
    GET_TRANSACTION_RESULT_SCHEMA,
    SEND_RESULT_SCHEMA,
    SIMULATE_RESULT_SCHEMA,
    shape_error,
)
from lottery_bridge.soroban.transport import HttpxTransport, JsonTransport
from lottery_bridge.soroban.tx import build_read_only_envelope

logger = logging.getLogger(__name__)

# JSON-RPC request ids (no thread-safety needed for async)
_REQUEST_IDS = itertools.count(1)


def _next_request_id() -> int:
    return next(_REQUEST_IDS)


class SorobanRpcClient:
    """Soroban RPC + Horizon client implementing the ChainClient protocol.

    Args:
        rpc_url: Soroban RPC endpoint URL.
        horizon_url: Horizon endpoint URL, used for sequence lookup.
        network_passphrase: Passphrase used when building read-only
            envelopes for ``simulate``.
        transport: Injectable transport. Defaults to HttpxTransport.
            Pass a FakeTransport for testing.
    """

    def __init__(
        self,
        rpc_url: str,
        horizon_url: str,
        network_passphrase: str,
        transport: JsonTransport | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._horizon_url = horizon_url.rstrip("/")
        self._network_passphrase = network_passphrase
        self._transport = transport or HttpxTransport()

    @classmethod
    def from_config(
        cls,
        config: LotteryConfig,
        transport: JsonTransport | None = None,
    ) -> SorobanRpcClient:
        return cls(
            config.rpc_url,
            config.horizon_url,
            config.network_passphrase,
            transport=transport or HttpxTransport(timeout=config.http_timeout_s),
        )

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    @property
    def horizon_url(self) -> str:
        return self._horizon_url

    # -----------------------------------------------------------------
    # ChainClient protocol methods
    # -----------------------------------------------------------------

    async def simulate(
        self,
        contract_id: str,
        call: ContractCall,
        *,
        read_only_identity: Account | None = None,
    ) -> SimulationResult:
        """Build a throwaway-identity envelope for ``call`` and simulate it."""
        envelope = build_read_only_envelope(
            call,
            contract_id=contract_id,
            network_passphrase=self._network_passphrase,
            source=read_only_identity,
        )
        return await self.simulate_transaction(envelope.to_xdr())

    async def simulate_transaction(self, envelope_xdr: str) -> SimulationResult:
        """Send ``simulateTransaction`` and parse the result.

        Transport exceptions propagate to the caller.
        """
        response = await self._call("simulateTransaction", {"transaction": envelope_xdr})
        return _parse_simulate_response(response)

    async def load_sequence(self, account_address: str) -> int:
        """Read the account's sequence from Horizon.

        Raises:
            AccountNotFound: Horizon has no record of the account.
            ValueError: Horizon returned a record without a usable sequence.
        """
        url = f"{self._horizon_url}/accounts/{account_address}"
        logger.debug("GET %s", url)
        record = await self._transport.get_json(url)
        if record is None:
            raise AccountNotFound(
                f"account {account_address} not found (is it funded?)",
                details={"address": account_address},
            )
        return _parse_account_sequence(record)

    async def submit(self, signed_envelope_xdr: str) -> SubmissionResult:
        """Send ``sendTransaction`` with the signed envelope.

        Transport exceptions propagate to the caller.
        """
        response = await self._call("sendTransaction", {"transaction": signed_envelope_xdr})
        return _parse_send_response(response)

    async def get_transaction(self, tx_hash: str) -> TransactionStatusResult:
        """Send ``getTransaction`` for ``tx_hash``.

        Transport exceptions propagate to the caller.
        """
        response = await self._call("getTransaction", {"hash": tx_hash})
        return _parse_get_transaction_response(response)

    async def _call(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "id": _next_request_id(),
            "method": method,
            "params": params,
        }
        logger.debug("RPC %s -> %s", method, self._rpc_url)
        return await self._transport.post_json(self._rpc_url, payload)


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _rpc_error_detail(response: dict[str, Any]) -> str | None:
    """Return the JSON-RPC error message, if the response is an error."""
    error = response.get("error")
    if error is None:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "unknown rpc error")
    return str(error)


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def _parse_simulate_response(response: dict[str, Any]) -> SimulationResult:
    """Parse a simulateTransaction response into SimulationResult.

    Handles:
        - Successful simulation (results + transactionData present)
        - Host/contract errors (result.error present)
        - JSON-RPC level errors
        - Malformed payloads (schema violations, missing results)
    """
    rpc_error = _rpc_error_detail(response)
    if rpc_error is not None:
        return SimulationResult(success=False, error=rpc_error)

    result = response.get("result")
    problem = shape_error(result, SIMULATE_RESULT_SCHEMA)
    if problem is not None:
        return SimulationResult(success=False, error=problem)

    latest_ledger = _optional_int(result.get("latestLedger"))
    if "error" in result:
        return SimulationResult(
            success=False,
            latest_ledger=latest_ledger,
            error=result["error"],
        )

    results = result.get("results") or []
    if not results or "transactionData" not in result:
        return SimulationResult(
            success=False,
            latest_ledger=latest_ledger,
            error="simulation returned no result",
        )

    first = results[0]
    return SimulationResult(
        success=True,
        retval_xdr=first["xdr"],
        transaction_data_xdr=result["transactionData"],
        min_resource_fee=int(result.get("minResourceFee", 0)),
        auth_xdr=tuple(first.get("auth") or ()),
        latest_ledger=latest_ledger,
    )


def _parse_send_response(response: dict[str, Any]) -> SubmissionResult:
    """Parse a sendTransaction response into SubmissionResult.

    The node's status is carried through unchanged; deciding what a
    status means is the caller's job.
    """
    rpc_error = _rpc_error_detail(response)
    if rpc_error is not None:
        return SubmissionResult(status="SERVER_ERROR", detail=rpc_error)

    result = response.get("result")
    problem = shape_error(result, SEND_RESULT_SCHEMA)
    if problem is not None:
        return SubmissionResult(status="SERVER_ERROR", detail=problem)

    status = result["status"]
    detail = None
    if status == "ERROR":
        detail = "transaction rejected by the network"
    elif status == "TRY_AGAIN_LATER":
        detail = "node did not accept the transaction, try again later"

    return SubmissionResult(
        status=status,
        tx_hash=result.get("hash"),
        latest_ledger=_optional_int(result.get("latestLedger")),
        error_result_xdr=result.get("errorResultXdr"),
        detail=detail,
    )


def _parse_get_transaction_response(response: dict[str, Any]) -> TransactionStatusResult:
    """Parse a getTransaction response into TransactionStatusResult."""
    rpc_error = _rpc_error_detail(response)
    if rpc_error is not None:
        return TransactionStatusResult(status="SERVER_ERROR", detail=rpc_error)

    result = response.get("result")
    problem = shape_error(result, GET_TRANSACTION_RESULT_SCHEMA)
    if problem is not None:
        return TransactionStatusResult(status="SERVER_ERROR", detail=problem)

    return TransactionStatusResult(
        status=result["status"],
        ledger=_optional_int(result.get("ledger")),
        return_value_xdr=result.get("returnValue"),
        result_xdr=result.get("resultXdr"),
    )


def _parse_account_sequence(record: dict[str, Any]) -> int:
    problem = shape_error(record, ACCOUNT_SCHEMA)
    if problem is not None:
        raise ValueError(f"account record: {problem}")
    return int(record["sequence"])
