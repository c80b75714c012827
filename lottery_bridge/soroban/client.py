"""
Chain client protocol — the network boundary.

Defines the interface the assembler, session and service depend on,
not a concrete implementation. This keeps the pipeline testable and
prevents ``httpx.post`` from creeping into business logic.

Concrete implementations:
    - SorobanRpcClient (real)
    - FakeChain (tests)

All methods return boring frozen dataclasses. No exceptions for
"expected" failures (simulation errors, rejected sends): those are
captured in the result objects and passed up verbatim. The only
raising paths are transport failures and ``AccountNotFound``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from stellar_sdk import Account

from lottery_bridge.soroban.contract import ContractCall

# sendTransaction statuses that mean the envelope entered the network.
ACCEPTED_SEND_STATUSES = frozenset({"PENDING", "DUPLICATE"})

# getTransaction statuses that end an inclusion wait.
TERMINAL_TX_STATUSES = frozenset({"SUCCESS", "FAILED"})


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class SimulationResult:
    """Result of a dry-run against current chain state.

    Attributes:
        success: Whether the simulation produced a result.
        retval_xdr: Base64 ScVal returned by the invoked function.
        transaction_data_xdr: Base64 SorobanTransactionData (footprint
            and resource limits) to merge into the real envelope.
        min_resource_fee: Resource fee in stroops the network will charge.
        auth_xdr: Base64 SorobanAuthorizationEntry values the call needs.
        latest_ledger: Ledger the simulation ran against.
        error: Verbatim RPC or host error text when success is False.
    """

    success: bool
    retval_xdr: str | None = None
    transaction_data_xdr: str | None = None
    min_resource_fee: int = 0
    auth_xdr: tuple[str, ...] = ()
    latest_ledger: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class SubmissionResult:
    """The network's verdict on a signed envelope, uninterpreted.

    Attributes:
        status: sendTransaction status (PENDING, DUPLICATE,
            TRY_AGAIN_LATER, ERROR) or SERVER_ERROR when the RPC call
            itself failed.
        tx_hash: Transaction hash (64 hex chars) when the node computed one.
        latest_ledger: Ledger the node was at when answering.
        error_result_xdr: Base64 TransactionResult for ERROR statuses.
        detail: Human-readable detail for diagnostics.
    """

    status: str
    tx_hash: str | None = None
    latest_ledger: int | None = None
    error_result_xdr: str | None = None
    detail: str | None = None

    @property
    def accepted(self) -> bool:
        """True when the envelope entered the network. Not inclusion."""
        return self.status in ACCEPTED_SEND_STATUSES


@dataclass(frozen=True)
class TransactionStatusResult:
    """Result of querying a submitted transaction.

    Attributes:
        status: SUCCESS, FAILED, NOT_FOUND, or SERVER_ERROR.
        ledger: Ledger the transaction was included in, if any.
        return_value_xdr: Base64 ScVal returned by the contract, when
            the RPC reports it.
        result_xdr: Base64 TransactionResult.
        detail: Human-readable detail for diagnostics.
    """

    status: str
    ledger: int | None = None
    return_value_xdr: str | None = None
    result_xdr: str | None = None
    detail: str | None = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_TX_STATUSES


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class ChainClient(Protocol):
    """Interface for Soroban network operations.

    Implementations own endpoint selection and HTTP handling. Callers
    see only clean result objects. Methods are async because network
    I/O is inherently asynchronous.
    """

    async def simulate(
        self,
        contract_id: str,
        call: ContractCall,
        *,
        read_only_identity: Account | None = None,
    ) -> SimulationResult:
        """Simulate a read-only call under a throwaway identity.

        Args:
            contract_id: Contract to invoke.
            call: The call to simulate.
            read_only_identity: Optional source account. A freshly
                generated local-only account is used when omitted.
        """
        ...

    async def simulate_transaction(self, envelope_xdr: str) -> SimulationResult:
        """Simulate an already-built envelope (used to obtain a footprint)."""
        ...

    async def load_sequence(self, account_address: str) -> int:
        """Fetch the account's current sequence number.

        Raises:
            AccountNotFound: If the account does not exist on-chain.
        """
        ...

    async def submit(self, signed_envelope_xdr: str) -> SubmissionResult:
        """Forward a signed envelope and return the network's verdict."""
        ...

    async def get_transaction(self, tx_hash: str) -> TransactionStatusResult:
        """Query the inclusion status of a submitted transaction."""
        ...
