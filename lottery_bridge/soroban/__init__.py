"""
Soroban backend for the lottery client.

Public API:

    Pure layer (no I/O):
        - Contract calls: ``ContractCall``, ``CallArg``, ``WireType`` and
          the six call builders in ``contract``.
        - Envelope builders: ``build_invoke_envelope``,
          ``build_read_only_envelope``, ``throwaway_account``.
        - ``assemble_transaction`` — merge a simulation into an envelope.
        - Decoders: ``decode_count``, ``decode_lottery``,
          ``decode_tickets``, ``decode_winner``, ``decode_return_value``.

    Impure layer (network I/O):
        - ``TransactionAssembler`` — BUILDING → SIMULATED → ASSEMBLED.

    Protocols (for dependency injection):
        - ``ChainClient`` — network boundary (simulate, sequence, submit,
          inclusion status).
        - ``JsonTransport`` — injectable transport for RPC and Horizon.

    Result types:
        - ``SimulationResult``, ``SubmissionResult``,
          ``TransactionStatusResult`` — client result types.
        - ``PreparedEnvelope`` — assembler output.

    Error mapping:
        - ``classify_send_status()``, ``classify_transaction_status()``.

    Concrete client:
        - ``SorobanRpcClient`` — JSON-RPC + Horizon implementation.
        - ``HttpxTransport`` — default httpx-based transport.
"""

from lottery_bridge.soroban import contract
from lottery_bridge.soroban.assembler import (
    PipelineRun,
    PipelineStage,
    PreparedEnvelope,
    SequenceTracker,
    TransactionAssembler,
    assemble_transaction,
)
from lottery_bridge.soroban.client import (
    ChainClient,
    SimulationResult,
    SubmissionResult,
    TransactionStatusResult,
)
from lottery_bridge.soroban.contract import CallArg, ContractCall, WireType
from lottery_bridge.soroban.decode import (
    WINNER_STRATEGIES,
    decode_count,
    decode_lottery,
    decode_return_value,
    decode_tickets,
    decode_winner,
)
from lottery_bridge.soroban.errors import (
    classify_connection_error,
    classify_send_status,
    classify_transaction_status,
)
from lottery_bridge.soroban.rpc_client import SorobanRpcClient
from lottery_bridge.soroban.transport import HttpxTransport, JsonTransport
from lottery_bridge.soroban.tx import (
    build_invoke_envelope,
    build_read_only_envelope,
    throwaway_account,
)

__all__ = [
    "WINNER_STRATEGIES",
    "CallArg",
    "ChainClient",
    "ContractCall",
    "HttpxTransport",
    "JsonTransport",
    "PipelineRun",
    "PipelineStage",
    "PreparedEnvelope",
    "SequenceTracker",
    "SimulationResult",
    "SorobanRpcClient",
    "SubmissionResult",
    "TransactionAssembler",
    "TransactionStatusResult",
    "WireType",
    "assemble_transaction",
    "build_invoke_envelope",
    "build_read_only_envelope",
    "classify_connection_error",
    "classify_send_status",
    "classify_transaction_status",
    "contract",
    "decode_count",
    "decode_lottery",
    "decode_return_value",
    "decode_tickets",
    "decode_winner",
    "throwaway_account",
]
