"""
Transaction assembler — build, simulate, merge footprint, serialize.

Composes the pure builder (tx.py) with the network boundary
(client.py) to produce a ``PreparedEnvelope``: an unsigned, correctly
fee'd and footprinted envelope ready for external signing.

Pipeline stages (per call, none skippable):

    BUILDING → SIMULATED → ASSEMBLED → SUBMITTED → {CONFIRMED | REJECTED}

The assembler drives BUILDING → ASSEMBLED. The service moves the run
to SUBMITTED when it hands the envelope to the session's signer, and
to a terminal stage from the network's verdict. A failed step leaves
the run at the stage it reached; the envelope is discarded and the
caller starts again from BUILDING with a freshly loaded sequence.

Envelopes are single-use. ``SequenceTracker`` remembers the sequence
of every envelope that reached the signer, so a rebuild after a
submission, accepted or not, always carries a greater sequence number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from stellar_sdk import Account, TransactionEnvelope
from stellar_sdk import xdr as stellar_xdr

from lottery_bridge.config import LotteryConfig
from lottery_bridge.errors import SimulationFailure
from lottery_bridge.soroban.client import ChainClient, SimulationResult
from lottery_bridge.soroban.contract import ContractCall
from lottery_bridge.soroban.tx import build_invoke_envelope

logger = logging.getLogger(__name__)


class PipelineStage(StrEnum):
    BUILDING = "BUILDING"
    SIMULATED = "SIMULATED"
    ASSEMBLED = "ASSEMBLED"
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


_TRANSITIONS: dict[PipelineStage, frozenset[PipelineStage]] = {
    PipelineStage.BUILDING: frozenset({PipelineStage.SIMULATED}),
    PipelineStage.SIMULATED: frozenset({PipelineStage.ASSEMBLED}),
    PipelineStage.ASSEMBLED: frozenset({PipelineStage.SUBMITTED}),
    PipelineStage.SUBMITTED: frozenset({PipelineStage.CONFIRMED, PipelineStage.REJECTED}),
    PipelineStage.CONFIRMED: frozenset(),
    PipelineStage.REJECTED: frozenset(),
}


@dataclass
class PipelineRun:
    """Stage tracker for one state-changing call."""

    method: str
    stage: PipelineStage = PipelineStage.BUILDING
    history: list[PipelineStage] = field(default_factory=lambda: [PipelineStage.BUILDING])

    def advance(self, to: PipelineStage) -> None:
        """Move to the next stage.

        Raises:
            RuntimeError: If ``to`` is not reachable from the current stage.
        """
        if to not in _TRANSITIONS[self.stage]:
            raise RuntimeError(f"{self.method}: illegal stage transition {self.stage} -> {to}")
        logger.info("%s: %s -> %s", self.method, self.stage, to)
        self.stage = to
        self.history.append(to)

    @property
    def finished(self) -> bool:
        return not _TRANSITIONS[self.stage]


@dataclass(frozen=True)
class PreparedEnvelope:
    """An assembled, unsigned envelope valid for one submission attempt.

    Attributes:
        envelope_xdr: Base64 TransactionEnvelope for the signer.
        sequence: Sequence number the envelope carries.
        source: Source account address.
        method: Contract method being invoked.
        fee: Total fee (inclusion + resource fee) in stroops.
        min_resource_fee: Resource fee reported by simulation.
    """

    envelope_xdr: str
    sequence: int
    source: str
    method: str
    fee: int
    min_resource_fee: int


class SequenceTracker:
    """Per-session record of sequences sent to the network."""

    def __init__(self) -> None:
        self._last_submitted: dict[str, int] = {}

    def source_sequence(self, address: str, account_sequence: int) -> int:
        """Sequence to build from, given the freshly loaded account sequence.

        The envelope will carry the returned value plus one.
        """
        return max(account_sequence, self._last_submitted.get(address, account_sequence))

    def mark_submitted(self, address: str, sequence: int) -> None:
        previous = self._last_submitted.get(address, sequence)
        self._last_submitted[address] = max(previous, sequence)

    def last_submitted(self, address: str) -> int | None:
        return self._last_submitted.get(address)


def assemble_transaction(
    source: str,
    source_sequence: int,
    call: ContractCall,
    simulation: SimulationResult,
    config: LotteryConfig,
) -> TransactionEnvelope:
    """Rebuild the envelope with the simulated footprint, auth and fee.

    Pure: the same inputs produce the same envelope (apart from the
    validity window, which is relative to the local clock).

    Raises:
        SimulationFailure: If the simulation carries no footprint.
    """
    if not simulation.success or simulation.transaction_data_xdr is None:
        raise SimulationFailure(
            f"simulation failed: {simulation.error or 'no footprint returned'}"
        )
    soroban_data = stellar_xdr.SorobanTransactionData.from_xdr(simulation.transaction_data_xdr)
    auth = [stellar_xdr.SorobanAuthorizationEntry.from_xdr(a) for a in simulation.auth_xdr]
    envelope = build_invoke_envelope(
        Account(source, source_sequence),
        call,
        contract_id=config.contract_id,
        network_passphrase=config.network_passphrase,
        base_fee=config.base_fee,
        timeout_s=config.tx_timeout_s,
        soroban_data=soroban_data,
        auth=auth,
    )
    # Inclusion fee for the single operation plus the simulated resource fee.
    envelope.transaction.fee = config.base_fee + simulation.min_resource_fee
    return envelope


class TransactionAssembler:
    """Drives BUILDING → SIMULATED → ASSEMBLED for a contract call.

    Args:
        chain: Network boundary used for sequence lookup and simulation.
        config: Contract id, passphrase, fees and validity window.
        sequences: The session's sequence tracker.
    """

    def __init__(
        self,
        chain: ChainClient,
        config: LotteryConfig,
        sequences: SequenceTracker | None = None,
    ) -> None:
        self._chain = chain
        self._config = config
        self._sequences = sequences or SequenceTracker()

    @property
    def sequences(self) -> SequenceTracker:
        return self._sequences

    async def prepare(self, call: ContractCall, source: str, run: PipelineRun) -> PreparedEnvelope:
        """Build, simulate and assemble ``call`` for ``source``.

        The sequence is loaded fresh on every call.

        Raises:
            AccountNotFound: The source account does not exist.
            SimulationFailure: The dry-run failed; carries the RPC's text.
        """
        account_sequence = await self._chain.load_sequence(source)
        base = self._sequences.source_sequence(source, account_sequence)

        draft = build_invoke_envelope(
            Account(source, base),
            call,
            contract_id=self._config.contract_id,
            network_passphrase=self._config.network_passphrase,
            base_fee=self._config.base_fee,
            timeout_s=self._config.tx_timeout_s,
        )
        simulation = await self._chain.simulate_transaction(draft.to_xdr())
        if not simulation.success:
            raise SimulationFailure(
                f"simulation failed: {simulation.error}",
                details={"method": call.method, "latest_ledger": simulation.latest_ledger},
            )
        run.advance(PipelineStage.SIMULATED)

        assembled = assemble_transaction(source, base, call, simulation, self._config)
        run.advance(PipelineStage.ASSEMBLED)

        return PreparedEnvelope(
            envelope_xdr=assembled.to_xdr(),
            sequence=assembled.transaction.sequence,
            source=source,
            method=call.method,
            fee=assembled.transaction.fee,
            min_resource_fee=simulation.min_resource_fee,
        )
