"""
Lottery service — read operations and the create/buy/draw pipelines.

Reads go through a throwaway-identity simulation and raise typed
``LotteryClientError``s. Writes never raise: each one returns an
``ActionOutcome`` describing how far the pipeline got.

Write pipeline (one at a time per session):

    1. acquire the session's processing gate
    2. validate arguments locally (no network)
    3. take the session snapshot; it must be able to sign
    4. BUILDING → SIMULATED → ASSEMBLED (TransactionAssembler)
    5. ASSEMBLED → SUBMITTED: sign through the wallet, send
    6. wait for inclusion: SUBMITTED → {CONFIRMED | REJECTED}, or
       PENDING once the validity window is over
    7. release the gate, on every path

The inclusion wait only polls ``get_transaction``. An envelope is never
re-sent; a caller that wants another attempt starts a new action.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any

from lottery_bridge import formatting
from lottery_bridge.config import LotteryConfig
from lottery_bridge.errors import (
    ActionInProgress,
    ChainUnavailable,
    ErrorCode,
    LotteryClientError,
    SimulationFailure,
    SubmissionFailure,
    ValidationError,
)
from lottery_bridge.models import Lottery
from lottery_bridge.outcome import ActionError, ActionOutcome, OutcomeStatus
from lottery_bridge.session import SessionManager
from lottery_bridge.soroban import contract
from lottery_bridge.soroban.assembler import PipelineRun, PipelineStage, TransactionAssembler
from lottery_bridge.soroban.client import ChainClient, SimulationResult, TransactionStatusResult
from lottery_bridge.soroban.contract import ContractCall
from lottery_bridge.soroban.decode import (
    decode_count,
    decode_lottery,
    decode_return_value,
    decode_tickets,
)
from lottery_bridge.soroban.errors import (
    classify_connection_error,
    classify_send_status,
    classify_transaction_status,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
CallBuilder = Callable[[str], ContractCall]


class LotteryService:
    """Contract-facing operations of the lottery client.

    Args:
        chain: Network boundary (SorobanRpcClient or a fake).
        sessions: The wallet session manager; owns the processing gate,
            the signer and the sequence tracker.
        config: Contract id, network and timing.
        sleep: Awaitable used between inclusion checks.
    """

    def __init__(
        self,
        chain: ChainClient,
        sessions: SessionManager,
        config: LotteryConfig,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._chain = chain
        self._sessions = sessions
        self._config = config
        self._sleep = sleep

    @property
    def processing(self) -> bool:
        return self._sessions.processing

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    async def _simulate_read(self, call: ContractCall) -> SimulationResult:
        try:
            return await self._chain.simulate(self._config.contract_id, call)
        except LotteryClientError:
            raise
        except Exception as exc:
            raise ChainUnavailable(
                f"{call.method}: {exc}",
                error_code=classify_connection_error(),
            ) from exc

    async def get_lottery_count(self) -> int:
        """Number of lotteries created so far.

        Raises:
            SimulationFailure: The read was rejected.
            DecodeFailure: The count is not a non-negative integer.
            ChainUnavailable: The RPC endpoint could not be reached.
        """
        call = contract.get_lottery_count()
        result = await self._simulate_read(call)
        if not result.success or result.retval_xdr is None:
            raise SimulationFailure(f"simulation failed: {result.error}")
        return decode_count(result.retval_xdr)

    async def get_lottery(self, lottery_id: int) -> Lottery | None:
        """Fetch one lottery.

        Returns None when the contract rejects the read, which is how it
        reports an unknown id.

        Raises:
            ValidationError: ``lottery_id`` is not a u64.
            DecodeFailure: A required field could not be decoded.
            ChainUnavailable: The RPC endpoint could not be reached.
        """
        call = contract.get_lottery(lottery_id)
        result = await self._simulate_read(call)
        if not result.success or result.retval_xdr is None:
            logger.debug("lottery %d not found: %s", lottery_id, result.error)
            return None
        return decode_lottery(result.retval_xdr)

    async def list_lotteries(self) -> list[Lottery]:
        """Fetch every lottery, in id order.

        Ids run from 1 to the current count and are fetched
        concurrently. A lottery that is missing or fails to decode is
        left out of the listing and logged.
        """
        count = await self.get_lottery_count()
        if count == 0:
            return []

        ids = range(1, count + 1)
        results = await asyncio.gather(
            *(self.get_lottery(lottery_id) for lottery_id in ids),
            return_exceptions=True,
        )

        lotteries: list[Lottery] = []
        for lottery_id, result in zip(ids, results):
            if isinstance(result, Lottery):
                lotteries.append(result)
            elif isinstance(result, LotteryClientError):
                logger.warning("dropping lottery %d from listing: %s", lottery_id, result.message)
            elif isinstance(result, BaseException):
                raise result
            else:
                logger.warning("dropping lottery %d from listing: not found", lottery_id)
        return lotteries

    async def get_user_tickets(self, user: str, lottery_id: int) -> list[int]:
        """Ticket numbers ``user`` holds in a lottery; empty when none.

        Raises:
            ValidationError: ``user`` is not an address.
            SimulationFailure: The read was rejected.
            DecodeFailure: The vector holds a non-integer.
        """
        call = contract.get_user_tickets(user, lottery_id)
        result = await self._simulate_read(call)
        if not result.success or result.retval_xdr is None:
            raise SimulationFailure(f"simulation failed: {result.error}")
        return decode_tickets(result.retval_xdr)

    # -----------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------

    async def create_lottery(
        self,
        ticket_price: int,
        max_tickets: int,
        name: str,
        image_url: str,
        rarity: int,
    ) -> ActionOutcome:
        """Create a lottery; the outcome's return value is its new id."""
        return await self._run(
            "create_lottery",
            lambda: contract.validate_create_lottery(ticket_price, max_tickets, rarity),
            lambda admin: contract.create_lottery(
                admin, ticket_price, max_tickets, name, image_url, rarity
            ),
        )

    async def create_lottery_from_display(
        self,
        price_text: str,
        max_tickets: int,
        name: str,
        image_url: str,
        rarity: int,
    ) -> ActionOutcome:
        """Like ``create_lottery`` with the price given in display units."""
        try:
            ticket_price = formatting.parse_price(price_text)
        except ValueError as exc:
            return ActionOutcome.failed("create_lottery", ErrorCode.VALIDATION, str(exc))
        return await self.create_lottery(ticket_price, max_tickets, name, image_url, rarity)

    async def buy_ticket(self, lottery_id: int, num_tickets: int = 1) -> ActionOutcome:
        return await self._run(
            "buy_ticket",
            lambda: contract.validate_buy_ticket(num_tickets),
            lambda buyer: contract.buy_ticket(buyer, lottery_id, num_tickets),
        )

    async def draw_winner(self, lottery_id: int) -> ActionOutcome:
        """Draw the winner; the outcome's return value is the winner address."""
        return await self._run(
            "draw_winner",
            lambda: None,
            lambda admin: contract.draw_winner(admin, lottery_id),
        )

    async def _run(
        self,
        method: str,
        validate: Callable[[], None],
        build: CallBuilder,
    ) -> ActionOutcome:
        try:
            with self._sessions.gate.hold(method):
                outcome = await self._execute(method, validate, build)
        except ActionInProgress as exc:
            logger.info("%s refused: %s", method, exc.message)
            return ActionOutcome.failed(method, exc.error_code, exc.message)
        logger.info("%s finished: %s at %s", method, outcome.status, outcome.stage)
        return outcome

    async def _execute(
        self,
        method: str,
        validate: Callable[[], None],
        build: CallBuilder,
    ) -> ActionOutcome:
        try:
            validate()
        except ValidationError as exc:
            return ActionOutcome.failed(method, exc.error_code, exc.message)

        session = self._sessions.session
        source = session.address
        if not session.can_sign or source is None:
            return ActionOutcome.failed(
                method,
                ErrorCode.NOT_CONNECTED,
                session.last_error or "wallet not connected",
            )

        try:
            call = build(source)
        except ValidationError as exc:
            return ActionOutcome.failed(method, exc.error_code, exc.message)

        run = PipelineRun(method)
        assembler = TransactionAssembler(self._chain, self._config, self._sessions.sequences)
        try:
            prepared = await assembler.prepare(call, source, run)
        except LotteryClientError as exc:
            return ActionOutcome.failed(method, exc.error_code, exc.message, stage=run.stage)
        except Exception as exc:
            return ActionOutcome.failed(
                method,
                classify_connection_error(),
                f"prepare failed: {exc}",
                stage=run.stage,
            )

        run.advance(PipelineStage.SUBMITTED)
        try:
            submission = await self._sessions.sign_and_submit(prepared.envelope_xdr)
        except LotteryClientError as exc:
            return ActionOutcome.failed(
                method, exc.error_code, exc.message, stage=run.stage, sequence=prepared.sequence
            )
        except Exception as exc:
            self._sessions.sequences.mark_submitted(source, prepared.sequence)
            return ActionOutcome.failed(
                method,
                classify_connection_error(),
                f"submit failed: {exc}",
                stage=run.stage,
                sequence=prepared.sequence,
            )
        self._sessions.sequences.mark_submitted(source, prepared.sequence)

        if not submission.accepted:
            run.advance(PipelineStage.REJECTED)
            detail_parts = [f"status={submission.status}"]
            if submission.detail:
                detail_parts.append(submission.detail)
            rejection = SubmissionFailure(
                "; ".join(detail_parts),
                error_code=classify_send_status(submission.status),
                details={"status": submission.status, "tx_hash": submission.tx_hash},
            )
            logger.warning("%s rejected by the network: %s", method, rejection.message)
            return ActionOutcome(
                method=method,
                status=OutcomeStatus.REJECTED,
                stage=run.stage,
                sequence=prepared.sequence,
                tx_hash=submission.tx_hash,
                error=ActionError.from_exception(rejection),
                submission=submission,
            )

        if submission.tx_hash is None:
            return ActionOutcome(
                method=method,
                status=OutcomeStatus.PENDING,
                stage=run.stage,
                sequence=prepared.sequence,
                error=ActionError(
                    code=str(ErrorCode.TIMEOUT),
                    detail="accepted without a transaction hash, inclusion not tracked",
                ),
                submission=submission,
            )

        final =await self._await_inclusion(submission.tx_hash)
        if final is not None and final.status == "SUCCESS":
            run.advance(PipelineStage.CONFIRMED)
            return ActionOutcome(
                method=method,
                status=OutcomeStatus.CONFIRMED,
                stage=run.stage,
                sequence=prepared.sequence,
                tx_hash=submission.tx_hash,
                submission=submission,
                return_value=self._return_value(method, final),
            )
        if final is not None and final.status == "FAILED":
            run.advance(PipelineStage.REJECTED)
            return ActionOutcome(
                method=method,
                status=OutcomeStatus.REJECTED,
                stage=run.stage,
                sequence=prepared.sequence,
                tx_hash=submission.tx_hash,
                error=ActionError(
                    code=str(classify_transaction_status(final.status)),
                    detail=final.detail or "transaction failed on-chain",
                ),
                submission=submission,
            )

        last_status = final.status if final is not None else None
        return ActionOutcome(
            method=method,
            status=OutcomeStatus.PENDING,
            stage=run.stage,
            sequence=prepared.sequence,
            tx_hash=submission.tx_hash,
            error=ActionError(
                code=str(ErrorCode.TIMEOUT),
                detail=(
                    f"not included within {self._config.tx_timeout_s}s "
                    f"(last status: {last_status or 'unknown'})"
                ),
            ),
            submission=submission,
        )

    async def _await_inclusion(self, tx_hash: str) -> TransactionStatusResult | None:
        """Poll until the transaction is terminal or its validity window is over.

        The window is ``tx_timeout_s`` plus one poll interval. Returns the
        last status observed, or None if every check failed.
        """
        interval = self._config.confirm_poll_interval_s
        checks = math.ceil(self._config.tx_timeout_s / interval) + 1
        last: TransactionStatusResult | None = None
        for _ in range(checks):
            await self._sleep(interval)
            try:
                last = await self._chain.get_transaction(tx_hash)
            except Exception as exc:
                logger.debug("getTransaction %s failed: %s", tx_hash, exc)
                continue
            if last.terminal:
                return last
        return last

    def _return_value(self, method: str, final: TransactionStatusResult) -> Any:
        if final.return_value_xdr is None:
            return None
        try:
            return decode_return_value(method, final.return_value_xdr)
        except LotteryClientError as exc:
            logger.warning("%s: return value could not be decoded (%s)", method, exc.message)
            return None
