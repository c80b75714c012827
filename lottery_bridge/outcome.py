"""
Action outcome — the record every state-changing call returns.

The pipeline is failure-first: a create, buy or draw always yields an
``ActionOutcome``, whether it was confirmed, rejected by the network,
or stopped locally before anything was sent. Callers branch on
``status`` and read ``error`` for the diagnostic; nothing in the
pipeline raises past the service.

Statuses:
    - CONFIRMED: included and applied.
    - REJECTED: the network refused the envelope, or it was included
      and failed.
    - PENDING: accepted by the network; inclusion not observed before
      the validity window ended.
    - FAILED: stopped before submission (validation, busy gate, not
      connected, missing account, simulation, signing).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from lottery_bridge.errors import ErrorCode, LotteryClientError
from lottery_bridge.soroban.assembler import PipelineStage
from lottery_bridge.soroban.client import SubmissionResult


class OutcomeStatus(StrEnum):
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    PENDING = "PENDING"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ActionError:
    """Structured error attached to an unsuccessful outcome."""

    code: str
    detail: str | None = None

    @classmethod
    def from_exception(cls, exc: LotteryClientError) -> ActionError:
        return cls(code=str(exc.error_code), detail=exc.message)

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"code": self.code}
        if self.detail is not None:
            result["detail"] = self.detail
        return result


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one state-changing action.

    Attributes:
        method: Contract method invoked.
        status: Final outcome.
        stage: Last pipeline stage reached.
        sequence: Sequence number of the envelope, once built.
        tx_hash: Transaction hash, once the network reported one.
        error: Set for every status except CONFIRMED.
        submission: The network's submission verdict, verbatim.
        return_value: Decoded contract return value, when reported.
    """

    method: str
    status: OutcomeStatus
    stage: PipelineStage
    sequence: int | None = None
    tx_hash: str | None = None
    error: ActionError | None = None
    submission: SubmissionResult | None = None
    return_value: Any = None

    def __post_init__(self) -> None:
        if self.status == OutcomeStatus.CONFIRMED and self.error is not None:
            raise ValueError("a confirmed outcome cannot carry an error")
        if self.status != OutcomeStatus.CONFIRMED and self.error is None:
            raise ValueError(f"a {self.status} outcome must carry an error")

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.CONFIRMED

    @classmethod
    def failed(
        cls,
        method: str,
        code: ErrorCode,
        detail: str | None,
        *,
        stage: PipelineStage = PipelineStage.BUILDING,
        sequence: int | None = None,
    ) -> ActionOutcome:
        return cls(
            method=method,
            status=OutcomeStatus.FAILED,
            stage=stage,
            sequence=sequence,
            error=ActionError(code=str(code), detail=detail),
        )

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {
            "method": self.method,
            "status": str(self.status),
            "stage": str(self.stage),
        }
        if self.sequence is not None:
            result["sequence"] = self.sequence
        if self.tx_hash is not None:
            result["tx_hash"] = self.tx_hash
        if self.error is not None:
            result["error"] = self.error.to_dict()
        if self.return_value is not None:
            result["return_value"] = self.return_value
        return result
