"""
lottery-bridge: keyless client for a Soroban NFT lottery contract.

Reads contract state through simulated calls, and drives create, buy
and draw through build → simulate → assemble → sign (external wallet)
→ submit → inclusion. The client never holds a private key.

Every state-changing action returns an ``ActionOutcome``.
"""

__version__ = "0.1.0"

from lottery_bridge.config import LotteryConfig
from lottery_bridge.errors import (
    AccountNotFound,
    ActionInProgress,
    ChainUnavailable,
    DecodeFailure,
    ErrorCode,
    LotteryClientError,
    NetworkMismatch,
    NotConnected,
    SigningFailure,
    SimulationFailure,
    SubmissionFailure,
    ValidationError,
)
from lottery_bridge.formatting import (
    PRICE_DIVISOR,
    UNKNOWN_RARITY,
    RarityDisplay,
    format_price,
    parse_price,
    rarity_color,
    rarity_display,
    rarity_name,
)
from lottery_bridge.models import Lottery, NFTMetadata, Rarity
from lottery_bridge.outcome import ActionError, ActionOutcome, OutcomeStatus
from lottery_bridge.service import LotteryService
from lottery_bridge.session import (
    ProcessingGate,
    SessionManager,
    SessionState,
    WalletSession,
)
from lottery_bridge.wallet import AddressResult, NetworkDetails, SignResult, WalletExtension

__all__ = [
    "PRICE_DIVISOR",
    "UNKNOWN_RARITY",
    "AccountNotFound",
    "ActionError",
    "ActionInProgress",
    "ActionOutcome",
    "AddressResult",
    "ChainUnavailable",
    "DecodeFailure",
    "ErrorCode",
    "Lottery",
    "LotteryClientError",
    "LotteryConfig",
    "LotteryService",
    "NFTMetadata",
    "NetworkDetails",
    "NetworkMismatch",
    "NotConnected",
    "OutcomeStatus",
    "ProcessingGate",
    "Rarity",
    "RarityDisplay",
    "SessionManager",
    "SessionState",
    "SignResult",
    "SigningFailure",
    "SimulationFailure",
    "SubmissionFailure",
    "ValidationError",
    "WalletExtension",
    "WalletSession",
    "format_price",
    "parse_price",
    "rarity_color",
    "rarity_display",
    "rarity_name",
]
