"""
Envelope builder for contract invocations.

Pure and deterministic apart from the validity window (which is
relative to the local clock). No secrets, no network calls: the
builder produces an unsigned ``TransactionEnvelope`` from an account
and a ``ContractCall``. Sequence numbers come from the caller.

Read-only calls use a throwaway identity: a freshly generated keypair
with sequence 0 that exists only locally. Simulation does not check
account existence, so reads need neither funds nor an on-chain account.
"""

from __future__ import annotations

from collections.abc import Sequence

from stellar_sdk import Account, Keypair, TransactionBuilder, TransactionEnvelope
from stellar_sdk import xdr as stellar_xdr

from lottery_bridge.soroban.contract import ContractCall

# Fee and window used for read-only envelopes; never submitted.
READ_ONLY_BASE_FEE = 100
READ_ONLY_TIMEOUT_S = 30


def throwaway_account() -> Account:
    """Return a local-only account for authorizing read-only simulations."""
    return Account(Keypair.random().public_key, 0)


def build_invoke_envelope(
    source: Account,
    call: ContractCall,
    *,
    contract_id: str,
    network_passphrase: str,
    base_fee: int,
    timeout_s: int,
    soroban_data: stellar_xdr.SorobanTransactionData | None = None,
    auth: Sequence[stellar_xdr.SorobanAuthorizationEntry] | None = None,
) -> TransactionEnvelope:
    """Build an unsigned single-operation invoke envelope.

    ``TransactionBuilder`` increments ``source``'s sequence, so the
    envelope carries ``source.sequence + 1``. Pass a fresh ``Account``
    for every build.

    Args:
        source: Source account with its current on-chain sequence.
        call: The contract call to invoke.
        contract_id: Contract address.
        network_passphrase: Network the envelope is valid on.
        base_fee: Total fee in stroops (inclusion + resource fee).
        timeout_s: Validity window in seconds.
        soroban_data: Footprint and resources from simulation, if known.
        auth: Authorization entries from simulation, if any.
    """
    builder = TransactionBuilder(
        source_account=source,
        network_passphrase=network_passphrase,
        base_fee=base_fee,
    )
    builder.append_invoke_contract_function_op(
        contract_id=contract_id,
        function_name=call.method,
        parameters=call.parameters(),
        auth=list(auth) if auth else None,
    )
    if soroban_data is not None:
        builder.set_soroban_data(soroban_data)
    return builder.set_timeout(timeout_s).build()


def build_read_only_envelope(
    call: ContractCall,
    *,
    contract_id: str,
    network_passphrase: str,
    source: Account | None = None,
) -> TransactionEnvelope:
    """Build a simulation-only envelope, signed by nobody."""
    return build_invoke_envelope(
        source or throwaway_account(),
        call,
        contract_id=contract_id,
        network_passphrase=network_passphrase,
        base_fee=READ_ONLY_BASE_FEE,
        timeout_s=READ_ONLY_TIMEOUT_S,
    )
