"""Create a Squads vault-transaction proposal for a program upgrade."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .accounts import decode_multisig, derive_transaction_pda
from .errors import ProposalError
from .instructions import UpgradeRequest
from .message import build_vault_message, build_vault_transaction_create


@dataclass(frozen=True)
class ProposalResult:
    signature: str
    transaction_index: int
    transaction_pda: Pubkey
    vault: Pubkey
    summary: List[str]


def _report_failure(log: Any, step: str, context: str, exc: ProposalError) -> None:
    log.error(f"{step} failed ({context})")
    for line in getattr(exc, "logs", []):
        log.error(f"  {line}")


def submit_proposal(
    request: UpgradeRequest,
    *,
    endpoint: Any,
    multisig: Pubkey,
    vault_index: int,
    creator: Keypair,
    log: Any,
) -> ProposalResult:
    creator_pubkey = creator.pubkey()
    endpoint_url = getattr(endpoint, "url", endpoint)

    try:
        blockhash = endpoint.get_latest_blockhash()
    except ProposalError as exc:
        _report_failure(log, "fetch latest blockhash", f"endpoint {endpoint_url}", exc)
        raise

    message = build_vault_message(request.instructions, request.vault, blockhash)
    log.info(
        f"Vault message: {message.instruction_count} instruction(s), payer {request.vault}"
    )

    try:
        state = decode_multisig(endpoint.get_account_data(multisig))
    except ProposalError as exc:
        _report_failure(log, "fetch multisig", f"multisig {multisig}", exc)
        raise

    transaction_index = state.transaction_index + 1
    transaction_pda, _ = derive_transaction_pda(multisig, transaction_index)
    log.info(
        f"Multisig transaction index: {state.transaction_index} "
        f"(threshold {state.threshold}), proposing #{transaction_index}"
    )

    create_ix = build_vault_transaction_create(
        multisig=multisig,
        transaction=transaction_pda,
        creator=creator_pubkey,
        rent_payer=creator_pubkey,
        vault_index=vault_index,
        message=message,
        memo=request.memo,
    )
    transaction = Transaction.new_signed_with_payer(
        [create_ix], creator_pubkey, [creator], blockhash
    )

    try:
        signature = endpoint.send_transaction(transaction)
    except ProposalError as exc:
        _report_failure(
            log,
            "create vault transaction",
            f"multisig {multisig}, transaction #{transaction_index} {transaction_pda}, "
            f"creator {creator_pubkey}",
            exc,
        )
        raise

    summary = request.describe()
    log.tx(f"Transaction signature: {signature}")
    log.success("Proposal has been created, execute it on the Squads app.")
    log.info("Transaction will:")
    for line in summary:
        log.info(f"- {line}")
    return ProposalResult(
        signature=signature,
        transaction_index=transaction_index,
        transaction_pda=transaction_pda,
        vault=request.vault,
        summary=summary,
    )
