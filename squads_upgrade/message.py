"""Squads vault transaction message encoding.

Squads v4 stores the inner transaction of a proposal in its own compact
format rather than the Solana wire format: every vector carries a u8 length
prefix, except instruction data which carries a u16 prefix. The message is
compiled with the vault as payer; the vault's signature is supplied by the
multisig program when the proposal executes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from borsh_construct import U8, Bytes, CStruct, Option, String
from construct import Bytes as FixedBytes
from construct import GreedyBytes, Int8ul, Int16ul, Prefixed, PrefixedArray, Struct
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from .accounts import anchor_discriminator
from .constants import SQUADS_PROGRAM_ID, VAULT_TRANSACTION_CREATE_IX

CompiledInstructionLayout = Struct(
    "program_id_index" / Int8ul,
    "account_indexes" / PrefixedArray(Int8ul, Int8ul),
    "data" / Prefixed(Int16ul, GreedyBytes),
)
AddressTableLookupLayout = Struct(
    "account_key" / FixedBytes(32),
    "writable_indexes" / PrefixedArray(Int8ul, Int8ul),
    "readonly_indexes" / PrefixedArray(Int8ul, Int8ul),
)
TransactionMessageLayout = Struct(
    "num_signers" / Int8ul,
    "num_writable_signers" / Int8ul,
    "num_writable_non_signers" / Int8ul,
    "account_keys" / PrefixedArray(Int8ul, FixedBytes(32)),
    "instructions" / PrefixedArray(Int8ul, CompiledInstructionLayout),
    "address_table_lookups" / PrefixedArray(Int8ul, AddressTableLookupLayout),
)

VaultTransactionCreateArgs = CStruct(
    "vault_index" / U8,
    "ephemeral_signers" / U8,
    "transaction_message" / Bytes,
    "memo" / Option(String),
)


@dataclass(frozen=True)
class VaultTransactionMessage:
    """Unsigned inner transaction bound to a vault payer and blockhash."""

    message: Message
    payer: Pubkey
    blockhash: Hash

    @property
    def instruction_count(self) -> int:
        return len(self.message.instructions)

    def encode(self) -> bytes:
        header = self.message.header
        keys = list(self.message.account_keys)
        num_signers = header.num_required_signatures
        num_writable_signers = num_signers - header.num_readonly_signed_accounts
        num_writable_non_signers = (
            len(keys) - num_signers - header.num_readonly_unsigned_accounts
        )
        return TransactionMessageLayout.build(
            {
                "num_signers": num_signers,
                "num_writable_signers": num_writable_signers,
                "num_writable_non_signers": num_writable_non_signers,
                "account_keys": [bytes(key) for key in keys],
                "instructions": [
                    {
                        "program_id_index": ix.program_id_index,
                        "account_indexes": list(bytes(ix.accounts)),
                        "data": bytes(ix.data),
                    }
                    for ix in self.message.instructions
                ],
                "address_table_lookups": [],
            }
        )


def build_vault_message(
    instructions: Sequence[Instruction],
    payer: Pubkey,
    blockhash: Hash,
) -> VaultTransactionMessage:
    if not instructions:
        raise ValueError("vault message needs at least one instruction")
    message = Message.new_with_blockhash(list(instructions), payer, blockhash)
    return VaultTransactionMessage(message=message, payer=payer, blockhash=blockhash)


def vault_transaction_create_data(
    vault_index: int,
    transaction_message: bytes,
    memo: Optional[str],
    ephemeral_signers: int = 0,
) -> bytes:
    args = VaultTransactionCreateArgs.build(
        {
            "vault_index": vault_index,
            "ephemeral_signers": ephemeral_signers,
            "transaction_message": transaction_message,
            "memo": memo or None,
        }
    )
    return anchor_discriminator("global", VAULT_TRANSACTION_CREATE_IX) + args


def build_vault_transaction_create(
    *,
    multisig: Pubkey,
    transaction: Pubkey,
    creator: Pubkey,
    rent_payer: Pubkey,
    vault_index: int,
    message: VaultTransactionMessage,
    memo: Optional[str],
) -> Instruction:
    accounts = [
        AccountMeta(pubkey=multisig, is_signer=False, is_writable=True),
        AccountMeta(pubkey=transaction, is_signer=False, is_writable=True),
        AccountMeta(pubkey=creator, is_signer=True, is_writable=False),
        AccountMeta(pubkey=rent_payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    data = vault_transaction_create_data(vault_index, message.encode(), memo)
    return Instruction(SQUADS_PROGRAM_ID, data, accounts)


def instruction_summary(ix: Instruction) -> Tuple[str, str, list]:
    metas = [
        f"{meta.pubkey} ({'w' if meta.is_writable else 'r'}{'s' if meta.is_signer else ''})"
        for meta in ix.accounts
    ]
    return str(ix.program_id), bytes(ix.data).hex(), metas
