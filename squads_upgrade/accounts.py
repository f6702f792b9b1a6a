"""Address parsing and derivation helpers for Squads upgrade proposals."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import struct
from typing import Optional, Tuple

from solders.pubkey import Pubkey

from .constants import (
    BPF_LOADER_UPGRADEABLE_ID,
    IDL_SEED,
    MAX_TRANSACTION_INDEX,
    MAX_VAULT_INDEX,
    MULTISIG_ACCOUNT_NAME,
    MULTISIG_MIN_SIZE,
    MULTISIG_STALE_INDEX_OFFSET,
    MULTISIG_THRESHOLD_OFFSET,
    MULTISIG_TIME_LOCK_OFFSET,
    MULTISIG_TRANSACTION_INDEX_OFFSET,
    SEED_PREFIX,
    SEED_TRANSACTION,
    SEED_VAULT,
    SQUADS_PROGRAM_ID,
)
from .errors import ConfigurationError, InvalidAccountData, InvalidAddress


def parse_address(value: object, name: str) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    if not isinstance(value, str):
        raise InvalidAddress(f"{name} must be a base58 string")
    text = value.strip()
    if not text:
        raise InvalidAddress(f"{name} is empty")
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise InvalidAddress(f"{name} is not a valid address: {text}") from exc


def parse_optional_address(value: object, name: str) -> Optional[Pubkey]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return parse_address(value, name)


def _ensure_pubkey(value: object, name: str) -> Pubkey:
    if not isinstance(value, Pubkey):
        raise InvalidAddress(f"{name} must be a Pubkey, got {type(value).__name__}")
    return value


def anchor_discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:8]


def derive_vault_pda(multisig: Pubkey, index: int) -> Tuple[Pubkey, int]:
    multisig = _ensure_pubkey(multisig, "multisig")
    if isinstance(index, bool) or not isinstance(index, int):
        raise ConfigurationError("vault index must be an integer")
    if index < 0 or index > MAX_VAULT_INDEX:
        raise ConfigurationError("vault index must fit in u8")
    return Pubkey.find_program_address(
        [SEED_PREFIX, bytes(multisig), SEED_VAULT, bytes([index])],
        SQUADS_PROGRAM_ID,
    )


def derive_transaction_pda(multisig: Pubkey, transaction_index: int) -> Tuple[Pubkey, int]:
    multisig = _ensure_pubkey(multisig, "multisig")
    if transaction_index < 0 or transaction_index > MAX_TRANSACTION_INDEX:
        raise ValueError("transaction index must be within u64 range")
    return Pubkey.find_program_address(
        [SEED_PREFIX, bytes(multisig), SEED_TRANSACTION, struct.pack("<Q", transaction_index)],
        SQUADS_PROGRAM_ID,
    )


def derive_idl_address(program_id: Pubkey) -> Pubkey:
    program_id = _ensure_pubkey(program_id, "program id")
    base, _ = Pubkey.find_program_address([], program_id)
    return Pubkey.create_with_seed(base, IDL_SEED, program_id)


def derive_program_data_address(program_id: Pubkey) -> Pubkey:
    program_id = _ensure_pubkey(program_id, "program id")
    return Pubkey.find_program_address([bytes(program_id)], BPF_LOADER_UPGRADEABLE_ID)[0]


@dataclass(frozen=True)
class MultisigState:
    threshold: int
    time_lock: int
    transaction_index: int
    stale_transaction_index: int


def decode_multisig(data: bytes) -> MultisigState:
    if len(data) < MULTISIG_MIN_SIZE:
        raise InvalidAccountData(
            f"multisig account data too short: {len(data)} < {MULTISIG_MIN_SIZE}"
        )
    if data[:8] != anchor_discriminator("account", MULTISIG_ACCOUNT_NAME):
        raise InvalidAccountData("account is not a Squads multisig (discriminator mismatch)")
    (threshold,) = struct.unpack_from("<H", data, MULTISIG_THRESHOLD_OFFSET)
    (time_lock,) = struct.unpack_from("<I", data, MULTISIG_TIME_LOCK_OFFSET)
    (transaction_index,) = struct.unpack_from("<Q", data, MULTISIG_TRANSACTION_INDEX_OFFSET)
    (stale_index,) = struct.unpack_from("<Q", data, MULTISIG_STALE_INDEX_OFFSET)
    return MultisigState(
        threshold=threshold,
        time_lock=time_lock,
        transaction_index=transaction_index,
        stale_transaction_index=stale_index,
    )
