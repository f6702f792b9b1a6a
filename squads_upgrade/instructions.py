"""Instruction builders for program and IDL upgrades."""

from __future__ import annotations

from dataclasses import dataclass
import struct
from typing import Any, List, Optional, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.sysvar import CLOCK, RENT

from .accounts import derive_idl_address, parse_address, parse_optional_address
from .constants import (
    BPF_LOADER_UPGRADEABLE_ID,
    IDL_IX_TAG,
    IDL_SET_BUFFER_VARIANT,
    LOADER_UPGRADE_OPCODE,
)


def upgrade_instruction_data() -> bytes:
    return struct.pack("<I", LOADER_UPGRADE_OPCODE)


def idl_set_buffer_data() -> bytes:
    return IDL_IX_TAG + bytes([IDL_SET_BUFFER_VARIANT])


def build_upgrade_instruction(
    program_id: Pubkey,
    program_data: Pubkey,
    buffer: Pubkey,
    spill: Pubkey,
    authority: Pubkey,
) -> Instruction:
    # Account order is fixed by the upgradeable loader.
    accounts = [
        AccountMeta(pubkey=program_data, is_signer=False, is_writable=True),
        AccountMeta(pubkey=program_id, is_signer=False, is_writable=True),
        AccountMeta(pubkey=buffer, is_signer=False, is_writable=True),
        AccountMeta(pubkey=spill, is_signer=False, is_writable=True),
        AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
        AccountMeta(pubkey=CLOCK, is_signer=False, is_writable=False),
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
    ]
    return Instruction(BPF_LOADER_UPGRADEABLE_ID, upgrade_instruction_data(), accounts)


def build_idl_set_buffer_instruction(
    program_id: Pubkey,
    idl_buffer: Pubkey,
    idl_address: Pubkey,
    authority: Pubkey,
) -> Instruction:
    accounts = [
        AccountMeta(pubkey=idl_buffer, is_signer=False, is_writable=True),
        AccountMeta(pubkey=idl_address, is_signer=False, is_writable=True),
        AccountMeta(pubkey=authority, is_signer=True, is_writable=True),
    ]
    return Instruction(program_id, idl_set_buffer_data(), accounts)


@dataclass(frozen=True)
class UpgradeRequest:
    """Ordered upgrade instructions addressed to a multisig vault."""

    instructions: Tuple[Instruction, ...]
    memo: str
    vault: Pubkey
    program_id: Pubkey
    buffer: Pubkey
    idl_buffer: Optional[Pubkey] = None

    def describe(self) -> List[str]:
        lines = [f"Upgrade program {self.program_id} with buffer {self.buffer}"]
        if self.idl_buffer is not None:
            lines.append(f"Upgrade program {self.program_id} IDL with buffer {self.idl_buffer}")
        return lines


def compose_upgrade(
    *,
    program_id: Pubkey,
    program_data: Pubkey,
    buffer: Pubkey,
    spill: Pubkey,
    vault: Pubkey,
    memo: str,
    idl_buffer: Optional[Pubkey] = None,
    idl_address: Optional[Pubkey] = None,
    log: Any = None,
) -> UpgradeRequest:
    program_id = parse_address(program_id, "program id")
    program_data = parse_address(program_data, "executable data")
    buffer = parse_address(buffer, "buffer")
    spill = parse_address(spill, "spill address")
    vault = parse_address(vault, "vault")
    idl_buffer = parse_optional_address(idl_buffer, "IDL buffer")
    instructions = [build_upgrade_instruction(program_id, program_data, buffer, spill, vault)]
    if idl_buffer is not None:
        if idl_address is None:
            idl_address = derive_idl_address(program_id)
        # The IDL swap must land before the code swap.
        instructions.insert(
            0, build_idl_set_buffer_instruction(program_id, idl_buffer, idl_address, vault)
        )
    elif log is not None:
        log.warning("No IDL buffer provided, skipping IDL upgrade")
    return UpgradeRequest(
        instructions=tuple(instructions),
        memo=memo,
        vault=vault,
        program_id=program_id,
        buffer=buffer,
        idl_buffer=idl_buffer,
    )
