"""CLI entrypoint for squads-upgrade."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any

from .accounts import (
    derive_idl_address,
    derive_program_data_address,
    derive_vault_pda,
    parse_address,
)
from .config import collect_inputs, load_config_file, parse_vault_index, resolve_config
from .constants import CLUSTER_URLS
from .errors import ConfigurationError, ProposalError
from .instructions import compose_upgrade
from .log import ConsoleLog
from .message import instruction_summary
from .proposal import submit_proposal
from .rpc import RpcClient


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {key: value for key, value in vars(args).items() if key not in {"func", "cmd"}}


def _cmd_propose(args: argparse.Namespace, log: Any) -> int:
    config = resolve_config(_overrides(args), require_signer=not args.dry_run)
    config.log_inputs(log)
    log.info("Initializing...")

    vault, _ = derive_vault_pda(config.multisig, config.vault_index)
    log.info(f"Multisig Vault: {vault}")

    program_data = derive_program_data_address(config.program_id)
    if program_data != config.executable_data:
        log.warning(
            f"Executable data {config.executable_data} differs from the program's "
            f"programdata address {program_data}"
        )

    idl_address = derive_idl_address(config.program_id) if config.idl_buffer is not None else None
    request = compose_upgrade(
        program_id=config.program_id,
        program_data=config.executable_data,
        buffer=config.buffer,
        spill=config.spill_address,
        vault=vault,
        memo=config.name,
        idl_buffer=config.idl_buffer,
        idl_address=idl_address,
        log=log,
    )

    if args.dry_run:
        for idx, ix in enumerate(request.instructions):
            program_id, data_hex, metas = instruction_summary(ix)
            log.info(f"Instruction {idx}: program {program_id} data {data_hex}")
            for meta in metas:
                log.info(f"  {meta}")
        log.info("Dry run: proposal not submitted. Transaction would:")
        for line in request.describe():
            log.info(f"- {line}")
        return 0

    endpoint = RpcClient(config.network_url)
    submit_proposal(
        request,
        endpoint=endpoint,
        multisig=config.multisig,
        vault_index=config.vault_index,
        creator=config.keypair,
        log=log,
    )
    return 0


def _cmd_derive(args: argparse.Namespace, log: Any) -> int:
    file_values = load_config_file(args.config) if args.config else {}
    raw = collect_inputs(_overrides(args), file_values=file_values)
    if "multisig_pda" not in raw:
        raise ConfigurationError("missing required input multisig-pda (or MULTISIG_PDA)")
    multisig = parse_address(raw["multisig_pda"], "multisig-pda")
    index = parse_vault_index(raw.get("vault_index", 0))
    vault, bump = derive_vault_pda(multisig, index)
    log.info(f"Multisig Vault [{index}]: {vault} (bump {bump})")
    if "program_id" in raw:
        program_id = parse_address(raw["program_id"], "program-id")
        log.info(f"Executable Data: {derive_program_data_address(program_id)}")
        log.info(f"IDL Account: {derive_idl_address(program_id)}")
    return 0


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="TOML file with a [proposal] table")
    parser.add_argument("--multisig-pda", help="Squads multisig address")
    parser.add_argument("--vault-index", help="Multisig vault index (default 0 for derive)")
    parser.add_argument("--program-id", help="Program to upgrade")


def main(argv: list[str] | None = None, log: Any = None) -> int:
    parser = argparse.ArgumentParser(prog=os.path.basename(sys.argv[0]))
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_propose = sub.add_parser("propose", help="Create a Squads upgrade proposal")
    _add_common(p_propose)
    p_propose.add_argument("--network-url", help="RPC URL")
    p_propose.add_argument("--cluster", choices=sorted(CLUSTER_URLS), help="RPC URL shortcut")
    p_propose.add_argument("--buffer", help="Staged program buffer")
    p_propose.add_argument("--spill-address", help="Receives the buffer's rent")
    p_propose.add_argument("--executable-data", help="Program's programdata account")
    p_propose.add_argument("--idl-buffer", help="Staged Anchor IDL buffer (optional)")
    p_propose.add_argument("--name", help="Proposal memo")
    p_propose.add_argument("--keypair", help="Creator keypair: file path, JSON bytes or base58")
    p_propose.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the composed instructions without contacting the network",
    )
    p_propose.set_defaults(func=_cmd_propose)

    p_derive = sub.add_parser("derive", help="Print vault, programdata and IDL addresses")
    _add_common(p_derive)
    p_derive.set_defaults(func=_cmd_derive)

    args = parser.parse_args(argv)
    log = log or ConsoleLog()
    try:
        return args.func(args, log)
    except FileNotFoundError as exc:
        log.error(str(exc))
        return 1
    except ProposalError as exc:
        log.error(f"{type(exc).__name__}: {exc}")
        return 1
    except ValueError as exc:
        log.error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
