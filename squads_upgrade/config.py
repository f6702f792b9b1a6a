"""Resolve proposal inputs from flags, GitHub Action inputs, env and TOML."""

from __future__ import annotations

from dataclasses import dataclass
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .accounts import parse_address, parse_optional_address
from .constants import CLUSTER_URLS, MAX_VAULT_INDEX
from .errors import ConfigurationError

# (field, action input name, environment variable)
INPUTS = (
    ("network_url", "network-url", "NETWORK_URL"),
    ("multisig_pda", "multisig-pda", "MULTISIG_PDA"),
    ("vault_index", "multisig-vault-index", "MULTISIG_VAULT_INDEX"),
    ("program_id", "program-id", "PROGRAM_ID"),
    ("buffer", "buffer", "BUFFER"),
    ("spill_address", "spill-address", "SPILL_ADDRESS"),
    ("name", "name", "NAME"),
    ("keypair", "keypair", "KEYPAIR"),
    ("executable_data", "executable-data", "EXECUTABLE_DATA"),
    ("idl_buffer", "idl-buffer", "IDL_BUFFER"),
)
_INPUT_NAMES = {field: (input_name, env_name) for field, input_name, env_name in INPUTS}


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        import tomllib  # Python 3.11+
    except ImportError:  # pragma: no cover
        import tomli as tomllib  # type: ignore
    return tomllib.loads(path.read_text())


def load_config_file(path: str | Path) -> Dict[str, Any]:
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    data = _load_toml(path)
    table = data.get("proposal") if isinstance(data.get("proposal"), dict) else data
    out: Dict[str, Any] = {}
    for key, value in table.items():
        out[str(key).replace("-", "_")] = value
    # Relative keypair paths are relative to the config file.
    keypair = out.get("keypair")
    if isinstance(keypair, str) and keypair and not keypair.lstrip().startswith("["):
        candidate = Path(keypair).expanduser()
        if not candidate.is_absolute():
            resolved = (path.resolve().parent / candidate).resolve()
            if resolved.is_file():
                out["keypair"] = str(resolved)
    return out


def action_input(env: Mapping[str, str], name: str) -> Optional[str]:
    """Read a GitHub Action input the way @actions/core does."""
    return env.get(f"INPUT_{name.replace(' ', '_').upper()}")


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def collect_inputs(
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    file_values: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    overrides = overrides or {}
    env = os.environ if env is None else env
    file_values = file_values or {}
    raw: Dict[str, Any] = {}
    for field, input_name, env_name in INPUTS:
        for candidate in (
            overrides.get(field),
            action_input(env, input_name),
            env.get(env_name),
            file_values.get(field),
        ):
            value = _clean(candidate)
            if value is not None:
                raw[field] = value
                break
    cluster = _clean(overrides.get("cluster")) or _clean(file_values.get("cluster"))
    if "network_url" not in raw and cluster:
        url = CLUSTER_URLS.get(str(cluster))
        if url is None:
            raise ConfigurationError(
                f"unknown cluster {cluster!r}; expected one of {', '.join(CLUSTER_URLS)}"
            )
        raw["network_url"] = url
    return raw


def parse_vault_index(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError("multisig-vault-index must be an integer")
    if isinstance(value, int):
        index = value
    else:
        text = str(value).strip()
        try:
            index = int(text, 10)
        except ValueError as exc:
            raise ConfigurationError(f"multisig-vault-index must be an integer, got {text!r}") from exc
    if index < 0 or index > MAX_VAULT_INDEX:
        raise ConfigurationError(f"multisig-vault-index must be within 0..{MAX_VAULT_INDEX}")
    return index


def _keypair_from_bytes(raw: bytes, name: str) -> Keypair:
    if len(raw) != 64:
        raise ConfigurationError(f"{name} must hold 64 secret key bytes, got {len(raw)}")
    try:
        return Keypair.from_bytes(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} is not a valid ed25519 keypair") from exc


def _keypair_from_json(text: str, name: str) -> Keypair:
    try:
        values = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{name} is not a JSON byte array") from exc
    if not isinstance(values, list) or not all(
        isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 0xFF for v in values
    ):
        raise ConfigurationError(f"{name} must be a JSON array of bytes")
    return _keypair_from_bytes(bytes(values), name)


def parse_keypair(value: str, name: str = "keypair") -> Keypair:
    """Accept a JSON byte array, a keypair file path, or a base58 secret key."""
    text = value.strip()
    if not text:
        raise ConfigurationError(f"{name} is empty")
    if text.startswith("["):
        return _keypair_from_json(text, name)
    path = Path(text).expanduser()
    try:
        is_file = path.is_file()
    except (OSError, ValueError):
        # Too long or otherwise unusable as a path; try the other encodings.
        is_file = False
    if is_file:
        return _keypair_from_json(path.read_text(), f"{name} file {path}")
    try:
        raw = base58.b58decode(text)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} is not a JSON byte array, keypair file, or base58 secret key"
        ) from exc
    return _keypair_from_bytes(raw, name)


@dataclass(frozen=True)
class ProposalConfig:
    network_url: Optional[str]
    multisig: Pubkey
    vault_index: int
    program_id: Pubkey
    buffer: Pubkey
    spill_address: Pubkey
    executable_data: Pubkey
    name: str
    keypair: Optional[Keypair]
    idl_buffer: Optional[Pubkey] = None

    def log_inputs(self, log: Any) -> None:
        log.info(f"Network URL: {self.network_url or 'None'}")
        log.info(f"Multisig PDA: {self.multisig}")
        log.info(f"Multisig Vault Index: {self.vault_index}")
        log.info(f"Program ID: {self.program_id}")
        log.info(f"Buffer: {self.buffer}")
        log.info(f"Spill Address: {self.spill_address}")
        log.info(f"Name: {self.name}")
        log.info(f"Executable Data: {self.executable_data}")
        log.info(f"IDL Buffer: {self.idl_buffer if self.idl_buffer is not None else 'None'}")
        if self.keypair is not None:
            log.info(f"Keypair Public Key: {self.keypair.pubkey()}")


def _require(raw: Mapping[str, Any], field: str) -> Any:
    value = raw.get(field)
    if value is None:
        input_name, env_name = _INPUT_NAMES[field]
        raise ConfigurationError(f"missing required input {input_name} (or {env_name})")
    return value


def resolve_config(
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    require_signer: bool = True,
) -> ProposalConfig:
    """Resolve and validate every input once, before any network call."""
    overrides = overrides or {}
    file_values: Dict[str, Any] = {}
    config_path = _clean(overrides.get("config"))
    if config_path:
        file_values = load_config_file(config_path)
    raw = collect_inputs(overrides, env, file_values)

    # Every required input must be present before any of them is parsed.
    required = ["multisig_pda", "vault_index", "program_id", "buffer", "spill_address", "name", "executable_data"]
    if require_signer:
        required = ["network_url", *required, "keypair"]
    for field in required:
        _require(raw, field)

    keypair = raw.get("keypair")
    return ProposalConfig(
        network_url=raw.get("network_url"),
        multisig=parse_address(raw["multisig_pda"], "multisig-pda"),
        vault_index=parse_vault_index(raw["vault_index"]),
        program_id=parse_address(raw["program_id"], "program-id"),
        buffer=parse_address(raw["buffer"], "buffer"),
        spill_address=parse_address(raw["spill_address"], "spill-address"),
        executable_data=parse_address(raw["executable_data"], "executable-data"),
        name=str(raw["name"]),
        keypair=parse_keypair(str(keypair)) if keypair is not None else None,
        idl_buffer=parse_optional_address(raw.get("idl_buffer"), "idl-buffer"),
    )
