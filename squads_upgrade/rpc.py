"""Minimal Solana JSON-RPC client."""

from __future__ import annotations

import base64
import json
import urllib.error
import urllib.request
from typing import Any

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .constants import ANCHOR_CONSTRAINT_SEEDS, DEFAULT_COMMITMENT, DEFAULT_RPC_TIMEOUT
from .errors import NetworkError, RejectedByProgram, StaleSequenceError


def rpc_request(url: str, method: str, params: list, timeout: float = DEFAULT_RPC_TIMEOUT) -> Any:
    payload = json.dumps({"jsonrpc": "2.0", "id": 1, "method": method, "params": params}).encode()
    req = urllib.request.Request(url, data=payload, headers={"Content-Type": "application/json"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = json.loads(resp.read().decode())
    except urllib.error.HTTPError as exc:
        raise NetworkError(f"{method}: HTTP {exc.code} from {url}") from exc
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise NetworkError(f"{method}: unable to reach {url}: {exc}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise NetworkError(f"{method}: invalid JSON response from {url}") from exc
    if not isinstance(data, dict):
        raise NetworkError(f"{method}: unexpected response from {url}")
    if "error" in data:
        raise classify_rpc_error(method, data["error"])
    return data.get("result")


def _instruction_error(err: Any) -> tuple[int | None, Any]:
    if isinstance(err, dict) and "InstructionError" in err:
        detail = err["InstructionError"]
        if isinstance(detail, list) and len(detail) == 2:
            return detail[0], detail[1]
    return None, None


def classify_rpc_error(method: str, error: Any) -> RejectedByProgram:
    """Map an RPC error object onto the proposal error taxonomy."""

    if not isinstance(error, dict):
        return RejectedByProgram(f"{method}: RPC error: {error}", payload=error)
    message = str(error.get("message", "RPC error"))
    data = error.get("data") if isinstance(error.get("data"), dict) else {}
    err = data.get("err")
    logs = [line for line in data.get("logs") or [] if isinstance(line, str)]

    _, detail = _instruction_error(err)
    custom = detail.get("Custom") if isinstance(detail, dict) else None
    if custom == ANCHOR_CONSTRAINT_SEEDS or any("already in use" in line for line in logs):
        return StaleSequenceError(
            f"{method}: multisig transaction index advanced before submission ({message})",
            payload=error,
            logs=logs,
        )
    return RejectedByProgram(f"{method}: {message}", payload=error, logs=logs)


class RpcClient:
    """JSON-RPC endpoint used for blockhash, account and submission calls."""

    def __init__(
        self,
        url: str,
        commitment: str = DEFAULT_COMMITMENT,
        timeout: float = DEFAULT_RPC_TIMEOUT,
    ) -> None:
        self.url = url
        self.commitment = commitment
        self.timeout = timeout

    def request(self, method: str, params: list) -> Any:
        return rpc_request(self.url, method, params, timeout=self.timeout)

    def get_latest_blockhash(self) -> Hash:
        result = self.request("getLatestBlockhash", [{"commitment": self.commitment}])
        value = result.get("value") if isinstance(result, dict) else None
        blockhash = value.get("blockhash") if isinstance(value, dict) else None
        if not isinstance(blockhash, str):
            raise NetworkError("getLatestBlockhash: response missing blockhash")
        try:
            return Hash.from_string(blockhash)
        except ValueError as exc:
            raise NetworkError(f"getLatestBlockhash: invalid blockhash {blockhash}") from exc

    def get_account_data(self, address: Pubkey) -> bytes:
        result = self.request(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            raise RejectedByProgram(f"getAccountInfo: account not found: {address}")
        data = value.get("data") if isinstance(value, dict) else None
        if isinstance(data, list) and data:
            b64 = data[0]
        elif isinstance(data, str):
            b64 = data
        else:
            raise NetworkError(f"getAccountInfo: unexpected account data format for {address}")
        return base64.b64decode(b64)

    def send_transaction(self, transaction: Transaction) -> str:
        encoded = base64.b64encode(bytes(transaction)).decode()
        result = self.request(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        if not isinstance(result, str) or not result:
            raise NetworkError("sendTransaction: response missing signature")
        return result

