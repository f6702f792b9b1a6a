"""Error taxonomy for proposal creation."""

from __future__ import annotations

from typing import Any, List, Optional


class ProposalError(Exception):
    """Base class for every failure that aborts a proposal run."""


class ConfigurationError(ProposalError):
    """Raised when a required input is missing or cannot be parsed."""


class InvalidAddress(ProposalError):
    """Raised when a value is not a valid base58 public key."""


class InvalidAccountData(ProposalError):
    """Raised when fetched account data does not decode as expected."""


class NetworkError(ProposalError):
    """Raised when the RPC endpoint is unreachable or returns garbage."""


class RejectedByProgram(ProposalError):
    """Raised for any on-chain or RPC-level rejection of a request."""

    def __init__(
        self,
        message: str,
        payload: Optional[Any] = None,
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message)
        self.payload = payload
        self.logs = list(logs or [])


class StaleSequenceError(RejectedByProgram):
    """Raised when the multisig transaction index advanced before submission."""
