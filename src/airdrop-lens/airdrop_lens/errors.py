import re
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")
# RPC and explorer URLs may embed API keys in their path or query.
_URL_RE = re.compile(r"(https?://[^/\s'\"]+)[^\s'\")]*")
_REQUEST_PATH_RE = re.compile(r"(with url: )\S+")
MAX_MESSAGE_LENGTH = 200


class LensError(Exception):
    """Base class for errors reported to callers."""


class UnsupportedChain(LensError):
    def __init__(self, chain_id: object) -> None:
        super().__init__(f"Unsupported chain: {chain_id}")
        self.chain_id = chain_id


class NoContractAtAddress(LensError):
    def __init__(self, address: str, chain_name: str) -> None:
        super().__init__(
            f"No contract found at {address} on {chain_name}. Make sure you selected the correct chain."
        )
        self.address = address
        self.chain_name = chain_name


class AbiNotFound(LensError):
    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(hint or message)
        self.hint = hint


class NoClaimEventsFound(LensError):
    def __init__(self, address: str) -> None:
        super().__init__(f"No Claimed events found on contract {address}")
        self.address = address


class RpcError(LensError):
    """JSON-RPC error object returned by a node."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class RevertError(LensError):
    """A contract call reverted or returned data that could not be decoded."""

    def __init__(self, function: str, reason: str) -> None:
        super().__init__(f"{function} reverted: {reason}")
        self.function = function
        self.reason = reason


def short_message(exc: BaseException, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """First line of the exception message, URL paths redacted, whitespace collapsed and truncated."""
    text = str(exc) or exc.__class__.__name__
    first_line = text.strip().splitlines()[0] if text.strip() else exc.__class__.__name__
    first_line = _REQUEST_PATH_RE.sub(r"\1<redacted>", _URL_RE.sub(r"\1", first_line))
    return _WHITESPACE_RE.sub(" ", first_line).strip()[:limit]
