from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import requests


class ResponseKind(enum.Enum):
    OK = "ok"
    ERROR = "error"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class ExplorerResponse:
    """Explorer JSON envelope ({status, message, result}) decoded once at the fetch boundary."""

    kind: ResponseKind
    result: Any = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is ResponseKind.OK

    @property
    def rate_limited(self) -> bool:
        return self.kind is ResponseKind.RATE_LIMITED

    @classmethod
    def from_payload(cls, payload: Any) -> "ExplorerResponse":
        if not isinstance(payload, dict):
            return cls(ResponseKind.ERROR, message="Unexpected response from explorer (non-object).")

        if is_rate_limit_payload(payload):
            return cls(ResponseKind.RATE_LIMITED, message=_detail(payload) or "rate limited")

        status = str(payload.get("status", "")).strip()
        result = payload.get("result")
        if status == "1":
            return cls(ResponseKind.OK, result=result, message=str(payload.get("message") or ""))

        return cls(ResponseKind.ERROR, result=result, message=_detail(payload) or "unknown error")


def _detail(payload: Dict[str, Any]) -> str:
    result = payload.get("result")
    message = payload.get("message")
    if isinstance(result, str) and result:
        return result
    if isinstance(message, str):
        return message
    return ""


def is_rate_limit_payload(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False

    candidates: list[str] = []
    for key in ("message", "result"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            candidates.append(value)

    error_obj = payload.get("error")
    if isinstance(error_obj, dict):
        for key in ("message", "data"):
            value = error_obj.get(key)
            if isinstance(value, str) and value:
                candidates.append(value)

    haystack = " ".join(candidates).lower()
    if not haystack:
        return False

    return (
        "rate limit" in haystack
        or "max calls per sec" in haystack
        or "max calls per second" in haystack
        or "too many requests" in haystack
    )


class ExplorerClient:
    """
    Thin wrapper around an Etherscan-compatible explorer API.
    - api_key None means a keyless endpoint (SeiTrace).
    - chain_id is sent only to the unified Etherscan V2 endpoint.
    Transport errors and HTTP 5xx are retried; rate-limit payloads are returned
    as RATE_LIMITED so callers decide how to pace.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        chain_id: Optional[int] = None,
        timeout: int = 10,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.chain_id = chain_id
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = backoff_seconds
        self.session = requests.Session()
        if api_key:
            self.session.headers.update({"X-API-Key": api_key})

    @property
    def label(self) -> str:
        return f"{self.base_url} (chainid={self.chain_id})" if self.chain_id else self.base_url

    def get_abi(self, address: str) -> ExplorerResponse:
        params = {
            "module": "contract",
            "action": "getabi",
            "address": address,
        }
        return self._request(params)

    def get_logs(
        self,
        address: str,
        topic0: str,
        from_block: int,
        to_block: Union[int, str] = "latest",
    ) -> ExplorerResponse:
        params: Dict[str, Any] = {
            "module": "logs",
            "action": "getLogs",
            "address": address,
            "fromBlock": from_block,
            "toBlock": to_block,
            "topic0": topic0,
        }
        return self._request(params)

    def _request(self, params: Dict[str, Any]) -> ExplorerResponse:
        merged = dict(params)
        if self.chain_id is not None:
            merged["chainid"] = self.chain_id
        if self.api_key:
            merged["apikey"] = self.api_key
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.get(
                    self.base_url,
                    params=merged,
                    timeout=self.timeout,
                )
                if response.status_code >= 500 and attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                    continue
                if response.status_code == 429:
                    return ExplorerResponse(ResponseKind.RATE_LIMITED, message="HTTP 429 Too Many Requests")

                response.raise_for_status()
                return ExplorerResponse.from_payload(response.json())
            except requests.RequestException as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                else:
                    raise
            except ValueError as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                else:
                    raise ValueError("Failed to parse response from explorer.") from exc

        if last_error:
            raise last_error

        raise RuntimeError("Request failed without raising an exception.")
