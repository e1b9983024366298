import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests
from eth_abi.exceptions import DecodingError, EncodingError

from .abi import AbiFunction, hex_to_bytes
from .errors import RevertError, RpcError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallResult:
    """Outcome of a speculative contract read."""

    function: str
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, function: str, value: Any) -> "CallResult":
        return cls(function=function, ok=True, value=value)

    @classmethod
    def failure(cls, function: str, error: str) -> "CallResult":
        return cls(function=function, ok=False, error=error)


class RpcClient:
    """Minimal JSON-RPC 2.0 client for EVM nodes (HTTP POST)."""

    def __init__(
        self,
        rpc_url: str,
        timeout: int = 10,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise ValueError("rpc_url must be a non-empty string.")

        self.rpc_url = url
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = float(backoff_seconds)
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))
        self._next_id = 1
        self._id_lock = threading.Lock()

    def _request_id(self) -> int:
        # One client serves the probe fan-out threads.
        with self._id_lock:
            request_id = self._next_id
            self._next_id += 1
        return request_id

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise ValueError("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise ValueError("params must be a list.")

        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id(),
            "method": method,
            "params": params,
        }

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.post(
                    self.rpc_url,
                    json=payload,
                    timeout=self.timeout,
                )
                if response.status_code in {429} or response.status_code >= 500:
                    if attempt < self.max_retries:
                        time.sleep(self.backoff_seconds * attempt)
                        continue

                response.raise_for_status()
                data = response.json()
            except requests.RequestException as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                    continue
                raise
            except ValueError as exc:
                last_error = exc
                if attempt < self.max_retries:
                    time.sleep(self.backoff_seconds * attempt)
                    continue
                raise ValueError(f"Failed to parse JSON-RPC response for {method}.") from exc

            if not isinstance(data, dict):
                raise ValueError("Unexpected JSON-RPC response (non-object).")

            # Node-reported errors are deterministic, so they are not retried.
            error_obj = data.get("error")
            if isinstance(error_obj, dict):
                raise _rpc_error(error_obj)

            if "result" not in data:
                raise ValueError("Unexpected JSON-RPC response (missing result).")
            return data.get("result")

        if last_error:
            raise last_error
        raise RuntimeError("RPC request failed without raising an exception.")

    def get_block_number(self) -> int:
        result = self.call("eth_blockNumber", [])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise ValueError("RPC error: eth_blockNumber returned unexpected result.")
        return int(result, 16)

    def get_code(self, address: str, tag: str = "latest") -> str:
        result = self.call("eth_getCode", [address, tag])
        return result if isinstance(result, str) else "0x"

    def has_code(self, address: str) -> bool:
        code = self.get_code(address)
        return bool(code) and code not in {"0x", "0x0"}

    def get_storage_at(self, address: str, slot: str, tag: str = "latest") -> str:
        result = self.call("eth_getStorageAt", [address, slot, tag])
        if not isinstance(result, str):
            raise ValueError("RPC error: eth_getStorageAt returned unexpected result.")
        return result

    def eth_call(self, address: str, data: str, tag: str = "latest") -> str:
        result = self.call("eth_call", [{"to": address, "data": data}, tag])
        if not isinstance(result, str):
            raise ValueError("RPC error: eth_call returned unexpected result.")
        return result

    def get_logs_via_filter(self, address: str, from_block: int = 0, to_block: str = "latest") -> List[Dict[str, Any]]:
        """Install an address-scoped filter over the block range and return all of its logs."""
        filter_id = self.call(
            "eth_newFilter",
            [{"address": address, "fromBlock": hex(from_block), "toBlock": to_block}],
        )
        try:
            logs = self.call("eth_getFilterLogs", [filter_id])
        finally:
            try:
                self.call("eth_uninstallFilter", [filter_id])
            except (requests.RequestException, ValueError, RpcError) as exc:
                logger.debug("Failed to uninstall filter %s: %s", filter_id, exc)
        if not isinstance(logs, list):
            raise ValueError("RPC error: eth_getFilterLogs returned unexpected result.")
        return [entry for entry in logs if isinstance(entry, dict)]

    def read_contract(self, address: str, fn: AbiFunction, args: Sequence[Any] = ()) -> Any:
        """Call a read-only function and decode its return value; raises RevertError on failure."""
        try:
            data = fn.encode_call(args)
        except (EncodingError, TypeError) as exc:
            raise ValueError(f"Cannot encode arguments for {fn.name}: {exc}") from exc

        try:
            raw = self.eth_call(address, data)
        except RpcError as exc:
            raise RevertError(fn.name, str(exc)) from exc

        payload = hex_to_bytes(raw)
        if fn.outputs and not payload:
            raise RevertError(fn.name, "returned no data")
        try:
            return fn.decode_output(payload)
        except DecodingError as exc:
            raise RevertError(fn.name, f"undecodable return data ({exc})") from exc

    def try_read_contract(self, address: str, fn: AbiFunction, args: Sequence[Any] = ()) -> CallResult:
        try:
            return CallResult.success(fn.name, self.read_contract(address, fn, args))
        except (RevertError, ValueError, requests.RequestException) as exc:
            logger.debug("Speculative call %s on %s failed: %s", fn.name, address, exc)
            return CallResult.failure(fn.name, str(exc))


def _rpc_error(error_obj: Dict[str, Any]) -> RpcError:
    code = error_obj.get("code")
    message = error_obj.get("message")
    err_data = error_obj.get("data")
    parts: list[str] = []
    if code is not None:
        parts.append(f"code {code}")
    if message:
        parts.append(str(message))
    if err_data:
        parts.append(str(err_data))
    detail = ": ".join(parts) if parts else "unknown error"
    return RpcError(f"RPC error: {detail}.", code=code if isinstance(code, int) else None)
