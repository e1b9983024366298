import os
from dataclasses import dataclass, field
from typing import Dict, Optional

DEFAULT_ETHERSCAN_BASE_URL = "https://api.etherscan.io/v2/api"
DEFAULT_SEITRACE_API_URL = "https://seitrace.com/pacific-1/api"
DEFAULT_CHAIN_ID = 1329

RPC_URL_ENV_PREFIX = "RPC_URL_"


@dataclass
class Config:
    etherscan_api_key: Optional[str] = None
    etherscan_base_url: str = DEFAULT_ETHERSCAN_BASE_URL
    seitrace_api_url: str = DEFAULT_SEITRACE_API_URL
    default_chain_id: int = DEFAULT_CHAIN_ID
    rpc_overrides: Dict[int, str] = field(default_factory=dict)
    request_timeout: int = 10
    max_retries: int = 3
    backoff_seconds: float = 0.5
    probe_workers: int = 8
    # Explorer log pagination bounds.
    log_page_size: int = 1000
    log_max_pages: int = 500
    log_page_delay: float = 0.35
    rate_limit_backoff: float = 1.5
    rate_limit_retries: int = 3
    log_level: str = "WARNING"

    @property
    def has_etherscan_key(self) -> bool:
        return bool(self.etherscan_api_key)


def _parse_rpc_overrides(environ: Dict[str, str]) -> Dict[int, str]:
    overrides: Dict[int, str] = {}
    for key, value in environ.items():
        if not key.startswith(RPC_URL_ENV_PREFIX):
            continue
        suffix = key[len(RPC_URL_ENV_PREFIX):]
        if not suffix.isdigit() or not value.strip():
            continue
        overrides[int(suffix)] = value.strip()
    return overrides


def load_config() -> Config:
    """Load configuration from environment variables."""
    api_key = (os.getenv("ETHERSCAN_API_KEY") or "").strip() or None

    base_url = os.getenv("ETHERSCAN_BASE_URL", DEFAULT_ETHERSCAN_BASE_URL).rstrip("/")
    seitrace_url = os.getenv("SEITRACE_API_URL", DEFAULT_SEITRACE_API_URL).rstrip("/")
    default_chain = int(os.getenv("DEFAULT_CHAIN_ID", str(DEFAULT_CHAIN_ID)))
    timeout = int(os.getenv("REQUEST_TIMEOUT", "10"))
    max_retries = int(os.getenv("REQUEST_RETRIES", "3"))
    backoff = float(os.getenv("REQUEST_BACKOFF_SECONDS", "0.5"))
    probe_workers = int(os.getenv("PROBE_WORKERS", "8"))
    log_level = os.getenv("LOG_LEVEL", "WARNING").strip().upper()

    return Config(
        etherscan_api_key=api_key,
        etherscan_base_url=base_url,
        seitrace_api_url=seitrace_url,
        default_chain_id=default_chain,
        rpc_overrides=_parse_rpc_overrides(dict(os.environ)),
        request_timeout=timeout,
        max_retries=max_retries,
        backoff_seconds=backoff,
        probe_workers=max(1, probe_workers),
        log_level=log_level,
    )
