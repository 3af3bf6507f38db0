import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_ETHERSCAN_BASE_URL = "https://api.etherscan.io/v2/api"
DEFAULT_SOURCIFY_URL = "https://sourcify.dev/server"
DEFAULT_OPENCHAIN_URL = "https://api.openchain.xyz/signature-database/v1"
DEFAULT_FOURBYTE_URL = "https://www.4byte.directory/api/v1"

# Static mapping for the networks users most often name; numeric ids pass through.
NETWORK_CHAIN_ID_MAP = {
    "mainnet": "1",
    "ethereum": "1",
    "eth": "1",
    "sepolia": "11155111",
    "holesky": "17000",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class Config:
    rpc_url: str
    network: str = "mainnet"
    chain_id: str = "1"
    etherscan_api_key: Optional[str] = None
    etherscan_base_url: str = DEFAULT_ETHERSCAN_BASE_URL
    sourcify_url: str = DEFAULT_SOURCIFY_URL
    openchain_url: str = DEFAULT_OPENCHAIN_URL
    fourbyte_url: str = DEFAULT_FOURBYTE_URL
    request_timeout: int = 10
    max_retries: int = 1
    backoff_seconds: float = 0.5
    enable_experimental_metadata: bool = False


def resolve_chain_id(network: str, override_chain_id: Optional[str] = None) -> str:
    """Resolve chain ID from override or static network mapping."""
    if override_chain_id:
        return override_chain_id

    normalized = (network or "").strip().lower()
    if normalized.isdigit():
        return normalized

    if normalized in NETWORK_CHAIN_ID_MAP:
        return NETWORK_CHAIN_ID_MAP[normalized]

    allowed = ", ".join(sorted(NETWORK_CHAIN_ID_MAP.keys()) + ["<chain_id>"])
    raise ValueError(f"Unknown network '{network}'. Supported: {allowed}. Or set CHAIN_ID explicitly.")


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got '{raw}'.")


def _parse_int(name: str, raw: str, minimum: int) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}.")
    return value


def load_config() -> Config:
    """Load configuration from environment variables."""
    rpc_url = (os.getenv("RPC_URL") or "").strip()
    if not rpc_url:
        raise ValueError("RPC_URL is required but not set.")

    network = os.getenv("NETWORK", "mainnet").strip().lower()
    chain_id_env = os.getenv("CHAIN_ID")
    chain_id = resolve_chain_id(network, chain_id_env.strip() if chain_id_env else None)

    api_key = (os.getenv("ETHERSCAN_API_KEY") or "").strip() or None
    backoff_raw = os.getenv("REQUEST_BACKOFF_SECONDS", "0.5")
    try:
        backoff = float(backoff_raw)
    except ValueError as exc:
        raise ValueError(f"REQUEST_BACKOFF_SECONDS must be a number, got '{backoff_raw}'.") from exc

    return Config(
        rpc_url=rpc_url,
        network=network,
        chain_id=chain_id,
        etherscan_api_key=api_key,
        etherscan_base_url=os.getenv("ETHERSCAN_BASE_URL", DEFAULT_ETHERSCAN_BASE_URL).rstrip("/"),
        sourcify_url=os.getenv("SOURCIFY_URL", DEFAULT_SOURCIFY_URL).rstrip("/"),
        openchain_url=os.getenv("OPENCHAIN_URL", DEFAULT_OPENCHAIN_URL).rstrip("/"),
        fourbyte_url=os.getenv("FOURBYTE_URL", DEFAULT_FOURBYTE_URL).rstrip("/"),
        request_timeout=_parse_int("REQUEST_TIMEOUT", os.getenv("REQUEST_TIMEOUT", "10"), 1),
        max_retries=_parse_int("REQUEST_RETRIES", os.getenv("REQUEST_RETRIES", "1"), 1),
        backoff_seconds=backoff,
        enable_experimental_metadata=_parse_bool(
            "ENABLE_EXPERIMENTAL_METADATA", os.getenv("ENABLE_EXPERIMENTAL_METADATA"), False
        ),
    )
