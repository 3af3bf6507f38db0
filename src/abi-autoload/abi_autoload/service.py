import re
from typing import Any, Dict, List, Optional

from .abi import ABI, ABILoader, ErrorHook, ProgressHook
from .auto import AutoloadConfig, resolve
from .config import Config
from .disasm import abi_from_bytecode
from .http_client import JsonHttpClient
from .loaders import (
    EtherscanABILoader,
    FourByteSignatureLookup,
    MultiABILoader,
    MultiSignatureLookup,
    OpenChainSignatureLookup,
    SourcifyABILoader,
)
from .providers import RpcProvider
from .rpc_client import RpcClient

SELECTOR_PATTERN = re.compile(r"^0x[a-fA-F0-9]{8}$")
TOPIC_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")


class AutoloadService:
    """Combine configuration, node provider and lookup services to resolve ABIs."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.rpc = RpcClient(
            config.rpc_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_seconds=config.backoff_seconds,
        )
        self.provider = RpcProvider(self.rpc)
        self.abi_loader = self._build_abi_loader()
        self.signature_lookup = MultiSignatureLookup(
            [
                OpenChainSignatureLookup(config.openchain_url, http=self._http()),
                FourByteSignatureLookup(config.fourbyte_url, http=self._http()),
            ]
        )

    def _http(self, headers: Optional[Dict[str, str]] = None) -> JsonHttpClient:
        return JsonHttpClient(
            timeout=self.config.request_timeout,
            max_retries=self.config.max_retries,
            backoff_seconds=self.config.backoff_seconds,
            headers=headers,
        )

    def _build_abi_loader(self) -> ABILoader:
        loaders: List[ABILoader] = [
            SourcifyABILoader(self.config.chain_id, self.config.sourcify_url, http=self._http()),
        ]
        # Etherscan needs a key; without one Sourcify is the only registry.
        if self.config.etherscan_api_key:
            loaders.append(
                EtherscanABILoader(
                    self.config.etherscan_api_key,
                    chain_id=self.config.chain_id,
                    base_url=self.config.etherscan_base_url,
                    http=self._http({"X-API-Key": self.config.etherscan_api_key}),
                )
            )
        return MultiABILoader(loaders)

    def autoload(
        self,
        address: str,
        use_abi_loader: bool = True,
        use_signature_lookup: bool = True,
        experimental: Optional[bool] = None,
        on_progress: Optional[ProgressHook] = None,
        on_error: Optional[ErrorHook] = None,
    ) -> Dict[str, Any]:
        if experimental is None:
            experimental = self.config.enable_experimental_metadata
        progress: List[str] = []

        def track(phase: str, detail: Dict[str, Any]) -> None:
            progress.append(phase)
            if on_progress:
                on_progress(phase, detail)

        abi = resolve(
            address,
            AutoloadConfig(
                provider=self.provider,
                abi_loader=self.abi_loader if use_abi_loader else False,
                signature_lookup=self.signature_lookup if use_signature_lookup else False,
                on_progress=track,
                on_error=on_error,
                enable_experimental_metadata=experimental,
            ),
        )
        # A registry hit ends the pipeline before getCode.
        if "getCode" in progress:
            source = "bytecode"
        else:
            source = "registry" if abi else "none"
        return {
            "address": address,
            "network": self.config.network,
            "chain_id": self.config.chain_id,
            "source": source,
            "abi": abi,
        }

    def lookup_function(self, selector: str) -> Dict[str, Any]:
        normalized = self._normalize_hex(selector, SELECTOR_PATTERN, "selector", 8)
        signatures = self.signature_lookup.load_functions(normalized)
        return {"selector": normalized, "signatures": signatures}

    def lookup_event(self, topic_hash: str) -> Dict[str, Any]:
        normalized = self._normalize_hex(topic_hash, TOPIC_PATTERN, "hash", 64)
        signatures = self.signature_lookup.load_events(normalized)
        return {"hash": normalized, "signatures": signatures}

    def extract_bytecode_abi(self, bytecode: str) -> ABI:
        return abi_from_bytecode(bytecode)

    def _normalize_hex(self, value: str, pattern: "re.Pattern[str]", field: str, length: int) -> str:
        if not isinstance(value, str):
            raise ValueError(f"{field} must be a hex string.")
        candidate = value.strip().lower()
        if not candidate.startswith("0x"):
            candidate = f"0x{candidate}"
        if not pattern.match(candidate):
            raise ValueError(f"Invalid {field} format. Expected 0x-prefixed {length} hex characters.")
        return candidate
