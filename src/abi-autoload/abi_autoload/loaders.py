"""
ABI registry loaders and signature database lookups.

Every loader maps "not known" to an empty list and raises ``LoaderError``
for transport or payload failures, so callers can tell the two apart.
"""

import json
import logging
from typing import Any, List, Optional, Sequence

import requests

from .abi import ABI, ABILoader, SignatureLookup
from .config import DEFAULT_ETHERSCAN_BASE_URL, DEFAULT_FOURBYTE_URL, DEFAULT_OPENCHAIN_URL, DEFAULT_SOURCIFY_URL
from .errors import LoaderError
from .http_client import JsonHttpClient

logger = logging.getLogger(__name__)

ETHERSCAN_NOT_VERIFIED = "contract source code not verified"


class SourcifyABILoader:
    """Verified ABIs from Sourcify (full or partial match)."""

    name = "sourcify"

    def __init__(
        self,
        chain_id: str = "1",
        base_url: str = DEFAULT_SOURCIFY_URL,
        http: Optional[JsonHttpClient] = None,
    ) -> None:
        self.chain_id = chain_id
        self.base_url = base_url.rstrip("/")
        self.http = http or JsonHttpClient()

    def load_abi(self, address: str) -> ABI:
        url = f"{self.base_url}/v2/contract/{self.chain_id}/{address}"
        try:
            payload = self.http.get_json(url, params={"fields": "abi"}, allow_not_found=True)
        except (requests.RequestException, ValueError) as exc:
            raise LoaderError(self.name, str(exc)) from exc

        if payload is None:
            return []
        if not isinstance(payload, dict):
            raise LoaderError(self.name, "unexpected response (non-object).")
        abi = payload.get("abi")
        if abi is None:
            return []
        if not isinstance(abi, list):
            raise LoaderError(self.name, "unexpected 'abi' field (non-list).")
        return abi


class EtherscanABILoader:
    """Verified ABIs from Etherscan V2 (``module=contract&action=getabi``)."""

    name = "etherscan"

    def __init__(
        self,
        api_key: str,
        chain_id: str = "1",
        base_url: str = DEFAULT_ETHERSCAN_BASE_URL,
        http: Optional[JsonHttpClient] = None,
    ) -> None:
        if not api_key:
            raise ValueError("Etherscan API key is required.")
        self.api_key = api_key
        self.chain_id = chain_id
        self.base_url = base_url.rstrip("/")
        self.http = http or JsonHttpClient(headers={"X-API-Key": api_key})

    def load_abi(self, address: str) -> ABI:
        params = {
            "module": "contract",
            "action": "getabi",
            "address": address,
            "chainid": self.chain_id,
            "apikey": self.api_key,
        }
        try:
            payload = self.http.get_json(self.base_url, params=params)
        except (requests.RequestException, ValueError) as exc:
            raise LoaderError(self.name, str(exc)) from exc

        if not isinstance(payload, dict):
            raise LoaderError(self.name, "unexpected response (non-object).")

        status = str(payload.get("status", "")).strip()
        result = payload.get("result")
        if status != "1":
            detail = result if isinstance(result, str) else payload.get("message", "")
            if ETHERSCAN_NOT_VERIFIED in str(detail).lower():
                return []
            raise LoaderError(self.name, f"{detail or 'unknown error'}.")

        if isinstance(result, list):
            return result
        try:
            abi = json.loads(result or "[]")
        except (TypeError, json.JSONDecodeError) as exc:
            raise LoaderError(self.name, "invalid ABI JSON returned.") from exc
        if not isinstance(abi, list):
            raise LoaderError(self.name, "ABI is not a list.")
        return abi


class MultiABILoader:
    """Try each loader in order; the first non-empty ABI wins."""

    name = "multi"

    def __init__(self, loaders: Sequence[ABILoader]) -> None:
        self.loaders = list(loaders)

    def load_abi(self, address: str) -> ABI:
        last_error: Optional[Exception] = None
        for loader in self.loaders:
            try:
                abi = loader.load_abi(address)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("ABI loader %s failed for %s: %s", _loader_name(loader), address, exc)
                last_error = exc
                continue
            if abi:
                return abi
        if last_error is not None:
            raise last_error
        return []


class OpenChainSignatureLookup:
    """Signature lookups against the OpenChain signature database."""

    name = "openchain"

    def __init__(self, base_url: str = DEFAULT_OPENCHAIN_URL, http: Optional[JsonHttpClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or JsonHttpClient()

    def _lookup(self, kind: str, key: str) -> List[str]:
        try:
            payload = self.http.get_json(f"{self.base_url}/lookup", params={kind: key, "filter": "true"})
        except (requests.RequestException, ValueError) as exc:
            raise LoaderError(self.name, str(exc)) from exc

        if not isinstance(payload, dict) or not payload.get("ok"):
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise LoaderError(self.name, f"lookup failed: {detail or 'unexpected response'}.")

        matches = (payload.get("result") or {}).get(kind) or {}
        entries = matches.get(key) or matches.get(key.lower()) or []
        return [entry["name"] for entry in entries if isinstance(entry, dict) and entry.get("name")]

    def load_functions(self, selector: str) -> List[str]:
        return self._lookup("function", selector)

    def load_events(self, hash: str) -> List[str]:
        return self._lookup("event", hash)


class FourByteSignatureLookup:
    """Signature lookups against 4byte.directory; oldest registration first."""

    name = "4byte"

    def __init__(self, base_url: str = DEFAULT_FOURBYTE_URL, http: Optional[JsonHttpClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or JsonHttpClient()

    def _lookup(self, path: str, key: str) -> List[str]:
        try:
            payload = self.http.get_json(f"{self.base_url}/{path}/", params={"hex_signature": key})
        except (requests.RequestException, ValueError) as exc:
            raise LoaderError(self.name, str(exc)) from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            raise LoaderError(self.name, "unexpected response (missing results).")

        results = [r for r in payload["results"] if isinstance(r, dict) and r.get("text_signature")]
        results.sort(key=lambda r: r.get("id") or 0)
        return [r["text_signature"] for r in results]

    def load_functions(self, selector: str) -> List[str]:
        return self._lookup("signatures", selector)

    def load_events(self, hash: str) -> List[str]:
        return self._lookup("event-signatures", hash)


class MultiSignatureLookup:
    """Try each lookup in order; the first non-empty answer wins."""

    name = "multi"

    def __init__(self, lookups: Sequence[SignatureLookup]) -> None:
        self.lookups = list(lookups)

    def _first(self, method: str, key: str) -> List[str]:
        last_error: Optional[Exception] = None
        for lookup in self.lookups:
            try:
                result = getattr(lookup, method)(key)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Signature lookup %s failed for %s: %s", _loader_name(lookup), key, exc)
                last_error = exc
                continue
            if result:
                return result
        if last_error is not None:
            raise last_error
        return []

    def load_functions(self, selector: str) -> List[str]:
        return self._first("load_functions", selector)

    def load_events(self, hash: str) -> List[str]:
        return self._first("load_events", hash)


def _loader_name(loader: Any) -> str:
    return getattr(loader, "name", None) or type(loader).__name__
