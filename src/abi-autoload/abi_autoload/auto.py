"""
Resolve a contract address into a best-effort ABI.

Stages, in order: name resolution, verified registry lookup (short-circuits
on a non-empty result), bytecode extraction, reliability filtering, and
concurrent signature enrichment of the remaining entries.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .abi import (
    ABI,
    ABIEntry,
    ABILoader,
    BytecodeExtractor,
    ErrorHook,
    ProgressHook,
    Provider,
    SignatureLookup,
    is_address,
)
from .disasm import abi_from_bytecode
from .errors import ConfigError
from .fragments import parse_event_signature, parse_function_signature
from .reliability import strip_unreliable_abi

logger = logging.getLogger(__name__)


def default_on_progress(phase: str, detail: Dict[str, Any]) -> None:
    logger.debug("%s: %s", phase, detail)


def default_on_error(phase: str, error: Exception) -> bool:
    logger.error("%s: %s", phase, error)
    return False


@dataclass
class AutoloadConfig:
    """Per-request settings. ``None`` or ``False`` disables a capability."""

    provider: Provider
    abi_loader: Union[ABILoader, bool, None] = None
    signature_lookup: Union[SignatureLookup, bool, None] = None
    on_progress: Optional[ProgressHook] = None
    on_error: Optional[ErrorHook] = None
    # Keep the inferred inputs/mutability/payable guesses and bytecode events.
    enable_experimental_metadata: bool = False
    extractor: BytecodeExtractor = abi_from_bytecode
    # None means one worker per entry.
    max_workers: Optional[int] = None


def _capability(value: Any, field: str) -> Any:
    if value is None or value is False:
        return None
    if value is True:
        raise ConfigError(f"{field} must be a capability instance or False, not True.")
    return value


def _guard_progress(hook: ProgressHook) -> ProgressHook:
    def notify(phase: str, detail: Dict[str, Any]) -> None:
        try:
            hook(phase, detail)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Progress hook raised during %s; ignoring", phase)

    return notify


def resolve(address: str, config: Optional[AutoloadConfig]) -> ABI:
    """Load the best ABI available for ``address`` (an address or ENS-style name).

    Raises ConfigError when ``config`` or its provider is missing. Registry and
    signature lookup failures go to ``config.on_error`` instead of raising; a
    truthy return from the hook aborts and returns what has been accumulated.
    """
    if config is None:
        raise ConfigError("resolve: config is required and must include 'provider'.")
    if config.provider is None:
        raise ConfigError("resolve: config.provider is required.")

    provider = config.provider
    on_progress = _guard_progress(config.on_progress or default_on_progress)
    on_error = config.on_error or default_on_error
    abi_loader = _capability(config.abi_loader, "abi_loader")
    signature_lookup = _capability(config.signature_lookup, "signature_lookup")

    if not is_address(address):
        on_progress("resolveName", {"address": address})
        address = provider.resolve_name(address) or address

    if abi_loader is not None:
        on_progress("abiLoader", {"address": address})
        try:
            abi = abi_loader.load_abi(address)
        except Exception as exc:  # pylint: disable=broad-except
            if on_error("abiLoad", exc):
                return []
        else:
            if abi:
                return abi
            logger.debug("No registry ABI for %s; falling back to bytecode", address)

    on_progress("getCode", {"address": address})
    code = provider.get_code(address)
    abi = config.extractor(code)

    if not config.enable_experimental_metadata:
        abi = strip_unreliable_abi(abi)

    if signature_lookup is None:
        return abi

    on_progress("signatureLookup", {"abiItems": len(abi)})
    enrich_signatures(abi, signature_lookup, on_error, max_workers=config.max_workers)
    return abi


def signature_delta(
    hits: List[str],
    parse: Callable[[str], Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    """Fields to merge into an entry given signature hits, most likely first."""
    if not hits:
        return None

    delta: Dict[str, Any] = {"sig": hits[0]}
    try:
        fields = parse(hits[0])
    except ValueError as exc:
        logger.warning("Could not parse signature '%s': %s", hits[0], exc)
    else:
        # Signature databases carry no return types; keep whatever the entry already knows.
        if not fields.get("outputs"):
            fields.pop("outputs", None)
        delta.update(fields)
    if len(hits) > 1:
        delta["sigAlts"] = list(hits[1:])
    return delta


def _lookup_entry(
    entry: ABIEntry,
    lookup: SignatureLookup,
    cancelled: Optional[threading.Event] = None,
) -> Optional[Dict[str, Any]]:
    if cancelled is not None and cancelled.is_set():
        return None
    if entry.get("type") == "function":
        return signature_delta(lookup.load_functions(entry["selector"]), parse_function_signature)
    return signature_delta(lookup.load_events(entry["hash"]), parse_event_signature)


def enrich_signatures(
    abi: ABI,
    lookup: SignatureLookup,
    on_error: ErrorHook,
    max_workers: Optional[int] = None,
) -> bool:
    """Look up every function and event entry concurrently and merge the hits in place.

    Each task gets a private copy of its entry and returns a delta; deltas are
    applied here, on the calling thread, so entry order never depends on
    completion order. Returns False if the error hook aborted the batch.
    """
    tasks: List[Tuple[int, ABIEntry]] = [
        (idx, entry) for idx, entry in enumerate(abi) if entry.get("type") in ("function", "event")
    ]
    if not tasks:
        return True

    pool = ThreadPoolExecutor(max_workers=max_workers or len(tasks), thread_name_prefix="signature-lookup")
    cancelled = threading.Event()
    aborted = False
    try:
        futures: Dict[Future, int] = {
            pool.submit(_lookup_entry, dict(entry), lookup, cancelled): idx for idx, entry in tasks
        }
        for future in as_completed(futures):
            idx = futures[future]
            try:
                delta = future.result()
            except Exception as exc:  # pylint: disable=broad-except
                if on_error("signatureLookup", exc):
                    aborted = True
                    cancelled.set()
                    break
                continue
            if delta:
                abi[idx].update(delta)
    finally:
        pool.shutdown(wait=not aborted, cancel_futures=aborted)

    if aborted:
        # Lookups already on the wire finish in the background; their results are discarded.
        logger.info("Signature enrichment aborted by error hook")
    return not aborted
