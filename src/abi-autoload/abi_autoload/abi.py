"""
ABI entry shapes and the capability contracts consumed by the resolver.

Entries are plain JSON-ABI dictionaries so registry results can be passed
through verbatim; the TypedDicts below describe the keys this package
itself produces.
"""

import re
from typing import Any, Callable, Dict, List, Optional, Protocol, TypedDict

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


class ABIParam(TypedDict, total=False):
    type: str
    name: str
    indexed: bool
    components: List["ABIParam"]


class ABIFunction(TypedDict, total=False):
    type: str  # always "function"
    selector: str
    sig: str
    sigAlts: List[str]
    name: str
    inputs: List[ABIParam]
    outputs: List[ABIParam]
    stateMutability: str
    payable: bool
    constant: bool


class ABIEvent(TypedDict, total=False):
    type: str  # always "event"
    hash: str
    sig: str
    sigAlts: List[str]
    name: str
    inputs: List[ABIParam]
    anonymous: bool


ABIEntry = Dict[str, Any]
ABI = List[ABIEntry]

ProgressHook = Callable[[str, Dict[str, Any]], None]
ErrorHook = Callable[[str, Exception], Optional[bool]]
BytecodeExtractor = Callable[[str], ABI]


class Provider(Protocol):
    def resolve_name(self, name: str) -> Optional[str]:
        """Resolve a human-readable name to an address, or None."""
        ...

    def get_code(self, address: str) -> str:
        """Return deployed bytecode as a 0x-prefixed hex string."""
        ...


class ABILoader(Protocol):
    def load_abi(self, address: str) -> ABI:
        """Return the verified ABI for ``address``; [] when unknown."""
        ...


class SignatureLookup(Protocol):
    def load_functions(self, selector: str) -> List[str]:
        """Return candidate function signatures, most likely first."""
        ...

    def load_events(self, hash: str) -> List[str]:
        """Return candidate event signatures, most likely first."""
        ...


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_PATTERN.match(value))


def function_entry(selector: str, **fields: Any) -> ABIFunction:
    entry: ABIFunction = {"type": "function", "selector": selector}
    entry.update(fields)  # type: ignore[typeddict-item]
    return entry


def event_entry(hash: str, **fields: Any) -> ABIEvent:
    entry: ABIEvent = {"type": "event", "hash": hash}
    entry.update(fields)  # type: ignore[typeddict-item]
    return entry
