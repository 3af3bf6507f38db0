"""
Pytest configuration and shared fixtures.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytest
import requests

OPCODES = {
    "STOP": 0x00,
    "LT": 0x10,
    "EQ": 0x14,
    "ISZERO": 0x15,
    "SHR": 0x1C,
    "CALLVALUE": 0x34,
    "CALLDATALOAD": 0x35,
    "CALLDATASIZE": 0x36,
    "CALLDATACOPY": 0x37,
    "POP": 0x50,
    "MSTORE": 0x52,
    "SLOAD": 0x54,
    "SSTORE": 0x55,
    "JUMP": 0x56,
    "JUMPI": 0x57,
    "JUMPDEST": 0x5B,
    "DUP1": 0x80,
    "DUP2": 0x81,
    "LOG1": 0xA1,
    "LOG3": 0xA3,
    "RETURN": 0xF3,
    "REVERT": 0xFD,
}

Item = Union[str, Tuple[str, str]]

SELECTOR_A = "0x6dbf2fa0"
SELECTOR_B = "0xec0ab6a7"
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
CONTRACT = "0x4A137FD5e7a256eF08A7De531A17D0BE0cc7B6b6"


def assemble(program: Sequence[Item]) -> str:
    """Assemble a tiny EVM program.

    Items are opcode names, ``("PUSHn", "<hex or label>")`` or ``("LABEL", name)``.
    Labels only mark positions; place a JUMPDEST after them yourself.
    """
    labels: Dict[str, int] = {}
    pc = 0
    for item in program:
        if isinstance(item, str):
            pc += 1
        elif item[0] == "LABEL":
            labels[item[1]] = pc
        else:
            pc += 1 + int(item[0][4:])

    out = bytearray()
    for item in program:
        if isinstance(item, str):
            out.append(OPCODES[item])
        elif item[0] == "LABEL":
            continue
        else:
            size = int(item[0][4:])
            value = item[1]
            number = labels[value] if value in labels else int(value, 16)
            out.append(0x60 + size - 1)
            out.extend(number.to_bytes(size, "big"))
    return "0x" + out.hex()


def dispatcher_program() -> List[Item]:
    """Two external functions and one event, laid out like solc output."""
    return [
        ("PUSH1", "80"), ("PUSH1", "40"), "MSTORE",
        ("PUSH1", "04"), "CALLDATASIZE", "LT", ("PUSH2", "fallback"), "JUMPI",
        ("PUSH1", "00"), "CALLDATALOAD", ("PUSH1", "e0"), "SHR",
        "DUP1", ("PUSH4", SELECTOR_A[2:]), "EQ", ("PUSH2", "fn_a"), "JUMPI",
        "DUP1", ("PUSH4", SELECTOR_B[2:]), "EQ", ("PUSH2", "fn_b"), "JUMPI",
        ("LABEL", "fallback"), "JUMPDEST", ("PUSH1", "00"), "DUP1", "REVERT",
        # payable, reads calldata
        ("LABEL", "fn_a"), "JUMPDEST", ("PUSH1", "04"), "CALLDATALOAD", "POP", "STOP",
        # non-payable guard, then a state-changing body that emits Transfer
        ("LABEL", "fn_b"), "JUMPDEST", "CALLVALUE", "DUP1", "ISZERO", ("PUSH2", "b_ok"), "JUMPI",
        ("PUSH1", "00"), "DUP1", "REVERT",
        ("LABEL", "b_ok"), "JUMPDEST", "POP", ("PUSH2", "b_body"), "JUMP",
        ("LABEL", "b_body"), "JUMPDEST", "CALLDATASIZE", ("PUSH1", "00"), "SSTORE",
        ("PUSH32", TRANSFER_TOPIC[2:]), ("PUSH1", "00"), ("PUSH1", "00"), "LOG1", "STOP",
    ]


@pytest.fixture
def contract_address() -> str:
    return CONTRACT


@pytest.fixture
def dispatcher_bytecode() -> str:
    return assemble(dispatcher_program())


class FakeProvider:
    """Provider capability backed by dictionaries; records calls."""

    def __init__(self, code: Dict[str, str], names: Optional[Dict[str, str]] = None) -> None:
        self.code = {k.lower(): v for k, v in code.items()}
        self.names = names or {}
        self.resolve_calls: List[str] = []
        self.code_calls: List[str] = []

    def resolve_name(self, name: str) -> Optional[str]:
        self.resolve_calls.append(name)
        return self.names.get(name)

    def get_code(self, address: str) -> str:
        self.code_calls.append(address)
        return self.code.get(address.lower(), "0x")


class FakeABILoader:
    def __init__(self, abi: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None) -> None:
        self.abi = abi or []
        self.error = error
        self.calls: List[str] = []

    def load_abi(self, address: str) -> List[Dict[str, Any]]:
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.abi


class FakeSignatureLookup:
    def __init__(
        self,
        functions: Optional[Dict[str, Any]] = None,
        events: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.functions = functions or {}
        self.events = events or {}

    def _answer(self, table: Dict[str, Any], key: str) -> List[str]:
        value = table.get(key, [])
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value()
        return list(value)

    def load_functions(self, selector: str) -> List[str]:
        return self._answer(self.functions, selector)

    def load_events(self, hash: str) -> List[str]:
        return self._answer(self.events, hash)


@pytest.fixture
def provider(contract_address: str, dispatcher_bytecode: str) -> FakeProvider:
    return FakeProvider({contract_address: dispatcher_bytecode}, names={"vault.eth": contract_address})


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, raise_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._raise_json = raise_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if self._raise_json:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; returns queued responses in order."""

    def __init__(self, responses: Sequence[Any]) -> None:
        self.headers: Dict[str, str] = {}
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[int] = None) -> FakeResponse:
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url: str, json: Any = None, timeout: Optional[int] = None) -> FakeResponse:
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response
