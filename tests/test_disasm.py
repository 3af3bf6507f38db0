"""
Tests for bytecode candidate extraction.
"""

import pytest

from abi_autoload.disasm import Instruction, abi_from_bytecode, disassemble
from conftest import SELECTOR_A, SELECTOR_B, TRANSFER_TOPIC, assemble


class TestDisassemble:
    def test_push_immediates_are_skipped(self):
        # PUSH2 0x5b5b would look like two JUMPDESTs if immediates were decoded as code.
        instructions = disassemble("0x615b5b5b00")
        assert instructions == [
            Instruction(0, 0x61, bytes.fromhex("5b5b")),
            Instruction(3, 0x5B),
            Instruction(4, 0x00),
        ]

    def test_truncated_push(self):
        instructions = disassemble("0x63aabb")
        assert instructions == [Instruction(0, 0x63, bytes.fromhex("aabb"))]

    def test_empty(self):
        assert disassemble("0x") == []
        assert disassemble("") == []

    def test_odd_length(self):
        with pytest.raises(ValueError):
            disassemble("0x600")


class TestAbiFromBytecode:
    def test_dispatcher(self, dispatcher_bytecode):
        abi = abi_from_bytecode(dispatcher_bytecode)
        assert [entry.get("selector") or entry.get("hash") for entry in abi] == [
            SELECTOR_A,
            SELECTOR_B,
            TRANSFER_TOPIC,
        ]

    def test_payable_function_without_guard(self, dispatcher_bytecode):
        entry = abi_from_bytecode(dispatcher_bytecode)[0]
        assert entry["payable"] is True
        assert entry["stateMutability"] == "payable"
        assert entry["inputs"] == [{"type": "bytes"}]

    def test_guarded_function_follows_jumps(self, dispatcher_bytecode):
        entry = abi_from_bytecode(dispatcher_bytecode)[1]
        assert entry["payable"] is False
        assert entry["stateMutability"] == "nonpayable"
        assert entry["inputs"] == [{"type": "bytes"}]

    def test_view_function(self):
        code = assemble(
            [
                ("PUSH1", "00"), "CALLDATALOAD", ("PUSH1", "e0"), "SHR",
                "DUP1", ("PUSH4", "18160ddd"), "EQ", ("PUSH2", "total"), "JUMPI",
                ("PUSH1", "00"), "DUP1", "REVERT",
                ("LABEL", "total"), "JUMPDEST", "CALLVALUE", "DUP1", "ISZERO", ("PUSH2", "ok"), "JUMPI",
                ("PUSH1", "00"), "DUP1", "REVERT",
                ("LABEL", "ok"), "JUMPDEST", ("PUSH1", "00"), "SLOAD", ("PUSH1", "00"), "MSTORE",
                ("PUSH1", "20"), ("PUSH1", "00"), "RETURN",
            ]
        )
        assert abi_from_bytecode(code) == [
            {"type": "function", "selector": "0x18160ddd", "payable": False, "stateMutability": "view"}
        ]

    def test_push4_without_dispatch_is_ignored(self):
        # A 4-byte constant that is never compared is not a selector.
        code = assemble([("PUSH4", "ffffffff"), ("PUSH1", "00"), "MSTORE", "STOP"])
        assert abi_from_bytecode(code) == []

    def test_dispatch_to_non_jumpdest_is_ignored(self):
        code = assemble(["DUP1", ("PUSH4", "a9059cbb"), "EQ", ("PUSH2", "0001"), "JUMPI", "STOP"])
        assert abi_from_bytecode(code) == []

    def test_duplicate_selectors_reported_once(self):
        code = assemble(
            [
                "DUP1", ("PUSH4", "a9059cbb"), "EQ", ("PUSH2", "fn"), "JUMPI",
                "DUP1", ("PUSH4", "a9059cbb"), "EQ", ("PUSH2", "fn"), "JUMPI",
                ("LABEL", "fn"), "JUMPDEST", "STOP",
            ]
        )
        assert [entry["selector"] for entry in abi_from_bytecode(code)] == ["0xa9059cbb"]

    def test_push32_without_log_is_not_an_event(self):
        code = assemble([("PUSH32", TRANSFER_TOPIC[2:]), ("PUSH1", "00"), "SSTORE", "STOP"])
        assert abi_from_bytecode(code) == []

    def test_empty_code(self):
        assert abi_from_bytecode("0x") == []
