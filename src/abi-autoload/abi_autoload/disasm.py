"""
Static extraction of candidate ABI entries from deployed EVM bytecode.

Everything here is heuristic: the dispatcher pattern yields selectors, a
PUSH32 consumed by a LOG yields event topic hashes, and a bounded walk of
each function's entry path guesses payability, calldata use and mutability.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Set

from .abi import ABI, event_entry, function_entry

logger = logging.getLogger(__name__)

STOP = 0x00
EQ = 0x14
CALLVALUE = 0x34
CALLDATALOAD = 0x35
CALLDATASIZE = 0x36
CALLDATACOPY = 0x37
SSTORE = 0x55
JUMP = 0x56
JUMPI = 0x57
JUMPDEST = 0x5B
TSTORE = 0x5D
PUSH0 = 0x5F
PUSH1 = 0x60
PUSH4 = 0x63
PUSH32 = 0x7F
DUP1 = 0x80
DUP16 = 0x8F
LOG0 = 0xA0
LOG1 = 0xA1
LOG4 = 0xA4
CREATE = 0xF0
CALL = 0xF1
CALLCODE = 0xF2
RETURN = 0xF3
DELEGATECALL = 0xF4
CREATE2 = 0xF5
REVERT = 0xFD
INVALID = 0xFE
SELFDESTRUCT = 0xFF

TERMINATORS = {STOP, RETURN, REVERT, INVALID, SELFDESTRUCT}
STATE_CHANGING = {SSTORE, TSTORE, CREATE, CALL, CALLCODE, DELEGATECALL, CREATE2, SELFDESTRUCT} | set(
    range(LOG0, LOG4 + 1)
)
CALLDATA_READS = {CALLDATALOAD, CALLDATASIZE, CALLDATACOPY}

# CALLVALUE must appear this early on the entry path to count as a non-payable guard.
CALLVALUE_GUARD_WINDOW = 4
MAX_WALK_STEPS = 1024


class Instruction(NamedTuple):
    pc: int
    opcode: int
    value: Optional[bytes] = None

    @property
    def is_push(self) -> bool:
        return PUSH1 <= self.opcode <= PUSH32

    def push_int(self) -> Optional[int]:
        if self.opcode == PUSH0:
            return 0
        if not self.is_push or self.value is None:
            return None
        return int.from_bytes(self.value, "big")


def disassemble(code: str) -> List[Instruction]:
    """Decode hex bytecode into instructions, skipping PUSH immediates."""
    body = (code or "").strip()
    if body.startswith("0x") or body.startswith("0X"):
        body = body[2:]
    if len(body) % 2 != 0:
        raise ValueError("Bytecode must have an even number of hex characters.")
    raw = bytes.fromhex(body)

    instructions: List[Instruction] = []
    pc = 0
    while pc < len(raw):
        opcode = raw[pc]
        if PUSH1 <= opcode <= PUSH32:
            size = opcode - PUSH1 + 1
            instructions.append(Instruction(pc, opcode, raw[pc + 1 : pc + 1 + size]))
            pc += 1 + size
        else:
            instructions.append(Instruction(pc, opcode))
            pc += 1
    return instructions


def _dispatch_target(instructions: List[Instruction], idx: int, jumpdests: Set[int]) -> Optional[int]:
    """Match ``PUSH4 sel [DUPn] EQ PUSHn dest JUMPI`` starting at ``idx``."""
    j = idx + 1
    if j < len(instructions) and DUP1 <= instructions[j].opcode <= DUP16:
        j += 1
    if j + 2 >= len(instructions):
        return None
    if instructions[j].opcode != EQ:
        return None
    dest = instructions[j + 1].push_int()
    if dest is None or instructions[j + 2].opcode != JUMPI:
        return None
    return dest if dest in jumpdests else None


def _function_metadata(
    instructions: List[Instruction],
    index_by_pc: Dict[int, int],
    jumpdests: Set[int],
    entry_pc: int,
) -> Dict[str, object]:
    payable = True
    reads_calldata = False
    mutates = False

    pending: List[int] = [index_by_pc[entry_pc]]
    visited: Set[int] = set()
    steps = 0
    while pending and steps < MAX_WALK_STEPS:
        idx = pending.pop()
        prev: Optional[Instruction] = None
        while idx < len(instructions) and idx not in visited and steps < MAX_WALK_STEPS:
            visited.add(idx)
            steps += 1
            ins = instructions[idx]
            op = ins.opcode

            if op == CALLVALUE and steps <= CALLVALUE_GUARD_WINDOW:
                payable = False
            elif op in CALLDATA_READS:
                reads_calldata = True
            if op in STATE_CHANGING:
                mutates = True

            if op in TERMINATORS:
                break
            if op in (JUMP, JUMPI):
                target = prev.push_int() if prev is not None else None
                if target is not None and target in jumpdests:
                    if op == JUMP:
                        idx = index_by_pc[target]
                        prev = None
                        continue
                    pending.append(index_by_pc[target])
                elif op == JUMP:
                    # Dynamic jump, usually an internal return.
                    break
            prev = ins
            idx += 1

    metadata: Dict[str, object] = {"payable": payable}
    if payable:
        metadata["stateMutability"] = "payable"
    elif mutates:
        metadata["stateMutability"] = "nonpayable"
    else:
        metadata["stateMutability"] = "view"
    if reads_calldata:
        metadata["inputs"] = [{"type": "bytes"}]
    return metadata


def abi_from_bytecode(code: str) -> ABI:
    """Return candidate function and event entries in discovery order."""
    instructions = disassemble(code)
    index_by_pc = {ins.pc: i for i, ins in enumerate(instructions)}
    jumpdests = {ins.pc for ins in instructions if ins.opcode == JUMPDEST}

    abi: ABI = []
    seen: Set[str] = set()
    last_push32: Optional[bytes] = None

    for idx, ins in enumerate(instructions):
        if ins.opcode == PUSH4 and ins.value is not None and len(ins.value) == 4:
            dest = _dispatch_target(instructions, idx, jumpdests)
            if dest is None:
                continue
            selector = "0x" + ins.value.hex()
            if selector in seen:
                continue
            seen.add(selector)
            entry = function_entry(selector)
            entry.update(_function_metadata(instructions, index_by_pc, jumpdests, dest))
            abi.append(entry)
        elif ins.opcode == PUSH32 and ins.value is not None and len(ins.value) == 32:
            last_push32 = ins.value
        elif LOG1 <= ins.opcode <= LOG4 and last_push32 is not None:
            topic = "0x" + last_push32.hex()
            last_push32 = None
            if topic in seen:
                continue
            seen.add(topic)
            abi.append(event_entry(topic))

    logger.debug(
        "Extracted %d candidate entries from %d instructions", len(abi), len(instructions)
    )
    return abi
