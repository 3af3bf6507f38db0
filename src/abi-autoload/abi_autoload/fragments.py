"""
Parse human-readable signatures into JSON-ABI fragment fields.

Accepts the text stored by signature databases (``transfer(address,uint256)``)
as well as the fuller form (``function balanceOf(address owner) view returns (uint256)``,
``event Transfer(address indexed from, address indexed to, uint256 value)``).
"""

import re
from typing import Any, Dict, List, Optional, Tuple

_NAME_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_TYPE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*((\[[0-9]*\])*)$")
_ARRAY_SUFFIX_RE = re.compile(r"^(\[[0-9]*\])*$")
_DATA_LOCATIONS = {"memory", "calldata", "storage"}
_MUTABILITIES = {"pure", "view", "payable", "nonpayable"}
_VISIBILITIES = {"external", "public"}


def split_params(text: str) -> List[str]:
    """Split a parameter list on top-level commas."""
    params: List[str] = []
    if not text.strip():
        return params
    depth = 0
    buf = ""
    for ch in text:
        if ch == "," and depth == 0:
            params.append(buf.strip())
            buf = ""
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"Unbalanced parentheses in '{text}'.")
        buf += ch
    if depth != 0:
        raise ValueError(f"Unbalanced parentheses in '{text}'.")
    params.append(buf.strip())
    for p in params:
        if not p:
            raise ValueError(f"Empty type in '{text}'.")
    return params


def _matching_paren(text: str, start: int) -> int:
    depth = 0
    for idx in range(start, len(text)):
        if text[idx] == "(":
            depth += 1
        elif text[idx] == ")":
            depth -= 1
            if depth == 0:
                return idx
    raise ValueError(f"Unbalanced parentheses in '{text}'.")


def _canonical_type(typ: str) -> str:
    match = _TYPE_RE.match(typ)
    if not match:
        raise ValueError(f"Invalid type '{typ}'.")
    suffix = match.group(1) or ""
    base = typ[: len(typ) - len(suffix)]
    if base == "uint":
        base = "uint256"
    elif base == "int":
        base = "int256"
    return base + suffix


def parse_param(text: str, allow_indexed: bool = False) -> Dict[str, Any]:
    """Parse one parameter such as ``address``, ``uint[] memory ids`` or ``(uint256,bool)[2]``."""
    candidate = text.strip()
    if candidate.startswith("tuple("):
        candidate = candidate[len("tuple"):]

    param: Dict[str, Any] = {}
    if candidate.startswith("("):
        close = _matching_paren(candidate, 0)
        components = [parse_param(p) for p in split_params(candidate[1:close])]
        rest = candidate[close + 1:].split()
        suffix = ""
        if rest and _ARRAY_SUFFIX_RE.match(rest[0]):
            suffix = rest.pop(0)
        param["type"] = "tuple" + suffix
        param["components"] = components
    else:
        tokens = candidate.split()
        if not tokens:
            raise ValueError("Empty parameter.")
        param["type"] = _canonical_type(tokens[0])
        rest = tokens[1:]

    for token in rest:
        if token == "indexed":
            if not allow_indexed:
                raise ValueError(f"'indexed' is only valid on event parameters: '{text}'.")
            param["indexed"] = True
        elif token in _DATA_LOCATIONS:
            continue
        elif _NAME_RE.match(token) and "name" not in param:
            param["name"] = token
        else:
            raise ValueError(f"Unexpected token '{token}' in parameter '{text}'.")
    return param


def _split_signature(sig: str, keyword: str) -> Tuple[str, str, str]:
    text = sig.strip()
    if text.startswith(keyword + " "):
        text = text[len(keyword) + 1:].strip()
    open_idx = text.find("(")
    if open_idx <= 0:
        raise ValueError(f"{keyword} signature must be in the form name(type1,type2,...): '{sig}'.")
    name = text[:open_idx].strip()
    if not _NAME_RE.match(name):
        raise ValueError(f"Invalid {keyword} name '{name}'.")
    close_idx = _matching_paren(text, open_idx)
    return name, text[open_idx + 1:close_idx], text[close_idx + 1:].strip()


def parse_function_signature(sig: str) -> Dict[str, Any]:
    """Return JSON-ABI fields for a function signature.

    ``stateMutability``, ``constant`` and ``payable`` are only present when the
    text states a mutability; signature databases never do. ``outputs`` is
    always present, empty when unstated.
    """
    name, params, tail = _split_signature(sig, "function")
    inputs = [parse_param(p) for p in split_params(params)]

    mutability: Optional[str] = None
    outputs: List[Dict[str, Any]] = []
    while tail:
        if tail.startswith("returns"):
            rest = tail[len("returns"):].strip()
            if not rest.startswith("("):
                raise ValueError(f"Malformed returns clause in '{sig}'.")
            close = _matching_paren(rest, 0)
            outputs = [parse_param(p) for p in split_params(rest[1:close])]
            tail = rest[close + 1:].strip()
            continue
        token, _, tail = tail.partition(" ")
        tail = tail.strip()
        if token in _MUTABILITIES:
            mutability = token
        elif token in _VISIBILITIES:
            continue
        else:
            raise ValueError(f"Unexpected token '{token}' in '{sig}'.")

    fields: Dict[str, Any] = {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs,
    }
    if mutability:
        fields["stateMutability"] = mutability
        fields["constant"] = mutability in {"view", "pure"}
        fields["payable"] = mutability == "payable"
    return fields


def parse_event_signature(sig: str) -> Dict[str, Any]:
    name, params, tail = _split_signature(sig, "event")
    anonymous = False
    if tail:
        if tail != "anonymous":
            raise ValueError(f"Unexpected trailing text in '{sig}'.")
        anonymous = True
    return {
        "type": "event",
        "name": name,
        "inputs": [parse_param(p, allow_indexed=True) for p in split_params(params)],
        "anonymous": anonymous,
    }
