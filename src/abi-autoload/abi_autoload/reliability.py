from .abi import ABI, function_entry


def strip_unreliable_abi(abi: ABI) -> ABI:
    """Reduce a bytecode-derived ABI to what static analysis can be trusted for.

    Only function selectors survive. Inferred inputs, mutability and payable
    flags are heuristic and dropped; bytecode-derived events are dropped
    entirely, hash included.
    """
    result: ABI = []
    for entry in abi:
        if entry.get("type") != "function":
            continue
        result.append(function_entry(entry["selector"]))
    return result
