import logging
from typing import Optional

from eth_utils import keccak

from .abi import is_address
from .errors import ProviderError
from .rpc_client import RpcClient

logger = logging.getLogger(__name__)

ENS_REGISTRY_ADDRESS = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"
ENS_RESOLVER_SELECTOR = "0178b8bf"  # resolver(bytes32)
ENS_ADDR_SELECTOR = "3b3b57de"  # addr(bytes32)


def namehash(name: str) -> bytes:
    """EIP-137 namehash. Labels are lower-cased; full UTS-46 normalization is not applied."""
    node = b"\x00" * 32
    normalized = (name or "").strip().lower()
    if not normalized:
        return node
    for label in reversed(normalized.split(".")):
        if not label:
            raise ValueError(f"Invalid ENS name '{name}': empty label.")
        node = keccak(node + keccak(text=label))
    return node


def _word_to_address(word: Optional[str]) -> Optional[str]:
    if not word or not isinstance(word, str):
        return None
    body = word[2:] if word.startswith("0x") else word
    if not body:
        return None
    body = body.rjust(64, "0")[-64:]
    try:
        value_int = int(body, 16)
    except ValueError as exc:
        raise ProviderError(f"Invalid address word returned from node: {word}") from exc
    if value_int == 0:
        return None
    return f"0x{body[-40:]}"


class RpcProvider:
    """Provider capability backed by a JSON-RPC node: ENS lookup and eth_getCode."""

    def __init__(self, client: RpcClient, ens_registry: str = ENS_REGISTRY_ADDRESS) -> None:
        self.client = client
        self.ens_registry = ens_registry

    def resolve_name(self, name: str) -> Optional[str]:
        if is_address(name):
            return name
        if "." not in (name or ""):
            logger.debug("'%s' is neither an address nor an ENS name", name)
            return None

        node = namehash(name).hex()
        resolver = _word_to_address(self.client.eth_call(self.ens_registry, f"0x{ENS_RESOLVER_SELECTOR}{node}"))
        if not resolver:
            logger.debug("No ENS resolver set for %s", name)
            return None
        return _word_to_address(self.client.eth_call(resolver, f"0x{ENS_ADDR_SELECTOR}{node}"))

    def get_code(self, address: str) -> str:
        return self.client.get_code(address)
