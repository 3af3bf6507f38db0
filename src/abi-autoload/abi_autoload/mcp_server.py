"""
MCP server exposing ABI autoloading and signature lookups.
"""

import argparse
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import load_config
from .service import AutoloadService

server = FastMCP(
    name="abi-autoload",
    instructions="Resolve contract ABIs from verified registries, bytecode and signature databases.",
)

_service: Optional[AutoloadService] = None


def _get_service() -> AutoloadService:
    global _service
    if _service is None:
        cfg = load_config()
        _service = AutoloadService(cfg)
    return _service


@server.tool(
    name="autoload_abi",
    title="Autoload Contract ABI",
    description=(
        "Resolve a contract ABI: verified registries first, then bytecode selectors enriched from "
        "signature databases. Set experimental=true to keep unreliable bytecode-inferred metadata."
    ),
)
def autoload_abi(
    address: str,
    use_abi_loader: bool = True,
    use_signature_lookup: bool = True,
    experimental: Optional[bool] = None,
) -> dict:
    svc = _get_service()
    return svc.autoload(
        address,
        use_abi_loader=use_abi_loader,
        use_signature_lookup=use_signature_lookup,
        experimental=experimental,
    )


@server.tool(
    name="lookup_function_signature",
    title="Lookup Function Selector",
    description="Find candidate text signatures for a 4-byte function selector, most likely first.",
)
def lookup_function_signature(selector: str) -> dict:
    svc = _get_service()
    return svc.lookup_function(selector)


@server.tool(
    name="lookup_event_signature",
    title="Lookup Event Topic",
    description="Find candidate text signatures for a 32-byte event topic hash, most likely first.",
)
def lookup_event_signature(topic_hash: str) -> dict:
    svc = _get_service()
    return svc.lookup_event(topic_hash)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the abi-autoload MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args()

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
