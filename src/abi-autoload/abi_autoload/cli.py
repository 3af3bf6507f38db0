import argparse
import json
import logging
import sys
from typing import Any, Dict, Optional

from .config import load_config
from .service import AutoloadService


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve a contract ABI from registries, bytecode and signature databases.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress and lookup details to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    autoload_parser = subparsers.add_parser("autoload", help="Resolve the ABI of a contract")
    autoload_parser.add_argument(
        "--address",
        required=True,
        help="Contract address (0x-prefixed) or ENS name.",
    )
    autoload_parser.add_argument(
        "--no-abi-loader",
        action="store_true",
        help="Skip verified-source registries (Sourcify/Etherscan).",
    )
    autoload_parser.add_argument(
        "--no-signature-lookup",
        action="store_true",
        help="Skip signature database enrichment.",
    )
    autoload_parser.add_argument(
        "--experimental",
        action="store_true",
        help="Keep unreliable metadata inferred from bytecode (inputs, mutability, events).",
    )

    function_parser = subparsers.add_parser("lookup-function", help="Look up a function selector")
    function_parser.add_argument(
        "--selector",
        required=True,
        help="4-byte selector, 0x-prefixed (e.g. 0xa9059cbb).",
    )

    event_parser = subparsers.add_parser("lookup-event", help="Look up an event topic hash")
    event_parser.add_argument(
        "--hash",
        required=True,
        help="32-byte topic hash, 0x-prefixed.",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config()
        service = AutoloadService(config)

        result: Dict[str, Any] = {}
        if args.command == "autoload":
            result = service.autoload(
                args.address,
                use_abi_loader=not args.no_abi_loader,
                use_signature_lookup=not args.no_signature_lookup,
                experimental=True if args.experimental else None,
            )
        elif args.command == "lookup-function":
            result = service.lookup_function(args.selector)
        elif args.command == "lookup-event":
            result = service.lookup_event(args.hash)
        print(json.dumps(result, indent=2))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
