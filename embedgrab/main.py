import sys
import json
import logging
import argparse
import threading
from pathlib import Path

import colorama
from colorama import Fore, Style

from embedgrab.bootstrap import create_container
from embedgrab.app.commands import ResolveStream, ResolveEntry, InspectDocument, ShowConfig, SetConfig
from embedgrab.core.errors import ExtractionCancelled, UnsupportedUrlError

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="embedgrab", description="Resolve video host embed pages into direct stream URLs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_resolve_options(p):
        p.add_argument("--retries", type=int, default=None, help="Maximum attempts (default from config)")
        p.add_argument("--deadline", type=float, default=None, help="Abort the whole call after N seconds")
        p.add_argument("--json", action="store_true", help="Print the result as JSON")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve an embed URL")
    resolve_parser.add_argument("url", help="Embed URL")
    add_resolve_options(resolve_parser)

    entry_parser = subparsers.add_parser("entry", help="Resolve the embed URL of a catalog record (JSON file)")
    entry_parser.add_argument("path", help="Path to a JSON record with uqload_old_url / uqload_new_url")
    add_resolve_options(entry_parser)

    parse_parser = subparsers.add_parser("parse", help="Run the extraction cascade on a saved HTML file")
    parse_parser.add_argument("path", help="HTML file")
    parse_parser.add_argument("--host", default=None, help="Host profile (uqload, generic)")

    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_parser.add_argument("key", nargs="?", help="Setting name (timeout_ms, max_retries, ...)")
    config_parser.add_argument("value", nargs="?", help="New value")
    return parser


def _print_outcome(outcome, as_json: bool) -> int:
    if as_json:
        if outcome.ok:
            payload = {"ok": True, "attempts": outcome.attempts, "stream": outcome.info.to_dict()}
        else:
            payload = {"ok": False, "attempts": outcome.attempts,
                       "error": outcome.failure.kind.value, "message": outcome.failure.message}
        print(json.dumps(payload, indent=2))
        return EXIT_OK if outcome.ok else EXIT_FAILED

    if not outcome.ok:
        print(f"{Fore.RED}❌ {outcome.failure.kind.value}: {outcome.failure.message}{Style.RESET_ALL} "
              f"(attempts: {outcome.attempts})", file=sys.stderr)
        return EXIT_FAILED

    info = outcome.info
    print(f"{Fore.GREEN}✅ {info.url}{Style.RESET_ALL}")
    for label, value in (("Format", info.format.value), ("Title", info.title), ("Quality", info.quality),
                         ("Duration", info.duration), ("Thumbnail", info.thumbnail)):
        if value:
            print(f"  {label:<10} {value}")
    print("  Headers:")
    for name, value in info.headers.items():
        print(f"    {name}: {value}")
    return EXIT_OK


def _run_resolve(bus, command, args) -> int:
    timer = None
    if args.deadline:
        command.cancel_event = threading.Event()
        timer = threading.Timer(args.deadline, command.cancel_event.set)
        timer.daemon = True
        timer.start()
    try:
        outcome = bus.handle(command)
    finally:
        if timer:
            timer.cancel()
    return _print_outcome(outcome, args.json)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_USAGE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    colorama.init()

    container = create_container()
    bus = container["bus"]

    try:
        if args.command == "resolve":
            return _run_resolve(bus, ResolveStream(url=args.url, max_retries=args.retries), args)

        elif args.command == "entry":
            record = json.loads(Path(args.path).read_text(encoding="utf-8"))
            return _run_resolve(bus, ResolveEntry(record=record, max_retries=args.retries), args)

        elif args.command == "parse":
            text = Path(args.path).read_text(encoding="utf-8", errors="replace")
            result = bus.handle(InspectDocument(text=text, platform=args.host))
            print(json.dumps(result, indent=2))
            return EXIT_OK if result["url"] else EXIT_FAILED

        elif args.command == "config":
            if args.key and args.value is not None:
                result = bus.handle(SetConfig(key=args.key, value=args.value))
                print(f"{Fore.GREEN}Saved.{Style.RESET_ALL}")
            else:
                result = bus.handle(ShowConfig(key=args.key))
            for key, value in result.items():
                print(f"{key:<24} {value}")
            return EXIT_OK

    except ExtractionCancelled as e:
        print(f"{Fore.YELLOW}⏹ {e}{Style.RESET_ALL}", file=sys.stderr)
        return EXIT_CANCELLED
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_CANCELLED
    except (UnsupportedUrlError, KeyError, ValueError, OSError) as e:
        print(f"{Fore.RED}Error: {e}{Style.RESET_ALL}", file=sys.stderr)
        return EXIT_USAGE

    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
