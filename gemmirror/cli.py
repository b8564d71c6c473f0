"""
gemmirror command line.

    gemmirror [--store-path PATH] [-v] update
    gemmirror [--store-path PATH] add-index URL
    gemmirror [--store-path PATH] each-gem
    gemmirror [--store-path PATH] serve [--host HOST] [--port PORT]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from gemmirror.core.dependencies import get_store, get_store_dir, set_store_dir
from gemmirror.domain.errors import MirrorError
from gemmirror.services.client import RegistryClient
from gemmirror.services.listing import iter_stored_gems
from gemmirror.services.sync import SyncEngine

logger = logging.getLogger(__name__)


def cmd_update(args) -> None:
    store = get_store()
    with RegistryClient(config=store.get_mirror_config()) as client:
        indices = SyncEngine(store, client).run()
    logger.info(f"Synced {len(indices)} indices")


def cmd_add_index(args) -> None:
    indices = get_store().add_index(args.url)
    logger.info(f"Store has {len(indices)} indices")


def cmd_each_gem(args) -> None:
    store = get_store()
    for listing in iter_stored_gems(store.root, store.list_indices()):
        sys.stdout.write(listing.model_dump_json() + "\n")


def cmd_serve(args) -> None:
    import uvicorn

    get_store()
    uvicorn.run("gemmirror.main:app", host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gemmirror",
        description="Mirror compact-index gem registries into a verified local store.",
    )
    parser.add_argument("--store-path", type=Path, default=None,
                        help="Path to the store (default: $GEMMIRROR_STORE_DIR or ./store)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("update", help="Sync every index in the store")

    add_p = sub.add_parser("add-index", help="Add a registry source to mirror")
    add_p.add_argument("url", help="Base URL of the registry, e.g. https://rubygems.org")

    sub.add_parser("each-gem", help="Print one JSON object per stored gem")

    serve_p = sub.add_parser("serve", help="Serve the store over HTTP (read-only)")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    if args.store_path is not None:
        set_store_dir(args.store_path)

    commands = {
        "update": cmd_update,
        "add-index": cmd_add_index,
        "each-gem": cmd_each_gem,
        "serve": cmd_serve,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        command(args)
    except MirrorError as e:
        print(f"Error: {e} (store: {get_store_dir()})", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
