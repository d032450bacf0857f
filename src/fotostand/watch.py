"""Fotostand watcher CLI.

Watches the input directory and turns every new photo into a gallery.  For
each gallery a machine-readable line is written to stdout so that external
tooling (receipt printers, displays) can react::

    FOTOSTAND_OUTPUT: {"id": "wald-kerze-insel", "url": "...", "photoCount": 1, ...}

Usage
-----
    fotostand-watch                 # watch until Ctrl+C
    fotostand-watch --id my-code    # hybrid or manual mode: use my-code for the next photo
    fotostand-watch --once          # process the current backlog and exit
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from fotostand.core.config import FotostandConfig
from fotostand.core.watcher import IngestEvent, IngestionWatcher

logger = logging.getLogger(__name__)

OUTPUT_PREFIX = "FOTOSTAND_OUTPUT:"


def print_event(event: IngestEvent) -> None:
    """Write the machine-readable output line for ``event`` to stdout."""
    print(f"{OUTPUT_PREFIX} {json.dumps(event.to_dict())}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fotostand-watch",
        description="Watch the input directory and create a gallery for every new photo.",
    )
    parser.add_argument(
        "--id",
        dest="gallery_id",
        help="use this id for the next photo (hybrid mode; required in manual mode)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="settings file with FOTOSTAND_* values (default: .env)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="process photos already in the input directory and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = FotostandConfig(_env_file=args.env_file)
    if config.id_mode == "manual" and not args.gallery_id:
        parser.error("--id is required when FOTOSTAND_ID_MODE is manual")
    watcher = IngestionWatcher.from_config(config, on_ingest=print_event)

    if args.gallery_id:
        if config.id_mode not in ("hybrid", "manual"):
            logger.warning(f"--id is only used in hybrid or manual mode (current mode: {config.id_mode})")
        watcher.request_id(args.gallery_id)

    if args.once:
        events = watcher.scan()
        logger.info(f"Processed {len(events)} new photo(s)")
        return 0

    logger.info("Fotostand watcher started - press Ctrl+C to stop")
    watcher.run_forever(sweep_interval=config.watch_poll_interval)
    return 0


if __name__ == "__main__":
    sys.exit(main())
