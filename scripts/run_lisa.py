"""Run LIS scripts and answer requests from the command line.

Usage:
    python -m scripts.run_lisa --script greetings.lis "Hello" "My name is Ada"
    python -m scripts.run_lisa --config lisa.yaml --snapshot state.json "What time is it?"
    python -m scripts.run_lisa --script todo.lis --save-snapshot state.json "add milk"
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dialogue.config import default_config, load_config
from dialogue.engine import Engine
from dialogue.errors import CompileError, DialogueError
from dialogue.logging import get_metrics_collector
from dialogue.snapshot import load_snapshot, save_snapshot

logger = logging.getLogger(__name__)


def build_engine(config_path: str | None, scripts: list[str], snapshot_path: str | None) -> Engine:
    """Create an engine and run the scripts in order, then restore the
    snapshot over what they set up."""
    config = load_config(config_path) if config_path else default_config()
    engine = Engine(config)

    for script in scripts:
        source = Path(script).read_text(encoding="utf-8")
        engine.run_script(source)
        logger.info("Loaded script %s", script)

    if snapshot_path and Path(snapshot_path).exists():
        engine.restore_state(load_snapshot(snapshot_path))
        logger.info("Restored snapshot from %s", snapshot_path)
    return engine


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Lisa dialogue engine: answer requests with LIS handlers",
    )
    parser.add_argument("requests", nargs="*", help="Requests to answer, in order")
    parser.add_argument("--config", default=None, help="Engine config YAML")
    parser.add_argument("--script", action="append", default=[],
                        help="LIS script to run before answering (repeatable)")
    parser.add_argument("--snapshot", default=None,
                        help="Snapshot JSON restored after the scripts ran")
    parser.add_argument("--save-snapshot", default=None,
                        help="Write the engine state to this JSON file when done")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if not args.requests and not args.script:
        parser.print_help()
        return 1

    try:
        engine = build_engine(args.config, args.script, args.snapshot)
    except CompileError as exc:
        print(f"Script error: {exc}", file=sys.stderr)
        return 2
    except (DialogueError, OSError) as exc:
        print(f"Could not start the engine: {exc}", file=sys.stderr)
        return 2

    engine.when("message", lambda message: print(f"{message.author}: {message.text}"))

    exit_code = 0
    for request in args.requests:
        print(f"{engine.config.messages.user_author}: {request}")
        result = engine.does(request)
        if not result.understood:
            exit_code = 1

    if args.save_snapshot:
        save_snapshot(engine.export_state(), args.save_snapshot)
        logger.info("Snapshot saved to %s", args.save_snapshot)

    logger.debug("Dispatch metrics: %s", get_metrics_collector().to_dict())
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
