"""
Command-line entry point.

    fseq-player --host 192.168.1.50 --file show.fseq
    fseq-player --file show.fseq --dump-header

Environment variables (optionally from a .env file) provide defaults;
flags override them.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from config import PlayerConfig
from observability.logger import log, set_log_level
from orchestrator.runtime import MonitorStoppedError, play_sequence
from sequence.decoder import SequenceFile
from sequence.errors import MalformedHeader


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="fseq-player",
        description=(
            "Stream an FSEQ sequence to a WLED controller over DDP, pausing "
            "automatically while the controller is offline."
        ),
    )
    ap.add_argument("--host", help="IP address or name of the WLED controller")
    ap.add_argument("-p", "--port", type=int, help="DDP UDP port (default 4048)")
    ap.add_argument("-f", "--file", dest="sequence_path", help="Path to the FSEQ file")
    ap.add_argument(
        "--loop",
        dest="loop_enabled",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Loop the sequence continuously (default on)",
    )
    ap.add_argument(
        "--probe-interval",
        dest="probe_interval_s",
        type=float,
        help="Seconds between liveness probes (default 30)",
    )
    ap.add_argument(
        "--failure-threshold",
        dest="probe_failure_threshold",
        type=int,
        help="Consecutive failed probes before pausing (default 3)",
    )
    ap.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    ap.add_argument(
        "--dump-header",
        action="store_true",
        help="Print the parsed sequence header as JSON and exit",
    )
    return ap


def resolve_config(args: argparse.Namespace) -> PlayerConfig:
    """Environment config with non-None command-line values applied on top."""
    config = PlayerConfig.load_from_env()
    overrides = {
        field.name: getattr(args, field.name)
        for field in dataclasses.fields(PlayerConfig)
        if getattr(args, field.name, None) is not None
    }
    return dataclasses.replace(config, **overrides)


def dump_header(path: str) -> int:
    sequence = SequenceFile.load(path)
    print(json.dumps(sequence.describe(), indent=2))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)
        set_log_level(config.log_level)
    except ValueError as e:
        print(f"fseq-player: {e}", file=sys.stderr)
        return 2

    if args.dump_header:
        if not config.sequence_path:
            print("fseq-player: --dump-header needs --file or FSEQ_PATH", file=sys.stderr)
            return 2
        try:
            return dump_header(config.sequence_path)
        except (OSError, MalformedHeader) as e:
            print(f"fseq-player: {e}", file=sys.stderr)
            return 1

    try:
        config.validate()
    except ValueError as e:
        print(f"fseq-player: {e}", file=sys.stderr)
        return 2

    try:
        asyncio.run(play_sequence(config))
    except (OSError, MalformedHeader) as e:
        log("PLAYER_STARTUP_FAILED", level="ERROR", error_type=type(e).__name__, error=str(e))
        return 1
    except MonitorStoppedError as e:
        log("PLAYER_ABORTED", level="ERROR", error=str(e))
        return 1
    except KeyboardInterrupt:
        log("PLAYER_INTERRUPTED")
        return 130

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
