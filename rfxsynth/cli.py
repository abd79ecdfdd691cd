from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from .engine import generate
from .errors import InvalidParamsError
from .logging_utils import LoggingSettings, configure_logging, log_exception
from .params import PARAM_FIELDS, WAVE_TYPES, WaveParams, update_params, wave_type_from_name
from .rfx import load_params, save_params
from .spinner import Spinner, render_error

_LOGGER = logging.getLogger("rfxsynth.cli")
_CONSOLE = Console()


def _parse_overrides(assignments: Sequence[str]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for item in assignments:
        name, sep, value = item.partition("=")
        name = name.strip()
        value = value.strip()
        if not sep or name not in PARAM_FIELDS:
            raise InvalidParamsError(f"Expected FIELD=VALUE with a known field, got {item!r}")
        if name == "wave_type" and not value.lstrip("-").isdigit():
            changes[name] = int(wave_type_from_name(value))
        else:
            changes[name] = value
    return changes


def _params_table(params: WaveParams, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Field")
    table.add_column("Value", justify="right")
    for name in PARAM_FIELDS:
        value = getattr(params, name)
        if name == "wave_type" and params.wave is not None:
            table.add_row(name, f"{value} ({params.wave.name.lower()})")
        elif isinstance(value, float):
            table.add_row(name, f"{value:.6g}")
        else:
            table.add_row(name, str(value))
    return table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rfxsynth")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render an .rfx file to a 32-bit float wav.")
    render.add_argument("input", type=Path)
    render.add_argument("output", type=Path)
    render.add_argument("--seed", type=int, default=None, help="Override the file's random seed.")

    info = sub.add_parser("info", help="Show the parameters stored in an .rfx file.")
    info.add_argument("input", type=Path)

    new = sub.add_parser("new", help="Write an .rfx file from default parameters.")
    new.add_argument("output", type=Path)
    new.add_argument("--wave", choices=list(WAVE_TYPES), default=None)
    new.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Override a parameter; may be repeated.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    try:
        parser = build_parser()
        args = parser.parse_args(argv)

        if args.command == "render":
            params = load_params(args.input)
            if args.seed is not None:
                params = update_params(params, {"rand_seed": args.seed})
            with Spinner(f"Rendering {args.input}"):
                wave = generate(params)
            path = wave.save(args.output)
            _CONSOLE.print(
                f"Wrote {wave.sample_count} samples ({wave.duration:.2f}s) to {path} "
                f"(sr={wave.sample_rate}, {wave.bits_per_sample}-bit float, mono)"
            )
            return 0

        if args.command == "info":
            params = load_params(args.input)
            _CONSOLE.print(_params_table(params, str(args.input)))
            return 0

        if args.command == "new":
            changes = _parse_overrides(args.assignments)
            if args.wave is not None:
                changes["wave_type"] = int(wave_type_from_name(args.wave))
            params = update_params(WaveParams(), changes)
            path = save_params(args.output, params)
            _CONSOLE.print(f"Wrote {path}")
            return 0

        parser.print_help()
        return 1
    except Exception as exc:
        settings = LoggingSettings.from_env()
        _LOGGER.warning("rfxsynth CLI failed: %s", exc, exc_info=settings.debug)
        log_exception("rfxsynth CLI", exc, settings=settings)
        render_error("rfxsynth CLI", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
