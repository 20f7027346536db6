"""
Terminal front end: one timeline per configured timezone, refreshed once per
second, reloading the YAML config when it changes on disk.
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import time
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

import arrow
from rich.console import Console
from rich.live import Live
from watchdog.observers import Observer

from .config import AppConfig, ColorTheme, ConfigFileHandler, config_path, load_config
from .grid import Buffer, Rect
from .timeline import TimelineWidget
from .timezones import TimeZone

logger = logging.getLogger(__name__)

ROW_HEIGHT = 4
MIN_WIDTH = 20

current_config = AppConfig()

# (config, zones) the zones were last resolved for
_resolved_zones: Optional[Tuple[AppConfig, List[TimeZone]]] = None


def update_app_config(cfg: AppConfig) -> None:
    global current_config
    current_config = cfg


def resolve_zones(names: Sequence[str]) -> List[TimeZone]:
    zones = []
    for name in names:
        try:
            zones.append(TimeZone.from_name(name))
        except ValueError as ex:
            logger.warning("Skipping timezone %r: %s", name, ex)
    if not zones:
        zones.append(TimeZone.from_name("local"))
    return zones


def zones_for(cfg: AppConfig) -> List[TimeZone]:
    """Zones of cfg, resolved once per loaded config."""
    global _resolved_zones
    if _resolved_zones is None or _resolved_zones[0] is not cfg:
        _resolved_zones = (cfg, resolve_zones(cfg.timezones))
    return _resolved_zones[1]


def render_frame(
    cfg: AppConfig,
    zones: Sequence[TimeZone],
    now: datetime,
    position: datetime,
    width: int,
    selected_index: int = 0,
) -> Buffer:
    buf = Buffer.empty(width, ROW_HEIGHT * len(zones))
    for index, zone in enumerate(zones):
        widget = TimelineWidget(
            timeline_position=position,
            current_time=now,
            timezone=zone,
            selected=index == selected_index,
            display_format=cfg.time_format,
            timezone_display_mode=cfg.timezone_display_mode,
            time_config=cfg.time_display,
            color_theme=cfg.theme,
            show_date=cfg.show_date,
            show_dst=cfg.show_dst,
        )
        widget.render(Rect(0, index * ROW_HEIGHT, width, ROW_HEIGHT), buf)
    return buf


def _frame(args: argparse.Namespace, console: Console):
    cfg = current_config
    zones = zones_for(cfg)
    if args.theme:
        cfg = dataclasses.replace(cfg, theme=ColorTheme.from_name(args.theme))
    now = arrow.utcnow().datetime
    position = now + timedelta(hours=args.shift_hours)
    width = max(MIN_WIDTH, args.width or console.width)
    return render_frame(cfg, zones, now, position, width).to_text()


def _configure_logging(level: str, log_file: Optional[str]) -> None:
    handlers = [logging.FileHandler(log_file)] if log_file else None
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="alltz", description="Multi-timezone timeline clock for the terminal.")
    parser.add_argument("--config", help="Path to config.yaml (default: $ALLTZ_CONFIG or ~/.config/alltz/config.yaml)")
    parser.add_argument("--once", action="store_true", help="Render a single frame and exit")
    parser.add_argument("--width", type=int, default=0, help="Timeline width in columns (default: terminal width)")
    parser.add_argument("--shift-hours", type=float, default=0.0, help="Move the inspected time relative to now")
    parser.add_argument("--theme", help="Override the configured color theme")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--log-file", help="Write logs here instead of stderr")
    return parser


# ------------------------------------------------------------------
# MAIN
# ------------------------------------------------------------------
def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level, args.log_file)

    cfg_path = os.path.abspath(config_path(args.config))
    update_app_config(load_config(cfg_path))
    console = Console()

    if args.once:
        console.print(_frame(args, console))
        return 0

    observer = Observer()
    observer.schedule(ConfigFileHandler(cfg_path, update_app_config), os.path.dirname(cfg_path), recursive=False)
    observer.start()
    try:
        with Live(_frame(args, console), console=console, refresh_per_second=4, screen=False) as live:
            while True:
                time.sleep(1)
                live.update(_frame(args, console))
    except KeyboardInterrupt:
        pass
    finally:
        observer.stop()
        observer.join()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
