"""
Configuration for alltz: display modes, color themes, activity hours and the
YAML file they are loaded from.
"""
from __future__ import annotations

import copy
import enum
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import yaml
from watchdog.events import FileSystemEventHandler

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ALLTZ_CONFIG"
DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".config", "alltz", "config.yaml")

# ------------------------------------------------------------------
# DEFAULT CONFIG
# ------------------------------------------------------------------
DEFAULT_CONFIG = {
    "timezones": ["local", "America/New_York", "Europe/London", "Asia/Tokyo"],
    "theme": "default",
    "time_format": "24h",
    "timezone_display_mode": "short",
    "show_date": True,
    "show_dst": True,
    "time_display": {
        "work_hours_start": 9,
        "work_hours_end": 17,
        "night_hours_start": 22,
        "night_hours_end": 6,
    },
}


class TimeFormat(enum.Enum):
    TWENTY_FOUR_HOUR = "24h"
    TWELVE_HOUR = "12h"


class TimezoneDisplayMode(enum.Enum):
    SHORT = "short"
    FULL = "full"


class TimeActivity(enum.Enum):
    NIGHT = "night"
    AWAKE = "awake"
    WORK = "work"


ACTIVITY_CHARS = {
    TimeActivity.WORK: "▓",
    TimeActivity.AWAKE: "▒",
    TimeActivity.NIGHT: "░",
}

# Colors are rich color names.
THEME_PALETTES: Dict[str, Dict[str, str]] = {
    "default": {
        "selected_border": "cyan",
        "current_time": "red",
        "timeline_position": "bright_yellow",
        "night": "bright_black",
        "awake": "blue",
        "work": "green",
    },
    "ocean": {
        "selected_border": "bright_cyan",
        "current_time": "bright_red",
        "timeline_position": "bright_white",
        "night": "navy_blue",
        "awake": "dodger_blue2",
        "work": "turquoise2",
    },
    "forest": {
        "selected_border": "bright_green",
        "current_time": "orange1",
        "timeline_position": "bright_yellow",
        "night": "dark_green",
        "awake": "green4",
        "work": "chartreuse2",
    },
    "sunset": {
        "selected_border": "orange1",
        "current_time": "bright_white",
        "timeline_position": "gold1",
        "night": "purple4",
        "awake": "dark_orange3",
        "work": "orange_red1",
    },
    "cyberpunk": {
        "selected_border": "magenta",
        "current_time": "bright_cyan",
        "timeline_position": "bright_yellow",
        "night": "grey19",
        "awake": "deep_pink3",
        "work": "bright_magenta",
    },
    "monochrome": {
        "selected_border": "bright_white",
        "current_time": "bright_white",
        "timeline_position": "white",
        "night": "grey23",
        "awake": "grey50",
        "work": "grey82",
    },
}


class ColorTheme(enum.Enum):
    DEFAULT = "default"
    OCEAN = "ocean"
    FOREST = "forest"
    SUNSET = "sunset"
    CYBERPUNK = "cyberpunk"
    MONOCHROME = "monochrome"

    @classmethod
    def from_name(cls, value: Optional[str]) -> "ColorTheme":
        name = str(value or "").strip().lower()
        try:
            return cls(name)
        except ValueError:
            logger.warning("Unknown theme %r, using default", value)
            return cls.DEFAULT

    @property
    def palette(self) -> Dict[str, str]:
        return THEME_PALETTES[self.value]

    def get_selected_border_color(self) -> str:
        return self.palette["selected_border"]

    def get_current_time_color(self) -> str:
        return self.palette["current_time"]

    def get_timeline_position_color(self) -> str:
        return self.palette["timeline_position"]

    def get_activity_color(self, activity: TimeActivity) -> str:
        return self.palette[activity.value]


def _parse_hour(value: Any, default: int, key: str) -> int:
    try:
        hour = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid value %r for %s, using %d", value, key, default)
        return default
    if not 0 <= hour <= 23:
        logger.warning("Hour %d for %s out of range, using %d", hour, key, default)
        return default
    return hour


def _parse_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning("Invalid value %r for %s, using %s", value, enum_cls.__name__, default.value)
        return default


@dataclass(frozen=True)
class TimeDisplayConfig:
    work_hours_start: int = 9
    work_hours_end: int = 17
    night_hours_start: int = 22
    night_hours_end: int = 6

    @classmethod
    def from_dict(cls, cfg: Optional[Dict]) -> "TimeDisplayConfig":
        cfg = cfg or {}
        defaults = DEFAULT_CONFIG["time_display"]
        return cls(
            **{
                key: _parse_hour(cfg.get(key, defaults[key]), defaults[key], key)
                for key in ("work_hours_start", "work_hours_end", "night_hours_start", "night_hours_end")
            }
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "work_hours_start": self.work_hours_start,
            "work_hours_end": self.work_hours_end,
            "night_hours_start": self.night_hours_start,
            "night_hours_end": self.night_hours_end,
        }

    def _is_night(self, hour: int) -> bool:
        start, end = self.night_hours_start, self.night_hours_end
        if start <= end:
            return start <= hour < end
        # range wraps past midnight
        return hour >= start or hour < end

    def get_time_activity(self, hour: int) -> TimeActivity:
        if self.work_hours_start <= hour < self.work_hours_end:
            return TimeActivity.WORK
        if self._is_night(hour):
            return TimeActivity.NIGHT
        return TimeActivity.AWAKE

    def get_activity_char(self, activity: TimeActivity) -> str:
        return ACTIVITY_CHARS[activity]

    def get_activity_color(self, activity: TimeActivity, theme: ColorTheme) -> str:
        return theme.get_activity_color(activity)


@dataclass
class AppConfig:
    timezones: List[str] = field(default_factory=lambda: list(DEFAULT_CONFIG["timezones"]))
    theme: ColorTheme = ColorTheme.DEFAULT
    time_format: TimeFormat = TimeFormat.TWENTY_FOUR_HOUR
    timezone_display_mode: TimezoneDisplayMode = TimezoneDisplayMode.SHORT
    show_date: bool = True
    show_dst: bool = True
    time_display: TimeDisplayConfig = field(default_factory=TimeDisplayConfig)

    @classmethod
    def from_dict(cls, cfg: Optional[Dict]) -> "AppConfig":
        if not isinstance(cfg, dict):
            if cfg is not None:
                logger.warning("Config root must be a mapping, got %s; using defaults", type(cfg).__name__)
            cfg = {}
        zones = cfg.get("timezones", DEFAULT_CONFIG["timezones"])
        if isinstance(zones, str):
            zones = [zones]
        if not isinstance(zones, list):
            logger.warning("timezones must be a list, got %r; using defaults", zones)
            zones = DEFAULT_CONFIG["timezones"]
        return cls(
            timezones=[str(z) for z in zones],
            theme=ColorTheme.from_name(cfg.get("theme", DEFAULT_CONFIG["theme"])),
            time_format=_parse_enum(TimeFormat, cfg.get("time_format", "24h"), TimeFormat.TWENTY_FOUR_HOUR),
            timezone_display_mode=_parse_enum(
                TimezoneDisplayMode,
                cfg.get("timezone_display_mode", "short"),
                TimezoneDisplayMode.SHORT,
            ),
            show_date=bool(cfg.get("show_date", True)),
            show_dst=bool(cfg.get("show_dst", True)),
            time_display=TimeDisplayConfig.from_dict(cfg.get("time_display")),
        )

    def to_dict(self) -> Dict:
        return {
            "timezones": list(self.timezones),
            "theme": self.theme.value,
            "time_format": self.time_format.value,
            "timezone_display_mode": self.timezone_display_mode.value,
            "show_date": self.show_date,
            "show_dst": self.show_dst,
            "time_display": self.time_display.to_dict(),
        }


def config_path(path: Optional[str] = None) -> str:
    return path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH


def load_config(path: str) -> AppConfig:
    """Load the YAML config at path, writing the defaults first if it is missing."""
    if not os.path.exists(path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(copy.deepcopy(DEFAULT_CONFIG), f, sort_keys=False)
        logger.info("Wrote default config to %s", path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        logger.exception("Could not read config %s, using defaults", path)
        raw = None
    return AppConfig.from_dict(raw)


# ------------------------------------------------------------------
# CONFIG WATCHER
# ------------------------------------------------------------------
class ConfigFileHandler(FileSystemEventHandler):
    def __init__(self, path: str, callback: Callable[[AppConfig], None]):
        self.path = os.path.abspath(path)
        self.callback = callback

    def _reload_if_config(self, path) -> None:
        if path and os.path.abspath(os.fsdecode(path)) == self.path:
            logger.info("Config %s changed, reloading", self.path)
            self.callback(load_config(self.path))

    def on_modified(self, event):
        self._reload_if_config(event.src_path)

    def on_created(self, event):
        self._reload_if_config(event.src_path)

    # editors that save through a temp file and rename only emit a move
    def on_moved(self, event):
        self._reload_if_config(getattr(event, "dest_path", ""))
