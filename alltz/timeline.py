"""
48-hour activity timeline for a single timezone, rendered into a character
grid: background activity shading, now/scrub markers, DST markers, date
labels and a time caption under the scrub position.
"""
from __future__ import annotations

import enum
import logging
import math
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

import arrow

from .config import ColorTheme, TimeDisplayConfig, TimeFormat, TimezoneDisplayMode
from .grid import Block, Buffer, Rect
from .timezones import TimeZone

logger = logging.getLogger(__name__)

WINDOW_HOURS = 48
NOW_MARKER = "│"
SCRUB_MARKER = "┃"
DATE_FORMAT = "DD MMM"
TIME_FORMATS = {
    TimeFormat.TWENTY_FOUR_HOUR: "HH:mm ddd",
    TimeFormat.TWELVE_HOUR: "hh:mm A ddd",
}
DATE_LABEL_FG = "white"
DATE_LABEL_BG = "bright_black"


class DstTransition(enum.Enum):
    SPRING_FORWARD = "spring_forward"
    FALL_BACK = "fall_back"

    @property
    def symbol(self) -> str:
        return "⇈" if self is DstTransition.SPRING_FORWARD else "⇊"

    @property
    def color(self) -> str:
        return "green" if self is DstTransition.SPRING_FORWARD else "yellow"


def centered_start(anchor: int, length: int, width: int) -> int:
    """First column of a label of `length` chars centered on `anchor`.

    Never negative; pulled left so the label ends inside `width` when it fits.
    """
    half = length // 2
    start = anchor - half if anchor >= half else 0
    return max(0, min(start, width - length))


def _round_half_away(value: float) -> int:
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


class TimelineWidget:
    def __init__(
        self,
        timeline_position: datetime,
        current_time: datetime,
        timezone: TimeZone,
        selected: bool,
        display_format: TimeFormat,
        timezone_display_mode: TimezoneDisplayMode,
        time_config: TimeDisplayConfig,
        color_theme: ColorTheme,
        show_date: bool,
        show_dst: bool,
    ):
        self.timeline_position = timeline_position
        self.current_time = current_time
        self.timezone = timezone
        self.selected = selected
        self.display_format = display_format
        self.timezone_display_mode = timezone_display_mode
        self.time_config = time_config
        self.color_theme = color_theme
        self.show_date = show_date
        self.show_dst = show_dst

    # -------- Time mapping --------
    def timeline_start(self) -> datetime:
        return self.timeline_position - timedelta(hours=WINDOW_HOURS // 2)

    def timeline_end(self) -> datetime:
        return self.timeline_position + timedelta(hours=WINDOW_HOURS // 2)

    def time_to_position(self, time: datetime, width: int) -> int:
        start = self.timeline_start()
        total_seconds = int((self.timeline_end() - start).total_seconds())
        if total_seconds == 0:
            return 0
        time_seconds = int((time - start).total_seconds())
        ratio = time_seconds / total_seconds
        position = max(0, _round_half_away(ratio * width))
        return min(position, max(0, width - 1))

    def get_hour_display(self, hour: int) -> Tuple[str, str]:
        activity = self.time_config.get_time_activity(hour)
        char = self.time_config.get_activity_char(activity)
        color = self.time_config.get_activity_color(activity, self.color_theme)
        return char, color

    def get_timeline_display(self, width: int) -> List[Tuple[str, str]]:
        start = arrow.get(self.timeline_start()).to("UTC")
        display = []
        for i in range(width):
            # minutes into the window, shifted in UTC so the column maps to an absolute instant
            minutes = (i * WINDOW_HOURS * 60) // width
            at_position = start.shift(minutes=minutes).to(self.timezone.tz)
            display.append(self.get_hour_display(at_position.hour))
        return display

    # -------- DST --------
    def detect_dst_transition(self, utc_time: datetime) -> Optional[DstTransition]:
        offset_before = self.timezone.utc_offset(utc_time)
        offset_after = self.timezone.utc_offset(utc_time + timedelta(hours=1))
        if offset_after > offset_before:
            return DstTransition.FALL_BACK
        if offset_after < offset_before:
            return DstTransition.SPRING_FORWARD
        return None

    def get_dst_transitions_in_range(self) -> List[Tuple[datetime, DstTransition]]:
        transitions = []
        current = self.timeline_start()
        end = self.timeline_end()
        while current < end:
            transition = self.detect_dst_transition(current)
            if transition is not None:
                logger.debug("%s: %s at %s", self.timezone.name, transition.value, current.isoformat())
                transitions.append((current, transition))
            current += timedelta(hours=1)
        return transitions

    # -------- Labels --------
    def _local_dates(self) -> List[date]:
        first = self.timezone.convert_time(self.timeline_start()).date()
        last = self.timezone.convert_time(self.timeline_end()).date()
        days = []
        current = first
        while current <= last:
            days.append(current)
            current += timedelta(days=1)
        return days

    def date_labels(self, width: int) -> List[Tuple[int, str]]:
        """Start column and text of each date label, one per local day.

        Days whose work-hours midpoint is skipped or repeated by a DST change
        get no label.
        """
        work_middle_hour = (self.time_config.work_hours_start + self.time_config.work_hours_end) // 2
        labels = []
        for day in self._local_dates():
            local = datetime(day.year, day.month, day.day, work_middle_hour)
            resolution = self.timezone.from_local_datetime(local)
            instant = resolution.single()
            if instant is None:
                logger.debug(
                    "%s: no date label for %s (%s local time)",
                    self.timezone.name,
                    day.isoformat(),
                    resolution.kind.value,
                )
                continue
            text = arrow.get(day).format(DATE_FORMAT, locale="en")
            anchor = self.time_to_position(instant, width)
            labels.append((centered_start(anchor, len(text), width), text))
        return labels

    def time_caption(self) -> str:
        zone_time = self.timezone.convert_time(self.timeline_position)
        return zone_time.format(TIME_FORMATS[self.display_format], locale="en")

    def title(self) -> str:
        if self.timezone_display_mode is TimezoneDisplayMode.FULL:
            return self.timezone.get_full_display_name(self.timeline_position)
        return f"{self.timezone.display_name()} {self.timezone.offset_string(self.timeline_position)}"

    # -------- Paint passes --------
    def _paint_frame(self, area: Rect, inner: Rect, buf: Buffer) -> None:
        border_fg = self.color_theme.get_selected_border_color() if self.selected else None
        Block(title=self.title(), fg=border_fg).render(area, buf)

    def _paint_background(self, area: Rect, inner: Rect, buf: Buffer) -> None:
        for i, (ch, color) in enumerate(self.get_timeline_display(inner.width)):
            buf[(inner.x + i, inner.y)].set_char(ch).set_style(fg=color)

    def _paint_now_marker(self, area: Rect, inner: Rect, buf: Buffer) -> None:
        now_pos = self.time_to_position(self.current_time, inner.width)
        buf[(inner.x + now_pos, inner.y)].set_char(NOW_MARKER).set_style(
            fg=self.color_theme.get_current_time_color()
        )

    def _paint_scrub_marker(self, area: Rect, inner: Rect, buf: Buffer) -> None:
        now_pos = self.time_to_position(self.current_time, inner.width)
        scrub_pos = self.time_to_position(self.timeline_position, inner.width)
        if scrub_pos == now_pos:
            return
        buf[(inner.x + scrub_pos, inner.y)].set_char(SCRUB_MARKER).set_style(
            fg=self.color_theme.get_timeline_position_color()
        )

    def _paint_dst_markers(self, area: Rect, inner: Rect, buf: Buffer) -> None:
        if not self.show_dst:
            return
        for transition_time, transition in self.get_dst_transitions_in_range():
            pos = self.time_to_position(transition_time, inner.width)
            buf[(inner.x + pos, inner.y)].set_char(transition.symbol).set_style(fg=transition.color)

    def _paint_date_labels(self, area: Rect, inner: Rect, buf: Buffer) -> None:
        if not self.show_date:
            return
        for start, text in self.date_labels(inner.width):
            buf.set_string(inner.x + start, inner.y, text[: inner.width - start], fg=DATE_LABEL_FG, bg=DATE_LABEL_BG)

    def _paint_time_caption(self, area: Rect, inner: Rect, buf: Buffer) -> None:
        if inner.height <= 1:
            return
        text = self.time_caption()
        anchor = self.time_to_position(self.timeline_position, inner.width)
        start = centered_start(anchor, len(text), inner.width)
        for i, ch in enumerate(text[: inner.width - start]):
            buf[(inner.x + start + i, inner.y + 1)].set_char(ch)

    def paint_passes(self) -> Sequence[Callable[[Rect, Rect, Buffer], None]]:
        # Later passes overwrite earlier ones.
        return (
            self._paint_frame,
            self._paint_background,
            self._paint_now_marker,
            self._paint_scrub_marker,
            self._paint_dst_markers,
            self._paint_date_labels,
            self._paint_time_caption,
        )

    def render(self, area: Rect, buf: Buffer) -> None:
        inner = area.inner(1, 1)
        if inner.width < 2 or inner.height < 1:
            return
        for paint in self.paint_passes():
            paint(area, inner, buf)
