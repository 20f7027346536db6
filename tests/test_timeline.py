from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, settings, strategies as st

from alltz.config import ColorTheme, TimeDisplayConfig, TimeFormat, TimezoneDisplayMode
from alltz.grid import Buffer, Rect
from alltz.timeline import (
    NOW_MARKER,
    SCRUB_MARKER,
    DstTransition,
    TimelineWidget,
    centered_start,
)
from alltz.timezones import TimeZone

UTC_ZONE = TimeZone.from_name("UTC")
NEW_YORK = TimeZone.from_name("America/New_York")


def _at(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _widget(position, now=None, zone=UTC_ZONE, **overrides) -> TimelineWidget:
    kwargs = dict(
        timeline_position=position,
        current_time=now if now is not None else position,
        timezone=zone,
        selected=False,
        display_format=TimeFormat.TWENTY_FOUR_HOUR,
        timezone_display_mode=TimezoneDisplayMode.SHORT,
        time_config=TimeDisplayConfig(),
        color_theme=ColorTheme.DEFAULT,
        show_date=False,
        show_dst=False,
    )
    kwargs.update(overrides)
    return TimelineWidget(**kwargs)


# =============================================================================
# CONSTRUCTION
# =============================================================================

def test_widget_keeps_constructor_arguments():
    now = _at(2024, 6, 15, 12)
    config = TimeDisplayConfig()
    widget = _widget(now, time_config=config, display_format=TimeFormat.TWELVE_HOUR, show_dst=True)
    assert widget.timeline_position == now
    assert widget.current_time == now
    assert widget.timezone is UTC_ZONE
    assert widget.time_config is config
    assert widget.selected is False
    assert widget.display_format == TimeFormat.TWELVE_HOUR
    assert widget.show_dst is True
    assert widget.show_date is False


def test_window_is_centered_on_timeline_position_not_now():
    position = _at(2024, 6, 15, 12)
    widget = _widget(position, now=_at(2020, 1, 1))
    assert widget.timeline_start() == _at(2024, 6, 14, 12)
    assert widget.timeline_end() == _at(2024, 6, 16, 12)


# =============================================================================
# TIME MAPPING
# =============================================================================

def test_timeline_position_maps_to_middle_column():
    position = _at(2024, 6, 15, 12, 34, 56)
    assert _widget(position).time_to_position(position, 100) == 50


def test_positions_saturate_at_both_edges():
    position = _at(2024, 6, 15, 12)
    widget = _widget(position)
    assert widget.time_to_position(position - timedelta(days=3), 80) == 0
    assert widget.time_to_position(position + timedelta(hours=24), 80) == 79
    assert widget.time_to_position(position + timedelta(days=3), 80) == 79


def test_half_columns_round_away_from_zero():
    position = _at(2024, 6, 15, 12)
    # 18h into the 48h window on a 100 column track is exactly 37.5
    assert _widget(position).time_to_position(position - timedelta(hours=6), 100) == 38


@given(
    width=st.integers(min_value=1, max_value=400),
    a=st.integers(min_value=-200_000, max_value=400_000),
    b=st.integers(min_value=-200_000, max_value=400_000),
)
def test_time_to_position_is_monotonic_and_bounded(width, a, b):
    position = _at(2024, 6, 15, 12)
    widget = _widget(position)
    start = widget.timeline_start()
    early, late = sorted((a, b))
    first = widget.time_to_position(start + timedelta(seconds=early), width)
    second = widget.time_to_position(start + timedelta(seconds=late), width)
    assert 0 <= first <= second <= width - 1


# =============================================================================
# ACTIVITY SHADING
# =============================================================================

def test_hour_display_mapping():
    widget = _widget(_at(2024, 6, 15, 12))
    assert widget.get_hour_display(14)[0] == "▓"
    assert widget.get_hour_display(7)[0] == "▒"
    assert widget.get_hour_display(2)[0] == "░"


def test_hour_display_uses_theme_colors():
    widget = _widget(_at(2024, 6, 15, 12), color_theme=ColorTheme.OCEAN)
    assert widget.get_hour_display(14)[1] == ColorTheme.OCEAN.palette["work"]
    assert widget.get_hour_display(2)[1] == ColorTheme.OCEAN.palette["night"]


def test_timeline_display_follows_local_hours():
    widget = _widget(_at(2024, 6, 15, 0))
    display = widget.get_timeline_display(96)
    assert len(display) == 96
    for column, cell in enumerate(display):
        assert cell == widget.get_hour_display((column // 2) % 24)


def test_timeline_display_applies_zone_offset():
    kolkata = TimeZone.from_name("Asia/Kolkata")
    widget = _widget(_at(2024, 6, 15, 0), zone=kolkata)
    display = widget.get_timeline_display(48)
    # window starts 14 Jun 00:00 UTC, 05:30 in Kolkata
    assert display[0] == widget.get_hour_display(5)
    assert display[20] == widget.get_hour_display(1)
    assert display[9] == widget.get_hour_display(14)


@settings(max_examples=50)
@given(
    width=st.integers(min_value=1, max_value=200),
    offset=st.integers(min_value=0, max_value=48 * 3600 - 1),
)
def test_instant_column_shows_the_hour_of_that_instant(width, offset):
    kolkata = TimeZone.from_name("Asia/Kolkata")
    widget = _widget(_at(2024, 6, 15, 12), zone=kolkata)
    start = widget.timeline_start()
    t = start + timedelta(seconds=offset)

    column = widget.time_to_position(t, width)
    column_time = start + timedelta(minutes=(column * 48 * 60) // width)
    local_t = kolkata.convert_time(t)
    column_hour = kolkata.convert_time(column_time).hour

    assert widget.get_timeline_display(width)[column] == widget.get_hour_display(column_hour)
    if column_hour != local_t.hour:
        # only instants within one column of an hour boundary may land on a neighbouring hour
        into_hour = local_t.minute * 60 + local_t.second
        assert min(into_hour, 3600 - into_hour) <= 48 * 3600 / width + 60


# =============================================================================
# DST TRANSITIONS
# =============================================================================

@pytest.mark.parametrize("name", ["UTC", "+05:30", "Asia/Tokyo"])
def test_zones_without_dst_report_no_transitions(name):
    zone = TimeZone.from_name(name)
    for position in (_at(2024, 3, 10, 12), _at(2024, 11, 3, 12), _at(2025, 7, 1)):
        assert _widget(position, zone=zone).get_dst_transitions_in_range() == []


def test_offset_decrease_is_reported_as_spring_forward():
    # New York goes from UTC-4 to UTC-5 at 06:00 UTC on 3 Nov 2024
    widget = _widget(_at(2024, 11, 3, 12), zone=NEW_YORK, show_dst=True)
    assert widget.get_dst_transitions_in_range() == [(_at(2024, 11, 3, 5), DstTransition.SPRING_FORWARD)]


def test_offset_increase_is_reported_as_fall_back():
    # New York goes from UTC-5 to UTC-4 at 07:00 UTC on 10 Mar 2024
    widget = _widget(_at(2024, 3, 10, 12), zone=NEW_YORK, show_dst=True)
    assert widget.get_dst_transitions_in_range() == [(_at(2024, 3, 10, 6), DstTransition.FALL_BACK)]


def test_detect_returns_none_between_transitions():
    widget = _widget(_at(2024, 7, 1), zone=NEW_YORK)
    assert widget.detect_dst_transition(_at(2024, 7, 1, 3)) is None


@pytest.mark.parametrize(
    "position",
    [_at(2024, 3, 9, 8), _at(2024, 3, 11, 6, 30), _at(2024, 11, 2, 7, 15), _at(2024, 11, 4, 5), _at(2025, 3, 9)],
)
def test_transitions_lie_inside_the_window(position):
    widget = _widget(position, zone=NEW_YORK, show_dst=True)
    transitions = widget.get_dst_transitions_in_range()
    assert transitions
    for instant, kind in transitions:
        assert widget.timeline_start() <= instant < widget.timeline_end()
        assert kind in (DstTransition.SPRING_FORWARD, DstTransition.FALL_BACK)


# =============================================================================
# LABELS
# =============================================================================

def test_centered_start_examples():
    assert centered_start(50, 6, 100) == 47
    assert centered_start(2, 6, 100) == 0
    assert centered_start(99, 6, 100) == 94
    assert centered_start(3, 10, 4) == 0


@given(st.data())
def test_centered_labels_stay_inside_the_track(data):
    width = data.draw(st.integers(min_value=1, max_value=300))
    length = data.draw(st.integers(min_value=1, max_value=width))
    anchor = data.draw(st.integers(min_value=0, max_value=width - 1))
    start = centered_start(anchor, length, width)
    assert start >= 0
    assert start + length <= width


def test_date_labels_one_per_local_day():
    widget = _widget(_at(2024, 6, 15, 0), show_date=True)
    assert widget.date_labels(100) == [(24, "14 Jun"), (74, "15 Jun"), (94, "16 Jun")]


def test_date_label_skipped_when_midpoint_does_not_exist():
    config = TimeDisplayConfig(work_hours_start=1, work_hours_end=3)
    widget = _widget(_at(2024, 3, 10, 12), zone=NEW_YORK, time_config=config, show_date=True)
    assert [text for _, text in widget.date_labels(100)] == ["09 Mar", "11 Mar"]


def test_date_label_skipped_when_midpoint_is_ambiguous():
    config = TimeDisplayConfig(work_hours_start=1, work_hours_end=2)
    widget = _widget(_at(2024, 11, 3, 12), zone=NEW_YORK, time_config=config, show_date=True)
    assert [text for _, text in widget.date_labels(100)] == ["02 Nov", "04 Nov"]


def test_time_caption_formats():
    position = _at(2024, 6, 15, 14, 5)
    assert _widget(position).time_caption() == "14:05 Sat"
    assert _widget(position, display_format=TimeFormat.TWELVE_HOUR).time_caption() == "02:05 PM Sat"
    assert _widget(position, zone=NEW_YORK).time_caption() == "10:05 Sat"


def test_titles_for_display_modes():
    position = _at(2024, 6, 15, 12)
    assert _widget(position, zone=NEW_YORK).title() == "New York UTC-4"
    full = _widget(position, zone=NEW_YORK, timezone_display_mode=TimezoneDisplayMode.FULL)
    assert full.title() == "America/New_York (EDT, UTC-4)"


# =============================================================================
# RENDERING
# =============================================================================

def _render(widget, width=102, height=4) -> Buffer:
    buf = Buffer.empty(width, height)
    widget.render(Rect(0, 0, width, height), buf)
    return buf


def test_now_marker_wins_when_scrub_is_on_the_same_column():
    now = _at(2024, 6, 15, 12)
    buf = _render(_widget(now, now=now))
    track = buf.row_text(1)[1:101]
    assert track[50] == NOW_MARKER
    assert SCRUB_MARKER not in track
    assert buf[(51, 1)].fg == ColorTheme.DEFAULT.get_current_time_color()


def test_scrub_marker_drawn_when_apart_from_now():
    position = _at(2024, 6, 15, 12)
    buf = _render(_widget(position, now=position - timedelta(hours=6)))
    track = buf.row_text(1)[1:101]
    assert track[38] == NOW_MARKER
    assert track[50] == SCRUB_MARKER
    assert buf[(51, 1)].fg == ColorTheme.DEFAULT.get_timeline_position_color()


def test_render_frame_title_and_caption():
    position = _at(2024, 6, 15, 12)
    buf = _render(_widget(position))
    assert buf.row_text(0).startswith("┌UTC UTC+0─")
    assert buf.row_text(3) == "└" + "─" * 100 + "┘"
    assert buf.row_text(2)[47:56] == "12:00 Sat"


def test_selected_widget_uses_border_color():
    buf = _render(_widget(_at(2024, 6, 15, 12), selected=True))
    assert buf[(0, 0)].fg == ColorTheme.DEFAULT.get_selected_border_color()
    assert _render(_widget(_at(2024, 6, 15, 12)))[(0, 0)].fg is None


def test_date_labels_overwrite_markers():
    now = _at(2024, 6, 15, 12)
    buf = _render(_widget(now, now=now, show_date=True))
    track = buf.row_text(1)[1:101]
    assert track[49:55] == "15 Jun"
    assert NOW_MARKER not in track
    assert buf[(50, 1)].bg == "bright_black"


def test_dst_marker_drawn_when_enabled():
    position = _at(2024, 11, 3, 12)
    track = _render(_widget(position, zone=NEW_YORK, show_dst=True)).row_text(1)[1:101]
    # 05:00 UTC is 17h into the window: 35.4 -> 35
    assert track[35] == DstTransition.SPRING_FORWARD.symbol
    hidden = _render(_widget(position, zone=NEW_YORK, show_dst=False)).row_text(1)[1:101]
    assert DstTransition.SPRING_FORWARD.symbol not in hidden


def test_single_row_area_has_no_caption():
    buf = _render(_widget(_at(2024, 6, 15, 12)), height=3)
    assert buf.row_text(1)[51] == NOW_MARKER
    assert buf.row_text(2) == "└" + "─" * 100 + "┘"


@pytest.mark.parametrize("width,height", [(3, 4), (2, 2), (40, 2)])
def test_too_small_area_draws_nothing(width, height):
    buf = _render(_widget(_at(2024, 6, 15, 12)), width=width, height=height)
    assert all(cell.symbol == " " for row in buf.rows() for cell in row)
