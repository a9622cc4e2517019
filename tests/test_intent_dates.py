"""Tests for calendar date resolution against a reference date (Wednesday 2025-02-19)."""

from __future__ import annotations

from datetime import date

import pytest

from src.intent.dates import (
    ambiguous_weekday,
    day_of_week,
    format_pretty_date,
    has_explicit_date,
    last_weekday,
    next_weekday,
    resolve_date,
    weekday_choices,
)

REF = date(2025, 2, 19)


def test_day_of_week_uses_sunday_zero() -> None:
    assert day_of_week(date(2025, 2, 16)) == 0
    assert day_of_week(REF) == 3
    assert day_of_week(date(2025, 2, 22)) == 6


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Leo came today", REF),
        ("tomorrow", date(2025, 2, 20)),
        ("yesterday", date(2025, 2, 18)),
        ("hoy", REF),
        ("昨天", date(2025, 2, 18)),
    ],
)
def test_relative_keywords(text: str, expected: date) -> None:
    assert resolve_date(text, REF) == expected


def test_next_and_last_never_return_the_reference() -> None:
    assert resolve_date("next wednesday", REF) == date(2025, 2, 26)
    assert resolve_date("last wednesday", REF) == date(2025, 2, 12)
    assert resolve_date("next friday", REF) == date(2025, 2, 21)
    assert resolve_date("last friday", REF) == date(2025, 2, 14)


def test_spanish_and_chinese_next_last() -> None:
    assert resolve_date("el próximo viernes", REF) == date(2025, 2, 21)
    assert resolve_date("viernes pasado", REF) == date(2025, 2, 14)
    assert resolve_date("下周五", REF) == date(2025, 2, 21)


def test_this_weekday_stays_inside_the_reference_week() -> None:
    assert resolve_date("this monday", REF) == date(2025, 2, 17)
    assert resolve_date("this friday", REF) == date(2025, 2, 21)


def test_bare_weekday_is_most_recent_inclusive() -> None:
    assert resolve_date("Leo came friday", REF) == date(2025, 2, 14)
    assert resolve_date("wednesday", REF) == REF


def test_month_day_current_year() -> None:
    assert resolve_date("Friday Feb 18", REF) == date(2025, 2, 18)
    assert resolve_date("march 3rd", REF) == date(2025, 3, 3)


def test_month_day_far_future_rolls_back_a_year() -> None:
    assert resolve_date("december 25", REF) == date(2024, 12, 25)


def test_spanish_and_chinese_month_day() -> None:
    assert resolve_date("15 de marzo", REF) == date(2025, 3, 15)
    assert resolve_date("3月5日", REF) == date(2025, 3, 5)


def test_iso_and_slash_dates() -> None:
    assert resolve_date("on 2025-03-01", REF) == date(2025, 3, 1)
    assert resolve_date("3/5", REF) == date(2025, 3, 5)
    assert resolve_date("3/5/24", REF) == date(2024, 3, 5)


def test_impossible_calendar_values_fall_through() -> None:
    assert resolve_date("2月30日", REF) == REF
    assert resolve_date("2/30", REF) == REF
    assert resolve_date("2025-02-30", REF) == REF


def test_relative_keyword_wins_over_weekday() -> None:
    assert resolve_date("friday, no wait, today", REF) == REF


def test_nothing_matched_returns_reference() -> None:
    assert resolve_date("Leo came", REF) == REF
    assert resolve_date("", REF) == REF


def test_next_last_helpers_stay_within_a_week() -> None:
    for weekday in range(7):
        ahead = (next_weekday(REF, weekday) - REF).days
        behind = (REF - last_weekday(REF, weekday)).days
        assert 1 <= ahead <= 7
        assert 1 <= behind <= 7


def test_ambiguous_weekday_detection() -> None:
    assert ambiguous_weekday("friday") == "friday"
    assert ambiguous_weekday("sunday at 5pm") == "sunday"
    assert ambiguous_weekday("next friday") is None
    assert ambiguous_weekday("friday feb 21") is None
    assert ambiguous_weekday("tomorrow") is None


def test_has_explicit_date() -> None:
    assert has_explicit_date("2025-02-21")
    assert has_explicit_date("last sunday")
    assert not has_explicit_date("sunday")


def test_weekday_choices() -> None:
    assert weekday_choices("friday", REF) == (date(2025, 2, 14), date(2025, 2, 21))
    assert weekday_choices("tomorrow", REF) is None


def test_format_pretty_date() -> None:
    assert format_pretty_date(REF) == "Wed, Feb 19"
    assert format_pretty_date(date(2025, 3, 5)) == "Wed, Mar 5"
