"""Calendar date resolution for lesson commands.

Every command is interpreted against a reference date (the day currently selected by the user).
Weekday indexes use the Sunday=0 convention so they line up with stored schedule slots.

Resolution precedence (first match wins):
    1) today / tomorrow / yesterday (also `hoy`/`mañana`/`ayer`, `今天`/`明天`/`昨天`)
    2) `next <weekday>` / `last <weekday>` (never the reference date itself)
    3) `this <weekday>` (the occurrence inside the reference's Sunday..Saturday week)
    4) `<month> <day>` (current year unless more than 183 days ahead, then the prior year)
    5) ISO literal `YYYY-MM-DD`
    6) bare weekday (most recent occurrence on or before the reference, inclusive)
    7) `M/D[/YY[YY]]` (two-digit years map to 20YY)
    8) otherwise the reference date unchanged
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

import dateparser

from src.intent.dictionaries import (
    EN_MONTH_PATTERN,
    EN_MONTHS,
    ES_MONTH_PATTERN,
    WEEKDAY_PATTERN,
    WEEKDAYS,
    ZH_WEEKDAY_PATTERN,
    ZH_WEEKDAYS,
)
from src.intent.normalize import lower_text

# A month-day candidate further than this many days ahead of the reference means last year.
FUTURE_YEAR_ROLLBACK_DAYS = 183

_DATEPARSER_SETTINGS: dict[str, object] = {
    "REQUIRE_PARTS": ["day", "month"],
    "PREFER_DATES_FROM": "current_period",
    "RETURN_AS_TIMEZONE_AWARE": False,
}

_TODAY_RE = re.compile(r"\b(?:today|hoy)\b|今天")
_TOMORROW_RE = re.compile(r"\b(?:tomorrow|mañana)\b|明天")
_YESTERDAY_RE = re.compile(r"\b(?:yesterday|ayer)\b|昨天")

_NEXT_RE = re.compile(
    rf"\b(?:next|pr[óo]ximo)\s+(?P<day>{WEEKDAY_PATTERN})\b"
    rf"|\b(?P<day_es>{WEEKDAY_PATTERN})\s+que\s+viene\b"
    rf"|下(?:个)?{ZH_WEEKDAY_PATTERN}"
)
_LAST_RE = re.compile(
    rf"\blast\s+(?P<day>{WEEKDAY_PATTERN})\b"
    rf"|\b(?P<day_es>{WEEKDAY_PATTERN})\s+pasado\b"
    rf"|上(?:个)?{ZH_WEEKDAY_PATTERN}"
)
_THIS_RE = re.compile(
    rf"\b(?:this|este)\s+(?P<day>{WEEKDAY_PATTERN})\b"
    rf"|(?:这|本)(?:个)?{ZH_WEEKDAY_PATTERN}"
)
_BARE_WEEKDAY_RE = re.compile(rf"\b(?P<day>{WEEKDAY_PATTERN})\b|{ZH_WEEKDAY_PATTERN}")

_EN_MONTH_DAY_RE = re.compile(
    rf"\b(?P<month>{EN_MONTH_PATTERN})\.?\s+(?P<day>\d{{1,2}})(?:st|nd|rd|th)?\b"
)
_ES_MONTH_DAY_RE = re.compile(rf"\b(?P<day>\d{{1,2}})\s+de\s+(?P<month>{ES_MONTH_PATTERN})\b")
_ZH_MONTH_DAY_RE = re.compile(r"(?P<month>\d{1,2})\s*月\s*(?P<day>\d{1,2})\s*[日号]")

_ISO_RE = re.compile(r"\b(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})\b")
_SLASH_RE = re.compile(r"\b(?P<m>\d{1,2})/(?P<d>\d{1,2})(?:/(?P<y>\d{4}|\d{2}))?\b")

# Qualifiers that make a weekday unambiguous inside a move phrase.
_QUALIFIER_RE = re.compile(
    r"\b(?:next|last|this|este|pr[óo]ximo|pasado|que viene|today|tomorrow|yesterday|hoy|ayer|mañana)\b"
    r"|今天|明天|昨天|下周|上周|这周|本周|下个|上个"
)


def day_of_week(value: date) -> int:
    """Return the Sunday=0 weekday index of a date."""

    return (value.weekday() + 1) % 7


def _match_weekday(match: re.Match[str]) -> int | None:
    groups = match.groupdict()
    for key in ("day", "day_es"):
        token = groups.get(key)
        if token:
            return WEEKDAYS[token]
    zh_day = groups.get("zh_day")
    if zh_day:
        return ZH_WEEKDAYS[zh_day]
    return None


def next_weekday(reference: date, weekday: int) -> date:
    """Return the next occurrence of `weekday` strictly after the reference (1..7 days)."""

    delta = (weekday - day_of_week(reference)) % 7 or 7
    return reference + timedelta(days=delta)


def last_weekday(reference: date, weekday: int) -> date:
    """Return the previous occurrence of `weekday` strictly before the reference (1..7 days)."""

    delta = (day_of_week(reference) - weekday) % 7 or 7
    return reference - timedelta(days=delta)


def recent_weekday(reference: date, weekday: int) -> date:
    """Return the most recent occurrence of `weekday` on or before the reference."""

    delta = (day_of_week(reference) - weekday) % 7
    return reference - timedelta(days=delta)


def week_weekday(reference: date, weekday: int) -> date:
    """Return the occurrence of `weekday` within the reference's Sunday..Saturday week."""

    week_start = reference - timedelta(days=day_of_week(reference))
    return week_start + timedelta(days=weekday)


def _roll_back_far_future(candidate: date, reference: date) -> date | None:
    if (candidate - reference).days <= FUTURE_YEAR_ROLLBACK_DAYS:
        return candidate
    try:
        return candidate.replace(year=candidate.year - 1)
    except ValueError:
        # Feb 29 has no counterpart in the prior year.
        return None


def _parse_month_day_fragment(fragment: str, *, language: str, reference: date) -> date | None:
    parsed = dateparser.parse(
        fragment,
        languages=[language],
        settings={
            **_DATEPARSER_SETTINGS,
            "RELATIVE_BASE": datetime.combine(reference, time(12, 0)),
        },
    )
    if parsed is None:
        return None
    try:
        candidate = parsed.date().replace(year=reference.year)
    except ValueError:
        return None
    return _roll_back_far_future(candidate, reference)


def _month_day(value: str, reference: date) -> date | None:
    match = _EN_MONTH_DAY_RE.search(value)
    if match:
        month = EN_MONTHS[match.group("month")]
        fragment = f"{date(2000, month, 1):%B} {int(match.group('day'))}"
        return _parse_month_day_fragment(fragment, language="en", reference=reference)

    match = _ES_MONTH_DAY_RE.search(value)
    if match:
        fragment = f"{int(match.group('day'))} de {match.group('month')}"
        return _parse_month_day_fragment(fragment, language="es", reference=reference)

    match = _ZH_MONTH_DAY_RE.search(value)
    if match:
        try:
            candidate = date(reference.year, int(match.group("month")), int(match.group("day")))
        except ValueError:
            return None
        return _roll_back_far_future(candidate, reference)

    return None


def _iso_date(value: str) -> date | None:
    match = _ISO_RE.search(value)
    if not match:
        return None
    try:
        return date(int(match.group("y")), int(match.group("m")), int(match.group("d")))
    except ValueError:
        return None


def _slash_date(value: str, reference: date) -> date | None:
    match = _SLASH_RE.search(value)
    if not match:
        return None
    raw_year = match.group("y")
    year = int(raw_year) if raw_year else reference.year
    if year < 100:
        year += 2000
    try:
        return date(year, int(match.group("m")), int(match.group("d")))
    except ValueError:
        return None


def resolve_date(text: str, reference: date) -> date:
    """Resolve the calendar date a phrase refers to.

    Rules that match but describe an impossible calendar value (e.g. "feb 30") are skipped and
    resolution continues with the next rule.
    """

    value = lower_text(text)
    if not value:
        return reference

    if _TODAY_RE.search(value):
        return reference
    if _TOMORROW_RE.search(value):
        return reference + timedelta(days=1)
    if _YESTERDAY_RE.search(value):
        return reference - timedelta(days=1)

    match = _NEXT_RE.search(value)
    if match:
        weekday = _match_weekday(match)
        if weekday is not None:
            return next_weekday(reference, weekday)

    match = _LAST_RE.search(value)
    if match:
        weekday = _match_weekday(match)
        if weekday is not None:
            return last_weekday(reference, weekday)

    match = _THIS_RE.search(value)
    if match:
        weekday = _match_weekday(match)
        if weekday is not None:
            return week_weekday(reference, weekday)

    resolved = _month_day(value, reference)
    if resolved is not None:
        return resolved

    resolved = _iso_date(value)
    if resolved is not None:
        return resolved

    match = _BARE_WEEKDAY_RE.search(value)
    if match:
        weekday = _match_weekday(match)
        if weekday is not None:
            return recent_weekday(reference, weekday)

    resolved = _slash_date(value, reference)
    if resolved is not None:
        return resolved

    return reference


def has_explicit_date(text: str) -> bool:
    """Whether a phrase pins a calendar date without relying on a bare weekday."""

    value = lower_text(text)
    return bool(
        _QUALIFIER_RE.search(value)
        or _ISO_RE.search(value)
        or _SLASH_RE.search(value)
        or _EN_MONTH_DAY_RE.search(value)
        or _ES_MONTH_DAY_RE.search(value)
        or _ZH_MONTH_DAY_RE.search(value)
    )


def ambiguous_weekday(phrase: str) -> str | None:
    """Return the bare weekday token of a move phrase, or `None` when the phrase is explicit.

    "Friday" alone could mean last week's or next week's occurrence; moves must not guess.
    """

    if has_explicit_date(phrase):
        return None
    match = _BARE_WEEKDAY_RE.search(lower_text(phrase))
    if not match:
        return None
    return match.group(0)


def weekday_choices(token: str, reference: date) -> tuple[date, date] | None:
    """Return `(last, next)` occurrences of a weekday token relative to the reference."""

    match = _BARE_WEEKDAY_RE.search(lower_text(token))
    if not match:
        return None
    weekday = _match_weekday(match)
    if weekday is None:
        return None
    return last_weekday(reference, weekday), next_weekday(reference, weekday)


def format_pretty_date(value: date) -> str:
    """Format a date for user-facing messages, e.g. `Wed, Feb 19`."""

    return f"{value:%a}, {value:%b} {value.day}"
