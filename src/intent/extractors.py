"""Temporal and lexical extractors.

Pure functions that pull clock times, durations, hourly rates and name fragments out of a raw
transcript. They never raise on unrecognized input: a field that cannot be extracted is `None`
(or an empty list for names).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from src.intent.dates import resolve_date
from src.intent.dictionaries import (
    AFTERNOON_RE,
    EN_MONTH_PATTERN,
    ES_MONTH_PATTERN,
    ES_PARTICLES_RE,
    NAME_SPLIT_RE,
    STOP_WORDS_RE,
    WEEKDAY_PATTERN,
    ZH_STOP_RE,
    Language,
    detect_language,
)
from src.intent.normalize import lower_text, normalize_text

_AMPM_RE = re.compile(r"\b(?P<h>\d{1,2})(?::(?P<m>[0-5]\d))?\s*(?P<ampm>a\.?m\.?|p\.?m\.?)(?=\s|$|[^\w])")
_H24_RE = re.compile(r"\b(?P<h>[01]?\d|2[0-3]):(?P<m>[0-5]\d)\b")
_BARE_HOUR_RE = re.compile(
    r"\b(?:start\s+at|at|to|a\s+las?)\s+(?P<h>\d{1,2})(?::(?P<m>\d{2}))?\b"
    r"(?!\s*(?:%|\$|/|min|minutes?|mins?|h\b|hrs?\b|hours?|dollars?|bucks|d[oó]lares|minutos|horas?))"
)
_ZH_TIME_RE = re.compile(
    r"(?P<period>上午|早上|下午|晚上)?\s*(?P<h>\d{1,2})\s*点\s*(?:(?P<m>\d{1,2})\s*分?|(?P<half>半))?"
)
_LOOKS_LIKE_TIME_RE = re.compile(r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm)\b|\b\d{1,2}:\d{2}\b|\d{1,2}\s*点")

_HOUR_AND_HALF_RE = re.compile(
    r"\b(?:an?|one)\s+hour\s+and\s+a\s+half\b|\bone\s+and\s+a\s+half\s+hours?\b|\bhora\s+y\s+media\b"
    r"|一个半小时"
)
_HALF_HOUR_RE = re.compile(r"\bhalf\s+(?:an?\s+)?hour\b|\bmedia\s+hora\b|半(?:个)?小时")
_MINUTES_RE = re.compile(r"\b(?P<n>\d+)\s*(?:minutes?|mins?|minutos?)\b|(?P<zh>\d+)\s*分钟")
_HOURS_RE = re.compile(
    r"\b(?P<n>\d+(?:\.\d+)?)\s*(?:hours?|hrs?|horas?)\b|(?P<zh>\d+(?:\.\d+)?)\s*(?:个)?小时"
)
_ONE_HOUR_RE = re.compile(r"\bone\s+hour\b|\buna\s+hora\b|一(?:个)?小时")
_TWO_HOURS_RE = re.compile(r"\btwo\s+hours\b|\bdos\s+horas\b|(?:两|二)(?:个)?小时")

_RATE_DIRECT_RE = re.compile(
    r"\$?\s*(?P<n>\d+(?:\.\d+)?)\s*(?:/\s*(?:hr|hour|h)\b|per\s+hour\b|an?\s+hour\b|dollars?\b"
    r"|bucks?\b|d[oó]lares\b|por\s+hora\b|(?:块|元)(?:钱)?(?:一|每)?(?:个)?(?:小时)?)"
)
_RATE_DOLLAR_RE = re.compile(r"\$\s*(?P<n>\d+(?:\.\d+)?)")
_RATE_TO_RE = re.compile(r"\b(?:rate|price|tarifa|precio)\s+(?:to|a)\s+\$?\s*(?P<n>\d+(?:\.\d+)?)\b")

_CONNECTOR_PUNCT_RE = re.compile(r"[,&;，、；]")
_NUMBER_TOKEN_RE = re.compile(r"\b\d+(?:\.\d+)?(?:am|pm|st|nd|rd|th|h|hr|hrs|min|mins)?\b")
_MULTISPACE_RE = re.compile(r"\s+")
_DATE_PHRASE_QUALIFIERS = r"on|next|last|this|from|to|until|every|este|pr[óo]ximo"
_DATE_PHRASE_RE = re.compile(
    rf"\b(?:(?:{_DATE_PHRASE_QUALIFIERS})\s+)?(?:(?:{WEEKDAY_PATTERN})\s+)?"
    rf"(?:{EN_MONTH_PATTERN})\s+\d{{1,2}}(?:st|nd|rd|th)?\b"
    rf"|\b\d{{1,2}}\s+de\s+(?:{ES_MONTH_PATTERN})\b"
    rf"|\b(?:{_DATE_PHRASE_QUALIFIERS})\s+(?:{WEEKDAY_PATTERN})\b"
)


@dataclass(frozen=True)
class ExtractedFields:
    """Best-effort fields extracted from one transcript."""

    date: date
    time: str | None
    duration_minutes: int | None
    rate_per_hour: int | None
    names: list[str] = field(default_factory=list)
    language: Language = Language.en

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation for debug output."""

        return {
            "date": self.date.isoformat(),
            "time": self.time,
            "duration_minutes": self.duration_minutes,
            "rate_per_hour": self.rate_per_hour,
            "names": list(self.names),
            "language": str(self.language),
        }


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_clock(hour24: int, minute: int) -> str:
    """Format a 24-hour clock value as `H:MM AM/PM`."""

    hour12 = hour24 % 12 or 12
    suffix = "AM" if hour24 < 12 else "PM"
    return f"{hour12}:{minute:02d} {suffix}"


def parse_time(text: str) -> str | None:
    """Parse a clock time and normalize it to `H:MM AM/PM`.

    Accepted forms, in priority order:
        - explicit am/pm: "5pm", "5:30 pm", "11 a.m."
        - 24-hour: "17:00"
        - Chinese: "下午5点", "3点半"
        - bare hour after `at`/`to`/`start at`/`a las`: "at 5" (PM when the text says
          afternoon/evening/tonight)

    Out-of-range values yield `None`, never a clamped value.
    """

    value = lower_text(text)
    if not value:
        return None

    match = _AMPM_RE.search(value)
    if match:
        hour = int(match.group("h"))
        minute = int(match.group("m") or 0)
        if not 1 <= hour <= 12:
            return None
        is_pm = match.group("ampm").startswith("p")
        hour24 = hour % 12 + (12 if is_pm else 0)
        return format_clock(hour24, minute)

    match = _H24_RE.search(value)
    if match:
        return format_clock(int(match.group("h")), int(match.group("m")))

    match = _ZH_TIME_RE.search(value)
    if match:
        hour = int(match.group("h"))
        minute = 30 if match.group("half") else int(match.group("m") or 0)
        if hour > 23 or minute > 59:
            return None
        if match.group("period") in {"下午", "晚上"} and hour < 12:
            hour += 12
        return format_clock(hour, minute)

    match = _BARE_HOUR_RE.search(value)
    if match:
        hour = int(match.group("h"))
        minute = int(match.group("m") or 0)
        if hour > 23 or minute > 59:
            return None
        if AFTERNOON_RE.search(value):
            hour = hour % 12 + 12
        return format_clock(hour, minute)

    return None


def looks_like_time(text: str) -> bool:
    """Whether the text contains something shaped like a clock time ("5pm", "25:00")."""

    return bool(_LOOKS_LIKE_TIME_RE.search(lower_text(text)))


def parse_duration(text: str) -> int | None:
    """Parse a lesson duration in minutes.

    Hour fractions are rounded half-up to the nearest minute; nothing else is rounded.
    """

    value = lower_text(text)
    if not value:
        return None

    if _HOUR_AND_HALF_RE.search(value):
        return 90
    if _HALF_HOUR_RE.search(value):
        return 30

    match = _MINUTES_RE.search(value)
    if match:
        return int(match.group("n") or match.group("zh"))

    match = _HOURS_RE.search(value)
    if match:
        hours = Decimal(match.group("n") or match.group("zh"))
        return _round_half_up(hours * 60)

    if _ONE_HOUR_RE.search(value):
        return 60
    if _TWO_HOURS_RE.search(value):
        return 120
    return None


def parse_rate(text: str) -> int | None:
    """Parse an hourly rate and return it in minor currency units (cents)."""

    value = lower_text(text)
    if not value:
        return None

    match = _RATE_DIRECT_RE.search(value) or _RATE_DOLLAR_RE.search(value) or _RATE_TO_RE.search(value)
    if not match:
        return None
    return _round_half_up(Decimal(match.group("n")) * 100)


def extract_name_fragments(text: str) -> list[str]:
    """Extract raw name fragments in the order they appear.

    Domain stop words (verbs, connectors, units, whole weekday names) and numeric tokens are removed
    from a normalized copy of the text; the remainder is split on `and`/`plus`/`y`/`和`, commas and `&`.
    Month names and short weekday forms are only removed inside a date phrase ("june 3",
    "on sat"), so a student called June or May survives. Spanish particles are only stripped from
    Spanish text ("Al" is a name in English).
    """

    language = detect_language(text)
    value = _CONNECTOR_PUNCT_RE.sub(" and ", text or "")
    value = ZH_STOP_RE.sub(" ", value)
    value = normalize_text(value)
    value = _DATE_PHRASE_RE.sub(" ", value)
    value = STOP_WORDS_RE.sub(" ", value)
    if language == Language.es:
        value = ES_PARTICLES_RE.sub(" ", value)
    value = _NUMBER_TOKEN_RE.sub(" ", value)
    value = _MULTISPACE_RE.sub(" ", value).strip()
    if not value:
        return []

    fragments = (part.strip() for part in NAME_SPLIT_RE.split(value))
    return [part for part in fragments if part and part not in {"and", "plus", "y"}]


def extract_fields(text: str, reference: date) -> ExtractedFields:
    """Run every extractor over a transcript."""

    return ExtractedFields(
        date=resolve_date(text, reference),
        time=parse_time(text),
        duration_minutes=parse_duration(text),
        rate_per_hour=parse_rate(text),
        names=extract_name_fragments(text),
        language=detect_language(text),
    )
