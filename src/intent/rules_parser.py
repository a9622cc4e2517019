"""Rules-based command classifier.

The classifier is a fixed, order-sensitive sequence of guard functions. Each guard either returns
an outcome (a raw command object or a clarification) or `None` to pass control to the next guard.
The first outcome wins; there is no backtracking. Reordering `_RULES` changes behavior.

The raw command objects produced here are plain dicts; `src.intent.parser` validates them against
the `StructuredCommand` schema before anything is planned.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from src.intent import dates
from src.intent.dictionaries import (
    ALL_STUDENTS_RE,
    DURATION_WORDS_RE,
    ES_PARTICLES_RE,
    GOING_FORWARD_RE,
    HELP_RE,
    MARK_RE,
    MOVE_RE,
    NOBODY_ACTION_RE,
    NOBODY_RE,
    RATE_WORDS_RE,
    STOP_WORDS_RE,
    TIME_WORDS_RE,
    UNMARK_RE,
    Language,
)
from src.intent.extractors import (
    ExtractedFields,
    extract_fields,
    extract_name_fragments,
    looks_like_time,
    parse_time,
)
from src.intent.normalize import lower_text, normalize_text
from src.intent.schema import Clarification, CommandIntent, RateScope

EMPTY_MESSAGE = "I didn't catch that. Please try again."
FALLBACK_MESSAGE = "I couldn't map that command safely. Please say the student name and action."
NOBODY_MESSAGE = "Do you want me to mark all scheduled lessons as not attended?"
NOBODY_OPTIONS = ("Yes, mark all absent", "No, cancel")
BAD_TIME_MESSAGE = "I couldn't parse that time. Please say a valid time like 3pm or 15:00."

_MOVE_NAME_RE = re.compile(
    r"\b(?:move|reschedule|mover|mueve|reprogramar|reprograma)\s+(?P<name>[^\W\d_]+)(?:'s|’s)?",
    flags=re.IGNORECASE,
)
_LESSON_WITH_RE = re.compile(r"\b(?:lesson|class|clase)\s+(?:with|con)\s+(?P<name>[^\W\d_]+)", re.IGNORECASE)
_ZH_MOVE_NAME_RE = re.compile(r"(?P<name>[^\W\d_]+?)(?:的)?(?:课)?(?:改到|挪到|移到)")
_FROM_TO_RE = re.compile(r"\bfrom\s+(?P<src>.+?)\s+to\s+(?P<dst>.+)")
_ZH_FROM_TO_RE = re.compile(r"从(?P<src>.+?)(?:改到|挪到|移到|到)(?P<dst>.+)")
_TO_ONLY_RE = re.compile(r"\bto\s+(?P<dst>.+)$|(?:改到|挪到|移到)(?P<zh_dst>.+)$")
_NAMED_ATTENDANCE_RE = re.compile(
    r"\b(?:mark|unmark|set|toggle)\s+(?P<names>.+?)\s+(?:as\s+)?"
    r"(?:(?:to\s+)?(?:not\s+)?attended|absent|completed|present)\b",
    flags=re.IGNORECASE,
)


@dataclass(frozen=True)
class Classification:
    """Classifier outcome: exactly one of `payload` or `clarification` is set."""

    payload: dict[str, Any] | None
    clarification: Clarification | None
    extracted: ExtractedFields


@dataclass(frozen=True)
class _Context:
    raw: str
    lower: str
    normalized: str
    reference: date
    fields: ExtractedFields

    @property
    def unmark(self) -> bool:
        return bool(UNMARK_RE.search(self.normalized))

    @property
    def mark(self) -> bool:
        return bool(MARK_RE.search(self.normalized))


_Outcome = dict[str, Any] | Clarification | None


def _clarify(message: str, options: tuple[str, ...] | list[str] = ()) -> Clarification:
    return Clarification(message=message, options=list(options))


def _attendance_intent(ctx: _Context) -> CommandIntent:
    # Unmark wins when both verb families appear ("didn't come" contains no mark verb, but
    # "mark Leo absent" contains both).
    return CommandIntent.unmark_attendance if ctx.unmark else CommandIntent.mark_attendance


def _rule_empty(ctx: _Context) -> _Outcome:
    if not ctx.raw.strip():
        return _clarify(EMPTY_MESSAGE)
    return None


def _rule_help(ctx: _Context) -> _Outcome:
    if HELP_RE.search(ctx.normalized):
        return {"intent": CommandIntent.help.value}
    return None


def _rule_nobody(ctx: _Context) -> _Outcome:
    if NOBODY_RE.search(ctx.normalized) and not NOBODY_ACTION_RE.search(ctx.normalized):
        return _clarify(NOBODY_MESSAGE, NOBODY_OPTIONS)
    return None


def _move_explicit_name(ctx: _Context) -> str | None:
    for pattern in (_MOVE_NAME_RE, _LESSON_WITH_RE, _ZH_MOVE_NAME_RE):
        match = pattern.search(ctx.raw)
        if not match:
            continue
        candidate = normalize_text(match.group("name"))
        if not candidate or STOP_WORDS_RE.fullmatch(candidate):
            continue
        if ctx.fields.language == Language.es and ES_PARTICLES_RE.fullmatch(candidate):
            continue
        return candidate
    return None


def _weekday_clarification(phrase: str, reference: date) -> Clarification | None:
    token = dates.ambiguous_weekday(phrase)
    if token is None:
        return None
    choices = dates.weekday_choices(token, reference)
    if choices is None:
        return None
    last, upcoming = choices
    return _clarify(
        f'For "{token}", do you mean {dates.format_pretty_date(last)} '
        f"or {dates.format_pretty_date(upcoming)}?",
        [
            f"Last {token} ({last.isoformat()})",
            f"Next {token} ({upcoming.isoformat()})",
        ],
    )


def _rule_move(ctx: _Context) -> _Outcome:
    if not MOVE_RE.search(ctx.normalized):
        return None

    match = _FROM_TO_RE.search(ctx.lower) or _ZH_FROM_TO_RE.search(ctx.lower)
    from_phrase = match.group("src") if match else ""
    if match:
        to_phrase = match.group("dst")
    else:
        to_match = _TO_ONLY_RE.search(ctx.lower)
        to_phrase = (to_match.group("dst") or to_match.group("zh_dst")) if to_match else ""

    for phrase in (from_phrase, to_phrase):
        if not phrase:
            continue
        clarification = _weekday_clarification(phrase, ctx.reference)
        if clarification is not None:
            return clarification

    from_date = dates.resolve_date(from_phrase, ctx.reference) if from_phrase else None
    to_date = dates.resolve_date(to_phrase or ctx.raw, ctx.reference)
    to_time = parse_time(to_phrase or ctx.raw)
    if to_time is None and looks_like_time(ctx.raw):
        return _clarify(BAD_TIME_MESSAGE)

    explicit = _move_explicit_name(ctx)
    names = [explicit] if explicit else ctx.fields.names
    if not names:
        return _clarify("Which student should I move?")

    return {
        "intent": CommandIntent.move_lesson.value,
        "name": names[0],
        "from_date": from_date.isoformat() if from_date else None,
        "to_date": to_date.isoformat(),
        "to_time": to_time,
        "duration_minutes": ctx.fields.duration_minutes,
    }


def _rule_set_duration(ctx: _Context) -> _Outcome:
    if ctx.fields.duration_minutes is None or not DURATION_WORDS_RE.search(ctx.normalized):
        return None
    if not ctx.fields.names:
        return _clarify("Which student should I update?")
    return {
        "intent": CommandIntent.set_duration.value,
        "date": ctx.fields.date.isoformat(),
        "names": list(ctx.fields.names),
        "duration_minutes": ctx.fields.duration_minutes,
    }


def _rule_set_time(ctx: _Context) -> _Outcome:
    if ctx.fields.time is None or not TIME_WORDS_RE.search(ctx.normalized):
        return None
    if ctx.fields.rate_per_hour is not None and RATE_WORDS_RE.search(ctx.normalized):
        # "change the rate to 20" is a rate, not 8 PM.
        return None
    if not ctx.fields.names:
        return _clarify("Which student should I move to that time?")
    return {
        "intent": CommandIntent.set_time.value,
        "date": ctx.fields.date.isoformat(),
        "names": list(ctx.fields.names),
        "start_time": ctx.fields.time,
    }


def _rule_set_rate(ctx: _Context) -> _Outcome:
    if ctx.fields.rate_per_hour is None or not RATE_WORDS_RE.search(ctx.normalized):
        return None
    if not ctx.fields.names:
        return _clarify("Which student's rate should I change?")
    going_forward = bool(GOING_FORWARD_RE.search(ctx.normalized))
    return {
        "intent": CommandIntent.set_rate.value,
        "names": list(ctx.fields.names),
        "effective_date": ctx.fields.date.isoformat(),
        "rate_per_hour": ctx.fields.rate_per_hour,
        "scope": (RateScope.going_forward if going_forward else RateScope.single_date).value,
    }


def _rule_bulk_attendance(ctx: _Context) -> _Outcome:
    if not ALL_STUDENTS_RE.search(ctx.normalized) or not (ctx.mark or ctx.unmark):
        return None
    return {
        "intent": _attendance_intent(ctx).value,
        "date": ctx.fields.date.isoformat(),
        "target": {"type": "all_students"},
    }


def _rule_named_attendance(ctx: _Context) -> _Outcome:
    names = ctx.fields.names
    match = _NAMED_ATTENDANCE_RE.search(ctx.raw)
    if match:
        names = extract_name_fragments(match.group("names")) or names
    if not names or not (ctx.mark or ctx.unmark):
        return None
    return {
        "intent": _attendance_intent(ctx).value,
        "date": ctx.fields.date.isoformat(),
        "target": {"type": "students", "names": list(names)},
    }


_RULES: tuple[Callable[[_Context], _Outcome], ...] = (
    _rule_empty,
    _rule_help,
    _rule_nobody,
    _rule_move,
    _rule_set_duration,
    _rule_set_time,
    _rule_set_rate,
    _rule_bulk_attendance,
    _rule_named_attendance,
)


def classify(text: str, reference_date: date) -> Classification:
    """Classify a transcript into a raw command object or a clarification request."""

    raw = (text or "").strip()
    ctx = _Context(
        raw=raw,
        lower=lower_text(raw),
        normalized=normalize_text(raw),
        reference=reference_date,
        fields=extract_fields(raw, reference_date),
    )

    for rule in _RULES:
        outcome = rule(ctx)
        if outcome is None:
            continue
        if isinstance(outcome, Clarification):
            return Classification(payload=None, clarification=outcome, extracted=ctx.fields)
        return Classification(payload=outcome, clarification=None, extracted=ctx.fields)

    return Classification(
        payload=None,
        clarification=_clarify(FALLBACK_MESSAGE),
        extracted=ctx.fields,
    )
