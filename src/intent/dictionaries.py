"""Lexicons for weekdays, months, command verbs and name stop words.

English is the primary language; Spanish and Chinese keywords are recognized for the common phrases
("vinieron hoy", "莉莉今天来了"). These mappings are used by the extractors and the rules-based
classifier and should remain small and deterministic.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import StrEnum


class Language(StrEnum):
    """Languages recognized by the keyword lexicons."""

    en = "en"
    es = "es"
    zh = "zh"


# Weekday indexes follow the Sunday=0 convention used by stored schedule slots.
WEEKDAYS: dict[str, int] = {
    "sunday": 0,
    "sun": 0,
    "monday": 1,
    "mon": 1,
    "tuesday": 2,
    "tue": 2,
    "tues": 2,
    "wednesday": 3,
    "wed": 3,
    "thursday": 4,
    "thu": 4,
    "thurs": 4,
    "friday": 5,
    "fri": 5,
    "saturday": 6,
    "sat": 6,
    "domingo": 0,
    "lunes": 1,
    "martes": 2,
    "miércoles": 3,
    "miercoles": 3,
    "jueves": 4,
    "viernes": 5,
    "sábado": 6,
    "sabado": 6,
}

ZH_WEEKDAYS: dict[str, int] = {
    "日": 0,
    "天": 0,
    "一": 1,
    "二": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
}

EN_MONTHS: dict[str, int] = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}

ES_MONTHS: dict[str, int] = {
    "enero": 1,
    "febrero": 2,
    "marzo": 3,
    "abril": 4,
    "mayo": 5,
    "junio": 6,
    "julio": 7,
    "agosto": 8,
    "septiembre": 9,
    "setiembre": 9,
    "octubre": 10,
    "noviembre": 11,
    "diciembre": 12,
}


def alternation(words: Iterable[str]) -> str:
    """Build a regex alternation preferring longer words ("tues" before "tue")."""

    parts = sorted(set(words), key=lambda w: (-len(w), w))
    return "|".join(re.escape(p) for p in parts)


WEEKDAY_PATTERN = alternation(WEEKDAYS)
EN_MONTH_PATTERN = alternation(EN_MONTHS)
ES_MONTH_PATTERN = alternation(ES_MONTHS)
ZH_WEEKDAY_PATTERN = rf"(?:星期|礼拜|周)(?P<zh_day>[{''.join(ZH_WEEKDAYS)}])"

# Verb and keyword patterns below run on `normalize_text` output (punctuation folded to spaces).
HELP_RE = re.compile(r"\b(?:help|what can you do|ayuda)\b|帮助")
NOBODY_RE = re.compile(r"\b(?:no one|nobody|noone|nadie)\b|没有人")
NOBODY_ACTION_RE = re.compile(r"\b(?:mark|set|toggle|unmark|undo|clear)\b")
MOVE_RE = re.compile(r"\b(?:move|reschedule|mover|mueve|reprogramar|reprograma)\b|改到|挪到|改期|移到")
ALL_STUDENTS_RE = re.compile(
    r"\b(?:all students|everyone|everybody|all lessons|all of them|todos|todas)\b|所有学生|所有人|全部|大家"
)
UNMARK_RE = re.compile(
    r"\b(?:unmark|undo|clear attendance|not attended|absent|did not come|didn t come|didnt come"
    r"|missed|no show|cancelled|canceled|toggle off|no vino|no vinieron|no asistio|no asistió"
    r"|no asistieron|falto|faltó|faltaron)\b|\btoggle\b.*\boff\b|没来|缺席"
)
MARK_RE = re.compile(
    r"\b(?:mark|set|toggle on|attended|came|showed up|was here|present|vino|vinieron|asistio"
    r"|asistió|asistieron)\b|来了|到了"
)
DURATION_WORDS_RE = re.compile(
    r"\b(?:change|make|set|update|should be|lesson|duration|minutes?|hours?|half hour"
    r"|duración|duracion|minutos|horas?)\b|分钟|小时"
)
TIME_WORDS_RE = re.compile(r"\b(?:change|set|move|reschedule|time|start|cambiar|cambia|hora)\b|点")
RATE_WORDS_RE = re.compile(r"\b(?:rate|price|raise|increase|hour|tarifa|precio)\b|价格|学费")
GOING_FORWARD_RE = re.compile(
    r"\b(?:starting|effective|going forward|from now on|next month|a partir de)\b|以后|今后"
)
AFTERNOON_RE = re.compile(r"\b(?:afternoon|evening|tonight|tarde|noche)\b|下午|晚上")

# Domain stop words removed before splitting the remainder into name fragments.
STOP_WORDS: tuple[str, ...] = (
    # commands and attendance verbs
    "unmark", "mark", "set", "change", "move", "reschedule", "make", "update", "undo", "toggle",
    "clear", "attended", "attendance", "absent", "present", "completed", "did not", "didnt",
    "didn t", "showed up", "showed", "show", "came", "come", "missed", "no show", "cancelled",
    "canceled", "on", "off", "here", "please",
    # collective words
    "all", "students", "student", "everyone", "everybody", "nobody", "no one", "noone", "them",
    "lesson", "lessons", "class",
    # connectors and filler
    "from", "to", "for", "at", "as", "the", "a", "an", "of", "with", "my", "is", "was", "were",
    "be", "should", "start", "and then", "not", "his", "her", "their", "s",
    # units, money and time words
    "rate", "price", "per", "hourly", "dollars", "dollar", "bucks", "raise", "increase",
    "duration", "time", "hour", "hours", "hr", "hrs", "half", "minute", "minutes", "min", "mins",
    "am", "pm", "morning", "afternoon", "evening", "tonight", "starting", "effective",
    "going forward", "from now on", "next month",
    # date words
    "today", "tomorrow", "yesterday", "next", "last", "this", "week",
    # spanish
    "vino", "vinieron", "asistio", "asistió", "asistieron", "falto", "faltó", "faltaron", "hoy",
    "ayer", "mañana", "todos", "todas", "clase", "mover", "mueve", "reprogramar", "reprograma",
    "viene", "pasado", "próximo", "proximo", "este", "hora", "horas", "minutos", "media", "tarifa",
    "precio", "por", "dólares", "dolares", "nadie", "tarde", "noche",
)
# Short Spanish particles double as English given names ("Al"); only stripped from Spanish text.
ES_PARTICLES: tuple[str, ...] = ("los", "las", "el", "la", "de", "del", "al", "con", "no", "que")
# Three-letter weekday forms ("Sat", "Mon") are only date words next to a qualifier.
WEEKDAY_ABBREVIATIONS: frozenset[str] = frozenset(
    {"sun", "mon", "tue", "tues", "wed", "thu", "thurs", "fri", "sat"}
)
WEEKDAY_NAMES: tuple[str, ...] = tuple(w for w in WEEKDAYS if w not in WEEKDAY_ABBREVIATIONS)

# Month names are not listed: they are removed only as part of a month-day date phrase.
STOP_WORDS_RE = re.compile(rf"\b(?:{alternation((*STOP_WORDS, *WEEKDAY_NAMES))})\b")
ES_PARTICLES_RE = re.compile(rf"\b(?:{alternation(ES_PARTICLES)})\b")
ZH_STOP_RE = re.compile(
    r"今天|昨天|明天|来了|到了|没来|缺席|所有学生|所有人|所有|全部|大家|都|的|课|改到|挪到|移到|改期"
    r"|下午|上午|早上|晚上|点|分钟|小时|从|把|请|标记|下周|上周|这周|本周"
    r"|(?:星期|礼拜|周)[一二三四五六日天]"
)
NAME_SPLIT_RE = re.compile(r"\s*(?:\band\b|\bplus\b|\by\b|和|跟|还有)\s*")

_CJK_RE = re.compile(r"[\u4e00-\u9fff\u3400-\u4dbf]")
_SPANISH_RE = re.compile(
    r"\b(?:vino|asisti[óo]|asistieron|vinieron|hoy|ayer|mañana|todos|todas|mover|reprogramar"
    r"|lunes|martes|miércoles|miercoles|jueves|viernes|sábado|sabado|domingo)\b"
)


def detect_language(text: str) -> Language:
    """Detect the language of a transcript from its script and a few Spanish keywords."""

    value = (text or "").lower()
    if _CJK_RE.search(value):
        return Language.zh
    if _SPANISH_RE.search(value):
        return Language.es
    return Language.en


def weekday_index(token: str) -> int | None:
    """Return the Sunday=0 weekday index for an English or Spanish weekday token."""

    return WEEKDAYS.get((token or "").strip().lower())
