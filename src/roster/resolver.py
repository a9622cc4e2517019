"""Entity resolver: confidence-scored name matching against the roster.

Scoring per (fragment, person) pair, highest-priority rule wins:
    - exact full name 1.0, exact first name 0.95, exact last name 0.90
    - containment (fragment inside the full name, full name inside the fragment, or a fragment
      token equal to the first/last name) 0.80
    - Levenshtein fallback, only when both compared strings have at least 4 characters:
      first name max(0.72, 0.90 - 0.12*d) for d <= 2, last name max(0.70, 0.82 - 0.10*d) for
      d <= 2, full name max(0.66, 0.78 - 0.06*d) for d <= 3

Candidates under 0.66 are discarded. When the two best candidates are within 0.08 of each other
the fragment is ambiguous and the user has to choose.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

from rapidfuzz.distance import Levenshtein

from src.roster.models import Person

MIN_SCORE = 0.66
AMBIGUITY_GAP = 0.08
MAX_AMBIGUOUS_CANDIDATES = 5
MIN_FUZZY_LENGTH = 4

_POSSESSIVE_RE = re.compile(r"(?:'s|\s+s)$")
_MULTISPACE_RE = re.compile(r"\s+")


class MatchStrategy(StrEnum):
    exact = "exact"
    contains = "contains"
    fuzzy = "fuzzy"


@dataclass(frozen=True)
class ResolvedNameMatch:
    """One scored (fragment, person) candidate."""

    fragment: str
    person: Person
    score: float
    strategy: MatchStrategy


@dataclass(frozen=True)
class AmbiguousName:
    """A fragment whose best candidates are too close to call."""

    fragment: str
    candidates: tuple[ResolvedNameMatch, ...]

    @property
    def choices(self) -> tuple[ResolvedNameMatch, ...]:
        """The two candidates offered to the user."""

        return self.candidates[:2]


@dataclass(frozen=True)
class NameResolution:
    resolved: tuple[ResolvedNameMatch, ...]
    ambiguous: tuple[AmbiguousName, ...]
    missing: tuple[str, ...]
    # Fragments naming a person an earlier fragment already resolved ("Leo and Leo").
    duplicates: tuple[str, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.ambiguous and not self.missing

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation for debug output."""

        return {
            "resolved": [
                {
                    "fragment": m.fragment,
                    "person_id": m.person.id,
                    "score": m.score,
                    "strategy": str(m.strategy),
                }
                for m in self.resolved
            ],
            "ambiguous": [
                {
                    "fragment": a.fragment,
                    "candidates": [
                        {"person_id": c.person.id, "name": c.person.full_name, "score": c.score}
                        for c in a.candidates
                    ],
                }
                for a in self.ambiguous
            ],
            "missing": list(self.missing),
            "duplicates": list(self.duplicates),
        }


def fold_name(value: str) -> str:
    """Lowercase, strip accents and possessives, and collapse whitespace."""

    decomposed = unicodedata.normalize("NFD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    folded = _MULTISPACE_RE.sub(" ", stripped.replace("’", "'").lower()).strip()
    return _POSSESSIVE_RE.sub("", folded).strip()


def _fuzzy_score(fragment: str, first: str, last: str, full: str) -> float | None:
    if len(fragment) < MIN_FUZZY_LENGTH:
        return None
    if len(first) >= MIN_FUZZY_LENGTH:
        distance = Levenshtein.distance(fragment, first)
        if distance <= 2:
            return max(0.72, 0.90 - 0.12 * distance)
    if len(last) >= MIN_FUZZY_LENGTH:
        distance = Levenshtein.distance(fragment, last)
        if distance <= 2:
            return max(0.70, 0.82 - 0.10 * distance)
    if len(full) >= MIN_FUZZY_LENGTH:
        distance = Levenshtein.distance(fragment, full)
        if distance <= 3:
            return max(0.66, 0.78 - 0.06 * distance)
    return None


def score_person(fragment: str, person: Person) -> ResolvedNameMatch | None:
    """Score one fragment against one person; `None` when the score is below `MIN_SCORE`."""

    spoken = fold_name(fragment)
    if not spoken:
        return None
    first = fold_name(person.first_name)
    last = fold_name(person.last_name)
    full = f"{first} {last}".strip()

    score: float | None = None
    strategy = MatchStrategy.exact
    if spoken == full:
        score = 1.0
    elif first and spoken == first:
        score = 0.95
    elif last and spoken == last:
        score = 0.90
    elif (
            (len(spoken) >= 2 and spoken in full)
            or full in spoken
            or any(token in (first, last) for token in spoken.split() if token)
    ):
        score, strategy = 0.80, MatchStrategy.contains
    else:
        score, strategy = _fuzzy_score(spoken, first, last, full), MatchStrategy.fuzzy

    if score is None or score < MIN_SCORE:
        return None
    return ResolvedNameMatch(fragment=fragment, person=person, score=round(score, 4), strategy=strategy)


def score_candidates(fragment: str, persons: Sequence[Person]) -> list[ResolvedNameMatch]:
    """Return every surviving candidate, best first (ties keep roster order)."""

    scored = [match for person in persons if (match := score_person(fragment, person))]
    return sorted(scored, key=lambda m: -m.score)


def title_case(fragment: str) -> str:
    return " ".join(part[:1].upper() + part[1:] for part in fragment.split())


def resolve_names(
        fragments: Sequence[str],
        persons: Sequence[Person],
        pinned: Mapping[str, str] | None = None,
) -> NameResolution:
    """Resolve each fragment to exactly one outcome: resolved, ambiguous or missing.

    A person resolved by an earlier fragment is removed from later fragments' candidates, so
    "Emma Kim and Emma" maps the second fragment to the other Emma. `pinned` maps a folded
    fragment to the person id the user picked in an earlier clarification. A fragment whose clear
    best match is already taken repeats an earlier name and is skipped.
    """

    by_id = {person.id: person for person in persons}
    pins = {fold_name(key): value for key, value in (pinned or {}).items()}
    used: set[str] = set()
    resolved: list[ResolvedNameMatch] = []
    ambiguous: list[AmbiguousName] = []
    missing: list[str] = []
    duplicates: list[str] = []

    for fragment in fragments:
        key = fold_name(fragment)
        if not key:
            continue

        pinned_person = by_id.get(pins.get(key, ""))
        if pinned_person is not None and pinned_person.id not in used:
            used.add(pinned_person.id)
            resolved.append(
                ResolvedNameMatch(
                    fragment=fragment,
                    person=pinned_person,
                    score=1.0,
                    strategy=MatchStrategy.exact,
                )
            )
            continue

        scored = score_candidates(fragment, persons)
        if scored and scored[0].person.id in used and (
                len(scored) == 1 or round(scored[0].score - scored[1].score, 4) >= AMBIGUITY_GAP
        ):
            duplicates.append(fragment)
            continue

        candidates = [c for c in scored if c.person.id not in used]
        if not candidates:
            missing.append(title_case(fragment))
            continue
        if len(candidates) >= 2 and round(candidates[0].score - candidates[1].score, 4) < AMBIGUITY_GAP:
            ambiguous.append(
                AmbiguousName(fragment=fragment, candidates=tuple(candidates[:MAX_AMBIGUOUS_CANDIDATES]))
            )
            continue

        best = candidates[0]
        used.add(best.person.id)
        resolved.append(best)

    return NameResolution(
        resolved=tuple(resolved),
        ambiguous=tuple(ambiguous),
        missing=tuple(missing),
        duplicates=tuple(duplicates),
    )
