"""Tests for confidence-scored name resolution against the roster fixture."""

from __future__ import annotations

from src.roster.models import Roster
from src.roster.resolver import MatchStrategy, fold_name, resolve_names, score_person


def _person(roster: Roster, person_id: str):
    return next(person for person in roster.persons if person.id == person_id)


def test_fold_name_strips_accents_and_possessives() -> None:
    assert fold_name("Zoë's") == "zoe"
    assert fold_name("  José   Luis ") == "jose luis"
    assert fold_name("Leo’s") == "leo"


def test_exact_scores(roster: Roster) -> None:
    sarah = _person(roster, "sarah")
    assert score_person("Sarah Lee", sarah).score == 1.0
    assert score_person("sarah", sarah).score == 0.95
    assert score_person("Lee", sarah).score == 0.90


def test_containment_score(roster: Roster) -> None:
    match = score_person("Sara", _person(roster, "sarah"))
    assert match is not None
    assert match.score == 0.80
    assert match.strategy == MatchStrategy.contains


def test_fuzzy_first_name(roster: Roster) -> None:
    match = score_person("Tifany", _person(roster, "tiffany"))
    assert match is not None
    assert match.score == 0.78
    assert match.strategy == MatchStrategy.fuzzy


def test_short_fragments_never_fuzzy_match(roster: Roster) -> None:
    assert score_person("Lea", _person(roster, "leo")) is None


def test_resolves_multiple_names_in_order(roster: Roster) -> None:
    resolution = resolve_names(["tiffany", "sarah"], roster.persons)
    assert resolution.is_complete
    assert [m.person.id for m in resolution.resolved] == ["tiffany", "sarah"]


def test_shared_first_name_is_ambiguous(roster: Roster) -> None:
    resolution = resolve_names(["emma"], roster.persons)
    assert not resolution.is_complete
    assert resolution.resolved == ()
    ambiguous = resolution.ambiguous[0]
    assert ambiguous.fragment == "emma"
    assert [c.person.id for c in ambiguous.choices] == ["emma-kim", "emma-stone"]


def test_resolved_person_is_excluded_from_later_fragments(roster: Roster) -> None:
    resolution = resolve_names(["emma kim", "emma"], roster.persons)
    assert resolution.is_complete
    assert [m.person.id for m in resolution.resolved] == ["emma-kim", "emma-stone"]


def test_unknown_name_is_missing(roster: Roster) -> None:
    resolution = resolve_names(["leo", "zed"], roster.persons)
    assert [m.person.id for m in resolution.resolved] == ["leo"]
    assert resolution.missing == ("Zed",)


def test_pinned_choice_wins(roster: Roster) -> None:
    resolution = resolve_names(["emma"], roster.persons, pinned={"Emma": "emma-stone"})
    assert resolution.is_complete
    assert resolution.resolved[0].person.id == "emma-stone"
    assert resolution.resolved[0].score == 1.0


def test_as_dict_reports_candidates(roster: Roster) -> None:
    payload = resolve_names(["emma", "zed"], roster.persons).as_dict()
    assert payload["missing"] == ["Zed"]
    assert [c["person_id"] for c in payload["ambiguous"][0]["candidates"]] == ["emma-kim", "emma-stone"]


def test_resolution_is_repeatable(roster: Roster) -> None:
    fragments = ["sarah", "emma", "tifany", "zed"]
    first = resolve_names(fragments, roster.persons)
    second = resolve_names(fragments, roster.persons)

    assert first == second
    assert first.as_dict() == second.as_dict()
    assert [(m.person.id, m.score) for m in first.resolved] == [("sarah", 0.95), ("tiffany", 0.78)]
    assert [c.person.id for c in first.ambiguous[0].candidates] == ["emma-kim", "emma-stone"]
    assert first.missing == ("Zed",)


def test_repeated_name_resolves_once(roster: Roster) -> None:
    resolution = resolve_names(["leo", "leo"], roster.persons)

    assert resolution.is_complete
    assert [m.person.id for m in resolution.resolved] == ["leo"]
    assert resolution.missing == ()
    assert resolution.duplicates == ("leo",)
    assert resolution.as_dict()["duplicates"] == ["leo"]


def test_repeated_shared_first_name_still_moves_to_the_other_person(roster: Roster) -> None:
    resolution = resolve_names(["emma stone", "emma"], roster.persons)

    assert [m.person.id for m in resolution.resolved] == ["emma-stone", "emma-kim"]
    assert resolution.duplicates == ()
