"""Tests for schedule normalization."""
import pytest

from custom_components.trvzb_scheduler.models import Transition, day_schedule_from_pairs
from custom_components.trvzb_scheduler.normalizer import (
    dedup_transitions,
    ensure_anchor,
    is_normalized,
    normalize_day_schedule,
    sort_transitions,
)


def pairs(transitions):
    return [(t.time, t.temperature) for t in transitions]


class TestDedup:
    def test_first_occurrence_wins(self):
        schedule = day_schedule_from_pairs([("06:00", 20.0), ("06:00", 24.0)])
        assert pairs(dedup_transitions(schedule.transitions)) == [("06:00", 20.0)]

    def test_keeps_input_order(self):
        schedule = day_schedule_from_pairs([("08:00", 18.0), ("06:00", 20.0), ("08:00", 30.0)])
        assert pairs(dedup_transitions(schedule.transitions)) == [("08:00", 18.0), ("06:00", 20.0)]

    def test_fills_missing_ids(self):
        result = dedup_transitions([Transition("06:00", 20.0)])
        assert result[0].id


class TestEnsureAnchor:
    def test_inserts_default_anchor(self):
        schedule = day_schedule_from_pairs([("06:00", 22.0), ("08:00", 18.0)])
        result = ensure_anchor(schedule)
        assert result.to_pairs()[0] == ("00:00", 20.0)
        assert len(result) == 3

    def test_anchor_temperature_is_not_inferred(self):
        schedule = day_schedule_from_pairs([("06:00", 30.0)])
        assert ensure_anchor(schedule).to_pairs()[0] == ("00:00", 20.0)

    def test_existing_anchor_is_kept(self):
        schedule = day_schedule_from_pairs([("06:00", 22.0), ("00:00", 16.0)])
        assert ensure_anchor(schedule).to_pairs() == [("00:00", 16.0), ("06:00", 22.0)]


class TestSort:
    def test_chronological(self):
        schedule = day_schedule_from_pairs([("22:00", 18.0), ("06:00", 22.0), ("00:00", 20.0)])
        assert [t.time for t in sort_transitions(schedule.transitions)] == ["00:00", "06:00", "22:00"]

    def test_does_not_mutate(self):
        schedule = day_schedule_from_pairs([("22:00", 18.0), ("06:00", 22.0)])
        sort_transitions(schedule.transitions)
        assert schedule.times == ["22:00", "06:00"]


class TestNormalize:
    @pytest.mark.parametrize(
        "raw",
        [
            [],
            [("06:00", 20.0), ("06:00", 22.0), ("08:00", 18.0)],
            [("22:00", 18.0), ("00:00", 20.0), ("00:00", 25.0)],
            [(f"{hour:02d}:30", 19.0) for hour in range(5)],
            [("23:59", 35.0), ("12:00", 4.0), ("00:00", 20.0), ("12:00", 21.0)],
        ],
    )
    def test_invariants_hold(self, raw):
        result = normalize_day_schedule(day_schedule_from_pairs(raw))
        times = result.times
        assert times.count("00:00") == 1
        assert times[0] == "00:00"
        assert len(result) <= 6
        assert all(a < b for a, b in zip(times, times[1:]))
        assert len(set(times)) == len(times)

    def test_cap_is_not_enforced(self):
        schedule = day_schedule_from_pairs([(f"{hour:02d}:00", 20.0) for hour in range(8)])
        assert len(normalize_day_schedule(schedule)) == 8

    def test_dedup_runs_before_sort(self):
        schedule = day_schedule_from_pairs([("08:00", 18.0), ("06:00", 20.0), ("06:00", 22.0)])
        assert normalize_day_schedule(schedule).to_pairs() == [
            ("00:00", 20.0),
            ("06:00", 20.0),
            ("08:00", 18.0),
        ]

    def test_ids_are_preserved(self):
        schedule = day_schedule_from_pairs([("08:00", 18.0), ("00:00", 20.0)])
        ids = {t.time: t.id for t in schedule}
        result = normalize_day_schedule(schedule)
        assert {t.time: t.id for t in result} == ids

    def test_idempotent(self):
        schedule = day_schedule_from_pairs([("08:00", 18.0), ("06:00", 20.0)])
        once = normalize_day_schedule(schedule)
        assert is_normalized(once)
        assert normalize_day_schedule(once).to_pairs() == once.to_pairs()

    def test_unsorted_is_not_normalized(self):
        assert not is_normalized(day_schedule_from_pairs([("00:00", 20.0), ("08:00", 18.0), ("06:00", 20.0)]))
