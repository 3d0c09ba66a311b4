import pytest

from classboom.core.exceptions import MalformedTimeError, ValidationError
from classboom.services.availability import (
    is_covered,
    overlaps_any,
    parse_time_to_minutes,
    slots_overlap,
    summarize,
)


def _week(**days):
    return {day: {"available": True, "slots": [{"start": s, "end": e} for s, e in slots]} for day, slots in days.items()}


def test_parse_time_to_minutes():
    assert parse_time_to_minutes("00:00") == 0
    assert parse_time_to_minutes("09:30") == 570
    assert parse_time_to_minutes("23:59") == 1439


@pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "noon", "", None])
def test_parse_time_rejects_malformed_values(value):
    with pytest.raises(MalformedTimeError):
        parse_time_to_minutes(value)


def test_touching_slots_do_not_overlap():
    assert not slots_overlap({"start": "09:00", "end": "10:00"}, {"start": "10:00", "end": "11:00"})
    assert slots_overlap({"start": "09:00", "end": "10:01"}, {"start": "10:00", "end": "11:00"})


@pytest.mark.parametrize(
    ("first", "second", "expected"),
    [
        (("08:00", "09:00"), ("13:00", "14:00"), False),
        (("09:00", "10:00"), ("10:00", "11:00"), False),
        (("09:00", "17:00"), ("12:00", "13:00"), True),
        (("09:00", "11:00"), ("10:30", "12:00"), True),
        (("09:00", "10:00"), ("09:00", "10:00"), True),
    ],
    ids=["disjoint", "touching", "nested", "partial", "identical"],
)
def test_slot_overlap_is_symmetric(first, second, expected):
    slot_a = {"start": first[0], "end": first[1]}
    slot_b = {"start": second[0], "end": second[1]}

    assert slots_overlap(slot_a, slot_b) is expected
    assert slots_overlap(slot_b, slot_a) is expected


def test_is_covered_requires_a_single_slot_to_contain_the_request():
    availability = _week(monday=[("09:00", "12:00"), ("13:00", "17:00")])

    assert is_covered(availability, "monday", "09:00", "12:00")
    assert is_covered(availability, "Monday", "14:00", "15:30")
    # Spans the lunch break.
    assert not is_covered(availability, "monday", "11:00", "14:00")
    assert not is_covered(availability, "tuesday", "09:00", "10:00")


def test_overlaps_any_accepts_partial_overlap():
    availability = _week(monday=[("09:00", "12:00")])

    assert overlaps_any(availability, "monday", "11:30", "13:00")
    assert not overlaps_any(availability, "monday", "12:00", "13:00")


@pytest.mark.parametrize("check", [is_covered, overlaps_any])
@pytest.mark.parametrize(("start", "end"), [("11:00", "10:00"), ("10:00", "10:00")])
def test_reversed_or_empty_request_is_rejected(check, start, end):
    availability = _week(monday=[("09:00", "12:00")])

    with pytest.raises(ValidationError):
        check(availability, "monday", start, end)
    # Rejected even when the day has no slots to compare against.
    with pytest.raises(ValidationError):
        check(availability, "sunday", start, end)


def test_unavailable_day_ignores_its_slots():
    availability = {"friday": {"available": False, "slots": [{"start": "09:00", "end": "17:00"}]}}

    assert not is_covered(availability, "friday", "10:00", "11:00")
    assert not overlaps_any(availability, "friday", "10:00", "11:00")
    with pytest.raises(MalformedTimeError):
        overlaps_any(availability, "friday", "10:00", "25:00")


def test_summarize_totals_and_longest_day():
    availability = _week(
        monday=[("09:00", "12:00"), ("13:00", "17:00")],
        wednesday=[("08:00", "15:00")],
        friday=[("10:00", "11:30")],
    )
    availability["saturday"] = {"available": True, "slots": []}
    availability["sunday"] = {"available": False, "slots": []}

    summary = summarize(availability)

    assert summary.total_hours == 15.5
    assert summary.available_day_count == 3
    assert summary.per_day_hours["monday"] == 7
    assert summary.per_day_hours["friday"] == 1.5
    assert summary.per_day_hours["saturday"] == 0
    assert "sunday" not in summary.per_day_hours
    assert summary.longest_day.day == "monday"
    assert summary.longest_day.hours == 7


def test_summarize_counts_overlapping_slots_twice():
    summary = summarize(_week(tuesday=[("09:00", "11:00"), ("10:00", "12:00")]))

    assert summary.total_hours == 4


def test_summarize_ties_keep_the_earlier_day():
    summary = summarize(_week(thursday=[("09:00", "11:00")], tuesday=[("13:00", "15:00")]))

    assert summary.longest_day.day == "tuesday"


def test_summarize_empty_availability():
    summary = summarize({})

    assert summary.total_hours == 0
    assert summary.available_day_count == 0
    assert summary.longest_day is None
