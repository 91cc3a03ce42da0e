from __future__ import annotations

from datetime import date

import pytest

from staffing.capacity import (
    allocated_on,
    capacity_status,
    check_capacity,
    engineer_capacity,
    overlapping,
    ranges_overlap,
)
from staffing.models import Assignment, User, UserRole


def engineer(max_capacity: int = 100) -> User:
    return User(
        id="eng-1",
        email="eng@example.com",
        name="Eve",
        role=UserRole.ENGINEER,
        max_capacity=max_capacity,
        password_hash="x",
    )


def assignment(aid: str, pct: int, start: date, end: date, engineer_id: str = "eng-1") -> Assignment:
    return Assignment(
        id=aid,
        engineer_id=engineer_id,
        project_id="proj-1",
        allocation_percentage=pct,
        start_date=start,
        end_date=end,
    )


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ((date(2025, 1, 1), date(2025, 1, 31)), (date(2025, 1, 15), date(2025, 2, 15)), True),
        ((date(2025, 1, 1), date(2025, 1, 31)), (date(2025, 1, 31), date(2025, 2, 15)), True),
        ((date(2025, 1, 1), date(2025, 1, 31)), (date(2025, 2, 1), date(2025, 2, 15)), False),
        # candidate fully containing the existing range
        ((date(2025, 1, 10), date(2025, 1, 20)), (date(2025, 1, 1), date(2025, 1, 31)), True),
    ],
)
def test_ranges_overlap(a, b, expected) -> None:
    assert ranges_overlap(*a, *b) is expected
    assert ranges_overlap(*b, *a) is expected


def test_overlapping_excludes_given_id() -> None:
    existing = [
        assignment("a", 40, date(2025, 1, 1), date(2025, 3, 31)),
        assignment("b", 30, date(2025, 2, 1), date(2025, 2, 28)),
        assignment("c", 20, date(2025, 6, 1), date(2025, 6, 30)),
    ]
    found = overlapping(existing, date(2025, 2, 10), date(2025, 2, 20), exclude_id="a")
    assert [a.id for a in found] == ["b"]


def test_check_capacity_sums_overlapping_allocations() -> None:
    existing = [
        assignment("a", 50, date(2025, 1, 1), date(2025, 3, 31)),
        assignment("b", 30, date(2025, 2, 1), date(2025, 2, 28)),
        assignment("later", 90, date(2025, 5, 1), date(2025, 5, 31)),
    ]
    check = check_capacity(engineer(), existing, 20, date(2025, 2, 1), date(2025, 2, 15))
    assert check.current_allocation == 80
    assert check.new_total == 100
    assert check.available == 20
    assert check.fits
    assert check.warning is None

    over = check_capacity(engineer(), existing, 25, date(2025, 2, 1), date(2025, 2, 15))
    assert not over.fits
    assert over.available == 20
    assert "would overload Eve" in over.warning
    assert "New total: 105%" in over.warning


def test_check_capacity_respects_part_time_capacity() -> None:
    existing = [assignment("a", 30, date(2025, 1, 1), date(2025, 1, 31))]
    check = check_capacity(engineer(max_capacity=50), existing, 30, date(2025, 1, 10), date(2025, 1, 20))
    assert not check.fits
    assert check.available == 20


def test_allocated_on_counts_only_active_assignments() -> None:
    existing = [
        assignment("a", 40, date(2025, 1, 1), date(2025, 1, 31)),
        assignment("b", 20, date(2025, 1, 31), date(2025, 2, 28)),
        assignment("c", 70, date(2025, 3, 1), date(2025, 3, 31)),
    ]
    assert allocated_on(existing, date(2025, 1, 31)) == 60
    assert allocated_on(existing, date(2025, 2, 15)) == 20
    assert allocated_on(existing, date(2025, 4, 1)) == 0


@pytest.mark.parametrize(
    "allocated, max_capacity, label",
    [
        (110, 100, "Overloaded"),
        (90, 100, "At Capacity"),
        (45, 50, "At Capacity"),
        (70, 100, "High Load"),
        (10, 100, "Available"),
    ],
)
def test_capacity_status(allocated: int, max_capacity: int, label: str) -> None:
    assert capacity_status(allocated, max_capacity) == label


def test_engineer_capacity_ignores_other_engineers() -> None:
    existing = [
        assignment("a", 60, date(2025, 1, 1), date(2025, 1, 31)),
        assignment("x", 90, date(2025, 1, 1), date(2025, 1, 31), engineer_id="someone-else"),
    ]
    cap = engineer_capacity(engineer(), existing, date(2025, 1, 15))
    assert cap.total_allocated == 60
    assert cap.available_capacity == 40
    assert cap.active_assignments == 1
    assert cap.status == "Available"
