"""Allocation arithmetic shared by the assignment handlers and the dashboards.

An engineer's load over a date range is the sum of allocationPercentage of
every assignment whose range intersects it. Ranges are inclusive on both
ends, so an assignment ending on the day another starts still overlaps it.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from .models import Assignment, CapacityCheck, EngineerCapacity, User


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end


def is_active_on(assignment: Assignment, day: date) -> bool:
    return assignment.start_date <= day <= assignment.end_date


def overlapping(
    assignments: Iterable[Assignment],
    start: date,
    end: date,
    exclude_id: Optional[str] = None,
) -> List[Assignment]:
    return [
        a
        for a in assignments
        if a.id != exclude_id and ranges_overlap(a.start_date, a.end_date, start, end)
    ]


def total_allocation(assignments: Iterable[Assignment]) -> int:
    return sum(a.allocation_percentage for a in assignments)


def allocated_on(assignments: Iterable[Assignment], day: date) -> int:
    return total_allocation(a for a in assignments if is_active_on(a, day))


def check_capacity(
    engineer: User,
    existing: Iterable[Assignment],
    allocation: int,
    start: date,
    end: date,
    exclude_id: Optional[str] = None,
) -> CapacityCheck:
    """Would `allocation` over [start, end] keep the engineer within capacity?"""
    current = total_allocation(overlapping(existing, start, end, exclude_id=exclude_id))
    new_total = current + allocation
    available = engineer.max_capacity - current
    fits = new_total <= engineer.max_capacity

    warning = None
    if not fits:
        warning = (
            f"This assignment would overload {engineer.name}. Current: {current}%, "
            f"New total: {new_total}%, Max capacity: {engineer.max_capacity}%"
        )

    return CapacityCheck(
        engineer_id=engineer.id,
        current_allocation=current,
        requested=allocation,
        new_total=new_total,
        max_capacity=engineer.max_capacity,
        available=available,
        fits=fits,
        warning=warning,
    )


def capacity_status(allocated: int, max_capacity: int) -> str:
    if max_capacity <= 0:
        return "Overloaded" if allocated > 0 else "Available"
    percentage = allocated / max_capacity * 100
    if percentage > 100:
        return "Overloaded"
    if percentage >= 90:
        return "At Capacity"
    if percentage >= 70:
        return "High Load"
    return "Available"


def engineer_capacity(engineer: User, assignments: Iterable[Assignment], day: date) -> EngineerCapacity:
    active = [a for a in assignments if a.engineer_id == engineer.id and is_active_on(a, day)]
    allocated = total_allocation(active)
    return EngineerCapacity(
        engineer_id=engineer.id,
        max_capacity=engineer.max_capacity,
        total_allocated=allocated,
        available_capacity=engineer.max_capacity - allocated,
        status=capacity_status(allocated, engineer.max_capacity),
        active_assignments=len(active),
    )
