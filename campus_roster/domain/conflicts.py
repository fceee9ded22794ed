"""Conflict report produced by the assignment engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from campus_roster.domain.scheduling import TimeWindow


@dataclass(frozen=True)
class ConflictingOccurrence:
    """An existing live occurrence that overlaps the proposed window."""

    assignment_id: int
    occurrence_id: int
    duty_id: int
    duty_name: Optional[str]
    date: date
    window: TimeWindow
    status: str

    def to_dict(self) -> dict:
        return {
            "assignment_id": self.assignment_id,
            "occurrence_id": self.occurrence_id,
            "duty_id": self.duty_id,
            "duty_name": self.duty_name,
            "date": self.date.isoformat(),
            "status": self.status,
            **self.window.to_dict(),
        }


@dataclass
class ConflictReport:
    """Per assignee, per proposed date: free, or the overlapping occurrences."""

    window: TimeWindow
    dates: list[date]
    entries: dict[tuple[str, str], dict[date, list[ConflictingOccurrence]]] = field(default_factory=dict)

    def add_assignee(self, kind: str, assignee_id: str) -> None:
        self.entries.setdefault((kind, assignee_id), {d: [] for d in self.dates})

    def add_conflict(self, kind: str, assignee_id: str, conflict: ConflictingOccurrence) -> None:
        self.add_assignee(kind, assignee_id)
        self.entries[(kind, assignee_id)][conflict.date].append(conflict)

    def conflicts_for(self, kind: str, assignee_id: str) -> list[ConflictingOccurrence]:
        by_date = self.entries.get((kind, assignee_id), {})
        return [c for d in sorted(by_date) for c in by_date[d]]

    @property
    def has_conflicts(self) -> bool:
        return any(c for by_date in self.entries.values() for c in by_date.values())

    @property
    def conflict_count(self) -> int:
        return sum(len(c) for by_date in self.entries.values() for c in by_date.values())

    def to_dict(self) -> dict:
        assignees = []
        for (kind, assignee_id), by_date in self.entries.items():
            assignees.append({
                "assignee_kind": kind,
                "assignee_id": assignee_id,
                "dates": [
                    {
                        "date": d.isoformat(),
                        "status": "conflict" if by_date[d] else "free",
                        "conflicts": [c.to_dict() for c in by_date[d]],
                    }
                    for d in sorted(by_date)
                ],
            })
        return {
            "has_conflicts": self.has_conflicts,
            "conflict_count": self.conflict_count,
            "window": self.window.to_dict(),
            "dates": [d.isoformat() for d in self.dates],
            "assignees": assignees,
        }
