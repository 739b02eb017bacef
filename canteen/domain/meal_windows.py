"""
Canteen Core — Meal-window calendar

Maps a wall-clock instant to the active admission window and its successor.
Boundaries are half-open local-hour ranges; the default table is

    07:00–11:59 → Breakfast
    12:00–15:59 → Lunch
    16:00–18:59 → Snacks
    19:00–22:59 → Dinner

and every other hour has no window.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Mapping


class MealWindow(str, PyEnum):
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    SNACKS = "Snacks"
    DINNER = "Dinner"


OTHER_CATEGORY = "Other"

_CYCLE = [MealWindow.BREAKFAST, MealWindow.LUNCH, MealWindow.SNACKS, MealWindow.DINNER]


class WindowTable:
    """Validated, immutable hour-range table for the four meal windows."""

    def __init__(self, ranges: Mapping[str, tuple[int, int]]):
        parsed: dict[MealWindow, tuple[int, int]] = {}
        for name, (start, end) in ranges.items():
            window = MealWindow(name)
            if not (0 <= start < end <= 24):
                raise ValueError(f"Invalid hour range for {name}: [{start}, {end})")
            parsed[window] = (int(start), int(end))

        missing = set(_CYCLE) - set(parsed)
        if missing:
            raise ValueError(f"Missing meal windows: {sorted(w.value for w in missing)}")

        ordered = sorted(parsed.items(), key=lambda kv: kv[1][0])
        for (prev_w, (_, prev_end)), (next_w, (next_start, _)) in zip(ordered, ordered[1:]):
            if next_start < prev_end:
                raise ValueError(f"{prev_w.value} overlaps {next_w.value}")

        self._ranges = parsed
        # hour → window lookup, one slot per hour of the day
        self._by_hour: list[MealWindow | None] = [None] * 24
        for window, (start, end) in parsed.items():
            for hour in range(start, end):
                self._by_hour[hour] = window

    def window_for_hour(self, hour: int) -> MealWindow | None:
        return self._by_hour[hour]

    def range_of(self, window: MealWindow) -> tuple[int, int]:
        return self._ranges[window]

    def items(self):
        return [(w, self._ranges[w]) for w in _CYCLE]


DEFAULT_WINDOWS = WindowTable({
    "Breakfast": (7, 12),
    "Lunch": (12, 16),
    "Snacks": (16, 19),
    "Dinner": (19, 23),
})


def window_at(instant: datetime, table: WindowTable = DEFAULT_WINDOWS) -> MealWindow | None:
    """Active meal window for the local hour of ``instant`` (None outside all windows)."""
    return table.window_for_hour(instant.hour)


def next_window(window: MealWindow) -> MealWindow:
    """Cyclic successor: Breakfast → Lunch → Snacks → Dinner → Breakfast."""
    idx = _CYCLE.index(MealWindow(window))
    return _CYCLE[(idx + 1) % len(_CYCLE)]


def window_range_label(window: MealWindow, table: WindowTable = DEFAULT_WINDOWS) -> str:
    start, end = table.range_of(window)
    return f"{start:02d}:00 – {end - 1:02d}:59"


# ── Demand heatmap slots ──────────────────────────────────────────────────────
# Narrower than the admission windows: these bracket the observed rush hours.

@dataclass(frozen=True)
class TimeSlot:
    id: str
    label: str
    start: int
    end: int

    def contains(self, hour: int) -> bool:
        return self.start <= hour < self.end


TIME_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot("breakfast", "Breakfast", 7, 10),
    TimeSlot("lunch", "Lunch", 12, 15),
    TimeSlot("snacks", "Snacks", 16, 18),
    TimeSlot("dinner", "Dinner", 19, 23),
)

LUNCH_SLOT = TIME_SLOTS[1]
