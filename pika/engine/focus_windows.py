"""
Focus Window Normalization

Turns the user-entered "HH:MM" windows for one weekday into a sorted list of
disjoint minute-of-day intervals. Anything malformed is dropped rather than
reported, so a typo in one window never blocks planning for the rest of the
week.

Merging guarantees the slot generator cannot produce overlapping slots even
when the user enters overlapping or back-to-back windows.
"""

import re
from typing import Iterable, List, Optional, Tuple

from pika.models.entities import FocusWindow


_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(value: str) -> Optional[int]:
    """
    Parse a 24h clock string into minutes after midnight.

    Args:
        value: "H:MM" or "HH:MM"

    Returns:
        Minute of day in [0, 1439], or None if the string is malformed or
        out of range
    """
    match = _CLOCK_RE.match((value or "").strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23) or not (0 <= minute <= 59):
        return None
    return hour * 60 + minute


def format_clock(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def normalize_windows(windows: Iterable[FocusWindow]) -> List[Tuple[int, int]]:
    """
    Normalize one weekday's focus windows.

    Algorithm:
    1. Parse both ends; drop the window if either fails or end <= start
    2. Sort by start minute
    3. Merge a window into the previous one when it starts at or before
       the previous end (overlapping or adjacent)

    Args:
        windows: Raw windows for a single weekday

    Returns:
        Sorted, disjoint (start_min, end_min) pairs

    Complexity: O(w log w) for w windows
    """
    parsed: List[Tuple[int, int]] = []
    for win in windows:
        start = parse_clock(win.start)
        end = parse_clock(win.end)
        if start is None or end is None or end <= start:
            continue
        parsed.append((start, end))

    parsed.sort()

    merged: List[Tuple[int, int]] = []
    for start, end in parsed:
        if merged and start <= merged[-1][1]:
            prev_start, prev_end = merged[-1]
            merged[-1] = (prev_start, max(prev_end, end))
        else:
            merged.append((start, end))
    return merged


def to_focus_windows(intervals: Iterable[Tuple[int, int]]) -> List[FocusWindow]:
    """Convert normalized intervals back into clock-string windows."""
    return [FocusWindow(format_clock(s), format_clock(e)) for s, e in intervals]
