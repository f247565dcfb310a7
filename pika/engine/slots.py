from datetime import datetime, timedelta
from typing import List, Sequence, Tuple

from pika.models.entities import Slot
from pika.utils.dates import start_of_day


def generate_slots(day: datetime, windows: Sequence[Tuple[int, int]], session_minutes: int) -> List[Slot]:
    """
    Cut a day's focus windows into fixed-length study slots.

    Walks each normalized window from its start, emitting back-to-back slots
    of exactly ``session_minutes``. A trailing remainder shorter than a
    session is dropped, so a window shorter than one session yields nothing.

    Args:
        day: Any instant on the calendar date to generate for
        windows: Normalized (start_min, end_min) pairs, sorted and disjoint
        session_minutes: Slot length in minutes (> 0)

    Returns:
        Slots ordered earliest first

    Complexity: O(total window minutes / session_minutes)
    """
    midnight = start_of_day(day)
    slots: List[Slot] = []
    for win_start, win_end in windows:
        t = win_start
        while t + session_minutes <= win_end:
            slots.append(Slot(
                start=midnight + timedelta(minutes=t),
                end=midnight + timedelta(minutes=t + session_minutes),
            ))
            t += session_minutes
    return slots
