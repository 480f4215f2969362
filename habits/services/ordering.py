from typing import Iterable, List, Tuple

from habits.types import HabitWithStatus


def priority_key(habit: HabitWithStatus) -> Tuple:
    """
    Sort key for one day's list.

    Pending before done. Pending habits go critical first, then by planned
    time with unscheduled last; done habits only by planned time.
    """
    unscheduled = habit.scheduled_time is None
    if not habit.is_done:
        return (0, not habit.is_critical, unscheduled, habit.scheduled_time or "")
    return (1, unscheduled, habit.scheduled_time or "")


def sort_habits(habits: Iterable[HabitWithStatus]) -> List[HabitWithStatus]:
    # sorted() is stable, equal keys keep their input order
    return sorted(habits, key=priority_key)
