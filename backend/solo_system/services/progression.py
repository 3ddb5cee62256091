"""Level, XP and streak rules for the quest tracker.

Leveling
--------
Each level costs ``100 + (level - 1) * 20`` XP. XP is spent on level-up, so
the stored value is always the remainder inside the current level and
``0 <= xp < xp_required(level)`` holds after every operation.

Ranks
-----
    1-11  E
   12-15  D
   16-20  C
   21-30  B
   31-45  A
   46+    S

Daily reset
-----------
When the calendar date moves past ``last_date`` the streak is extended only if
the whole daily roster was completed, a snapshot of the finished day goes to
the history log, and every task is marked undone again.

The engine is synchronous and owns no I/O: persistence, history, notifications,
randomness and the clock are all injected.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import date

from solo_system.schemas.progress import ProgressEntry
from solo_system.schemas.state import ProgressState, Task

logger = logging.getLogger(__name__)

DAILY_QUEST_ROSTER: tuple[str, ...] = (
    "Wake up at 5 AM",
    "Squats",
    "Pushups",
    "Situps",
    "6-7 AM Walking",
    "40+ Min Editing",
    "90+ Min Coding",
    "1 LeetCode Problem",
    "Language Practice",
)

BASE_XP_REQUIRED = 100
XP_REQUIRED_STEP = 20

TASK_XP_MIN = 8
TASK_XP_MAX = 10

LEVEL_UP_NOTICE = "LEVEL UP"

DISCIPLINE_PENALTIES: dict[str, int] = {
    "junk": 2,
    "discipline": 3,
}

# Ordered ascending so the first tier whose ceiling fits wins.
RANK_TIERS: list[tuple[int, str]] = [
    (11, "E"),
    (15, "D"),
    (20, "C"),
    (30, "B"),
    (45, "A"),
]
TOP_RANK = "S"


def xp_required(level: int) -> int:
    """XP needed to advance from *level* to *level + 1*."""
    return BASE_XP_REQUIRED + (level - 1) * XP_REQUIRED_STEP


def rank_for_level(level: int) -> str:
    for ceiling, rank in RANK_TIERS:
        if level <= ceiling:
            return rank
    return TOP_RANK


def fresh_daily_quests() -> list[Task]:
    return [Task(name=name, done=False) for name in DAILY_QUEST_ROSTER]


def fresh_state(today: date) -> ProgressState:
    return ProgressState(
        level=1,
        xp=0,
        streak=0,
        last_date=today,
        daily_quests=fresh_daily_quests(),
        custom_tasks=[],
    )


def _ignore(_value: object) -> None:
    return None


class ProgressionEngine:
    """Applies quest events to a :class:`ProgressState` in place.

    Callbacks
    ---------
    persist(state)
        Called with the full state after every mutation.
    record_history(entry)
        Called with the snapshot produced by a daily reset, before the state
        itself is persisted.
    notify(text)
        Called once per user-facing notice ("LEVEL UP", "-2 LEVELS", ...).
    """

    def __init__(
        self,
        state: ProgressState,
        *,
        persist: Callable[[ProgressState], None] = _ignore,
        record_history: Callable[[ProgressEntry], None] = _ignore,
        notify: Callable[[str], None] = _ignore,
        randint: Callable[[int, int], int] = random.randint,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.state = state
        self._persist = persist
        self._record_history = record_history
        self._notify = notify
        self._randint = randint
        self._today = today

    @property
    def rank(self) -> str:
        return rank_for_level(self.state.level)

    @property
    def xp_to_next_level(self) -> int:
        return xp_required(self.state.level)

    # ── XP ───────────────────────────────────────────────────────────────

    def _apply_xp(self, amount: int) -> int:
        state = self.state
        state.xp += amount
        gained = 0
        while state.xp >= xp_required(state.level):
            state.xp -= xp_required(state.level)
            state.level += 1
            gained += 1
            logger.info("Level up to %d", state.level)
            self._notify(LEVEL_UP_NOTICE)
        return gained

    def award_xp(self, amount: int) -> int:
        """Add *amount* XP, level up as many times as it covers, then persist.

        Returns the number of levels gained.
        """
        gained = self._apply_xp(amount)
        self._persist(self.state)
        return gained

    # ── tasks ────────────────────────────────────────────────────────────

    def complete_task(self, task: Task) -> int:
        """Mark *task* done and award 8-10 XP. Completed tasks award nothing.

        Returns the XP awarded.
        """
        if task.done:
            return 0
        task.done = True
        amount = self._randint(TASK_XP_MIN, TASK_XP_MAX)
        self.award_xp(amount)
        return amount

    def complete_daily_quest(self, index: int) -> int:
        return self.complete_task(self.state.daily_quests[index])

    def complete_custom_task(self, index: int) -> int:
        return self.complete_task(self.state.custom_tasks[index])

    def add_custom_task(self, name: str) -> Task | None:
        text = name.strip()
        if not text:
            return None
        task = Task(name=text, done=False)
        self.state.custom_tasks.append(task)
        self._persist(self.state)
        return task

    # ── penalties ────────────────────────────────────────────────────────

    def discipline_check(self, kind: str) -> int:
        """Drop levels for a lapse and wipe XP. Returns the levels actually lost."""
        try:
            penalty = DISCIPLINE_PENALTIES[kind]
        except KeyError as exc:
            raise ValueError(f"Unknown discipline check: {kind!r}") from exc

        state = self.state
        old_level = state.level
        state.level = max(1, old_level - penalty)
        state.xp = 0
        logger.info("Discipline check %r: level %d -> %d", kind, old_level, state.level)
        self._notify(f"-{penalty} LEVELS")
        self._persist(state)
        return old_level - state.level

    # ── daily reset ──────────────────────────────────────────────────────

    def check_daily_reset(self) -> ProgressEntry | None:
        """Roll the state over to today if the calendar date has changed.

        The returned snapshot describes the finished day and is dated with
        the pre-reset ``last_date``. Returns ``None`` when no reset happened.
        """
        state = self.state
        today = self._today()
        if state.last_date == today:
            return None

        roster_done = all(quest.done for quest in state.daily_quests)
        new_streak = state.streak + 1 if roster_done else 0

        snapshot = ProgressEntry(
            date=state.last_date,
            level=state.level,
            xp=state.xp,
            tasks_completed=state.tasks_completed,
            streak=state.streak,
        )
        self._record_history(snapshot)

        state.daily_quests = fresh_daily_quests()
        state.custom_tasks = [Task(name=task.name, done=False) for task in state.custom_tasks]
        state.last_date = today
        state.streak = new_streak
        logger.info("Daily reset for %s, streak now %d", today.isoformat(), new_streak)
        self._persist(state)
        return snapshot
