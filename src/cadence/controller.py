from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from .cadence_env import CadenceEnvironment
from .errors import FormatError, TaskNotFoundError, TaskValidationError
from .model import MAX_REPEAT_LENGTH, DatabaseManager, Task
from .nextdate import Instant, next_date
from .rules import parse_date, parse_rule
from .shared import log_msg, parse_search_date, today_str


class Controller:
    def __init__(self, database_path: str, env: CadenceEnvironment, reset: bool = False):
        self.db_manager = DatabaseManager(database_path, env, reset=reset)
        self.env = env
        config = env.config
        self.limit = config.limits.tasks
        self.search_format = config.dates.search_format
        self.display_format = config.dates.display_format
        self.log_enabled = config.logging.enabled

    def _log(self, msg: str):
        if self.log_enabled:
            log_msg(msg, depth=2)

    def close(self):
        self.db_manager.close()

    def next_date(self, now: Instant, date_str: str, repeat: str) -> str:
        return next_date(now, date_str, repeat)

    def check_task(self, task: Task, now: Optional[Instant] = None) -> Task:
        """
        Validate `task` in place and roll a past date forward.

        - an empty date becomes today
        - a blank repeat rule is stored as a one-off task
        - a past one-off task moves to today
        - a past recurring task moves to its next occurrence after `now`

        Raises TaskValidationError describing the first problem found.
        """
        if now is None:
            now = datetime.now()
        today = today_str(now)

        task.title = (task.title or "").strip()
        if not task.title:
            raise TaskValidationError("title must not be empty")

        task.repeat = (task.repeat or "").strip()
        if len(task.repeat) > MAX_REPEAT_LENGTH:
            raise TaskValidationError(
                f"repeat rule is longer than {MAX_REPEAT_LENGTH} characters"
            )
        try:
            parse_rule(task.repeat)
        except FormatError as e:
            raise TaskValidationError(f"invalid repeat rule: {e}") from e

        task.date = (task.date or "").strip()
        if not task.date:
            task.date = today
            return task

        try:
            parse_date(task.date)
        except FormatError as e:
            raise TaskValidationError(f"invalid date: {e}") from e

        if task.date >= today:
            return task

        if not task.repeat:
            task.date = today
        else:
            rolled = next_date(now, task.date, task.repeat)
            self._log(f"rolled {task.title!r} forward from {task.date} to {rolled}")
            task.date = rolled
        return task

    def add_task(
        self,
        title: str,
        date: str = "",
        comment: str = "",
        repeat: str = "",
        now: Optional[Instant] = None,
    ) -> Task:
        task = self.check_task(Task(None, date, title, comment or "", repeat), now)
        self.db_manager.add_task(task)
        self._log(f"added task {task.id}: {task.title!r} on {task.date} {task.repeat!r}")
        return task

    def get_task(self, task_id: int) -> Task:
        task = self.db_manager.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"no task with id {task_id}")
        return task

    def update_task(
        self,
        task_id: int,
        *,
        title: Optional[str] = None,
        date: Optional[str] = None,
        comment: Optional[str] = None,
        repeat: Optional[str] = None,
        now: Optional[Instant] = None,
    ) -> Task:
        """
        Change the given fields of a stored task. Fields left as None keep
        their stored values; the merged task is checked as a new one would be.
        """
        current = self.get_task(task_id)
        changes = {
            k: v
            for k, v in dict(title=title, date=date, comment=comment, repeat=repeat).items()
            if v is not None
        }
        task = self.check_task(replace(current, **changes), now)
        if not self.db_manager.update_task(task):
            raise TaskNotFoundError(f"no task with id {task_id}")
        self._log(f"updated task {task.id}: {current} -> {task}")
        return task

    def delete_task(self, task_id: int):
        if not self.db_manager.delete_task(task_id):
            raise TaskNotFoundError(f"no task with id {task_id}")
        self._log(f"deleted task {task_id}")

    def mark_done(self, task_id: int, now: Optional[Instant] = None) -> Optional[Task]:
        """
        Complete a task. A one-off task is deleted and None is returned; a
        recurring task moves to its next occurrence and is returned.
        """
        if now is None:
            now = datetime.now()
        task = self.get_task(task_id)
        if not task.repeat:
            self.delete_task(task_id)
            return None
        try:
            task.date = next_date(now, task.date, task.repeat)
        except FormatError as e:
            raise TaskValidationError(
                f"cannot compute the next date of task {task_id}: {e}"
            ) from e
        self.db_manager.update_task(task)
        self._log(f"task {task_id} done, next on {task.date}")
        return task

    def list_tasks(self, limit: Optional[int] = None) -> List[Task]:
        return self.db_manager.get_tasks(self.limit if limit is None else limit)

    def search(self, query: str, limit: Optional[int] = None) -> List[Task]:
        """
        Tasks on a date when `query` matches the search date format, else
        tasks whose title or comment contains `query`.
        """
        if limit is None:
            limit = self.limit
        query = (query or "").strip()
        if not query:
            return self.list_tasks(limit)
        date_str = parse_search_date(query, self.search_format)
        if date_str is not None:
            return self.db_manager.get_tasks_on(date_str, limit)
        return self.db_manager.search_tasks(query, limit)
