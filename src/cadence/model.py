import os
import sqlite3
from dataclasses import dataclass, astuple
from typing import List, Optional

from .cadence_env import CadenceEnvironment

from .shared import log_msg

MAX_REPEAT_LENGTH = 128


@dataclass
class Task:
    id: Optional[int]
    date: str  # 'YYYYMMDD'
    title: str
    comment: str = ""
    repeat: str = ""

    @classmethod
    def from_row(cls, row: tuple) -> "Task":
        id, date, title, comment, repeat = row
        return cls(id, date, title, comment or "", repeat or "")


def _check_limit(limit: int):
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")


class DatabaseManager:
    def __init__(self, db_path: str, env: CadenceEnvironment, reset: bool = False):
        self.db_path = str(db_path)
        self.env = env

        if reset and os.path.exists(self.db_path):
            os.remove(self.db_path)

        self.conn = sqlite3.connect(self.db_path)
        self.cursor = self.conn.cursor()
        self.setup_database()

    def setup_database(self):
        """
        Create (if missing) the Tasks table and its date index.

        Notes:
        - Dates are stored as 'YYYYMMDD' TEXT so that lexicographic order is
          calendar order.
        - `repeat` holds the raw rule string; parsed rules are never stored.
        """
        self.cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS Tasks (
                id       INTEGER PRIMARY KEY AUTOINCREMENT,
                date     TEXT NOT NULL,                -- 'YYYYMMDD'
                title    TEXT NOT NULL,
                comment  TEXT,
                repeat   VARCHAR({MAX_REPEAT_LENGTH})  -- recurrence rule, '' for one-off
            );
        """)
        self.cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_tasks_date
            ON Tasks(date);
        """)
        self.conn.commit()

    def close(self):
        self.conn.close()

    def add_task(self, task: Task) -> int:
        try:
            self.cursor.execute(
                """
                INSERT INTO Tasks (date, title, comment, repeat)
                VALUES (?, ?, ?, ?)
                """,
                (task.date, task.title, task.comment, task.repeat),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            log_msg(f"Error adding {task}: {e}")
            raise
        task.id = self.cursor.lastrowid
        return task.id

    def get_task(self, task_id: int) -> Optional[Task]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT id, date, title, comment, repeat FROM Tasks WHERE id = ?",
            (task_id,),
        )
        row = cur.fetchone()
        return Task.from_row(row) if row else None

    def update_task(self, task: Task) -> bool:
        """
        Overwrite every field of the stored task with the same id.
        Returns False when no such task exists.
        """
        cur = self.conn.cursor()
        cur.execute(
            """
            UPDATE Tasks
            SET date = ?, title = ?, comment = ?, repeat = ?
            WHERE id = ?
            """,
            astuple(task)[1:] + (task.id,),
        )
        self.conn.commit()
        return cur.rowcount > 0

    def delete_task(self, task_id: int) -> bool:
        cur = self.conn.cursor()
        cur.execute("DELETE FROM Tasks WHERE id = ?", (task_id,))
        self.conn.commit()
        return cur.rowcount > 0

    def get_tasks(self, limit: int) -> List[Task]:
        """Return up to `limit` tasks, earliest date first."""
        _check_limit(limit)
        cur = self.conn.cursor()
        cur.execute(
            """
            SELECT id, date, title, comment, repeat FROM Tasks
            ORDER BY date ASC, id ASC
            LIMIT ?
            """,
            (limit,),
        )
        return [Task.from_row(row) for row in cur.fetchall()]

    def get_tasks_on(self, date_str: str, limit: int) -> List[Task]:
        _check_limit(limit)
        cur = self.conn.cursor()
        cur.execute(
            """
            SELECT id, date, title, comment, repeat FROM Tasks
            WHERE date = ?
            ORDER BY id ASC
            LIMIT ?
            """,
            (date_str, limit),
        )
        return [Task.from_row(row) for row in cur.fetchall()]

    def search_tasks(self, text: str, limit: int) -> List[Task]:
        """
        Find tasks whose title or comment contains `text`, ignoring ASCII case,
        latest date first.
        """
        _check_limit(limit)
        cur = self.conn.cursor()
        cur.execute(
            """
            SELECT id, date, title, comment, repeat FROM Tasks
            WHERE title LIKE '%' || ? || '%'
               OR comment LIKE '%' || ? || '%'
            ORDER BY date DESC, id DESC
            LIMIT ?
            """,
            (text, text, limit),
        )
        return [Task.from_row(row) for row in cur.fetchall()]

    def count_tasks(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM Tasks")
        return cur.fetchone()[0]
