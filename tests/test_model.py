"""
Tests for the SQLite task store.
"""

import pytest

from cadence.model import DatabaseManager, Task


@pytest.fixture
def dbm(temp_db_path, test_env):
    manager = DatabaseManager(str(temp_db_path), test_env, reset=True)
    yield manager
    manager.close()


def _add(dbm, date, title, comment="", repeat=""):
    return dbm.add_task(Task(None, date, title, comment, repeat))


@pytest.mark.integration
class TestDatabaseManager:
    def test_add_and_get(self, dbm):
        task_id = _add(dbm, "20250120", "water plants", "balcony", "d 3")
        task = dbm.get_task(task_id)
        assert task == Task(task_id, "20250120", "water plants", "balcony", "d 3")

    def test_get_missing_returns_none(self, dbm):
        assert dbm.get_task(999) is None

    def test_update(self, dbm):
        task_id = _add(dbm, "20250120", "water plants")
        assert dbm.update_task(Task(task_id, "20250121", "water all plants", "", "d 2"))
        assert dbm.get_task(task_id).title == "water all plants"
        assert dbm.get_task(task_id).repeat == "d 2"

    def test_update_missing(self, dbm):
        assert not dbm.update_task(Task(42, "20250121", "ghost"))

    def test_delete(self, dbm):
        task_id = _add(dbm, "20250120", "water plants")
        assert dbm.delete_task(task_id)
        assert dbm.get_task(task_id) is None
        assert not dbm.delete_task(task_id)

    def test_get_tasks_orders_by_date_and_limits(self, dbm):
        _add(dbm, "20250301", "march")
        _add(dbm, "20250101", "january")
        _add(dbm, "20250201", "february")
        titles = [t.title for t in dbm.get_tasks(10)]
        assert titles == ["january", "february", "march"]
        assert len(dbm.get_tasks(2)) == 2
        assert dbm.get_tasks(0) == []

    def test_negative_limit(self, dbm):
        with pytest.raises(ValueError):
            dbm.get_tasks(-1)
        with pytest.raises(ValueError):
            dbm.search_tasks("x", -1)

    def test_search_title_and_comment(self, dbm):
        _add(dbm, "20250101", "Pay rent", "")
        _add(dbm, "20250301", "call mom", "about the rent")
        _add(dbm, "20250201", "gym", "")
        titles = [t.title for t in dbm.search_tasks("rent", 10)]
        assert titles == ["call mom", "Pay rent"]

    def test_search_ignores_ascii_case(self, dbm):
        _add(dbm, "20250101", "Pay Rent")
        assert len(dbm.search_tasks("pay rent", 10)) == 1

    def test_tasks_on_date(self, dbm):
        _add(dbm, "20250208", "a")
        _add(dbm, "20250208", "b")
        _add(dbm, "20250209", "c")
        assert [t.title for t in dbm.get_tasks_on("20250208", 10)] == ["a", "b"]

    def test_reset_removes_existing_database(self, temp_db_path, test_env):
        first = DatabaseManager(str(temp_db_path), test_env)
        _add(first, "20250101", "old")
        first.close()

        kept = DatabaseManager(str(temp_db_path), test_env)
        assert kept.count_tasks() == 1
        kept.close()

        fresh = DatabaseManager(str(temp_db_path), test_env, reset=True)
        assert fresh.count_tasks() == 0
        fresh.close()

    def test_setup_is_idempotent(self, dbm):
        _add(dbm, "20250101", "kept")
        dbm.setup_database()
        assert dbm.count_tasks() == 1
