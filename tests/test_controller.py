"""
Tests for task policies: validation, roll-forward, completion and search.

Time is frozen to 2025-01-15 12:00:00 (a Wednesday) via the frozen_time fixture.
"""

import pytest
from datetime import datetime

from cadence.errors import TaskNotFoundError, TaskValidationError
from cadence.model import Task


@pytest.mark.integration
class TestCheckTask:
    def test_empty_title_rejected(self, frozen_time, test_controller):
        with pytest.raises(TaskValidationError, match="title"):
            test_controller.check_task(Task(None, "20250120", "   "))

    def test_empty_date_becomes_today(self, frozen_time, test_controller):
        task = test_controller.check_task(Task(None, "", "call"))
        assert task.date == "20250115"

    def test_bad_date_rejected(self, frozen_time, test_controller):
        with pytest.raises(TaskValidationError, match="date"):
            test_controller.check_task(Task(None, "2025-01-20", "call"))

    def test_bad_repeat_rejected_even_for_future_date(self, frozen_time, test_controller):
        with pytest.raises(TaskValidationError, match="repeat"):
            test_controller.check_task(Task(None, "20250120", "call", "", "d 0"))

    def test_blank_repeat_is_stored_as_one_off(self, frozen_time, test_controller):
        task = test_controller.check_task(Task(None, "20250120", "call", "", "   "))
        assert task.repeat == ""

    def test_overlong_repeat_rejected(self, frozen_time, test_controller):
        repeat = "m " + ",".join(["1"] * 70)
        with pytest.raises(TaskValidationError, match="128"):
            test_controller.check_task(Task(None, "20250120", "call", "", repeat))

    def test_future_date_kept(self, frozen_time, test_controller):
        task = test_controller.check_task(Task(None, "20250120", "call", "", "d 3"))
        assert task.date == "20250120"

    def test_today_kept(self, frozen_time, test_controller):
        task = test_controller.check_task(Task(None, "20250115", "call", "", "d 3"))
        assert task.date == "20250115"

    def test_past_one_off_moves_to_today(self, frozen_time, test_controller):
        task = test_controller.check_task(Task(None, "20240101", "call"))
        assert task.date == "20250115"

    def test_past_recurring_moves_to_next_occurrence(self, frozen_time, test_controller):
        task = test_controller.check_task(Task(None, "20250101", "call", "", "w 1"))
        assert task.date == "20250120"

    def test_explicit_now(self, test_controller):
        now = datetime(2024, 3, 1, 8, 0)
        task = test_controller.check_task(Task(None, "20240229", "leap", "", "y"), now)
        assert task.date == "20250301"


@pytest.mark.integration
class TestTaskLifecycle:
    def test_add_and_get(self, frozen_time, test_controller):
        task = test_controller.add_task("water plants", "20250110", "balcony", "d 3")
        assert task.id is not None
        assert task.date == "20250116"
        assert test_controller.get_task(task.id) == task

    def test_get_missing(self, test_controller):
        with pytest.raises(TaskNotFoundError):
            test_controller.get_task(123)

    def test_update_keeps_unspecified_fields(self, frozen_time, test_controller):
        task = test_controller.add_task("water plants", "20250120", "balcony", "d 3")
        updated = test_controller.update_task(task.id, title="water all plants")
        assert updated.title == "water all plants"
        assert updated.comment == "balcony"
        assert updated.repeat == "d 3"
        assert test_controller.get_task(task.id) == updated

    def test_update_can_clear_repeat(self, frozen_time, test_controller):
        task = test_controller.add_task("water plants", "20250120", "", "d 3")
        assert test_controller.update_task(task.id, repeat="").repeat == ""

    def test_update_rejects_bad_rule(self, frozen_time, test_controller):
        task = test_controller.add_task("water plants", "20250120", "", "d 3")
        with pytest.raises(TaskValidationError):
            test_controller.update_task(task.id, repeat="w 9")
        assert test_controller.get_task(task.id).repeat == "d 3"

    def test_update_missing(self, frozen_time, test_controller):
        with pytest.raises(TaskNotFoundError):
            test_controller.update_task(99, title="x")

    def test_delete(self, frozen_time, test_controller):
        task = test_controller.add_task("water plants")
        test_controller.delete_task(task.id)
        with pytest.raises(TaskNotFoundError):
            test_controller.delete_task(task.id)

    def test_done_removes_one_off(self, frozen_time, test_controller):
        task = test_controller.add_task("dentist", "20250120")
        assert test_controller.mark_done(task.id) is None
        with pytest.raises(TaskNotFoundError):
            test_controller.get_task(task.id)

    def test_done_advances_recurring(self, frozen_time, test_controller):
        task = test_controller.add_task("rent", "20250131", "", "m -1")
        done = test_controller.mark_done(task.id)
        # the stored date stays the start; the next one after now is Jan 31
        assert done.date == "20250131"
        later = test_controller.mark_done(task.id, now=datetime(2025, 1, 31, 9, 0))
        assert later.date == "20250228"
        assert test_controller.get_task(task.id).date == "20250228"

    def test_done_uses_current_time(self, freeze_at, test_controller):
        with freeze_at("2025-03-10 08:00:00"):
            task = test_controller.add_task("gym", "20250310", "", "w 1,4")
        with freeze_at("2025-03-13 18:30:00"):
            assert test_controller.mark_done(task.id).date == "20250317"

    def test_done_past_year_9999(self, frozen_time, test_controller):
        task = test_controller.add_task("far away", "99991231", "", "d 1")
        with pytest.raises(TaskValidationError, match="out of range"):
            test_controller.mark_done(task.id)
        assert test_controller.get_task(task.id).date == "99991231"

    def test_done_missing(self, test_controller):
        with pytest.raises(TaskNotFoundError):
            test_controller.mark_done(5)


@pytest.mark.integration
class TestListAndSearch:
    @pytest.fixture
    def populated(self, frozen_time, test_controller):
        test_controller.add_task("pay rent", "20250201", "landlord", "m 1")
        test_controller.add_task("gym", "20250116", "", "w 2,4")
        test_controller.add_task("call landlord", "20250208")
        return test_controller

    def test_list_earliest_first(self, populated):
        assert [t.title for t in populated.list_tasks()] == ["gym", "pay rent", "call landlord"]

    def test_list_limit(self, populated):
        assert len(populated.list_tasks(limit=1)) == 1

    def test_default_limit_from_config(self, populated):
        populated.limit = 2
        assert len(populated.list_tasks()) == 2

    def test_search_text(self, populated):
        assert [t.title for t in populated.search("landlord")] == ["call landlord", "pay rent"]

    def test_search_date(self, populated):
        assert [t.title for t in populated.search("08.02.2025")] == ["call landlord"]

    def test_search_blank_lists_all(self, populated):
        assert len(populated.search("  ")) == 3

    def test_next_date_passthrough(self, test_controller):
        assert test_controller.next_date(datetime(2024, 1, 5), "20240101", "d 3") == "20240107"


@pytest.mark.integration
def test_changes_are_logged_under_home(frozen_time, cadence_home, test_controller):
    test_controller.add_task("water plants", "20250110", "", "d 3")

    log_file = cadence_home / "logs" / "log_250115.md"
    text = log_file.read_text(encoding="utf-8")
    assert "(Controller.check_task)" in text
    assert "(Controller.add_task)" in text
    assert "added task 1" in text
