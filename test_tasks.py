import unittest
from datetime import datetime, timezone

from questbot.core.errors import AlreadyDone, InvalidArgument, NotFound
from questbot.core.models import Profile
from questbot.core.tasks import (
    add_task,
    complete_task,
    history,
    list_tasks,
    render_bar,
    status,
)


class TestAddTask(unittest.TestCase):
    def test_first_task_gets_id_one(self):
        profile = Profile()
        task = add_task(profile, "wash dishes", 20)
        self.assertEqual(task.id, 1)
        self.assertFalse(task.done)
        self.assertEqual(profile.tasks, [task])

    def test_rejects_non_positive_xp(self):
        profile = Profile()
        for xp in (0, -5):
            with self.assertRaises(InvalidArgument):
                add_task(profile, "nope", xp)
        self.assertEqual(profile.tasks, [])

    def test_rejects_blank_description(self):
        with self.assertRaises(InvalidArgument):
            add_task(Profile(), "   ", 10)

    def test_ids_never_reused_after_completing_max(self):
        profile = Profile()
        add_task(profile, "a", 10)
        second = add_task(profile, "b", 10)
        complete_task(profile, second.id)
        third = add_task(profile, "c", 10)
        self.assertEqual(third.id, 3)
        ids = [t.id for t in profile.tasks]
        self.assertEqual(ids, sorted(set(ids)))


class TestCompleteTask(unittest.TestCase):
    def test_credits_xp_and_level(self):
        profile = Profile()
        task = add_task(profile, "big one", 250)
        complete_task(profile, task.id)
        self.assertEqual(profile.xp, 250)
        self.assertEqual(profile.level, 3)
        self.assertTrue(task.done)

    def test_second_completion_rejected(self):
        profile = Profile()
        task = add_task(profile, "once", 30)
        complete_task(profile, task.id)
        with self.assertRaises(AlreadyDone):
            complete_task(profile, task.id)
        self.assertEqual(profile.xp, 30)
        self.assertEqual(len(profile.history), 1)

    def test_unknown_id(self):
        with self.assertRaises(NotFound):
            complete_task(Profile(), 42)

    def test_history_snapshot_is_decoupled(self):
        profile = Profile()
        task = add_task(profile, "original", 10)
        when = datetime(2026, 1, 2, 3, 4, tzinfo=timezone.utc)
        complete_task(profile, task.id, now=when)
        task.text = "edited later"
        entry = profile.history[0]
        self.assertEqual(entry.text, "original")
        self.assertEqual(entry.completed_at, "2026-01-02T03:04:00+00:00")

    def test_history_capped_newest_first(self):
        profile = Profile()
        for i in range(101):
            task = add_task(profile, f"task {i}", 1)
            complete_task(profile, task.id)
        self.assertEqual(len(profile.history), 100)
        self.assertEqual(profile.history[0].text, "task 100")
        self.assertNotIn("task 0", [h.text for h in profile.history])
        self.assertEqual(len(history(profile)), 100)


class TestListAndStatus(unittest.TestCase):
    def test_list_only_open_tasks_in_order(self):
        profile = Profile()
        a = add_task(profile, "a", 10)
        add_task(profile, "b", 10)
        add_task(profile, "c", 10)
        complete_task(profile, a.id)
        self.assertEqual([t.text for t in list_tasks(profile)], ["b", "c"])

    def test_list_empty(self):
        self.assertEqual(list(list_tasks(Profile())), [])

    def test_status_counts_and_bar(self):
        profile = Profile()
        t1 = add_task(profile, "a", 50)
        add_task(profile, "b", 10)
        complete_task(profile, t1.id)
        summary = status(profile)
        self.assertEqual(summary.level, 1)
        self.assertEqual(summary.next_level_xp, 100)
        self.assertEqual(summary.completed, 1)
        self.assertEqual(summary.total, 2)
        self.assertEqual(summary.bar, "█████░░░░░")

    def test_status_is_pure(self):
        profile = Profile()
        add_task(profile, "a", 10)
        before = profile.to_dict()
        status(profile)
        self.assertEqual(profile.to_dict(), before)

    def test_render_bar_bounds(self):
        self.assertEqual(render_bar(0), "░" * 10)
        self.assertEqual(render_bar(1), "█" * 10)
        self.assertEqual(render_bar(0.04), "░" * 10)
        self.assertEqual(render_bar(0.06), "█" + "░" * 9)

    def test_end_to_end_progression(self):
        profile = Profile()
        first = add_task(profile, "wash dishes", 20)
        self.assertEqual(first.id, 1)
        complete_task(profile, 1)
        self.assertEqual((profile.xp, profile.level, len(profile.history)), (20, 1, 1))
        second = add_task(profile, "x", 150)
        self.assertEqual(second.id, 2)
        complete_task(profile, 2)
        self.assertEqual((profile.xp, profile.level), (170, 2))


if __name__ == "__main__":
    unittest.main()
