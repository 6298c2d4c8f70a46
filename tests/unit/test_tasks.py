from types import SimpleNamespace

import pytest

from squadbot.services.errors import ChallengeNotFound, InvalidPosition, InvalidTitle, MaxTasksReached, TaskNotFound
from squadbot.services.limits import MAX_TASKS_PER_CHALLENGE
from squadbot.services.ordering import compact_updates, move_updates, shuffle_updates


def rows(*orders):
    return [SimpleNamespace(id=index + 1, order_num=order) for index, order in enumerate(orders)]


def orders(tasks_service, challenge_id):
    return [(task.title, task.order_num) for task in tasks_service.get_by_challenge_id(challenge_id)]


class TestOrderingArithmetic:
    """Pure order_num update maps."""

    def test_compact_fills_gaps(self):
        """Rows after a gap shift down; rows already in place are left out."""
        assert compact_updates(rows(1, 3, 4)) == {2: 2, 3: 3}
        assert compact_updates(rows(1, 2, 3)) == {}

    def test_move_down(self):
        """Moving 2 to 4 pulls 3 and 4 up by one."""
        assert move_updates(rows(1, 2, 3, 4, 5), 2, 4) == {3: 2, 4: 3, 2: 4}

    def test_move_up(self):
        """Moving 5 to 2 pushes 2, 3 and 4 down by one."""
        assert move_updates(rows(1, 2, 3, 4, 5), 5, 2) == {2: 3, 3: 4, 4: 5, 5: 2}

    def test_move_to_same_position_is_noop(self):
        """A move onto its own slot changes nothing."""
        assert move_updates(rows(1, 2, 3), 2, 2) == {}

    @pytest.mark.parametrize("position", [0, 4, -1])
    def test_move_out_of_range(self, position):
        """Positions outside 1..N are rejected."""
        with pytest.raises(InvalidPosition):
            move_updates(rows(1, 2, 3), 1, position)

    def test_move_unknown_row(self):
        """Moving a row that is not in the list is a missing task."""
        with pytest.raises(TaskNotFound):
            move_updates(rows(1, 2, 3), 99, 1)

    def test_shuffle_is_a_permutation(self):
        """Shuffled positions are exactly 1..N."""
        import random

        original = rows(1, 2, 3, 4, 5, 6)
        updates = shuffle_updates(original, random.Random(3))
        final = {row.id: updates.get(row.id, row.order_num) for row in original}
        assert sorted(final.values()) == [1, 2, 3, 4, 5, 6]

    def test_shuffle_single_row(self):
        """Nothing to shuffle with fewer than two rows."""
        assert shuffle_updates(rows(1)) == {}


class TestTaskService:
    """Task CRUD and ordering against the database."""

    def test_create_appends_at_tail(self, tasks, challenge):
        """New tasks get the next order number."""
        first = tasks.create(challenge.id, "Stretch")
        second = tasks.create(challenge.id, "Run 5k", "Easy pace", "photo-1")
        assert (first.order_num, second.order_num) == (1, 2)
        assert second.description == "Easy pace"
        assert second.image_file_id == "photo-1"

    def test_create_validates_title(self, tasks, challenge):
        """Empty and overlong titles are rejected."""
        with pytest.raises(InvalidTitle):
            tasks.create(challenge.id, "")
        with pytest.raises(InvalidTitle):
            tasks.create(challenge.id, "x" * 101)

    def test_create_needs_challenge(self, tasks):
        """Tasks cannot be added to a missing challenge."""
        with pytest.raises(ChallengeNotFound):
            tasks.create("NOPE0000", "Stretch")

    def test_task_quota(self, tasks, challenge):
        """A challenge holds at most 50 tasks."""
        for n in range(MAX_TASKS_PER_CHALLENGE):
            tasks.create(challenge.id, f"Task {n}")
        with pytest.raises(MaxTasksReached):
            tasks.create(challenge.id, "One too many")
        assert tasks.count_by_challenge_id(challenge.id) == MAX_TASKS_PER_CHALLENGE

    def test_update_keeps_unspecified_fields(self, tasks, challenge):
        """None leaves a field alone, an empty string clears it."""
        task = tasks.create(challenge.id, "Stretch", "Ten minutes", "photo-1")
        tasks.update(task.id, title="Stretch well")
        updated = tasks.update(task.id, image_file_id="")
        assert updated.title == "Stretch well"
        assert updated.description == "Ten minutes"
        assert updated.image_file_id == ""

    def test_delete_compacts_order(self, tasks, challenge, five_tasks):
        """Deleting a middle task shifts later tasks down."""
        tasks.delete(five_tasks[1].id, challenge.id)
        assert orders(tasks, challenge.id) == [("Task 1", 1), ("Task 3", 2), ("Task 4", 3), ("Task 5", 4)]

    def test_delete_checks_challenge(self, tasks, challenges, challenge, five_tasks):
        """A task can only be deleted through its own challenge."""
        other = challenges.create("Other", "", 200)
        with pytest.raises(TaskNotFound):
            tasks.delete(five_tasks[0].id, other.id)

    def test_move_task(self, tasks, challenge, five_tasks):
        """Moving a task reorders its neighbours."""
        tasks.move_task(five_tasks[4].id, challenge.id, 1)
        assert [title for title, _ in orders(tasks, challenge.id)] == [
            "Task 5", "Task 1", "Task 2", "Task 3", "Task 4",
        ]

    def test_randomize_keeps_dense_order(self, tasks, challenge, five_tasks):
        """A shuffle is a permutation of 1..N over the same tasks."""
        tasks.randomize_order(challenge.id)
        result = orders(tasks, challenge.id)
        assert [order for _, order in result] == [1, 2, 3, 4, 5]
        assert sorted(title for title, _ in result) == [f"Task {n}" for n in range(1, 6)]
