from datetime import timedelta
from types import SimpleNamespace

from squadbot.bot import keyboards, views


def make_tasks(count):
    return [SimpleNamespace(id=n, order_num=n, title=f"Task {n}") for n in range(1, count + 1)]


def task_list(**overrides):
    values = dict(
        challenge_name="Morning Run",
        challenge_description="",
        tasks=make_tasks(10),
        completed_task_ids=set(),
        participant_count=3,
        current_task_num=1,
        current_user_emoji="👑",
    )
    values.update(overrides)
    return views.TaskListData(**values)


class TestVisibleRange:
    """The window of tasks shown around the current one."""

    def test_window_in_the_middle(self):
        """Two tasks either side of the current one."""
        assert views.visible_range(5, 10) == (2, 6)

    def test_window_clamped_at_edges(self):
        """The window never leaves the list."""
        assert views.visible_range(1, 10) == (0, 2)
        assert views.visible_range(10, 10) == (7, 9)

    def test_all_done_clamps_to_start(self):
        """Current 0 clamps to the start of the list."""
        assert views.visible_range(0, 3) == (0, 2)
        assert views.visible_range(0, 0) == (0, 0)


class TestTaskList:
    """The main challenge view."""

    def test_header_and_more_markers(self):
        """Progress header plus up and down markers for hidden rows."""
        text = views.render_task_list(task_list(completed_task_ids={1, 2, 3, 4}, current_task_num=5))
        assert "Progress: 4/10 tasks • 3 members" in text
        assert "↑ 2 more task(s)" in text
        assert "↓ 3 more task(s)" in text
        assert "⬜ 5. Task 5    ← YOU" in text
        assert "Task 1" not in text

    def test_sequential_mode_hides_future_titles(self):
        """Tasks after the current one are replaced with a spoiler."""
        text = views.render_task_list(task_list(current_task_num=1, hide_future_tasks=True))
        assert "Task 2" not in text
        assert f"⬜ 2. {views.LOCKED_TASK}" in text

    def test_emojis_collapse_after_four(self):
        """At most four emojis are shown inline, then a +N."""
        text = views.render_task_list(task_list(participant_emojis={1: ["🔥", "🦊", "🐺", "🦅", "🌙", "⭐"]}))
        assert "🔥🦊🐺🦅 +2" in text

    def test_user_text_is_escaped(self):
        """Names and titles cannot inject markup."""
        tasks = [SimpleNamespace(id=1, order_num=1, title="<b>bold</b>")]
        text = views.render_task_list(task_list(challenge_name="A & B", tasks=tasks))
        assert "A &amp; B" in text
        assert "&lt;b&gt;bold&lt;/b&gt;" in text

    def test_empty_challenge(self):
        """No tasks yet is spelled out."""
        assert "📭 No tasks yet" in views.render_task_list(task_list(tasks=[], current_task_num=0))

    def test_daily_footer(self):
        """The daily counter appears when a limit is set."""
        text = views.render_task_list(
            task_list(daily_completed=1, daily_limit=3, time_to_reset=timedelta(hours=2, minutes=5))
        )
        assert "📅 Today: 1/3 completed (Resets in 2h 05m)" in text


class TestOtherViews:
    """Smaller renderers."""

    def test_team_progress_sorted_by_percentage(self):
        """Members are listed from most to least progress."""
        members = [
            views.MemberProgress("🐢", "Slow", 1, 10),
            views.MemberProgress("🐇", "Fast", 9, 10, is_admin=True),
        ]
        text = views.render_team_progress("Run", members)
        assert text.index("Fast (Admin)") < text.index("Slow")
        assert "█████████░ 90% (9/10)" in text

    def test_progress_bar_bounds(self):
        """The bar always has ten cells."""
        assert views.progress_bar(0) == "░" * 10
        assert views.progress_bar(100) == "█" * 10
        assert views.progress_bar(55) == "█████░░░░░"

    def test_all_tasks_marks_locked(self):
        """The full list hides future tasks in sequential mode only while a task is current."""
        tasks = make_tasks(3)
        text = views.render_all_tasks("Run", tasks, {1}, 2, hide_future_tasks=True)
        assert "✅ 1. Task 1" in text
        assert "⬜ 2. Task 2" in text
        assert "Task 3" not in text
        done = views.render_all_tasks("Run", tasks, {1, 2, 3}, 0, hide_future_tasks=True)
        assert "Task 3" in done

    def test_task_detail(self):
        """Detail lists who has and has not done the task."""
        data = views.TaskDetailData(
            order_num=2,
            title="Stretch",
            description="Ten minutes",
            is_completed=True,
            completed_by=[("👑", "Alice")],
            not_yet=[("🔥", "Bob")],
        )
        text = views.render_task_detail(data)
        assert "<b>Task #2: Stretch</b>" in text
        assert "Your status: ✅ Completed" in text
        assert "👑 Alice" in text
        assert "🔥 Bob" in text

    def test_celebration(self):
        """The celebration shows time taken and squad status."""
        squad = [views.MemberProgress("👑", "Alice", 5, 5), views.MemberProgress("🔥", "Bob", 2, 5)]
        text = views.render_celebration("Run", 5, timedelta(days=3), squad)
        assert "🕓 Finished in 3 days" in text
        assert "👑 Alice: ✅ Crushed it!" in text
        assert "🔥 Bob: 🔄 2/5" in text

    def test_daily_limit_reached(self):
        """The limit message shows the count and the reset time."""
        text = views.render_daily_limit_reached(3, 3, timedelta(minutes=30))
        assert "<b>3/3</b>" in text
        assert "<b>30m 00s</b>" in text


class TestKeyboards:
    """Inline keyboard layouts."""

    def test_callback_data_format(self):
        """Actions and arguments are joined with pipes."""
        assert keyboards.data("Go", "reorder_move", 12, 3).data == "reorder_move|12|3"

    def test_task_grid_is_padded(self):
        """The task grid is seven wide with noop padding."""
        buttons = [keyboards.TaskButton(n, n, f"T{n}", n == 1, n == 2) for n in range(1, 10)]
        rows = keyboards.main_challenge_view(2, True, buttons)
        assert len(rows[0]) == 7
        assert len(rows[1]) == 7
        assert [b.data for b in rows[1][2:]] == ["noop"] * 5
        assert rows[2][0].data == "complete_current"
        assert rows[-1][0].data == "admin_panel"

    def test_emoji_selector_hides_taken(self):
        """Used emojis are not offered."""
        rows = keyboards.emoji_selector(["🔥"])
        offered = [b.data for row in rows for b in row]
        assert "select_emoji|🔥" not in offered
        assert "select_emoji|💪" in offered

    def test_share_uses_copy_text(self):
        """Share buttons copy the id and the deep link."""
        rows = keyboards.share_id("ABCD1234", "squad_bot")
        assert rows[0][0].copy_text == "ABCD1234"
        assert rows[0][1].copy_text == "t.me/squad_bot?start=ABCD1234"
        assert rows[0][0].data is None

    def test_start_menu_marks_finished(self):
        """Finished challenges get a check mark and super admins an extra row."""
        challenge = SimpleNamespace(id="ABCD1234", name="Run")
        rows = keyboards.start_menu([challenge], {"ABCD1234": 3}, {"ABCD1234": 3}, is_super_admin=True)
        assert rows[0][0].text == "🏆 Run (3/3 ✅)"
        assert rows[-1][0].data == "super_admin"
