"""Pure renderers from view-data records to HTML message text.

All user-supplied strings are escaped here, so every rendered message can be
sent with HTML parse mode.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from html import escape
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..utils.timesync import format_duration, format_elapsed

DIVIDER = "─────────────────────────"
LOCKED_TASK = "<tg-spoiler>🔒 Complete previous tasks to unlock</tg-spoiler>"
VISIBLE_BEFORE = 2
VISIBLE_AFTER = 2
MAX_INLINE_EMOJIS = 4
PROGRESS_CELLS = 10


def visible_range(current_task_num: int, total: int) -> Tuple[int, int]:
    """Zero-based inclusive index window around the current task."""
    if total == 0:
        return 0, 0
    current = min(max(current_task_num - 1, 0), total - 1)
    return max(current - VISIBLE_BEFORE, 0), min(current + VISIBLE_AFTER, total - 1)


def _is_hidden(hide_future_tasks: bool, order_num: int, current_task_num: int) -> bool:
    return hide_future_tasks and current_task_num > 0 and order_num > current_task_num


def _status(done: bool) -> str:
    return "✅" if done else "⬜"


@dataclass
class TaskListData:
    challenge_name: str
    challenge_description: str
    tasks: Sequence
    completed_task_ids: Set[int]
    participant_count: int
    current_task_num: int
    current_user_emoji: str = ""
    hide_future_tasks: bool = False
    # task id -> emojis of the participants whose current task it is
    participant_emojis: Dict[int, List[str]] = field(default_factory=dict)
    daily_completed: int = 0
    daily_limit: int = 0
    time_to_reset: Optional[timedelta] = None


def render_task_list(data: TaskListData) -> str:
    lines = [f"🏆 <b>{escape(data.challenge_name)}</b>"]
    if data.challenge_description:
        lines.append(f"<i>{escape(data.challenge_description)}</i>")
    completed = sum(1 for t in data.tasks if t.id in data.completed_task_ids)
    lines.append(f"Progress: {completed}/{len(data.tasks)} tasks • {data.participant_count} members")
    lines.append(DIVIDER)
    lines.append("")

    if not data.tasks:
        lines.append("📭 No tasks yet")
        lines.append("Waiting for admin to add tasks...")
    else:
        start, end = visible_range(data.current_task_num, len(data.tasks))
        if start > 0:
            lines.append(f"↑ {start} more task(s)")
        for task in data.tasks[start:end + 1]:
            status = _status(task.id in data.completed_task_ids)
            if _is_hidden(data.hide_future_tasks, task.order_num, data.current_task_num):
                lines.append(f"{status} {task.order_num}. {LOCKED_TASK}")
                continue
            line = f"{status} {task.order_num}. {escape(task.title)}"
            emojis = data.participant_emojis.get(task.id, [])
            if emojis:
                line += "    " + "".join(emojis[:MAX_INLINE_EMOJIS])
                if len(emojis) > MAX_INLINE_EMOJIS:
                    line += f" +{len(emojis) - MAX_INLINE_EMOJIS}"
            if task.order_num == data.current_task_num and data.current_user_emoji:
                line += "    ← YOU"
            lines.append(line)
        remaining = len(data.tasks) - 1 - end
        if remaining > 0:
            lines.append(f"↓ {remaining} more task(s)")

    if data.daily_limit > 0 and data.time_to_reset is not None:
        lines.append("")
        lines.append(
            f"📅 Today: {data.daily_completed}/{data.daily_limit} completed "
            f"(Resets in {format_duration(data.time_to_reset)})"
        )
    return "\n".join(lines)


def render_all_tasks(
    challenge_name: str,
    tasks: Sequence,
    completed_task_ids: Set[int],
    current_task_num: int,
    hide_future_tasks: bool = False,
) -> str:
    lines = [f"📋 <b>{escape(challenge_name)}</b> - All Tasks", DIVIDER, ""]
    if not tasks:
        lines.append("📭 No tasks yet")
    for task in tasks:
        status = _status(task.id in completed_task_ids)
        if _is_hidden(hide_future_tasks, task.order_num, current_task_num):
            lines.append(f"{status} {task.order_num}. {LOCKED_TASK}")
        else:
            lines.append(f"{status} {task.order_num}. {escape(task.title)}")
    return "\n".join(lines)


@dataclass
class MemberProgress:
    emoji: str
    name: str
    completed: int
    total: int
    is_admin: bool = False

    @property
    def percent(self) -> int:
        return self.completed * 100 // self.total if self.total > 0 else 0

    @property
    def finished(self) -> bool:
        return self.total > 0 and self.completed >= self.total


def progress_bar(percent: int) -> str:
    filled = max(0, min(PROGRESS_CELLS, percent // 10))
    return "█" * filled + "░" * (PROGRESS_CELLS - filled)


def render_team_progress(challenge_name: str, members: Sequence[MemberProgress]) -> str:
    lines = [f"👥 Squad Progress - <b>{escape(challenge_name)}</b>", DIVIDER, ""]
    ranked = sorted(members, key=lambda m: m.completed / max(m.total, 1), reverse=True)
    for member in ranked:
        name = escape(member.name) + (" (Admin)" if member.is_admin else "")
        lines.append(
            f"{progress_bar(member.percent)} {member.percent}% ({member.completed}/{member.total})"
            f"  {member.emoji} {name}"
        )
    return "\n".join(lines)


@dataclass
class TaskDetailData:
    order_num: int
    title: str
    description: str
    is_completed: bool
    completed_by: List[Tuple[str, str]] = field(default_factory=list)
    not_yet: List[Tuple[str, str]] = field(default_factory=list)


def _people(people: Sequence[Tuple[str, str]]) -> str:
    return " • ".join(f"{emoji} {escape(name)}" for emoji, name in people)


def render_task_detail(data: TaskDetailData) -> str:
    lines = [f"<b>Task #{data.order_num}: {escape(data.title)}</b>", DIVIDER, ""]
    if data.is_completed:
        lines.append("Your status: ✅ Completed")
    else:
        lines.append("Your status: ⬜ Not completed")
    if data.description:
        lines += ["", "Description:", escape(data.description)]
    if data.completed_by:
        lines += ["", "Completed by:", _people(data.completed_by)]
    if data.not_yet:
        lines += ["", "Not yet:", _people(data.not_yet)]
    return "\n".join(lines)


def render_hidden_task_detail(order_num: int, current_task_num: int) -> str:
    return "\n".join([
        f"🔒 <b>Task #{order_num}: Hidden</b>",
        DIVIDER,
        "",
        "This task is not yet unlocked.",
        "",
        "Complete your previous tasks first to reveal this task's details.",
        "",
        f"Your current task: Task #{current_task_num}",
    ])


def render_celebration(
    challenge_name: str, total_tasks: int, time_taken: timedelta, squad: Sequence[MemberProgress]
) -> str:
    lines = [
        "🎉🎊🏆 YOU DID IT! 🏆🎊🎉",
        "",
        f'Woohoo! You crushed "{escape(challenge_name)}"!',
        "",
        f"🕓 Finished in {format_elapsed(time_taken)}",
        f"📊 {total_tasks}/{total_tasks} tasks done",
        "",
        "👥 How's the squad doing:",
    ]
    for member in squad:
        if member.finished:
            lines.append(f"{member.emoji} {escape(member.name)}: ✅ Crushed it!")
        else:
            lines.append(f"{member.emoji} {escape(member.name)}: 🔄 {member.completed}/{member.total}")
    return "\n".join(lines)


def render_daily_limit_reached(completed: int, limit: int, time_to_reset: timedelta) -> str:
    return (
        "🕓 <i>Daily Limit Reached!</i>\n\n"
        f"You've completed <b>{completed}/{limit}</b> tasks today.\n\n"
        f"New day starts in: <b>{format_duration(time_to_reset)}</b>\n\n"
        "🙌 <i>Come back tomorrow to continue!</i>"
    )


def limit_label(daily_limit: int) -> str:
    return f"{daily_limit}/day" if daily_limit > 0 else "No daily limit"


def mode_label(hide_future_tasks: bool) -> str:
    return "Sequential" if hide_future_tasks else "All Visible"


def render_admin_panel(challenge, task_count: int, participant_count: int, max_participants: int, observer: bool) -> str:
    title = "🔧 <i>Admin Panel (Super Admin)</i>" if observer else "🔧 <i>Admin Panel</i>"
    return "\n".join([
        title,
        "",
        f"<b>Challenge:</b> {escape(challenge.name)}",
        f"<b>Description:</b> {escape(challenge.description)}",
        f"<b>Challenge ID:</b> <code>{challenge.id}</code>",
        f"<b>Members:</b> {participant_count}/{max_participants}",
        f"<b>Tasks:</b> {task_count}",
        f"<b>Daily Limit:</b> {limit_label(challenge.daily_task_limit)}",
        f"<b>Mode:</b> {mode_label(challenge.hide_future_tasks)}",
    ])


def render_share(challenge_id: str, bot_username: str) -> str:
    return (
        "🔗 <i>Share with friends!</i>\n\n"
        f"<b>Challenge ID:</b> <code>{challenge_id}</code>\n\n"
        "Or send this link:\n"
        f"<code>t.me/{bot_username}?start={challenge_id}</code>"
    )


def render_challenge_card(challenge, task_count: int, participant_count: int) -> str:
    """Summary shown before someone picks a name to join with."""
    limit = f"{challenge.daily_task_limit}/day" if challenge.daily_task_limit > 0 else "unlimited"
    text = f"🎯 <b>{escape(challenge.name)}</b>\n"
    if challenge.description:
        text += f"\n<i>{escape(challenge.description)}</i>\n"
    text += (
        f"\n📋 Tasks: <b>{task_count}</b>\n"
        f"👥 Members: <b>{participant_count}</b>\n"
        f"🕓 Daily tasks limit: <b>{limit}</b>\n\n"
        "What should we call you?\n\n"
        "<i>Tap Skip to use your Telegram name</i>"
    )
    return text
