"""Screens shared by several flows: menus, the main challenge view, panels."""
import logging
from html import escape
from typing import Optional

from ..models.challenge import MAX_DAILY_TASK_LIMIT
from ..services.errors import ChallengeNotFound, NotSuperAdmin, ParticipantNotFound, TaskNotFound
from ..services.limits import MAX_PARTICIPANTS_PER_CHALLENGE
from ..utils.timesync import utcnow
from . import keyboards, views
from .context import Context
from .scratch import ViewScratch
from .states import State

logger = logging.getLogger(__name__)

GENERIC_ERROR = "😅 Oops, something went wrong. Give it another try!"
NOT_A_MEMBER = "🤔 Looks like you're not part of this challenge."
NO_PERMISSION = "⚠️ You don't have permission to perform this action."
NOT_SUPER_ADMIN = "You don't have super admin privileges."


def int_arg(ctx: Context, index: int = 0, error=TaskNotFound) -> int:
    try:
        return int(ctx.event.args[index])
    except (IndexError, ValueError):
        raise error()


def require_challenge(ctx: Context) -> str:
    if not ctx.challenge_id:
        raise ChallengeNotFound()
    return ctx.challenge_id


def require_participant(ctx: Context):
    participant = ctx.services.participants.get_by_challenge_and_user(require_challenge(ctx), ctx.user_id)
    if participant is None:
        raise ParticipantNotFound()
    return participant


def require_super_admin(ctx: Context) -> None:
    if not ctx.is_super_admin:
        raise NotSuperAdmin()


def show_start_menu(ctx: Context) -> None:
    s = ctx.services
    challenges = s.challenges.get_by_user_id(ctx.user_id)
    task_counts = {}
    completed_counts = {}
    for challenge in challenges:
        task_counts[challenge.id] = s.tasks.count_by_challenge_id(challenge.id)
        participant = s.participants.get_by_challenge_and_user(challenge.id, ctx.user_id)
        if participant is not None:
            completed_counts[challenge.id] = s.completions.count_by_participant_id(participant.id)

    text = "Welcome to SquadChallengeBot!\n\n"
    if challenges:
        text += "Your challenges:"
    else:
        text += "You don't have any challenges yet.\nCreate one or join an existing challenge!"
    ctx.send(text, keyboards.start_menu(challenges, task_counts, completed_counts, ctx.is_super_admin))


def show_main_view(ctx: Context, challenge_id: Optional[str] = None) -> None:
    s = ctx.services
    challenge_id = challenge_id or require_challenge(ctx)
    challenge = s.challenges.get_by_id(challenge_id)
    participant = s.participants.get_by_challenge_and_user(challenge_id, ctx.user_id)
    if participant is None:
        ctx.send(NOT_A_MEMBER)
        return

    tasks = s.tasks.get_by_challenge_id(challenge_id)
    participants = s.participants.get_by_challenge_id(challenge_id)
    completed_ids = set(s.completions.get_completed_task_ids(participant.id))
    by_order = {task.order_num: task for task in tasks}

    participant_emojis = {}
    for member in participants:
        member_task = by_order.get(s.completions.get_current_task_num(member.id, tasks))
        if member_task is not None:
            participant_emojis.setdefault(member_task.id, []).append(member.emoji)

    current = s.completions.get_current_task_num(participant.id, tasks)
    data = views.TaskListData(
        challenge_name=challenge.name,
        challenge_description=challenge.description,
        tasks=tasks,
        completed_task_ids=completed_ids,
        participant_count=len(participants),
        current_task_num=current,
        current_user_emoji=participant.emoji,
        hide_future_tasks=challenge.hide_future_tasks,
        participant_emojis=participant_emojis,
    )
    if challenge.daily_task_limit > 0:
        info = s.completions.check_daily_limit(participant, challenge.daily_task_limit)
        data.daily_completed = info.completed
        data.daily_limit = info.limit
        data.time_to_reset = info.time_to_reset

    buttons = [
        keyboards.TaskButton(
            id=task.id,
            order_num=task.order_num,
            title=task.title,
            is_completed=task.id in completed_ids,
            is_current=task.order_num == current,
        )
        for task in tasks
    ]
    is_admin = challenge.creator_id == ctx.user_id
    ctx.send(views.render_task_list(data), keyboards.main_challenge_view(current, is_admin, buttons), html=True)


def show_admin_panel(ctx: Context) -> None:
    s = ctx.services
    challenge = s.challenges.get_by_id(require_challenge(ctx))
    text = views.render_admin_panel(
        challenge,
        s.tasks.count_by_challenge_id(challenge.id),
        s.participants.count_by_challenge_id(challenge.id),
        MAX_PARTICIPANTS_PER_CHALLENGE,
        ctx.observer_mode,
    )
    keyboard = keyboards.admin_panel(
        challenge.daily_task_limit, challenge.hide_future_tasks, ctx.observer_mode, ctx.is_super_admin
    )
    ctx.send(text, keyboard, html=True)


def show_edit_tasks(ctx: Context) -> None:
    s = ctx.services
    challenge = s.challenges.get_by_id(require_challenge(ctx))
    tasks = s.tasks.get_by_challenge_id(challenge.id)
    if not tasks:
        ctx.send("📭 No tasks yet. Add some tasks first!", keyboards.back_to_admin())
        return
    ctx.send(f"📋 Edit Tasks - {challenge.name}\n\nSelect a task to edit:", keyboards.edit_tasks_list(tasks))


def show_settings(ctx: Context) -> None:
    s = ctx.services
    challenge = s.challenges.get_by_id(require_challenge(ctx))
    participant = require_participant(ctx)
    text = (
        "⚙️ Settings\n\n"
        f"Current challenge: {challenge.name}\n"
        f"Your emoji: {participant.emoji}\n"
        f"Your name: {participant.display_name}\n"
    )
    ctx.send(text, keyboards.settings(participant.notify_enabled, challenge.creator_id == ctx.user_id))


def prompt_sync_time(ctx: Context, keyboard) -> None:
    server_time = utcnow().strftime("%H:%M")
    ctx.send(
        "🕐 <i>Sync Your Clock</i>\n\n"
        "This helps track your daily progress right!\n\n"
        "What time is it for you? (HH:MM format)\n\n"
        f"<i>Example: 14:30 or 09:15</i>. BTW server time is <b>{server_time}</b>",
        keyboard,
        html=True,
    )


def prompt_emoji(ctx: Context, used=()) -> None:
    ctx.send("🎨 Pick an emoji that represents you!\n\n(or send your own)", keyboards.emoji_selector(used))


def show_super_admin_menu(ctx: Context) -> None:
    require_super_admin(ctx)
    s = ctx.services
    text = (
        "🔑 <b>Super Admin Panel</b>\n\n"
        f"👑 Super Admins: {len(s.super_admins.get_all())}\n"
        f"🏆 Total Challenges: {len(s.super_admins.get_all_challenges())}\n"
        f"📦 Templates: {s.templates.count()}\n"
    )
    ctx.send(text, keyboards.super_admin_menu(), html=True)


def show_observer_view(ctx: Context, challenge) -> None:
    """Read-only look at someone else's challenge; keeps observer mode in scratch."""
    s = ctx.services
    task_count = s.tasks.count_by_challenge_id(challenge.id)
    participant_count = s.participants.count_by_challenge_id(challenge.id)
    is_participant = s.participants.get_by_challenge_and_user(challenge.id, ctx.user_id) is not None

    text = "👁 <b>Observer Mode</b>\n\n" f"🏆 <b>{escape(challenge.name)}</b>\n"
    if challenge.description:
        text += f"<i>{escape(challenge.description)}</i>\n"
    text += (
        f"\n📋 Tasks: {task_count}\n"
        f"👥 Participants: {participant_count}/{MAX_PARTICIPANTS_PER_CHALLENGE}\n"
        f"🆔 ID: <code>{challenge.id}</code>\n"
        f"👤 Creator ID: <code>{challenge.creator_id}</code>\n"
        f"🕓 Daily Limit: {views.limit_label(challenge.daily_task_limit)}\n"
        f"👁 Mode: {views.mode_label(challenge.hide_future_tasks)}\n"
    )
    if is_participant:
        text += "\n✅ <i>You are a participant in this challenge</i>"
    else:
        text += "\n👻 <i>Observer only - you cannot complete tasks</i>"

    ctx.set_flow(State.IDLE, ViewScratch(observer_mode=True))
    ctx.send(text, keyboards.observer_view(is_participant), html=True)


def show_template_admin(ctx: Context, template_id: int) -> None:
    s = ctx.services
    template = s.templates.get_by_id(template_id)
    text = "\n".join([
        "🔧 <i>Template Admin Panel</i>",
        "",
        f"<b>Template:</b> {escape(template.name)}",
        f"<b>Description:</b> {escape(template.description)}",
        f"<b>Tasks:</b> {len(s.templates.get_tasks(template_id))}",
        f"<b>Daily Limit:</b> {views.limit_label(template.daily_task_limit)}",
        f"<b>Mode:</b> {views.mode_label(template.hide_future_tasks)}",
    ])
    ctx.send(text, keyboards.template_admin(template.id, template.daily_task_limit, template.hide_future_tasks), html=True)


def parse_daily_limit(text: str, minimum: int = 0) -> Optional[int]:
    try:
        limit = int(text.strip())
    except ValueError:
        return None
    if limit < minimum or limit > MAX_DAILY_TASK_LIMIT:
        return None
    return limit
