import logging

from ...services.notification import Notification, NotificationType
from ...utils.timesync import format_duration, utcnow
from .. import keyboards, views
from ..context import Context
from ..router import FlowRouter
from ..screens import int_arg, require_challenge, require_participant, show_main_view
from .tasks import own_task

logger = logging.getLogger(__name__)

router = FlowRouter()

LOCKED = "🔒 This task is locked.\n\nComplete your previous tasks first."
ALL_DONE = "🎉 You've already crushed all the tasks!"


def _squad(ctx: Context, challenge, total_tasks: int):
    s = ctx.services
    return [
        views.MemberProgress(
            emoji=member.emoji,
            name=member.display_name,
            completed=s.completions.count_by_participant_id(member.id),
            total=total_tasks,
            is_admin=member.telegram_id == challenge.creator_id,
        )
        for member in s.participants.get_by_challenge_id(challenge.id)
    ]


def _limit_reached(ctx: Context, info) -> None:
    ctx.send(
        views.render_daily_limit_reached(info.completed, info.limit, info.time_to_reset),
        keyboards.back_to_main(),
        html=True,
    )


@router.callback("task_detail")
def task_detail(ctx: Context):
    s = ctx.services
    task = own_task(ctx, int_arg(ctx))
    participant = require_participant(ctx)
    challenge = s.challenges.get_by_id(task.challenge_id)

    tasks = s.tasks.get_by_challenge_id(challenge.id)
    current = s.completions.get_current_task_num(participant.id, tasks)
    if challenge.hide_future_tasks and current > 0 and task.order_num > current:
        ctx.send(views.render_hidden_task_detail(task.order_num, current), keyboards.back_to_main(), html=True)
        return

    done_by = {c.participant_id for c in s.completions.get_completions_by_task_id(task.id)}
    completed_by, not_yet = [], []
    for member in s.participants.get_by_challenge_id(challenge.id):
        (completed_by if member.id in done_by else not_yet).append((member.emoji, member.display_name))

    is_completed = participant.id in done_by
    data = views.TaskDetailData(
        order_num=task.order_num,
        title=task.title,
        description=task.description,
        is_completed=is_completed,
        completed_by=completed_by,
        not_yet=not_yet,
    )
    if task.image_file_id:
        ctx.send_photo(task.image_file_id)
    ctx.send(views.render_task_detail(data), keyboards.task_detail(task.id, is_completed), html=True)


def complete_task(ctx: Context, task_id: int) -> None:
    s = ctx.services
    participant = require_participant(ctx)
    challenge = s.challenges.get_by_id(participant.challenge_id)
    limit = challenge.daily_task_limit

    if limit > 0:
        info = s.completions.check_daily_limit(participant, limit)
        if not info.allowed:
            _limit_reached(ctx, info)
            return

    task = own_task(ctx, task_id)
    tasks = s.tasks.get_by_challenge_id(challenge.id)
    if challenge.hide_future_tasks:
        current = s.completions.get_current_task_num(participant.id, tasks)
        if current > 0 and task.order_num > current:
            ctx.send(LOCKED, keyboards.back_to_main())
            return

    if s.completions.is_completed(task.id, participant.id):
        show_main_view(ctx, challenge.id)
        return

    s.completions.complete(task.id, participant.id)
    if limit > 0:
        # two quick taps can both pass the first check
        info = s.completions.check_daily_limit(participant, limit)
        if info.completed > limit:
            logger.info("Rolling back completion of task %s by participant %s over daily limit", task.id, participant.id)
            s.completions.uncomplete(task.id, participant.id)
            info.completed = limit
            info.allowed = False
            _limit_reached(ctx, info)
            return

    ctx.notify(
        Notification(
            NotificationType.TASK_COMPLETED,
            challenge.id,
            ctx.user_id,
            emoji=participant.emoji,
            name=participant.display_name,
            task_title=task.title,
        )
    )

    if s.completions.is_all_completed(participant.id, len(tasks)):
        for kind in (NotificationType.CHALLENGE_COMPLETED, NotificationType.USER_CHALLENGE_COMPLETED):
            ctx.notify(
                Notification(
                    kind,
                    challenge.id,
                    ctx.user_id,
                    emoji=participant.emoji,
                    name=participant.display_name,
                    challenge_name=challenge.name,
                )
            )
        text = views.render_celebration(
            challenge.name, len(tasks), utcnow() - participant.joined_at, _squad(ctx, challenge, len(tasks))
        )
        ctx.send(text, keyboards.celebration(), html=True)
        return

    if limit > 0:
        info = s.completions.check_daily_limit(participant, limit)
        ctx.send(
            f"✅ Task completed! ({info.completed}/{info.limit} today, "
            f"resets in {format_duration(info.time_to_reset)})"
        )
    show_main_view(ctx, challenge.id)


@router.callback("complete_task")
def complete_task_button(ctx: Context):
    complete_task(ctx, int_arg(ctx))


@router.callback("complete_current")
def complete_current(ctx: Context):
    s = ctx.services
    participant = require_participant(ctx)
    tasks = s.tasks.get_by_challenge_id(participant.challenge_id)
    current = s.completions.get_current_task_num(participant.id, tasks)
    task = next((t for t in tasks if t.order_num == current), None)
    if task is None:
        ctx.send(ALL_DONE)
        return
    complete_task(ctx, task.id)


@router.callback("uncomplete_task")
def uncomplete_task(ctx: Context):
    task = own_task(ctx, int_arg(ctx))
    participant = require_participant(ctx)
    ctx.services.completions.uncomplete(task.id, participant.id)
    task_detail(ctx)


@router.callback("team_progress")
def team_progress(ctx: Context):
    s = ctx.services
    challenge = s.challenges.get_by_id(require_challenge(ctx))
    total = s.tasks.count_by_challenge_id(challenge.id)
    text = views.render_team_progress(challenge.name, _squad(ctx, challenge, total))
    ctx.send(text, keyboards.back_to_main(), html=True)


@router.callback("list_all_tasks")
def list_all_tasks(ctx: Context):
    s = ctx.services
    participant = require_participant(ctx)
    challenge = s.challenges.get_by_id(participant.challenge_id)
    tasks = s.tasks.get_by_challenge_id(challenge.id)
    completed_ids = set(s.completions.get_completed_task_ids(participant.id))
    text = views.render_all_tasks(
        challenge.name,
        tasks,
        completed_ids,
        s.completions.get_current_task_num(participant.id, tasks),
        challenge.hide_future_tasks,
    )
    ctx.send(text, keyboards.back_to_main(), html=True)
