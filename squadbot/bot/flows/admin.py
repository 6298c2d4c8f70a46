import logging

from ...services.challenge import validate_challenge_description, validate_challenge_name
from ...services.errors import InvalidDescription, InvalidName
from ...services.notification import Notification, NotificationType
from .. import keyboards
from ..context import Context
from ..router import FlowRouter
from ..screens import parse_daily_limit, require_challenge, show_admin_panel, show_start_menu
from ..states import State
from .tasks import CLEAR_WORDS

logger = logging.getLogger(__name__)

router = FlowRouter()


@router.callback("admin_panel", "back_to_admin", "cancel_delete_challenge")
def admin_panel(ctx: Context):
    show_admin_panel(ctx)


def _after_edit(ctx: Context, message: str) -> None:
    ctx.reset_keep_challenge()
    ctx.send(message)
    show_admin_panel(ctx)


@router.callback("edit_challenge_name")
def edit_challenge_name(ctx: Context):
    ctx.set_state(State.AWAITING_NEW_CHALLENGE_NAME)
    ctx.send("✏️ What's the new challenge name?", keyboards.cancel_only())


@router.text(State.AWAITING_NEW_CHALLENGE_NAME)
def new_challenge_name(ctx: Context):
    try:
        name = validate_challenge_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send("😅 Keep it between 1-50 characters. Try again:", keyboards.cancel_only())
        return
    ctx.services.challenges.update_name(require_challenge(ctx), name, ctx.user_id, ctx.is_super_admin)
    _after_edit(ctx, f'✅ Done! Challenge is now "{name}"')


@router.callback("edit_challenge_description")
def edit_challenge_description(ctx: Context):
    ctx.set_state(State.AWAITING_NEW_CHALLENGE_DESCRIPTION)
    ctx.send("📝 What's the new description?\n\n(send - to clear it)", keyboards.cancel_only())


@router.text(State.AWAITING_NEW_CHALLENGE_DESCRIPTION)
def new_challenge_description(ctx: Context):
    text = ctx.event.text.strip()
    description = "" if text in CLEAR_WORDS else text
    try:
        validate_challenge_description(description)
    except InvalidDescription:
        ctx.send("😅 That's a bit long! Keep it under 500 characters:", keyboards.cancel_only())
        return
    ctx.services.challenges.update_description(require_challenge(ctx), description, ctx.user_id, ctx.is_super_admin)
    _after_edit(ctx, "✅ Description updated!" if description else "✅ Description cleared!")


@router.callback("edit_daily_limit")
def edit_daily_limit(ctx: Context):
    challenge = ctx.services.challenges.get_by_id(require_challenge(ctx))
    current = f"{challenge.daily_task_limit} tasks/day" if challenge.daily_task_limit > 0 else "unlimited"
    ctx.set_state(State.AWAITING_NEW_DAILY_LIMIT)
    ctx.send(
        f"🕓 <i>Daily Limit</i>\n\nRight now: <b>{current}</b>\n\nPick a number (1-50) or 0 for unlimited",
        keyboards.cancel_only(),
        html=True,
    )


@router.text(State.AWAITING_NEW_DAILY_LIMIT)
def new_daily_limit(ctx: Context):
    limit = parse_daily_limit(ctx.event.text)
    if limit is None:
        ctx.send("🤔 Pick a number between 0 and 50 (0 = no limit):", keyboards.cancel_only())
        return
    ctx.services.challenges.update_daily_limit(require_challenge(ctx), limit, ctx.user_id, ctx.is_super_admin)
    _after_edit(ctx, f"✅ Got it! {limit} tasks/day max" if limit > 0 else "✅ No limits now, go wild! 🚀")


@router.callback("toggle_hide_future")
def toggle_hide_future(ctx: Context):
    hidden = ctx.services.challenges.toggle_hide_future_tasks(require_challenge(ctx), ctx.user_id, ctx.is_super_admin)
    ctx.send("✅ Sequential mode on, one task at a time! 🔒" if hidden else "✅ All tasks visible now! 👀")
    show_admin_panel(ctx)


@router.callback("delete_challenge")
def delete_challenge(ctx: Context):
    s = ctx.services
    challenge = s.challenges.get_by_id(require_challenge(ctx))
    task_count = s.tasks.count_by_challenge_id(challenge.id)
    participant_count = s.participants.count_by_challenge_id(challenge.id)
    ctx.send(
        "🚨 Whoa! Delete this challenge?\n\n"
        f'"{challenge.name}" will be gone forever.\n\n'
        "This nukes:\n"
        f"• {task_count} tasks\n"
        f"• {participant_count} participants\n"
        "• All progress\n\n"
        "⚠️ No take-backs!",
        keyboards.delete_challenge_confirm(),
    )


@router.callback("confirm_delete_challenge")
def confirm_delete_challenge(ctx: Context):
    s = ctx.services
    challenge = s.challenges.get_by_id(require_challenge(ctx))
    # the cascade takes the participant rows with it, so collect the audience first
    audience = [p.telegram_id for p in s.participants.get_by_challenge_id(challenge.id)]

    s.challenges.delete(challenge.id, ctx.user_id, ctx.is_super_admin)
    s.states.reset_by_challenge(challenge.id)
    ctx.reset()
    ctx.notify(
        Notification(
            NotificationType.CHALLENGE_DELETED,
            challenge.id,
            ctx.user_id,
            challenge_name=challenge.name,
            recipients=audience,
        )
    )
    logger.info("Challenge %s deleted by %s", challenge.id, ctx.user_id)
    ctx.send("💨 Poof! Challenge deleted.")
    show_start_menu(ctx)

