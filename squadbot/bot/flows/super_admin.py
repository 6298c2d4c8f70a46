import logging

from ...services.errors import ChallengeNotFound
from .. import keyboards
from ..context import Context
from ..router import FlowRouter
from ..screens import require_super_admin, show_observer_view, show_super_admin_menu
from ..states import State

logger = logging.getLogger(__name__)

router = FlowRouter()

BAD_TELEGRAM_ID = "Invalid Telegram ID. Please enter a valid numeric ID:"


@router.callback("super_admin")
def super_admin(ctx: Context):
    ctx.reset_keep_challenge()
    show_super_admin_menu(ctx)


@router.callback("sa_observe")
def observe_list(ctx: Context):
    require_super_admin(ctx)
    s = ctx.services
    own = {c.id for c in s.challenges.get_by_user_id(ctx.user_id)}
    others = [c for c in s.super_admins.get_all_challenges() if c.id not in own]
    if not others:
        ctx.send(
            "No other challenges to observe. You're a participant in all existing challenges!",
            keyboards.back_to_super_admin(),
        )
        return

    task_counts = {c.id: s.tasks.count_by_challenge_id(c.id) for c in others}
    participant_counts = {c.id: s.participants.count_by_challenge_id(c.id) for c in others}
    ctx.send(
        "👁 <b>Other Challenges (Observer Mode)</b>\n\n"
        "Challenges where you're not a participant. Select a challenge to observe",
        keyboards.observer_list(others, task_counts, participant_counts),
        html=True,
    )


@router.callback("observe")
def observe(ctx: Context):
    require_super_admin(ctx)
    if not ctx.event.args:
        raise ChallengeNotFound()
    challenge = ctx.services.challenges.get_by_id(ctx.event.args[0])
    ctx.enter_challenge(challenge.id)
    logger.info("Super admin %s observing challenge %s", ctx.user_id, challenge.id)
    show_observer_view(ctx, challenge)


@router.callback("back_to_observer")
def back_to_observer(ctx: Context):
    require_super_admin(ctx)
    if not ctx.challenge_id:
        observe_list(ctx)
        return
    try:
        challenge = ctx.services.challenges.get_by_id(ctx.challenge_id)
    except ChallengeNotFound:
        observe_list(ctx)
        return
    show_observer_view(ctx, challenge)


@router.callback("sa_grant")
def grant(ctx: Context):
    require_super_admin(ctx)
    ctx.set_state(State.AWAITING_SUPER_ADMIN_ID)
    ctx.send(
        "🔑 <b>Grant Super Admin</b>\n\n"
        "Enter the Telegram User ID of the person you want to make a super admin.\n\n"
        "<i>Tip: They can find their ID by messaging @userinfobot</i>",
        keyboards.cancel_only(),
        html=True,
    )


@router.text(State.AWAITING_SUPER_ADMIN_ID)
def grant_target(ctx: Context):
    try:
        target_id = int(ctx.event.text.strip())
    except ValueError:
        target_id = 0
    if target_id <= 0:
        ctx.send(BAD_TELEGRAM_ID, keyboards.cancel_only())
        return

    ctx.reset_keep_challenge()
    ctx.services.super_admins.grant(ctx.user_id, target_id)
    ctx.send(f"✅ User {target_id} is now a super admin!", keyboards.back_to_super_admin())


@router.callback("sa_manage")
def manage(ctx: Context):
    require_super_admin(ctx)
    admins = ctx.services.super_admins.get_all()
    lines = ["👑 <b>Super Admins</b>", ""]
    for admin in admins:
        suffix = " (you)" if admin.telegram_id == ctx.user_id else ""
        lines.append(f"• <code>{admin.telegram_id}</code>{suffix}")
    ctx.send("\n".join(lines), keyboards.manage_super_admins(admins, ctx.user_id), html=True)


@router.callback("sa_revoke")
def revoke(ctx: Context):
    require_super_admin(ctx)
    try:
        target_id = int(ctx.event.args[0])
    except (IndexError, ValueError):
        ctx.send("Invalid user ID.", keyboards.back_to_super_admin())
        return
    ctx.services.super_admins.revoke(ctx.user_id, target_id)
    ctx.send(f"✅ User {target_id} is no longer a super admin.", keyboards.back_to_super_admin())
