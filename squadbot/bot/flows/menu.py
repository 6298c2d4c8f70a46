import logging

from ..context import Context
from ..router import FlowRouter
from ..scratch import JoinScratch, TemplateScratch
from ..screens import show_admin_panel, show_main_view, show_observer_view, show_settings, show_start_menu
from ..screens import show_super_admin_menu, show_template_admin
from ..states import ADMIN_FLOW_STATES, SETTINGS_FLOW_STATES, SUPER_ADMIN_FLOW_STATES

logger = logging.getLogger(__name__)

router = FlowRouter()


@router.callback("noop")
def noop(ctx: Context):
    pass


@router.callback("open_challenge", "start_challenge")
def open_challenge(ctx: Context):
    if not ctx.event.args:
        return
    challenge_id = ctx.event.args[0]
    ctx.leave_observer_mode()
    ctx.enter_challenge(challenge_id)
    show_main_view(ctx, challenge_id)


@router.callback("back_to_main")
def back_to_main(ctx: Context):
    if ctx.observer_mode and ctx.challenge_id:
        s = ctx.services
        if s.participants.get_by_challenge_and_user(ctx.challenge_id, ctx.user_id) is None:
            show_observer_view(ctx, s.challenges.get_by_id(ctx.challenge_id))
            return
    ctx.leave_observer_mode()
    show_main_view(ctx)


@router.callback("exit_challenge")
def exit_challenge(ctx: Context):
    ctx.reset()
    show_start_menu(ctx)


@router.callback("cancel")
def cancel(ctx: Context):
    """Leave whatever flow is running and land where that flow started."""
    interrupted = ctx.state
    logger.debug("User %s cancelled %s", ctx.user_id, interrupted.value)

    if isinstance(ctx.scratch, JoinScratch) or not (ctx.challenge_id or interrupted in SUPER_ADMIN_FLOW_STATES):
        ctx.reset()
        show_start_menu(ctx)
        return

    if interrupted in SUPER_ADMIN_FLOW_STATES:
        template = ctx.scratch_as(TemplateScratch)
        ctx.reset_keep_challenge()
        if template is not None and template.template_id is not None:
            show_template_admin(ctx, template.template_id)
        else:
            show_super_admin_menu(ctx)
        return

    observer = ctx.observer_mode
    member = ctx.services.participants.get_by_challenge_and_user(ctx.challenge_id, ctx.user_id)
    if member is None and not observer:
        # the challenge went away or the user left it meanwhile
        ctx.reset()
        show_start_menu(ctx)
        return

    ctx.reset_keep_challenge()
    if interrupted in ADMIN_FLOW_STATES:
        show_admin_panel(ctx)
    elif interrupted in SETTINGS_FLOW_STATES and member is not None:
        show_settings(ctx)
    elif observer:
        show_observer_view(ctx, ctx.services.challenges.get_by_id(ctx.challenge_id))
    else:
        show_main_view(ctx)
