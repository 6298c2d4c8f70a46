"""Challenge templates: creating a challenge from one, and super admin upkeep."""
import logging
from html import escape

from ...services.challenge import validate_challenge_description, validate_challenge_name
from ...services.errors import InvalidDescription, InvalidName, TemplateNotFound
from ...services.participant import validate_display_name
from ...utils.emoji import is_valid_emoji
from ...utils.timesync import InvalidTimeFormat, parse_time_input
from .. import keyboards, views
from ..context import Context
from ..router import FlowRouter
from ..scratch import TemplateScratch
from ..screens import (
    int_arg,
    parse_daily_limit,
    prompt_emoji,
    prompt_sync_time,
    require_challenge,
    require_super_admin,
    show_admin_panel,
    show_template_admin,
)
from ..states import State
from .create import BAD_TIME, ONE_EMOJI, check_challenge_quota, join_creator, start_from_scratch
from .join import platform_name
from .tasks import CLEAR_WORDS

logger = logging.getLogger(__name__)

router = FlowRouter()

NAME_HINT = "😬 Keep it between 1-50 characters, please!"


def _scratch(ctx: Context) -> TemplateScratch:
    scratch = ctx.scratch_as(TemplateScratch)
    if scratch is None or scratch.template_id is None:
        raise TemplateNotFound()
    return scratch


# Picking a template


@router.callback("template_list")
def template_list(ctx: Context):
    s = ctx.services
    templates = s.templates.get_all()
    if not templates:
        check_challenge_quota(ctx)
        start_from_scratch(ctx)
        return
    task_counts = {t.id: len(s.templates.get_tasks(t.id)) for t in templates}
    ctx.set_state(State.SELECT_TEMPLATE)
    ctx.send(
        "📋 <b>Select Template</b>\n\nChoose a template for your challenge:",
        keyboards.template_list(templates, task_counts),
        html=True,
    )


@router.callback("template_view")
def template_view(ctx: Context):
    s = ctx.services
    template = s.templates.get_by_id(int_arg(ctx, error=TemplateNotFound))
    lines = [f"📋 <b>Template: {escape(template.name)}</b>", ""]
    if template.description:
        lines += [f"<i>{escape(template.description)}</i>", ""]
    lines += [
        f"<b>Daily Limit:</b> {views.limit_label(template.daily_task_limit)}",
        f"<b>Mode:</b> {views.mode_label(template.hide_future_tasks)}",
        f"<b>Tasks:</b> {len(s.templates.get_tasks(template.id))}",
    ]
    ctx.set_state(State.VIEWING_TEMPLATE)
    ctx.send("\n".join(lines), keyboards.template_details(template.id), html=True)


@router.callback("template_use")
def template_use(ctx: Context):
    check_challenge_quota(ctx)
    template = ctx.services.templates.get_by_id(int_arg(ctx, error=TemplateNotFound))
    ctx.set_flow(State.AWAITING_TEMPLATE_CHALLENGE_NAME, TemplateScratch(template_id=template.id))
    ctx.send(
        "🏆 <i>Creating from template</i>\n\nWhat should we call your challenge?\n\n"
        f"<i>Suggestion: {escape(template.name)}</i>",
        keyboards.cancel_only(),
        html=True,
    )


@router.text(State.AWAITING_TEMPLATE_CHALLENGE_NAME)
def template_challenge_name(ctx: Context):
    try:
        name = validate_challenge_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send(NAME_HINT, keyboards.cancel_only())
        return
    scratch = _scratch(ctx)
    scratch.challenge_name = name
    ctx.set_flow(State.AWAITING_TEMPLATE_CREATOR_NAME, scratch)
    own_name = platform_name(ctx)
    ctx.send(
        "👤 What should we call you?\n\n<i>Tap Skip to use your Telegram name</i>",
        keyboards.skip_name(own_name) if own_name else keyboards.cancel_only(),
        html=True,
    )


def _creator_name(ctx: Context, name: str) -> None:
    try:
        name = validate_display_name(name)
    except InvalidName:
        ctx.send("😬 Keep it between 1-30 characters!", keyboards.cancel_only())
        return
    scratch = _scratch(ctx)
    scratch.display_name = name
    ctx.set_flow(State.AWAITING_TEMPLATE_CREATOR_EMOJI, scratch)
    prompt_emoji(ctx)


@router.text(State.AWAITING_TEMPLATE_CREATOR_NAME)
def template_creator_name(ctx: Context):
    _creator_name(ctx, ctx.event.text.strip())


@router.callback("skip", state=State.AWAITING_TEMPLATE_CREATOR_NAME)
def skip_template_creator_name(ctx: Context):
    _creator_name(ctx, platform_name(ctx))


def _creator_emoji(ctx: Context, emoji: str) -> None:
    if not is_valid_emoji(emoji):
        ctx.send(ONE_EMOJI)
        return
    scratch = _scratch(ctx)
    scratch.emoji = emoji
    ctx.set_flow(State.AWAITING_TEMPLATE_CREATOR_SYNC_TIME, scratch)
    prompt_sync_time(ctx, keyboards.skip_sync_time(creator=True))


@router.text(State.AWAITING_TEMPLATE_CREATOR_EMOJI)
def template_creator_emoji_text(ctx: Context):
    _creator_emoji(ctx, ctx.event.text.strip())


@router.callback("select_emoji", state=State.AWAITING_TEMPLATE_CREATOR_EMOJI)
def template_creator_emoji_button(ctx: Context):
    _creator_emoji(ctx, ctx.event.args[0] if ctx.event.args else "")


@router.text(State.AWAITING_TEMPLATE_CREATOR_SYNC_TIME)
def template_creator_sync_time(ctx: Context):
    try:
        offset = parse_time_input(ctx.event.text)
    except InvalidTimeFormat:
        ctx.send(BAD_TIME, keyboards.skip_sync_time(creator=True))
        return
    finish_from_template(ctx, offset)


@router.callback("skip_creator_sync_time", state=State.AWAITING_TEMPLATE_CREATOR_SYNC_TIME)
def skip_template_creator_sync_time(ctx: Context):
    finish_from_template(ctx, 0)


def finish_from_template(ctx: Context, offset_minutes: int) -> None:
    scratch = _scratch(ctx)
    s = ctx.services
    challenge = s.challenges.create_from_template(scratch.template_id, scratch.challenge_name, ctx.user_id)
    join_creator(ctx, challenge.id, scratch.display_name, scratch.emoji, offset_minutes)

    task_count = s.tasks.count_by_challenge_id(challenge.id)
    ctx.send(
        f'🎉 "<b>{escape(challenge.name)}</b>" is live!\n\n'
        f"Created from template with {task_count} tasks. You're the admin!",
        html=True,
    )
    show_admin_panel(ctx)


# Saving a challenge as a template


@router.callback("save_as_template")
def save_as_template(ctx: Context):
    require_super_admin(ctx)
    challenge = ctx.services.challenges.get_by_id(require_challenge(ctx))
    ctx.set_state(State.AWAITING_TEMPLATE_NAME)
    ctx.send(
        "📦 <b>Save as Template</b>\n\nWhat should the template be called?\n\n"
        f"<i>Suggestion: {escape(challenge.name)}</i>",
        keyboards.cancel_only(),
        html=True,
    )


@router.text(State.AWAITING_TEMPLATE_NAME)
def template_name(ctx: Context):
    require_super_admin(ctx)
    try:
        name = validate_challenge_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send(NAME_HINT, keyboards.cancel_only())
        return
    template = ctx.services.templates.create_from_challenge(require_challenge(ctx), name)
    task_count = len(ctx.services.templates.get_tasks(template.id))
    ctx.reset_keep_challenge()
    ctx.send(f"✅ Template '<b>{escape(template.name)}</b>' created with {task_count} tasks!", html=True)
    show_admin_panel(ctx)


# Super admin template upkeep


@router.callback("sa_templates")
def templates_admin(ctx: Context):
    require_super_admin(ctx)
    ctx.reset_keep_challenge()
    templates = ctx.services.templates.get_all()
    if not templates:
        ctx.send(
            "No templates found. Open a challenge's admin panel to save one as a template.",
            keyboards.back_to_super_admin(),
        )
        return
    ctx.send("📦 <b>Templates</b>\n\nSelect a template to manage:", keyboards.templates_admin(templates), html=True)


@router.callback("sa_template")
def template_admin(ctx: Context):
    require_super_admin(ctx)
    ctx.reset_keep_challenge()
    show_template_admin(ctx, int_arg(ctx, error=TemplateNotFound))


def _start_template_edit(ctx: Context, state: State, prompt: str):
    require_super_admin(ctx)
    template = ctx.services.templates.get_by_id(int_arg(ctx, error=TemplateNotFound))
    ctx.set_flow(state, TemplateScratch(template_id=template.id))
    ctx.send(prompt.format(name=escape(template.name)), keyboards.cancel_only(), html=True)
    return template


def _finish_template_edit(ctx: Context, template_id: int, message: str) -> None:
    ctx.reset_keep_challenge()
    ctx.send(message)
    show_template_admin(ctx, template_id)


@router.callback("sa_tpl_name")
def edit_template_name(ctx: Context):
    _start_template_edit(
        ctx, State.AWAITING_NEW_TEMPLATE_NAME, "✏️ <b>Edit Name</b>\n\nCurrent: {name}\n\nEnter a new name:"
    )


@router.text(State.AWAITING_NEW_TEMPLATE_NAME)
def new_template_name(ctx: Context):
    require_super_admin(ctx)
    scratch = _scratch(ctx)
    try:
        name = validate_challenge_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send(NAME_HINT, keyboards.cancel_only())
        return
    ctx.services.templates.update_name(scratch.template_id, name)
    _finish_template_edit(ctx, scratch.template_id, "✅ Template name updated!")


@router.callback("sa_tpl_desc")
def edit_template_description(ctx: Context):
    _start_template_edit(
        ctx,
        State.AWAITING_NEW_TEMPLATE_DESCRIPTION,
        "📝 <b>Edit Description</b>\n\nEnter a new description:\n\n(send - to clear it)",
    )


@router.text(State.AWAITING_NEW_TEMPLATE_DESCRIPTION)
def new_template_description(ctx: Context):
    require_super_admin(ctx)
    scratch = _scratch(ctx)
    text = ctx.event.text.strip()
    description = "" if text in CLEAR_WORDS else text
    try:
        validate_challenge_description(description)
    except InvalidDescription:
        ctx.send("😬 That's a bit long! Keep it under 500 characters.", keyboards.cancel_only())
        return
    ctx.services.templates.update_description(scratch.template_id, description)
    _finish_template_edit(ctx, scratch.template_id, "✅ Template description updated!")


@router.callback("sa_tpl_limit")
def edit_template_limit(ctx: Context):
    _start_template_edit(
        ctx,
        State.AWAITING_NEW_TEMPLATE_DAILY_LIMIT,
        "🕓 <b>Daily Limit</b> for {name}\n\nPick a number (1-50) or 0 for unlimited",
    )


@router.text(State.AWAITING_NEW_TEMPLATE_DAILY_LIMIT)
def new_template_limit(ctx: Context):
    require_super_admin(ctx)
    scratch = _scratch(ctx)
    limit = parse_daily_limit(ctx.event.text)
    if limit is None:
        ctx.send("🤔 Pick a number between 0 and 50 (0 = no limit):", keyboards.cancel_only())
        return
    ctx.services.templates.update_daily_limit(scratch.template_id, limit)
    _finish_template_edit(ctx, scratch.template_id, "✅ Template daily limit updated!")


@router.callback("sa_tpl_hide")
def toggle_template_hide(ctx: Context):
    require_super_admin(ctx)
    template_id = int_arg(ctx, error=TemplateNotFound)
    hidden = ctx.services.templates.toggle_hide_future_tasks(template_id)
    ctx.send("✅ Sequential mode on! 🔒" if hidden else "✅ All tasks visible now! 👀")
    show_template_admin(ctx, template_id)


@router.callback("sa_tpl_delete")
def delete_template(ctx: Context):
    require_super_admin(ctx)
    s = ctx.services
    template = s.templates.get_by_id(int_arg(ctx, error=TemplateNotFound))
    task_count = len(s.templates.get_tasks(template.id))
    ctx.send(
        "🗑 <b>Delete Template?</b>\n\n"
        f'"<b>{escape(template.name)}</b>" with {task_count} tasks will be deleted.\n\n'
        "<i>This cannot be undone!</i>",
        keyboards.delete_template_confirm(template.id),
        html=True,
    )


@router.callback("sa_tpl_confirm_delete")
def confirm_delete_template(ctx: Context):
    require_super_admin(ctx)
    ctx.services.templates.delete(int_arg(ctx, error=TemplateNotFound))
    ctx.send("✅ Template deleted!")
    templates_admin(ctx)
