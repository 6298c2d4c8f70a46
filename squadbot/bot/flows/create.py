import logging
from html import escape

from ...services.challenge import validate_challenge_description, validate_challenge_name
from ...services.errors import InvalidDescription, InvalidName, MaxChallengesReached, ServiceError
from ...services.limits import MAX_CHALLENGES_PER_USER
from ...services.participant import validate_display_name
from ...utils.emoji import is_valid_emoji
from ...utils.timesync import InvalidTimeFormat, parse_time_input
from .. import keyboards
from ..context import Context
from ..router import FlowRouter
from ..scratch import CreateScratch
from ..screens import parse_daily_limit, prompt_emoji, prompt_sync_time, show_admin_panel
from ..states import State

logger = logging.getLogger(__name__)

router = FlowRouter()

NAME_PROMPT = "What do you want to call it?"
LIMIT_PROMPT = (
    "🕓 Daily Task Limit\n\n"
    "How many tasks can people complete per day?\n\n"
    "Enter a number (1-50) or tap Skip for unlimited"
)
HIDE_FUTURE_PROMPT = (
    "👁 Hide Future Tasks?\n\n"
    "Want to keep upcoming tasks a mystery?\n\n"
    "When enabled:\n"
    "• People only see their current task and completed ones\n"
    "• Future tasks are hidden until they get there\n"
    "• Everyone sees based on their own progress"
)
BAD_TIME = "🤔 That doesn't look right. Try HH:MM format (e.g., 14:30):"
ONE_EMOJI = "🎨 Just one emoji please!"


def check_challenge_quota(ctx: Context) -> None:
    if len(ctx.services.challenges.get_by_user_id(ctx.user_id)) >= MAX_CHALLENGES_PER_USER:
        raise MaxChallengesReached()


def _scratch(ctx: Context) -> CreateScratch:
    return ctx.scratch_as(CreateScratch) or CreateScratch()


def start_from_scratch(ctx: Context) -> None:
    ctx.set_flow(State.AWAITING_CHALLENGE_NAME, CreateScratch())
    ctx.send(f"🏆 <i>Let's create a challenge!</i>\n\n{NAME_PROMPT}", keyboards.cancel_only(), html=True)


@router.callback("create_challenge")
def create_challenge(ctx: Context):
    check_challenge_quota(ctx)
    if ctx.services.templates.count() > 0:
        ctx.set_state(State.SELECT_TEMPLATE_OR_SCRATCH)
        ctx.send(
            "🏆 <i>Let's create a challenge!</i>\n\nHow would you like to create it?",
            keyboards.template_or_scratch(),
            html=True,
        )
        return
    start_from_scratch(ctx)


@router.callback("from_scratch")
def from_scratch(ctx: Context):
    check_challenge_quota(ctx)
    start_from_scratch(ctx)


@router.text(State.AWAITING_CHALLENGE_NAME)
def challenge_name(ctx: Context):
    try:
        name = validate_challenge_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send("😬 Keep it between 1-50 characters, please!", keyboards.cancel_only())
        return
    ctx.set_flow(State.AWAITING_CHALLENGE_DESCRIPTION, CreateScratch(challenge_name=name))
    ctx.send("📝 Want to add a description?\n\n(or tap Skip)", keyboards.skip_cancel())


def _ask_creator_name(ctx: Context, description: str) -> None:
    scratch = _scratch(ctx)
    scratch.challenge_description = description
    ctx.set_flow(State.AWAITING_CREATOR_NAME, scratch)
    ctx.send("👤 What should we call you?", keyboards.cancel_only())


@router.text(State.AWAITING_CHALLENGE_DESCRIPTION)
def challenge_description(ctx: Context):
    try:
        description = validate_challenge_description(ctx.event.text.strip())
    except InvalidDescription:
        ctx.send("😬 That's a bit long! Keep it under 500 characters.", keyboards.skip_cancel())
        return
    _ask_creator_name(ctx, description)


@router.callback("skip", state=State.AWAITING_CHALLENGE_DESCRIPTION)
def skip_description(ctx: Context):
    _ask_creator_name(ctx, "")


@router.text(State.AWAITING_CREATOR_NAME)
def creator_name(ctx: Context):
    try:
        name = validate_display_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send("😬 Keep it between 1-30 characters!", keyboards.cancel_only())
        return
    scratch = _scratch(ctx)
    scratch.display_name = name
    ctx.set_flow(State.AWAITING_CREATOR_EMOJI, scratch)
    prompt_emoji(ctx)


def _creator_emoji(ctx: Context, emoji: str) -> None:
    if not is_valid_emoji(emoji):
        ctx.send(ONE_EMOJI)
        return
    scratch = _scratch(ctx)
    scratch.emoji = emoji
    ctx.set_flow(State.AWAITING_DAILY_LIMIT, scratch)
    ctx.send(LIMIT_PROMPT, keyboards.daily_limit_prompt())


@router.text(State.AWAITING_CREATOR_EMOJI)
def creator_emoji_text(ctx: Context):
    _creator_emoji(ctx, ctx.event.text.strip())


@router.callback("select_emoji", state=State.AWAITING_CREATOR_EMOJI)
def creator_emoji_button(ctx: Context):
    _creator_emoji(ctx, ctx.event.args[0] if ctx.event.args else "")


def _ask_hide_future(ctx: Context, limit: int) -> None:
    scratch = _scratch(ctx)
    scratch.daily_limit = limit
    ctx.set_flow(State.AWAITING_HIDE_FUTURE_TASKS, scratch)
    ctx.send(HIDE_FUTURE_PROMPT, keyboards.hide_future_choice())


@router.text(State.AWAITING_DAILY_LIMIT)
def daily_limit(ctx: Context):
    limit = parse_daily_limit(ctx.event.text)
    if limit is None:
        ctx.send("🔢 Pick a number between 1 and 50 (or 0 for unlimited):", keyboards.daily_limit_prompt())
        return
    _ask_hide_future(ctx, limit)


@router.callback("skip_daily_limit", state=State.AWAITING_DAILY_LIMIT)
def skip_daily_limit(ctx: Context):
    _ask_hide_future(ctx, 0)


@router.callback("hide_future_yes", "hide_future_no", state=State.AWAITING_HIDE_FUTURE_TASKS)
def hide_future(ctx: Context):
    scratch = _scratch(ctx)
    scratch.hide_future_tasks = ctx.event.action == "hide_future_yes"
    ctx.set_flow(State.AWAITING_CREATOR_SYNC_TIME, scratch)
    prompt_sync_time(ctx, keyboards.skip_sync_time(creator=True))


@router.text(State.AWAITING_HIDE_FUTURE_TASKS)
def hide_future_text(ctx: Context):
    # only the buttons answer this question
    ctx.send(HIDE_FUTURE_PROMPT, keyboards.hide_future_choice())


@router.text(State.AWAITING_CREATOR_SYNC_TIME)
def creator_sync_time(ctx: Context):
    try:
        offset = parse_time_input(ctx.event.text)
    except InvalidTimeFormat:
        ctx.send(BAD_TIME, keyboards.skip_sync_time(creator=True))
        return
    finish_creation(ctx, offset)


@router.callback("skip_creator_sync_time", state=State.AWAITING_CREATOR_SYNC_TIME)
def skip_creator_sync_time(ctx: Context):
    finish_creation(ctx, 0)


def finish_creation(ctx: Context, offset_minutes: int) -> None:
    scratch = _scratch(ctx)
    s = ctx.services
    challenge = s.challenges.create(
        scratch.challenge_name,
        scratch.challenge_description,
        ctx.user_id,
        daily_task_limit=scratch.daily_limit,
        hide_future_tasks=scratch.hide_future_tasks,
    )
    join_creator(ctx, challenge.id, scratch.display_name, scratch.emoji, offset_minutes)

    ctx.send(
        f'🎉 "{escape(challenge.name)}" <b>is live!</b>\n\nYou\'re the admin, now let\'s add some tasks!',
        html=True,
    )
    show_admin_panel(ctx)


def join_creator(ctx: Context, challenge_id: str, display_name: str, emoji: str, offset_minutes: int) -> None:
    """Make the creator the first participant, or take the new challenge back down."""
    s = ctx.services
    try:
        s.participants.join(challenge_id, ctx.user_id, display_name, emoji, offset_minutes)
    except ServiceError:
        logger.warning("Creator %s could not join new challenge %s, removing it", ctx.user_id, challenge_id)
        s.challenges.delete(challenge_id, ctx.user_id)
        ctx.reset()
        raise
    ctx.enter_challenge(challenge_id)
    ctx.reset_keep_challenge()
