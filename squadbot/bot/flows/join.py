import logging
from html import escape

from ...models.participant import MAX_DISPLAY_NAME_LENGTH
from ...services.errors import AlreadyMember, ChallengeFull, ChallengeNotFound, EmojiTaken, InvalidName
from ...services.limits import MAX_PARTICIPANTS_PER_CHALLENGE
from ...services.notification import Notification, NotificationType
from ...services.participant import validate_display_name
from ...utils.emoji import is_valid_emoji
from ...utils.ids import is_valid_id
from ...utils.timesync import InvalidTimeFormat, parse_time_input
from .. import keyboards, views
from ..context import Context
from ..router import FlowRouter
from ..scratch import JoinScratch
from ..screens import prompt_emoji, prompt_sync_time, show_main_view
from ..states import State
from .create import BAD_TIME, ONE_EMOJI
from .settings import apply_time_offset

logger = logging.getLogger(__name__)

router = FlowRouter()

NOT_FOUND = "🤔 Hmm, can't find that one. Double-check the ID?"
FULL = f"😬 Bummer! This challenge is full ({MAX_PARTICIPANTS_PER_CHALLENGE}/{MAX_PARTICIPANTS_PER_CHALLENGE})."
EMOJI_TAKEN = "😬 Someone already has that one! Pick another:"


def platform_name(ctx: Context) -> str:
    return ctx.event.sender.display_name[:MAX_DISPLAY_NAME_LENGTH]


def _scratch(ctx: Context) -> JoinScratch:
    scratch = ctx.scratch_as(JoinScratch)
    if scratch is None:
        raise ChallengeNotFound()
    return scratch


def _ask_name(ctx: Context, challenge) -> None:
    s = ctx.services
    ctx.set_flow(
        State.AWAITING_PARTICIPANT_NAME,
        JoinScratch(challenge_id=challenge.id, challenge_name=challenge.name),
    )
    card = views.render_challenge_card(
        challenge,
        s.tasks.count_by_challenge_id(challenge.id),
        s.participants.count_by_challenge_id(challenge.id),
    )
    name = platform_name(ctx)
    ctx.send(card, keyboards.skip_name(name) if name else keyboards.cancel_only(), html=True)


@router.callback("join_challenge")
def join_challenge(ctx: Context):
    ctx.set_state(State.AWAITING_CHALLENGE_ID)
    ctx.send("🔗 <i>Got an invite?</i>\n\nPaste the Challenge ID below", keyboards.cancel_only(), html=True)


@router.text(State.AWAITING_CHALLENGE_ID)
def challenge_id_entered(ctx: Context):
    challenge_id = ctx.event.text.strip()
    s = ctx.services
    if not is_valid_id(challenge_id):
        ctx.send(NOT_FOUND, keyboards.cancel_only())
        return
    try:
        challenge = s.challenges.get_by_id(challenge_id)
        s.challenges.can_join(challenge_id, ctx.user_id)
    except ChallengeNotFound:
        ctx.send(NOT_FOUND, keyboards.cancel_only())
        return
    except ChallengeFull:
        ctx.reset()
        ctx.send(FULL)
        return
    except AlreadyMember:
        ctx.reset()
        ctx.send("👋 Hey, you're already in this one!")
        ctx.enter_challenge(challenge_id)
        show_main_view(ctx, challenge_id)
        return
    _ask_name(ctx, challenge)


def deep_link(ctx: Context, challenge_id: str) -> None:
    """/start with a challenge id: open it for members, start joining for everyone else."""
    s = ctx.services
    try:
        challenge = s.challenges.get_by_id(challenge_id)
    except ChallengeNotFound:
        ctx.send("❌ Challenge not found. Check the ID and try again.")
        return

    if s.participants.get_by_challenge_and_user(challenge_id, ctx.user_id) is not None:
        ctx.enter_challenge(challenge_id)
        show_main_view(ctx, challenge_id)
        return
    try:
        s.challenges.can_join(challenge_id, ctx.user_id)
    except ChallengeFull:
        ctx.send(FULL)
        return
    except AlreadyMember:
        ctx.enter_challenge(challenge_id)
        show_main_view(ctx, challenge_id)
        return
    _ask_name(ctx, challenge)


def _ask_emoji(ctx: Context, name: str) -> None:
    scratch = _scratch(ctx)
    scratch.display_name = name
    ctx.set_flow(State.AWAITING_PARTICIPANT_EMOJI, scratch)
    prompt_emoji(ctx, ctx.services.participants.get_used_emojis(scratch.challenge_id))


@router.text(State.AWAITING_PARTICIPANT_NAME)
def participant_name(ctx: Context):
    try:
        name = validate_display_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send("😬 Keep it between 1-30 characters!", keyboards.cancel_only())
        return
    _ask_emoji(ctx, name)


@router.callback("skip", state=State.AWAITING_PARTICIPANT_NAME)
def skip_participant_name(ctx: Context):
    name = platform_name(ctx)
    if not name:
        ctx.send("👤 What should we call you?", keyboards.cancel_only())
        return
    _ask_emoji(ctx, name)


def _participant_emoji(ctx: Context, emoji: str) -> None:
    if not is_valid_emoji(emoji):
        ctx.send(ONE_EMOJI)
        return
    scratch = _scratch(ctx)
    used = ctx.services.participants.get_used_emojis(scratch.challenge_id)
    if emoji in used:
        ctx.send(EMOJI_TAKEN, keyboards.emoji_selector(used))
        return
    scratch.emoji = emoji
    ctx.set_flow(State.AWAITING_SYNC_TIME, scratch)
    prompt_sync_time(ctx, keyboards.skip_sync_time(creator=False))


@router.text(State.AWAITING_PARTICIPANT_EMOJI)
def participant_emoji_text(ctx: Context):
    _participant_emoji(ctx, ctx.event.text.strip())


@router.callback("select_emoji", state=State.AWAITING_PARTICIPANT_EMOJI)
def participant_emoji_button(ctx: Context):
    _participant_emoji(ctx, ctx.event.args[0] if ctx.event.args else "")


@router.text(State.AWAITING_SYNC_TIME)
def sync_time(ctx: Context):
    try:
        offset = parse_time_input(ctx.event.text)
    except InvalidTimeFormat:
        ctx.send(BAD_TIME, keyboards.skip_sync_time(creator=False))
        return
    if isinstance(ctx.scratch, JoinScratch):
        finish_join(ctx, offset)
    else:
        apply_time_offset(ctx, offset)


@router.callback("skip_sync_time", state=State.AWAITING_SYNC_TIME)
def skip_sync_time(ctx: Context):
    if isinstance(ctx.scratch, JoinScratch):
        finish_join(ctx, 0)
    else:
        apply_time_offset(ctx, None)


def finish_join(ctx: Context, offset_minutes: int) -> None:
    scratch = _scratch(ctx)
    s = ctx.services
    try:
        participant = s.participants.join(
            scratch.challenge_id, ctx.user_id, scratch.display_name, scratch.emoji, offset_minutes
        )
    except EmojiTaken:
        ctx.set_flow(State.AWAITING_PARTICIPANT_EMOJI, scratch)
        ctx.send(EMOJI_TAKEN, keyboards.emoji_selector(s.participants.get_used_emojis(scratch.challenge_id)))
        return
    except (ChallengeFull, AlreadyMember, ChallengeNotFound):
        ctx.reset()
        raise

    ctx.enter_challenge(scratch.challenge_id)
    ctx.reset_keep_challenge()
    ctx.notify(
        Notification(
            NotificationType.JOIN,
            scratch.challenge_id,
            ctx.user_id,
            emoji=participant.emoji,
            name=participant.display_name,
        )
    )
    ctx.send(
        f'🎯 <i>You\'re in!</i>\n\nWelcome to "{escape(scratch.challenge_name)}", '
        f"<b>{escape(participant.display_name)}</b>! Let's crush it 💪",
        keyboards.join_welcome(scratch.challenge_id),
        html=True,
    )
