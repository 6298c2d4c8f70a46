from datetime import timedelta
from typing import Optional

from ...services.errors import EmojiTaken, InvalidName
from ...services.notification import Notification, NotificationType
from ...services.participant import validate_display_name
from ...utils.emoji import is_valid_emoji
from ...utils.timesync import utcnow
from .. import keyboards, views
from ..context import Context
from ..router import FlowRouter
from ..screens import prompt_sync_time, require_challenge, require_participant, show_settings, show_start_menu
from ..states import State

router = FlowRouter()


@router.callback("settings", "cancel_leave")
def settings(ctx: Context):
    show_settings(ctx)


@router.callback("toggle_notifications")
def toggle_notifications(ctx: Context):
    participant = require_participant(ctx)
    if ctx.services.participants.toggle_notifications(participant.id):
        ctx.send("🔔 Notifications enabled")
    else:
        ctx.send("🔕 Notifications disabled")
    show_settings(ctx)


@router.callback("change_name")
def change_name(ctx: Context):
    require_participant(ctx)
    ctx.set_state(State.AWAITING_NEW_NAME)
    ctx.send("Enter new display name:", keyboards.cancel_only())


@router.text(State.AWAITING_NEW_NAME)
def new_name(ctx: Context):
    try:
        name = validate_display_name(ctx.event.text.strip())
    except InvalidName:
        ctx.send("❌ Display name must be 1-30 characters. Try again:", keyboards.cancel_only())
        return
    participant = require_participant(ctx)
    ctx.services.participants.update_name(participant.id, name)
    ctx.reset_keep_challenge()
    ctx.send(f'✅ Display name changed to "{name}"')
    show_settings(ctx)


@router.callback("change_emoji")
def change_emoji(ctx: Context):
    require_participant(ctx)
    used = ctx.services.participants.get_used_emojis(ctx.challenge_id)
    ctx.set_state(State.AWAITING_NEW_EMOJI)
    ctx.send("Choose your new emoji or send your own:", keyboards.emoji_selector(used))


def _new_emoji(ctx: Context, emoji: str) -> None:
    if not is_valid_emoji(emoji):
        ctx.send("🎨 Just one emoji please!")
        return
    participant = require_participant(ctx)
    try:
        ctx.services.participants.update_emoji(participant.id, emoji, ctx.challenge_id)
    except EmojiTaken:
        used = ctx.services.participants.get_used_emojis(ctx.challenge_id)
        ctx.send("❌ This emoji is already taken. Choose another:", keyboards.emoji_selector(used))
        return
    ctx.reset_keep_challenge()
    ctx.send(f"✅ Emoji changed to {emoji}")
    show_settings(ctx)


@router.text(State.AWAITING_NEW_EMOJI)
def new_emoji_text(ctx: Context):
    _new_emoji(ctx, ctx.event.text.strip())


@router.callback("select_emoji", state=State.AWAITING_NEW_EMOJI)
def new_emoji_button(ctx: Context):
    _new_emoji(ctx, ctx.event.args[0] if ctx.event.args else "")


@router.callback("sync_time")
def sync_time(ctx: Context):
    participant = require_participant(ctx)
    ctx.set_state(State.AWAITING_SYNC_TIME)
    local = utcnow() + timedelta(minutes=participant.time_offset_minutes)
    ctx.send(f"🕐 Your clock currently reads {local:%H:%M} by our records.")
    prompt_sync_time(ctx, keyboards.skip_sync_time(creator=False))


def apply_time_offset(ctx: Context, offset_minutes: Optional[int]) -> None:
    """Finish the settings clock sync; None keeps the stored offset."""
    participant = require_participant(ctx)
    ctx.reset_keep_challenge()
    if offset_minutes is None:
        ctx.send("👌 Kept your current time settings.")
    else:
        ctx.services.participants.update_time_offset(participant.id, offset_minutes)
        ctx.send("✅ Clock synced!")
    show_settings(ctx)


@router.callback("share_id")
def share_id(ctx: Context):
    challenge_id = require_challenge(ctx)
    bot_username = ctx.services.bot_username
    ctx.send(views.render_share(challenge_id, bot_username), keyboards.share_id(challenge_id, bot_username), html=True)


@router.callback("leave_challenge")
def leave_challenge(ctx: Context):
    require_participant(ctx)
    challenge = ctx.services.challenges.get_by_id(ctx.challenge_id)
    if challenge.creator_id == ctx.user_id:
        ctx.send("👑 You're the admin here. Delete the challenge from the admin panel instead.")
        return
    ctx.send(
        f'⚠️ Are you sure you want to leave "{challenge.name}"?\n\nYour progress will be deleted.',
        keyboards.leave_confirm(),
    )


@router.callback("confirm_leave")
def confirm_leave(ctx: Context):
    participant = require_participant(ctx)
    challenge_id = ctx.challenge_id
    ctx.services.participants.leave(participant.id)
    ctx.notify(
        Notification(
            NotificationType.LEAVE,
            challenge_id,
            ctx.user_id,
            emoji=participant.emoji,
            name=participant.display_name,
        )
    )
    ctx.reset()
    ctx.send("✅ You left the challenge.")
    show_start_menu(ctx)
