import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..services import errors
from ..services.notification import NotificationService
from .context import Context, OutgoingMessage, Services
from .events import Event, EventKind
from .flows.join import deep_link
from .handlers import build_router
from .router import FlowRouter
from .screens import GENERIC_ERROR, NO_PERMISSION, show_start_menu
from .states import ADMIN_ACTIONS, STATE_DEPENDENT_ACTIONS, State

logger = logging.getLogger(__name__)

# Replies for errors that carry their own explanation; checked in order
ERROR_REPLIES = (
    (errors.ChallengeNotFound, "🤔 Hmm, can't find that challenge."),
    (errors.TaskNotFound, "🤔 Can't find that task."),
    (errors.ParticipantNotFound, "😕 You're not in this challenge."),
    (errors.TemplateNotFound, "Template not found."),
    (errors.SuperAdminNotFound, "That user is not a super admin."),
    (errors.MaxChallengesReached, "😬 Whoa, you've hit the limit of 10 challenges!"),
    (errors.MaxTasksReached, "❌ Challenge has reached maximum of 50 tasks."),
    (errors.ChallengeFull, "😬 Bummer! This challenge is full (50/50)."),
    (errors.AlreadyMember, "👋 Hey, you're already in this one!"),
    (errors.EmojiTaken, "😬 Someone already has that one! Pick another:"),
    (errors.AlreadySuperAdmin, "That user is already a super admin."),
    (errors.TemplateNameExists, "😬 A template with that name already exists."),
    (errors.CannotRemoveSelf, "You cannot remove yourself as super admin."),
    (errors.NotSuperAdmin, "You don't have super admin privileges."),
    (errors.AuthorizationError, NO_PERMISSION),
    (errors.ValidationError, "🤔 That doesn't look right. Try again."),
)


def error_reply(error: errors.ServiceError) -> str:
    for kind, reply in ERROR_REPLIES:
        if isinstance(error, kind):
            return reply
    return GENERIC_ERROR


@dataclass
class _UserLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0  # tasks holding or waiting on the lock


class Controller:
    """Routes inbound events to flow handlers, one event per user at a time.

    Handlers are synchronous and run in a worker thread. Whatever they queue on
    the context is sent afterwards, replies first and notifications last, so a
    notification never goes out before the write that caused it has committed.
    """

    def __init__(
        self,
        services: Services,
        transport,
        notifier: Optional[NotificationService] = None,
        router: Optional[FlowRouter] = None,
    ):
        self.services = services
        self.transport = transport
        self.notifier = notifier
        self.router = router or build_router()
        self._locks: Dict[int, _UserLock] = {}

    async def handle(self, event: Event) -> Context:
        slot = self._locks.get(event.user_id)
        if slot is None:
            slot = self._locks[event.user_id] = _UserLock()
        slot.holders += 1
        try:
            async with slot.lock:
                if event.kind == EventKind.CALLBACK:
                    await self._answer(event)
                ctx = await asyncio.to_thread(self.process, event)
                await self.flush(ctx)
                return ctx
        finally:
            slot.holders -= 1
            if slot.holders == 0:
                del self._locks[event.user_id]

    async def _answer(self, event: Event) -> None:
        if not event.callback_id:
            return
        try:
            await self.transport.answer_callback(event.callback_id)
        except Exception as e:
            logger.warning("Could not answer callback %s: %s", event.callback_id, e)

    def process(self, event: Event) -> Context:
        ctx = None
        try:
            ctx = Context.load(self.services, event)
            logger.debug(
                "Event %s from user %s in state %s action=%r",
                event.kind.value,
                event.user_id,
                ctx.state.value,
                event.action,
            )
            self.dispatch(ctx)
        except errors.ServiceError as e:
            if ctx is None:
                raise
            logger.info("User %s got %s: %s", event.user_id, type(e).__name__, e)
            if isinstance(e, errors.QuotaExceededError):
                ctx.reset_keep_challenge()
            ctx.send(error_reply(e))
        except SQLAlchemyError:
            logger.exception("Database error handling %s from user %s", event.kind.value, event.user_id)
            ctx = self._fallback(ctx, event)
        except Exception:
            logger.exception("Unexpected error handling %s from user %s", event.kind.value, event.user_id)
            ctx = self._fallback(ctx, event)
        return ctx

    def _fallback(self, ctx: Optional[Context], event: Event) -> Context:
        if ctx is None:
            ctx = Context(self.services, event)
        ctx.send(GENERIC_ERROR)
        return ctx

    def dispatch(self, ctx: Context) -> None:
        event = ctx.event
        if event.kind == EventKind.START:
            ctx.reset()
            if event.payload:
                deep_link(ctx, event.payload)
            else:
                show_start_menu(ctx)
            return

        if event.kind == EventKind.CALLBACK:
            self._dispatch_callback(ctx)
            return

        if event.kind == EventKind.TEXT:
            handler = self.router.resolve_text(ctx.state)
        else:
            handler = self.router.resolve_photo(ctx.state)
        if handler is None:
            logger.debug("No %s handler in state %s", event.kind.value, ctx.state.value)
            return
        handler(ctx)

    def _dispatch_callback(self, ctx: Context) -> None:
        action = ctx.event.action
        if action not in STATE_DEPENDENT_ACTIONS and ctx.state != State.IDLE:
            ctx.reset_keep_challenge()

        if action in ADMIN_ACTIONS and not self._can_administer(ctx):
            ctx.send(NO_PERMISSION)
            return

        handler = self.router.resolve_callback(ctx.state, action)
        if handler is None:
            logger.warning("Unknown callback action %r from user %s", action, ctx.user_id)
            return
        handler(ctx)

    def _can_administer(self, ctx: Context) -> bool:
        if not ctx.challenge_id:
            return False
        return self.services.challenges.is_admin(ctx.challenge_id, ctx.user_id) or ctx.is_super_admin

    async def flush(self, ctx: Context) -> None:
        for message in ctx.outbox:
            await self._send(message)
        if self.notifier is not None:
            for notification in ctx.notifications:
                self.notifier.publish(notification)

    async def _send(self, message: OutgoingMessage) -> None:
        try:
            if message.photo:
                await self.transport.send_photo(
                    message.chat_id, message.photo, caption=message.text, keyboard=message.keyboard
                )
            else:
                await self.transport.send_message(
                    message.chat_id, message.text, keyboard=message.keyboard, html=message.html
                )
        except Exception as e:
            logger.warning("Failed to send message to %s: %s", message.chat_id, e)
