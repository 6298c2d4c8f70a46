import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from sqlmodel import Session, select

from ..models.participant import Participant

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    JOIN = "join"
    TASK_COMPLETED = "task_completed"
    CHALLENGE_COMPLETED = "challenge_completed"
    USER_CHALLENGE_COMPLETED = "user_challenge_completed"
    LEAVE = "leave"
    CHALLENGE_DELETED = "challenge_deleted"


@dataclass
class Notification:
    type: NotificationType
    challenge_id: str
    actor_id: int
    emoji: str = ""
    name: str = ""
    task_title: str = ""
    challenge_name: str = ""
    # fixed audience, used when the participants rows are already gone
    recipients: Optional[List[int]] = field(default=None)


def render_notification(notification: Notification) -> str:
    kind = notification.type
    if kind == NotificationType.JOIN:
        return f"🎉 {notification.emoji} {notification.name} joined the challenge!"
    if kind == NotificationType.TASK_COMPLETED:
        return f'✅ {notification.emoji} {notification.name} completed "{notification.task_title}"!'
    if kind == NotificationType.CHALLENGE_COMPLETED:
        return f"🏆 {notification.emoji} {notification.name} finished the challenge!"
    if kind == NotificationType.USER_CHALLENGE_COMPLETED:
        return f'🎉🏆 Congratulations! You\'ve completed "{notification.challenge_name}"!'
    if kind == NotificationType.LEAVE:
        return f"👋 {notification.emoji} {notification.name} left the challenge"
    if kind == NotificationType.CHALLENGE_DELETED:
        return (
            f'❌ Challenge "{notification.challenge_name}" has been deleted by admin.\n\n'
            "Use /start to return to main menu."
        )
    raise ValueError(f"unknown notification type {kind!r}")


class NotificationService:
    """Best-effort fan-out of chat notifications to co-participants.

    ``publish`` only enqueues; worker tasks resolve the audience and send. A
    full queue drops the notification with a warning.
    """

    def __init__(self, engine, sender, queue_size: int = 1000, workers: int = 2):
        self.engine = engine
        self.sender = sender
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.worker_count = max(1, workers)
        self._workers: List[asyncio.Task] = []

    def recipients(self, notification: Notification) -> List[int]:
        if notification.type == NotificationType.USER_CHALLENGE_COMPLETED:
            return [notification.actor_id]
        if notification.recipients is not None:
            return [chat_id for chat_id in notification.recipients if chat_id != notification.actor_id]

        with Session(self.engine) as session:
            participants = session.exec(
                select(Participant).where(Participant.challenge_id == notification.challenge_id)
            ).all()
        return [
            p.telegram_id
            for p in participants
            if p.telegram_id != notification.actor_id and p.notify_enabled
        ]

    def publish(self, notification: Notification) -> bool:
        try:
            self.queue.put_nowait(notification)
        except asyncio.QueueFull:
            logger.warning(
                "Notification queue full, dropping %s for challenge %s",
                notification.type.value,
                notification.challenge_id,
            )
            return False
        return True

    async def deliver(self, notification: Notification) -> List[bool]:
        """Send one notification to its whole audience, in order."""
        text = render_notification(notification)
        chat_ids = await asyncio.to_thread(self.recipients, notification)

        results = []
        for chat_id in chat_ids:
            try:
                await self.sender.send_message(chat_id, text)
                results.append(True)
            except Exception as e:
                logger.warning("Error sending %s notification to %s: %s", notification.type.value, chat_id, e)
                results.append(False)
        return results

    async def _work(self) -> None:
        while True:
            notification = await self.queue.get()
            try:
                await self.deliver(notification)
            except Exception:
                logger.exception("Notification %s failed", notification.type.value)
            finally:
                self.queue.task_done()

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [asyncio.create_task(self._work()) for _ in range(self.worker_count)]
        logger.info("Notifier started with %d worker(s)", self.worker_count)

    async def drain(self) -> None:
        await self.queue.join()

    async def stop(self) -> None:
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Notifier stopped")
