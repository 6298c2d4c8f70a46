import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..services.challenge import ChallengeService
from ..services.completion import CompletionService
from ..services.notification import Notification
from ..services.participant import ParticipantService
from ..services.state import StateService
from ..services.super_admin import SuperAdminService
from ..services.task import TaskService
from ..services.template import TemplateService
from .events import Event
from .keyboards import Keyboard
from .scratch import ViewScratch, dump_scratch, load_scratch
from .states import State

logger = logging.getLogger(__name__)


@dataclass
class Services:
    challenges: ChallengeService
    tasks: TaskService
    participants: ParticipantService
    completions: CompletionService
    states: StateService
    super_admins: SuperAdminService
    templates: TemplateService
    bot_username: str = ""


@dataclass
class OutgoingMessage:
    chat_id: int
    text: str = ""
    keyboard: Optional[Keyboard] = None
    html: bool = False
    photo: str = ""


@dataclass
class Context:
    """Everything one turn of a conversation can see and produce.

    State changes are written through to the state store immediately. Outbound
    messages and notifications are only buffered; the controller delivers them
    once the handler has returned.
    """

    services: Services
    event: Event
    state: State = State.IDLE
    scratch: object = None
    challenge_id: str = ""
    outbox: List[OutgoingMessage] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    _is_super_admin: Optional[bool] = None

    @classmethod
    def load(cls, services: Services, event: Event) -> "Context":
        user_state = services.states.get(event.user_id)
        return cls(
            services=services,
            event=event,
            state=State.parse(user_state.state),
            scratch=load_scratch(user_state.temp_data),
            challenge_id=user_state.current_challenge or "",
        )

    @property
    def user_id(self) -> int:
        return self.event.user_id

    @property
    def is_super_admin(self) -> bool:
        if self._is_super_admin is None:
            self._is_super_admin = self.services.super_admins.is_super_admin(self.user_id)
        return self._is_super_admin

    @property
    def observer_mode(self) -> bool:
        return isinstance(self.scratch, ViewScratch) and self.scratch.observer_mode

    def scratch_as(self, kind):
        return self.scratch if isinstance(self.scratch, kind) else None

    # Outbound

    def send(self, text: str, keyboard: Optional[Keyboard] = None, html: bool = False) -> None:
        self.outbox.append(OutgoingMessage(self.user_id, text=text, keyboard=keyboard, html=html))

    def send_photo(self, media_id: str, caption: str = "", keyboard: Optional[Keyboard] = None) -> None:
        self.outbox.append(OutgoingMessage(self.user_id, text=caption, keyboard=keyboard, photo=media_id))

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    # State

    def set_state(self, state: State) -> None:
        self.services.states.set_state(self.user_id, state.value)
        self.state = state

    def set_flow(self, state: State, scratch) -> None:
        self.services.states.set_state_with_data(self.user_id, state.value, dump_scratch(scratch))
        self.state = state
        self.scratch = scratch

    def reset(self) -> None:
        self.services.states.reset(self.user_id)
        self.state = State.IDLE
        self.scratch = None
        self.challenge_id = ""

    def reset_keep_challenge(self) -> None:
        """Back to idle on the same challenge. A super admin stays in observer mode."""
        if self.observer_mode:
            self.set_flow(State.IDLE, ViewScratch(observer_mode=True))
            return
        self.services.states.reset_keep_challenge(self.user_id)
        self.state = State.IDLE
        self.scratch = None

    def enter_challenge(self, challenge_id: str) -> None:
        self.services.states.set_current_challenge(self.user_id, challenge_id)
        self.challenge_id = challenge_id

    def leave_observer_mode(self) -> None:
        if self.observer_mode:
            self.services.states.reset_keep_challenge(self.user_id)
            self.scratch = None
