from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


class EventKind(str, Enum):
    START = "start"
    TEXT = "text"
    PHOTO = "photo"
    CALLBACK = "callback"


@dataclass
class Sender:
    id: int
    username: str = ""
    first_name: str = ""

    @property
    def display_name(self) -> str:
        return self.username or self.first_name


@dataclass
class Event:
    kind: EventKind
    sender: Sender
    text: str = ""
    payload: str = ""
    media_id: str = ""
    data: str = ""
    callback_id: str = ""
    action: str = field(init=False, default="")
    args: List[str] = field(init=False, default_factory=list)

    def __post_init__(self):
        if self.kind == EventKind.CALLBACK:
            self.action, self.args = parse_callback_data(self.data)

    @property
    def user_id(self) -> int:
        return self.sender.id


def parse_callback_data(data: str) -> Tuple[str, List[str]]:
    """Split callback data of the form "\\faction|arg1|arg2" into action and args."""
    parts = (data or "").lstrip("\f").split("|")
    return parts[0].strip(), parts[1:]


def start(sender: Sender, payload: str = "") -> Event:
    return Event(EventKind.START, sender, payload=payload.strip())


def text(sender: Sender, value: str) -> Event:
    return Event(EventKind.TEXT, sender, text=value)


def photo(sender: Sender, media_id: str) -> Event:
    return Event(EventKind.PHOTO, sender, media_id=media_id)


def callback(sender: Sender, data: str, callback_id: str = "") -> Event:
    return Event(EventKind.CALLBACK, sender, data=data, callback_id=callback_id)
