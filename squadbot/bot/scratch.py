"""Per-flow scratch records persisted with the user's state between turns.

Each flow owns one record type; the ``kind`` tag picks the type when the JSON
comes back out of the database.
"""
import logging
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class CreateScratch(BaseModel):
    kind: Literal["create"] = "create"
    challenge_name: str = ""
    challenge_description: str = ""
    display_name: str = ""
    emoji: str = ""
    daily_limit: int = 0
    hide_future_tasks: bool = False


class JoinScratch(BaseModel):
    kind: Literal["join"] = "join"
    challenge_id: str
    challenge_name: str = ""
    display_name: str = ""
    emoji: str = ""


class TaskScratch(BaseModel):
    kind: Literal["task"] = "task"
    task_id: Optional[int] = None
    task_title: str = ""
    image_file_id: str = ""


class TemplateScratch(BaseModel):
    kind: Literal["template"] = "template"
    template_id: Optional[int] = None
    task_id: Optional[int] = None
    task_title: str = ""
    image_file_id: str = ""
    challenge_name: str = ""
    display_name: str = ""
    emoji: str = ""


class ViewScratch(BaseModel):
    kind: Literal["view"] = "view"
    observer_mode: bool = False
    super_admin_mode: bool = False


Scratch = Annotated[
    Union[CreateScratch, JoinScratch, TaskScratch, TemplateScratch, ViewScratch],
    Field(discriminator="kind"),
]

_adapter = TypeAdapter(Scratch)


def load_scratch(raw: Optional[str]):
    if not raw:
        return None
    try:
        return _adapter.validate_json(raw)
    except ValidationError as e:
        logger.warning("Discarding unreadable scratch data: %s", e)
        return None


def dump_scratch(scratch) -> str:
    if scratch is None:
        return ""
    return scratch.model_dump_json()
