"""
Checkvist entity models.

Defines Pydantic models for the entities exchanged with the Checkvist API
(checklists and tasks) together with the small response envelopes the API
uses for tokens and errors.

Checkvist does not use ISO 8601 for timestamps. Dates travel as
``2022/09/01 10:58:52 +1000``, so checklist timestamps go through a custom
codec on both validation and serialization.

Example:
    >>> from cvapi.core.models import Checklist
    >>> checklist = Checklist.model_validate(
    ...     {
    ...         "id": 1,
    ...         "name": "inbox",
    ...         "updated_at": "2022/09/01 10:58:52 +1000",
    ...         "task_count": 3,
    ...     }
    ... )
    >>> checklist.model_dump()["updated_at"]
    '2022/09/01 10:58:52 +1000'
"""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

CHECKVIST_DATE_FORMAT = "%Y/%m/%d %H:%M:%S %z"


def parse_checkvist_date(value: Any) -> datetime:
    """
    Parse a Checkvist timestamp.

    Accepts the wire string format or an already-built timezone-aware
    datetime (so models can also be constructed directly in code).

    Args:
        value: Timestamp string in CHECKVIST_DATE_FORMAT, or a datetime

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the string does not match the format, or the
            datetime carries no UTC offset
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.strptime(value.strip(), CHECKVIST_DATE_FORMAT)
    else:
        raise ValueError(f"Expected a Checkvist date string, got {type(value).__name__}")

    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError("Checkvist dates must carry a UTC offset")
    return parsed


def format_checkvist_date(value: datetime) -> str:
    """Format a datetime the way Checkvist expects it on the wire."""
    return value.strftime(CHECKVIST_DATE_FORMAT)


CheckvistDateTime = Annotated[
    datetime,
    BeforeValidator(parse_checkvist_date),
    PlainSerializer(format_checkvist_date, return_type=str),
]


class Checklist(BaseModel):
    """
    A Checkvist list.

    The server assigns ``id`` and never reuses it. Checkvist returns many
    more fields than are modelled here (archived, tags, options, ...);
    they are ignored on input.
    """

    id: int = Field(..., description="Server-assigned checklist id")
    name: str = Field(..., description="Checklist name")
    updated_at: CheckvistDateTime = Field(..., description="Last update time")
    task_count: int = Field(..., ge=0, description="Number of tasks in the list")

    model_config = ConfigDict(extra="ignore")


class Task(BaseModel):
    """
    A task within a checklist.

    Tasks built locally have ``id=None`` until the server copy returned by
    ``add_task`` assigns one. ``parent_id=None`` means the task sits at the
    top level of its list.
    """

    id: int | None = Field(default=None, description="Server-assigned task id")
    content: str = Field(..., description="Task text")
    position: int = Field(..., description="1-based position among siblings")
    parent_id: int | None = Field(default=None, description="Parent task id")
    checklist_id: int | None = Field(default=None, description="Owning checklist id")

    model_config = ConfigDict(extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        """
        Build the JSON body used to create this task.

        ``id`` is omitted while unassigned; ``checklist_id`` is never sent
        because the list is addressed by the request path.
        """
        exclude = {"checklist_id"}
        if self.id is None:
            exclude.add("id")
        return self.model_dump(mode="json", exclude=exclude)


class ApiMessage(BaseModel):
    """Error envelope: ``{"message": "..."}``."""

    message: str


class TokenResponse(BaseModel):
    """Login and refresh response: ``{"token": "..."}``."""

    token: str = Field(..., min_length=1)


__all__ = [
    "CHECKVIST_DATE_FORMAT",
    "ApiMessage",
    "Checklist",
    "CheckvistDateTime",
    "Task",
    "TokenResponse",
    "format_checkvist_date",
    "parse_checkvist_date",
]
