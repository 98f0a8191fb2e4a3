from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HandlerType(str, Enum):
    PREDETERMINED = "predetermined"
    DELEGATE = "delegate"


LEGACY_HANDLER_TYPES = {"eliza": HandlerType.DELEGATE}

# (job, service, memo_to_sign) -> None
JobHandler = Callable[..., None]


class JobTypeConfig(BaseModel):
    """Routing configuration for one job type.

    ``handler`` is called as ``handler(job, service, memo_to_sign)`` for
    predetermined job types and ignored for delegated ones.
    """

    handler_type: Union[HandlerType, str]
    handler: Optional[JobHandler] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("handler_type", mode="before")
    @classmethod
    def normalize_handler_type(cls, v: Any) -> Union[HandlerType, str]:
        # unknown types are kept as given and never routed
        if isinstance(v, HandlerType):
            return v
        if not isinstance(v, str):
            raise ValueError(f"handler_type must be a string, got {type(v).__name__}")
        if v in LEGACY_HANDLER_TYPES:
            return LEGACY_HANDLER_TYPES[v]
        try:
            return HandlerType(v)
        except ValueError:
            return v


class DeliverableMetadata(BaseModel):
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    tokens_used: Optional[int] = None
    model: Optional[str] = None


class Deliverable(BaseModel):
    type: Literal["text", "object"]
    value: Union[str, Dict[str, Any]]
    metadata: Optional[DeliverableMetadata] = None

    def to_payload(self) -> Dict[str, Any]:
        """Plain dict accepted by ``ACPJob.deliver``."""
        return self.model_dump(mode="json", exclude_none=True)
