"""Contract between the plugin and the host agent runtime.

The runtime owns the inference pipeline. The plugin only needs to read
settings, open a conversation for a job, hand it one message and receive one
reply through a callback, and store memories.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class ChannelType(str, Enum):
    DM = "DM"


class EventType(str, Enum):
    MESSAGE_RECEIVED = "MESSAGE_RECEIVED"


class Content(BaseModel):
    text: Optional[str] = None
    source: Optional[str] = None
    in_reply_to: Optional[str] = None
    channel_type: Optional[ChannelType] = None

    model_config = ConfigDict(extra="allow")


class Memory(BaseModel):
    id: str
    entity_id: str
    agent_id: str
    room_id: str
    content: Content
    metadata: Dict[str, Any] = Field(default_factory=dict)


# callback(content, files=None) -> memories created for the reply
HandlerCallback = Callable[..., List[Memory]]


@runtime_checkable
class AgentRuntime(Protocol):
    agent_id: str

    def get_setting(self, key: str) -> Optional[Any]:
        ...

    def ensure_connection(
        self,
        *,
        entity_id: str,
        user_name: str,
        user_id: str,
        room_id: str,
        channel_id: str,
        server_id: str,
        source: str,
        type: ChannelType,
        world_id: str,
    ) -> None:
        ...

    def emit_event(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        ...

    def create_memory(self, memory: Memory, table_name: str) -> None:
        ...


class Plugin(BaseModel):
    name: str
    description: str
    services: List[type] = Field(default_factory=list)
    routes: List[Any] = Field(default_factory=list)
