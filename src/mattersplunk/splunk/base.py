"""Host-side types and the capability interface the plugin needs from Mattermost."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class Post:
    """A message to publish in a Mattermost channel."""

    channel_id: str
    user_id: str
    message: str
    props: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PluginAPI(Protocol):
    """What the business logic needs from the host. Injected at construction."""

    def create_post(self, post: Post) -> Post:
        """Publish post and return the stored copy."""
        ...


class AlertActionPayload(BaseModel):
    """Body of a Splunk webhook alert action."""

    model_config = ConfigDict(extra="ignore")

    sid: str = ""
    search_name: str = ""
    app: str = ""
    owner: str = ""
    results_link: str = ""
    result: dict[str, Any] = Field(default_factory=dict)
