"""
Request and response models for the Cloud Foundry platform client.

Plain (non-table) SQLModel classes, used for validation and serialization of
what goes over the wire.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import field_validator
from sqlmodel import SQLModel
from sqlmodel import Field as SQLField


class InstanceDetail(SQLModel):
    """State of a single application instance."""

    index: int | None = None
    state: str | None = None
    since: datetime | None = None
    uptime: int | None = None

    @classmethod
    def from_instance(cls, index: str, data: dict[str, Any]) -> "InstanceDetail":
        """Build from an entry of the ``/v2/apps/:guid/instances`` response."""
        return cls(
            index=int(index),
            state=data.get("state"),
            since=data.get("since"),
            uptime=data.get("uptime"),
        )


class ApplicationDetail(SQLModel):
    """Application summary combined with its instance details."""

    id: str
    name: str
    stack: str | None = None
    disk_quota: int = 0
    instances: int = 0
    memory_limit: int = 0
    requested_state: str
    running_instances: int = 0
    urls: list[str] = SQLField(default_factory=list)
    instance_details: list[InstanceDetail] = SQLField(default_factory=list)


class PushApplicationRequest(SQLModel):
    """Everything needed to push an application."""

    name: str
    path: Path | None = None
    instances: int = 1
    memory: int = 1024
    disk_quota: int = 1024
    buildpack: str | None = None
    stack: str | None = None
    health_check_type: str = "port"
    domain: str | None = None
    host: str | None = None
    no_route: bool = False
    no_start: bool = True

    @field_validator("host", mode="before")
    @classmethod
    def validate_host(cls, v):
        """Route hosts are lower case."""
        if v is None:
            return v
        return str(v).lower()


class UpdateApplicationResponse(SQLModel):
    """Response of an application update."""

    id: Optional[str] = None
    name: Optional[str] = None
    environment_json: dict[str, Any] = SQLField(default_factory=dict)
