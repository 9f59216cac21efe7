"""
Platform independent deployment models.

These are the values exchanged between a deployer caller and an AppDeployer
implementation. They are immutable and built fresh for every call.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeploymentState(str, Enum):
    """Normalized deployment states."""

    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    UNDEPLOYED = "undeployed"
    PARTIAL = "partial"
    FAILED = "failed"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class AppDefinition(BaseModel):
    """Name and runtime properties of an app."""

    model_config = ConfigDict(frozen=True)

    name: str
    properties: dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Reject blank app names."""
        if not v or not v.strip():
            raise ValueError("App name must not be empty")
        return v


class AppDeploymentRequest(BaseModel):
    """An app definition, the artifact to push and deployment properties."""

    model_config = ConfigDict(frozen=True)

    definition: AppDefinition
    resource: Optional[Path] = None
    deployment_properties: dict[str, str] = Field(default_factory=dict)


class AppInstanceStatus(BaseModel):
    """Point-in-time status of a single app instance."""

    model_config = ConfigDict(frozen=True)

    id: str
    state: DeploymentState
    attributes: dict[str, str] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"{type(self).__name__}[{self.id} : {self.state.value}]"


class AppStatus(BaseModel):
    """Point-in-time status of a deployment and its instances."""

    model_config = ConfigDict(frozen=True)

    deployment_id: str
    state: DeploymentState = DeploymentState.UNKNOWN
    instances: dict[str, AppInstanceStatus] = Field(default_factory=dict)

    @classmethod
    def empty(cls, deployment_id: str) -> "AppStatus":
        """Status of a deployment the platform does not report."""
        return cls(deployment_id=deployment_id)

    def __str__(self) -> str:
        return f"AppStatus[{self.deployment_id} : {self.state.value}]"
