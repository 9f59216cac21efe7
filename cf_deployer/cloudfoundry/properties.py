"""
Configuration for the Cloud Foundry deployer.

Both property models are frozen. Changing configuration at runtime means
building a new value (e.g. with ``model_copy(update=...)``) and handing it to
the deployer as a whole.
"""

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from cf_deployer.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BUILDPACK = "https://github.com/cloudfoundry/java-buildpack.git"
HEALTH_CHECK_TYPES = ("port", "process", "none")


class CloudFoundryDeployerProperties(BaseModel):
    """Deployer defaults shared read-only by every deploy/status/undeploy call."""

    model_config = ConfigDict(frozen=True)

    app_name_prefix: str = "dataflow-server"
    enable_random_app_name_prefix: bool = True
    services: tuple[str, ...] = ()
    memory: int = 1024  # MB
    disk: int = 1024  # MB
    instances: int = 1
    buildpack: str = DEFAULT_BUILDPACK
    domain: Optional[str] = None
    health_check: str = "port"
    stack: Optional[str] = None

    @field_validator("services", mode="before")
    @classmethod
    def validate_services(cls, v):
        """Accept comma separated strings and drop duplicates, keeping order."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        unique = []
        for name in v:
            name = str(name).strip()
            if name and name not in unique:
                unique.append(name)
        return tuple(unique)

    @field_validator("memory", "disk", mode="before")
    @classmethod
    def validate_size(cls, v):
        """Accept sizes like 512, '512m' or '1g'."""
        return parse_megabytes(v)

    @field_validator("instances")
    @classmethod
    def validate_instances(cls, v):
        """Instance count must be positive."""
        if v < 1:
            raise ValueError("instances must be at least 1")
        return v

    @field_validator("health_check")
    @classmethod
    def validate_health_check(cls, v):
        """Ensure the health check type is one the platform knows."""
        v = v.lower()
        if v not in HEALTH_CHECK_TYPES:
            raise ValueError(f"health_check must be one of {HEALTH_CHECK_TYPES}")
        return v


class CloudFoundryConnectionProperties(BaseModel):
    """Where and as whom the deployer talks to Cloud Foundry."""

    model_config = ConfigDict(frozen=True)

    url: str = "https://api.run.pivotal.io"
    org: Optional[str] = None
    space: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    skip_ssl_validation: bool = False

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Strip trailing slashes from the API url."""
        return v.rstrip("/")


def parse_megabytes(value: Union[int, str]) -> int:
    """Parse a memory/disk size into megabytes.

    Plain numbers are megabytes; ``m``/``mb`` and ``g``/``gb`` suffixes are
    accepted case-insensitively.
    """
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    multiplier = 1
    for suffix, factor in (("gb", 1024), ("g", 1024), ("mb", 1), ("m", 1)):
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            multiplier = factor
            break
    try:
        return int(text) * multiplier
    except ValueError:
        raise ConfigurationError(f"Invalid size: {value!r}") from None


# Environment variable -> (section, field)
_ENV_MAPPING = {
    "CF_URL": ("connection", "url"),
    "CF_ORG": ("connection", "org"),
    "CF_SPACE": ("connection", "space"),
    "CF_USERNAME": ("connection", "username"),
    "CF_PASSWORD": ("connection", "password"),
    "CF_SKIP_SSL_VALIDATION": ("connection", "skip_ssl_validation"),
    "CF_DEPLOYER_APP_NAME_PREFIX": ("deployer", "app_name_prefix"),
    "CF_DEPLOYER_ENABLE_RANDOM_APP_NAME_PREFIX": (
        "deployer",
        "enable_random_app_name_prefix",
    ),
    "CF_DEPLOYER_SERVICES": ("deployer", "services"),
    "CF_DEPLOYER_MEMORY": ("deployer", "memory"),
    "CF_DEPLOYER_DISK": ("deployer", "disk"),
    "CF_DEPLOYER_INSTANCES": ("deployer", "instances"),
    "CF_DEPLOYER_BUILDPACK": ("deployer", "buildpack"),
    "CF_DEPLOYER_DOMAIN": ("deployer", "domain"),
    "CF_DEPLOYER_HEALTH_CHECK": ("deployer", "health_check"),
    "CF_DEPLOYER_STACK": ("deployer", "stack"),
}


def load_properties(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> tuple[CloudFoundryDeployerProperties, CloudFoundryConnectionProperties]:
    """
    Load deployer and connection properties.

    Values come from an optional YAML file with ``deployer`` and
    ``connection`` sections under a top-level ``cloudfoundry`` key, then
    from environment variables, which take precedence.

    Args:
        path: Optional YAML configuration file
        environ: Environment to read; defaults to os.environ

    Returns:
        Tuple of (deployer properties, connection properties)
    """
    environ = os.environ if environ is None else environ
    sections: dict[str, dict[str, Any]] = {"deployer": {}, "connection": {}}

    if path:
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

        cloudfoundry = data.get("cloudfoundry", {}) or {}
        for section in sections:
            sections[section].update(cloudfoundry.get(section, {}) or {})
        logger.debug(f"Loaded configuration from {path}")

    for env_var, (section, field) in _ENV_MAPPING.items():
        if env_var in environ:
            sections[section][field] = environ[env_var]

    try:
        return (
            CloudFoundryDeployerProperties(**sections["deployer"]),
            CloudFoundryConnectionProperties(**sections["connection"]),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
