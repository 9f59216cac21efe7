"""
Cloud Foundry deployer.

Translates generic app deployment requests into Cloud Foundry API calls:
push, environment update, service binding, start, status and delete.
"""

from .app_name_generator import CloudFoundryAppNameGenerator, WordListRandomWords
from .client import CloudFoundryClient
from .deployer import CloudFoundryAppDeployer
from .operations import CloudFoundryOperations
from .properties import (
    CloudFoundryConnectionProperties,
    CloudFoundryDeployerProperties,
    load_properties,
)

__all__ = [
    "CloudFoundryAppDeployer",
    "CloudFoundryAppNameGenerator",
    "CloudFoundryClient",
    "CloudFoundryConnectionProperties",
    "CloudFoundryDeployerProperties",
    "CloudFoundryOperations",
    "WordListRandomWords",
    "load_properties",
]
