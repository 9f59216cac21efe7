"""
Centralized pytest fixtures for the CF Deployer test suite.

Provides deployer properties, a mocked Cloud Foundry platform and a deployer
wired to it, so tests only describe what the platform answers.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from cf_deployer.cloudfoundry.app_name_generator import CloudFoundryAppNameGenerator
from cf_deployer.cloudfoundry.deployer import CloudFoundryAppDeployer
from cf_deployer.cloudfoundry.models import (
    ApplicationDetail,
    InstanceDetail,
    UpdateApplicationResponse,
)
from cf_deployer.cloudfoundry.properties import (
    CloudFoundryConnectionProperties,
    CloudFoundryDeployerProperties,
)

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def deployer_properties():
    """Deployer properties with a fixed, non-random prefix."""
    return CloudFoundryDeployerProperties(
        app_name_prefix="dataflow-server",
        enable_random_app_name_prefix=False,
    )


@pytest.fixture
def connection_properties():
    """Connection properties for a fake Cloud Foundry."""
    return CloudFoundryConnectionProperties(
        url="https://api.cf.example.com",
        org="test-org",
        space="test-space",
        username="admin",
        password="secret",
    )


# =============================================================================
# Mock Platform Fixtures
# =============================================================================


@pytest.fixture
def mock_operations():
    """Mocked application and service operations."""
    operations = Mock()
    operations.applications.get = AsyncMock()
    operations.applications.push = AsyncMock(return_value=None)
    operations.applications.start = AsyncMock(return_value=None)
    operations.applications.delete = AsyncMock(return_value=None)
    operations.services.bind = AsyncMock(return_value=None)
    return operations


@pytest.fixture
def mock_client(connection_properties):
    """Mocked low level client."""
    client = Mock()
    client.connection = connection_properties
    client.applications_v2.update = AsyncMock(
        return_value=UpdateApplicationResponse()
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def deployer(deployer_properties, mock_operations, mock_client):
    """Deployer wired to the mocked platform."""
    return CloudFoundryAppDeployer(
        deployer_properties,
        mock_operations,
        mock_client,
        CloudFoundryAppNameGenerator(deployer_properties),
    )


# =============================================================================
# Platform Answer Helpers
# =============================================================================


def make_application_detail(name, requested_state, *instance_states):
    """Build the application detail the platform reports for an app."""
    return ApplicationDetail(
        id="abc123",
        name=name,
        stack="stack",
        disk_quota=1024,
        instances=1,
        memory_limit=1024,
        requested_state=requested_state,
        running_instances=1,
        instance_details=[InstanceDetail(state=state) for state in instance_states],
    )


@pytest.fixture
def application_detail():
    """Factory fixture for application details."""
    return make_application_detail
