"""
Unit test specific fixtures.

These fixtures are tailored for unit testing individual components
in isolation with minimal dependencies.
"""

import pytest

from cf_deployer.spi.models import AppDefinition, AppDeploymentRequest

# =============================================================================
# Request Fixtures for Unit Tests
# =============================================================================


@pytest.fixture
def artifact(tmp_path):
    """A fake jar to push."""
    jar = tmp_path / "demo-0.0.1-SNAPSHOT.jar"
    jar.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return jar


@pytest.fixture
def make_request(artifact):
    """Factory for deployment requests of a named app."""

    def _make(name="time", properties=None, deployment_properties=None):
        return AppDeploymentRequest(
            definition=AppDefinition(name=name, properties=properties or {}),
            resource=artifact,
            deployment_properties=deployment_properties or {},
        )

    return _make
