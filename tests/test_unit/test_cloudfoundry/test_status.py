"""
Unit tests for Cloud Foundry state translation.
"""

from datetime import datetime, timezone

import pytest

from cf_deployer.cloudfoundry.models import ApplicationDetail, InstanceDetail
from cf_deployer.cloudfoundry.status import (
    CloudFoundryAppInstanceStatus,
    build_app_status,
    map_instance_state,
    reduce_states,
    translate,
)
from cf_deployer.exceptions import UnsupportedStateError
from cf_deployer.spi.models import DeploymentState

pytestmark = pytest.mark.unit


class TestMapInstanceState:
    """Test single instance state mapping."""

    @pytest.mark.parametrize(
        "state,expected",
        [
            ("STARTING", DeploymentState.DEPLOYING),
            ("DOWN", DeploymentState.DEPLOYING),
            ("CRASHED", DeploymentState.FAILED),
            ("FLAPPING", DeploymentState.DEPLOYED),
            ("RUNNING", DeploymentState.DEPLOYED),
            ("UNKNOWN", DeploymentState.UNKNOWN),
        ],
    )
    def test_known_states(self, state, expected):
        """Test every documented instance state."""
        assert map_instance_state(state) == expected

    @pytest.mark.parametrize("state", ["some code never before seen", "running", None])
    def test_unsupported_state(self, state):
        """Test anything else fails with the offending state in the message."""
        with pytest.raises(UnsupportedStateError) as exc_info:
            map_instance_state(state)

        assert str(exc_info.value) == f"Unsupported CF state {state}"
        assert exc_info.value.state == state


class TestTranslate:
    """Test aggregate state translation."""

    def test_down_without_instances_is_deploying(self):
        """Test an app with nothing reported yet is still provisioning."""
        assert translate("DOWN", []) == DeploymentState.DEPLOYING

    def test_started_without_instances_is_deploying(self):
        """Test a started app with no instances yet."""
        assert translate("STARTED", []) == DeploymentState.DEPLOYING

    def test_stopped_without_instances_is_undeployed(self):
        """Test a stopped app."""
        assert translate("STOPPED", []) == DeploymentState.UNDEPLOYED

    @pytest.mark.parametrize("requested_state", ["RUNNING", "PENDING", "", None])
    def test_other_requested_state_without_instances_is_unknown(self, requested_state):
        """Test unrecognized requested states without instances."""
        assert translate(requested_state, []) == DeploymentState.UNKNOWN

    def test_starting_instance_is_deploying(self):
        """Test any starting instance makes the app deploying."""
        assert translate("RUNNING", ["STARTING"]) == DeploymentState.DEPLOYING
        assert translate("RUNNING", ["RUNNING", "STARTING"]) == DeploymentState.DEPLOYING
        assert translate("RUNNING", ["CRASHED", "STARTING"]) == DeploymentState.DEPLOYING

    def test_crashed_without_running_is_failed(self):
        """Test crashed instances with nothing running."""
        assert translate("RUNNING", ["CRASHED"]) == DeploymentState.FAILED
        assert translate("RUNNING", ["CRASHED", "UNKNOWN"]) == DeploymentState.FAILED

    def test_crashed_with_running_is_partial(self):
        """Test some instances up and some crashed."""
        assert translate("RUNNING", ["RUNNING", "CRASHED"]) == DeploymentState.PARTIAL

    def test_flapping_with_running_is_deployed(self):
        """Test flapping instances count as up."""
        assert translate("RUNNING", ["RUNNING", "FLAPPING"]) == DeploymentState.DEPLOYED

    def test_all_running_is_deployed(self):
        """Test every instance running."""
        assert translate("RUNNING", ["RUNNING", "RUNNING"]) == DeploymentState.DEPLOYED

    def test_unknown_instance_is_unknown(self):
        """Test an instance in unknown state."""
        assert translate("RUNNING", ["UNKNOWN"]) == DeploymentState.UNKNOWN

    def test_unsupported_instance_state_fails(self):
        """Test one unsupported state fails the whole translation."""
        with pytest.raises(UnsupportedStateError, match="Unsupported CF state EXPLODED"):
            translate("RUNNING", ["RUNNING", "EXPLODED"])


class TestReduceStates:
    """Test reduction of instance states."""

    def test_empty_is_unknown(self):
        """Test no states at all."""
        assert reduce_states([]) == DeploymentState.UNKNOWN

    def test_undeployed_and_unknown_is_unknown(self):
        """Test a combination with no better answer."""
        assert (
            reduce_states([DeploymentState.UNDEPLOYED, DeploymentState.UNKNOWN])
            == DeploymentState.UNKNOWN
        )


class TestBuildAppStatus:
    """Test AppStatus construction from platform details."""

    def test_instances_are_keyed_by_index(self):
        """Test instance ids and states."""
        detail = ApplicationDetail(
            id="abc123",
            name="app",
            requested_state="STARTED",
            instance_details=[
                InstanceDetail(index=0, state="RUNNING"),
                InstanceDetail(index=1, state="CRASHED"),
            ],
        )

        status = build_app_status("app", detail)

        assert status.deployment_id == "app"
        assert status.state == DeploymentState.PARTIAL
        assert list(status.instances) == ["app-0", "app-1"]
        assert status.instances["app-0"].state == DeploymentState.DEPLOYED
        assert status.instances["app-1"].state == DeploymentState.FAILED
        assert str(status) == "AppStatus[app : partial]"

    def test_instance_attributes_only_hold_reported_values(self):
        """Test attributes are built from what the platform reported."""
        since = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        instance = CloudFoundryAppInstanceStatus.from_detail(
            "app", 2, InstanceDetail(state="RUNNING", since=since, uptime=42)
        )

        assert instance.id == "app-2"
        assert instance.attributes == {"since": since.isoformat(), "uptime": "42"}
        assert str(instance) == "CloudFoundryAppInstanceStatus[app-2 : deployed]"

    def test_no_instances_uses_requested_state(self):
        """Test an app without instances."""
        detail = ApplicationDetail(id="abc123", name="app", requested_state="STOPPED")

        status = build_app_status("app", detail)

        assert status.state == DeploymentState.UNDEPLOYED
        assert status.instances == {}
