"""
Translation of Cloud Foundry application state into deployment states.

Every instance state string the platform documents is mapped explicitly.
Anything else raises UnsupportedStateError so that a change in the platform
vocabulary shows up as a failure instead of a silent default.
"""

from typing import Iterable

from cf_deployer.exceptions import UnsupportedStateError
from cf_deployer.spi.models import AppInstanceStatus, AppStatus, DeploymentState

from .models import ApplicationDetail, InstanceDetail

INSTANCE_STATES = {
    "STARTING": DeploymentState.DEPLOYING,
    "DOWN": DeploymentState.DEPLOYING,
    "CRASHED": DeploymentState.FAILED,
    # The platform reports healthy apps as FLAPPING at times
    "FLAPPING": DeploymentState.DEPLOYED,
    "RUNNING": DeploymentState.DEPLOYED,
    "UNKNOWN": DeploymentState.UNKNOWN,
}

# Requested app state when no instance is reported yet
EMPTY_APP_STATES = {
    "DOWN": DeploymentState.DEPLOYING,
    "STARTED": DeploymentState.DEPLOYING,
    "STOPPED": DeploymentState.UNDEPLOYED,
}


def map_instance_state(state: str) -> DeploymentState:
    """Map a single instance state."""
    try:
        return INSTANCE_STATES[state]
    except KeyError:
        raise UnsupportedStateError(state) from None


def reduce_states(states: Iterable[DeploymentState]) -> DeploymentState:
    """Reduce instance states to the state of the whole deployment."""
    distinct = set(states)
    if not distinct:
        return DeploymentState.UNKNOWN
    if len(distinct) == 1:
        return distinct.pop()
    if DeploymentState.DEPLOYING in distinct:
        return DeploymentState.DEPLOYING
    if DeploymentState.DEPLOYED in distinct:
        return DeploymentState.PARTIAL
    if DeploymentState.FAILED in distinct:
        return DeploymentState.FAILED
    return DeploymentState.UNKNOWN


def translate(requested_state: str, instance_states: Iterable[str]) -> DeploymentState:
    """
    Translate platform state into a deployment state.

    Args:
        requested_state: State the app was asked to be in (e.g. STARTED)
        instance_states: States reported for each instance

    Returns:
        The aggregate DeploymentState

    Raises:
        UnsupportedStateError: if an instance state is not recognized
    """
    mapped = [map_instance_state(state) for state in instance_states]
    if not mapped:
        return EMPTY_APP_STATES.get(
            (requested_state or "").upper(), DeploymentState.UNKNOWN
        )
    return reduce_states(mapped)


class CloudFoundryAppInstanceStatus(AppInstanceStatus):
    """Instance status built from a Cloud Foundry instance detail."""

    @classmethod
    def from_detail(
        cls, deployment_id: str, index: int, detail: InstanceDetail
    ) -> "CloudFoundryAppInstanceStatus":
        """Build the status of instance ``index`` of a deployment."""
        attributes = {}
        if detail.since is not None:
            attributes["since"] = detail.since.isoformat()
        if detail.uptime is not None:
            attributes["uptime"] = str(detail.uptime)

        return cls(
            id=f"{deployment_id}-{index}",
            state=map_instance_state(detail.state),
            attributes=attributes,
        )


def build_app_status(deployment_id: str, detail: ApplicationDetail) -> AppStatus:
    """Build an AppStatus snapshot from an application detail."""
    instances = {}
    for index, instance_detail in enumerate(detail.instance_details):
        instance = CloudFoundryAppInstanceStatus.from_detail(
            deployment_id, index, instance_detail
        )
        instances[instance.id] = instance

    state = translate(
        detail.requested_state,
        [instance_detail.state for instance_detail in detail.instance_details],
    )
    return AppStatus(deployment_id=deployment_id, state=state, instances=instances)
