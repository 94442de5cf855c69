"""CT log server workload."""

from kubernetes.client import (
    V1Container,
    V1ContainerPort,
    V1SecretVolumeSource,
    V1Volume,
    V1VolumeMount,
)
from securesign_engine import PrerequisiteMissingError
from securesign_k8s import DeploymentManager

from ..api import CTlog
from ..common import DeploymentAction, MonitorAction, ServiceAction, WaitForServerAction
from .constants import (
    COMPONENT,
    CONFIG_KEY,
    CONFIG_PATH,
    METRICS_PORT,
    RBAC_NAME,
    SERVER_DEPLOYMENT,
    SERVER_PORT,
)


def build_server_deployment(instance: CTlog, image: str, labels: dict[str, str]):
    """
    Synthesize the ctlog Deployment from the resource status.

    The server config secret name changes with its content, which rolls
    the pods through the volume reference.

    Raises:
        PrerequisiteMissingError: If the server config has not been created yet
    """
    if instance.status.server_config_ref is None:
        raise PrerequisiteMissingError("server config name not specified")

    container = V1Container(
        name=SERVER_DEPLOYMENT,
        image=image,
        args=[
            f"--http_endpoint=0.0.0.0:{SERVER_PORT}",
            f"--metrics_endpoint=0.0.0.0:{METRICS_PORT}",
            f"--log_config={CONFIG_PATH}/{CONFIG_KEY}",
            "--alsologtostderr",
        ],
        ports=[
            V1ContainerPort(name="http", container_port=SERVER_PORT, protocol="TCP"),
            V1ContainerPort(name="metrics", container_port=METRICS_PORT, protocol="TCP"),
        ],
        volume_mounts=[V1VolumeMount(name="keys", mount_path=CONFIG_PATH, read_only=True)],
    )
    volumes = [
        V1Volume(
            name="keys",
            secret=V1SecretVolumeSource(secret_name=instance.status.server_config_ref.name),
        )
    ]
    return DeploymentManager.build(
        SERVER_DEPLOYMENT,
        instance.namespace,
        labels,
        [container],
        volumes=volumes,
        service_account=RBAC_NAME,
    )


class DeployServerAction(DeploymentAction):
    component = COMPONENT
    deployment_name = SERVER_DEPLOYMENT

    def desired(self, instance: CTlog):
        return build_server_deployment(instance, self.image, self.labels(instance))


class ServerServiceAction(ServiceAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT
    ports = (("http", 80, SERVER_PORT), ("metrics", METRICS_PORT, METRICS_PORT))


class ServerMonitorAction(MonitorAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT


class WaitForCTlogServerAction(WaitForServerAction):
    deployment_name = SERVER_DEPLOYMENT
