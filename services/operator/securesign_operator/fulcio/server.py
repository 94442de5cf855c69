"""Fulcio server workload."""

from kubernetes.client import (
    V1ConfigMapVolumeSource,
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1EnvVarSource,
    V1KeyToPath,
    V1ProjectedVolumeSource,
    V1SecretKeySelector,
    V1SecretProjection,
    V1Volume,
    V1VolumeMount,
    V1VolumeProjection,
)
from securesign_engine import PrerequisiteMissingError, content_hash
from securesign_k8s import DeploymentManager

from ..api import Fulcio
from ..common import (
    CONFIG_HASH_ANNOTATION,
    METRICS_PORT,
    DeploymentAction,
    IngressAction,
    MonitorAction,
    ServiceAction,
    WaitForServerAction,
)
from .constants import COMPONENT, GRPC_PORT, HTTP_PORT, SERVER_DEPLOYMENT
from .server_config import render_server_config

SECRETS_PATH = "/var/run/fulcio-secrets"
CONFIG_PATH = "/etc/fulcio-config"


def build_server_deployment(instance: Fulcio, image: str, labels: dict[str, str]):
    """
    Synthesize the fulcio-server Deployment from the resource status.

    Raises:
        PrerequisiteMissingError: If the certificate or server config has
            not been resolved yet
    """
    cert = instance.status.certificate
    if cert is None or cert.private_key_ref is None or cert.ca_ref is None:
        raise PrerequisiteMissingError("certificate not resolved")
    if instance.status.server_config_ref is None:
        raise PrerequisiteMissingError("server config name not specified")

    args = [
        "serve",
        f"--port={HTTP_PORT}",
        f"--grpc-port={GRPC_PORT}",
        "--ca=fileca",
        f"--fileca-key={SECRETS_PATH}/key.pem",
        f"--fileca-cert={SECRETS_PATH}/cert.pem",
        f"--config-path={CONFIG_PATH}/config.json",
    ]
    env = []
    if cert.private_key_password_ref is not None:
        args.append("--fileca-key-passwd=$(PASSWORD)")
        env.append(
            V1EnvVar(
                name="PASSWORD",
                value_from=V1EnvVarSource(
                    secret_key_ref=V1SecretKeySelector(
                        name=cert.private_key_password_ref.name,
                        key=cert.private_key_password_ref.key,
                    )
                ),
            )
        )

    volumes = [
        V1Volume(
            name="fulcio-config",
            config_map=V1ConfigMapVolumeSource(name=instance.status.server_config_ref.name),
        ),
        V1Volume(
            name="fulcio-cert",
            projected=V1ProjectedVolumeSource(
                sources=[
                    V1VolumeProjection(
                        secret=V1SecretProjection(
                            name=cert.private_key_ref.name,
                            items=[V1KeyToPath(key=cert.private_key_ref.key, path="key.pem")],
                        )
                    ),
                    V1VolumeProjection(
                        secret=V1SecretProjection(
                            name=cert.ca_ref.name,
                            items=[V1KeyToPath(key=cert.ca_ref.key, path="cert.pem")],
                        )
                    ),
                ]
            ),
        ),
    ]
    mounts = [
        V1VolumeMount(name="fulcio-config", mount_path=CONFIG_PATH),
        V1VolumeMount(name="fulcio-cert", mount_path=SECRETS_PATH, read_only=True),
    ]
    container = V1Container(
        name=SERVER_DEPLOYMENT,
        image=image,
        args=args,
        env=env or None,
        ports=[
            V1ContainerPort(name="http", container_port=HTTP_PORT, protocol="TCP"),
            V1ContainerPort(name="grpc", container_port=GRPC_PORT, protocol="TCP"),
            V1ContainerPort(name="metrics", container_port=METRICS_PORT, protocol="TCP"),
        ],
        volume_mounts=mounts,
    )
    marker = content_hash([render_server_config(instance), cert.model_dump(mode="json")])
    return DeploymentManager.build(
        SERVER_DEPLOYMENT,
        instance.namespace,
        labels,
        [container],
        volumes=volumes,
        template_annotations={CONFIG_HASH_ANNOTATION: marker},
    )


class DeployServerAction(DeploymentAction):
    component = COMPONENT
    deployment_name = SERVER_DEPLOYMENT

    def desired(self, instance: Fulcio):
        return build_server_deployment(instance, self.image, self.labels(instance))


class ServerServiceAction(ServiceAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT
    ports = (("http", 80, HTTP_PORT), ("grpc", GRPC_PORT, GRPC_PORT), ("metrics", METRICS_PORT, METRICS_PORT))


class ServerIngressAction(IngressAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT
    port_name = "http"


class ServerMonitorAction(MonitorAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT


class WaitForFulcioServerAction(WaitForServerAction):
    deployment_name = SERVER_DEPLOYMENT
