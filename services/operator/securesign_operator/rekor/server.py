"""Rekor server workload."""

from kubernetes.client import (
    V1ConfigMapVolumeSource,
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1EnvVarSource,
    V1KeyToPath,
    V1PersistentVolumeClaimVolumeSource,
    V1SecretKeySelector,
    V1SecretVolumeSource,
    V1Volume,
    V1VolumeMount,
)
from securesign_engine import PrerequisiteMissingError, content_hash
from securesign_k8s import DeploymentManager

from ..api import KMS_MEMORY, Rekor
from ..common import (
    CONFIG_HASH_ANNOTATION,
    METRICS_PORT,
    DeploymentAction,
    IngressAction,
    MonitorAction,
    ServiceAction,
    WaitForServerAction,
)
from ..common.tree import trillian_address
from .constants import COMPONENT, SERVER_DEPLOYMENT, SERVER_PORT, SHARDING_CONFIG_KEY


def build_server_deployment(instance: Rekor, image: str, labels: dict[str, str]):
    """
    Synthesize the rekor-server Deployment from the resource status.

    Raises:
        PrerequisiteMissingError: If the config, tree, claim or signer key
            has not been resolved yet
    """
    status = instance.status
    if status.server_config_ref is None:
        raise PrerequisiteMissingError("server config name not specified")
    if status.tree_id is None:
        raise PrerequisiteMissingError("reference to trillian TreeID not set")
    if status.pvc_name is None:
        raise PrerequisiteMissingError("storage claim not set")

    args = [
        "serve",
        f"--trillian_log_server.address={trillian_address(instance)}",
        f"--trillian_log_server.port={instance.spec.trillian_port}",
        f"--trillian_log_server.sharding_config=/sharding/{SHARDING_CONFIG_KEY}",
        "--rekor_server.address=0.0.0.0",
        "--enable_retrieve_api=true",
        f"--trillian_log_server.tlog_id={status.tree_id}",
        "--enable_attestation_storage",
        "--attestation_storage_bucket=file:///var/run/attestations",
    ]
    env = []
    volumes = [
        V1Volume(
            name="rekor-sharding-config",
            config_map=V1ConfigMapVolumeSource(name=status.server_config_ref.name),
        ),
        V1Volume(
            name="storage",
            persistent_volume_claim=V1PersistentVolumeClaimVolumeSource(claim_name=status.pvc_name),
        ),
    ]
    mounts = [
        V1VolumeMount(name="rekor-sharding-config", mount_path="/sharding"),
        V1VolumeMount(name="storage", mount_path="/var/run/attestations"),
    ]

    signer = status.signer
    if signer.kms == KMS_MEMORY:
        args.append("--rekor_server.signer=memory")
    elif signer.uses_secret:
        if signer.key_ref is None:
            raise PrerequisiteMissingError("signer key ref not specified")
        args.append("--rekor_server.signer=/key/private")
        volumes.append(
            V1Volume(
                name="rekor-private-key-volume",
                secret=V1SecretVolumeSource(
                    secret_name=signer.key_ref.name,
                    items=[V1KeyToPath(key=signer.key_ref.key, path="private")],
                ),
            )
        )
        mounts.append(V1VolumeMount(name="rekor-private-key-volume", mount_path="/key", read_only=True))
        if signer.password_ref is not None:
            args.append("--rekor_server.signer-passwd=$(SIGNER_PASSWORD)")
            env.append(
                V1EnvVar(
                    name="SIGNER_PASSWORD",
                    value_from=V1EnvVarSource(
                        secret_key_ref=V1SecretKeySelector(
                            name=signer.password_ref.name, key=signer.password_ref.key
                        )
                    ),
                )
            )
    else:
        args.append(f"--rekor_server.signer={signer.kms}")

    container = V1Container(
        name=SERVER_DEPLOYMENT,
        image=image,
        args=args,
        env=env or None,
        ports=[
            V1ContainerPort(name=SERVER_DEPLOYMENT, container_port=SERVER_PORT, protocol="TCP"),
            V1ContainerPort(name="metrics", container_port=METRICS_PORT, protocol="TCP"),
        ],
        volume_mounts=mounts,
    )
    marker = content_hash(status.signer.model_dump(mode="json"))
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

    def desired(self, instance: Rekor):
        return build_server_deployment(instance, self.image, self.labels(instance))


class ServerServiceAction(ServiceAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT
    ports = (("rekor-server", 80, SERVER_PORT), ("metrics", METRICS_PORT, METRICS_PORT))


class ServerIngressAction(IngressAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT
    port_name = "rekor-server"


class ServerMonitorAction(MonitorAction):
    component = COMPONENT
    service_name = SERVER_DEPLOYMENT


class WaitForRekorServerAction(WaitForServerAction):
    deployment_name = SERVER_DEPLOYMENT
