"""Tests for drift detection."""

import copy

import pytest
from kubernetes.client import (
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1SecretVolumeSource,
    V1Volume,
    V1VolumeMount,
)

from securesign_engine import DriftDetector, content_hash, derivative_equal, owned_equal
from securesign_k8s import DeploymentManager

LABELS = {"app.kubernetes.io/name": "server"}


def _desired():
    container = V1Container(
        name="server",
        image="server:2",
        args=["serve", "--port=3000"],
        env=[V1EnvVar(name="MODE", value="prod")],
        ports=[V1ContainerPort(container_port=3000)],
        volume_mounts=[V1VolumeMount(name="keys", mount_path="/key", read_only=True)],
    )
    return DeploymentManager.build(
        "server",
        "ns",
        LABELS,
        [container],
        volumes=[V1Volume(name="keys", secret=V1SecretVolumeSource(secret_name="signer"))],
        template_annotations={"example.com/config-hash": "abc"},
    )


@pytest.fixture
def live():
    """The desired deployment as the API server returns it: defaulted and versioned."""
    deployment = _desired()
    deployment.metadata.resource_version = "42"
    deployment.metadata.labels["pod-template-hash"] = "x"
    deployment.spec.replicas = 3
    container = deployment.spec.template.spec.containers[0]
    container.termination_message_path = "/dev/termination-log"
    container.ports[0].protocol = "TCP"
    container.resources = {"limits": {"memory": "1Gi"}}
    return deployment


class TestDerivativeEqual:
    """Test cases for derivative_equal."""

    def test_unset_desired_values_match_anything(self):
        assert derivative_equal(None, "x")
        assert derivative_equal({}, {"a": 1})
        assert derivative_equal({"a": 1, "b": None}, {"a": 1, "c": 2})

    def test_lists_must_match_in_length(self):
        assert derivative_equal([{"a": 1}], [{"a": 1, "b": 2}])
        assert not derivative_equal([{"a": 1}], [{"a": 1}, {"a": 2}])

    def test_scalars(self):
        assert not derivative_equal("a", "b")
        assert not derivative_equal({"a": 1}, "a")


class TestOwnedEqual:
    """Test cases for owned_equal."""

    def test_empty_desired_value_requires_empty_live_value(self):
        assert owned_equal(None, None)
        assert owned_equal(None, [])
        assert not owned_equal(None, [{"name": "INJECTED", "value": "x"}])
        assert not owned_equal(None, "sa")

    def test_list_items_keep_server_defaults(self):
        desired = [{"name": "NS", "valueFrom": {"fieldRef": {"fieldPath": "metadata.namespace"}}}]
        live = [{"name": "NS", "valueFrom": {"fieldRef": {"fieldPath": "metadata.namespace", "apiVersion": "v1"}}}]

        assert owned_equal(desired, live)
        assert not owned_equal(desired, live + [{"name": "EXTRA", "value": "1"}])


class TestDriftDetector:
    """Test cases for DriftDetector."""

    def test_defaulted_live_object_has_no_drift(self, live):
        """Test that server defaults and unowned fields do not count as drift."""
        assert DriftDetector().diff(_desired(), live) == []

    def test_removed_volume_mount_is_detected(self, live):
        live.spec.template.spec.containers[0].volume_mounts = []

        drifts = DriftDetector().diff(_desired(), live)

        assert [str(d) for d in drifts] == ["spec.template.spec.containers[server].volumeMounts"]

    def test_extra_volume_is_detected(self, live):
        live.spec.template.spec.volumes.append(V1Volume(name="extra"))

        drifts = DriftDetector().diff(_desired(), live)

        assert [str(d) for d in drifts] == ["spec.template.spec.volumes"]

    def test_image_and_annotation_changes(self, live):
        desired = _desired()
        desired.spec.template.spec.containers[0].image = "server:3"
        desired.spec.template.metadata.annotations["example.com/config-hash"] = "def"

        paths = {str(d) for d in DriftDetector().diff(desired, live)}

        assert paths == {
            "spec.template.spec.containers[server].image",
            "spec.template.metadata.annotations",
        }

    def test_added_env_and_command_are_detected(self, live):
        """Test that owned fields left empty on the desired side are still enforced."""
        container = live.spec.template.spec.containers[0]
        container.env.append(V1EnvVar(name="INJECTED", value="x"))
        container.command = ["/bin/sh", "-c"]
        live.spec.template.spec.service_account_name = "privileged"

        paths = {str(d) for d in DriftDetector().diff(_desired(), live)}

        assert paths == {
            "spec.template.spec.containers[server].env",
            "spec.template.spec.containers[server].command",
            "spec.template.spec.serviceAccountName",
        }

    def test_missing_container_is_detected(self, live):
        live.spec.template.spec.containers[0].name = "renamed"

        assert DriftDetector().has_drift(_desired(), live)

    def test_apply_restores_owned_fields_only(self, live):
        """Test that apply repairs drift and keeps unowned fields and the resourceVersion."""
        live.spec.template.spec.containers[0].volume_mounts = []
        live.spec.template.spec.containers[0].image = "tampered:1"
        detector = DriftDetector()

        patched = detector.apply(_desired(), live)

        assert patched is live
        assert detector.diff(_desired(), live) == []
        assert live.metadata.resource_version == "42"
        assert live.spec.replicas == 3
        assert live.metadata.labels["pod-template-hash"] == "x"
        assert live.spec.template.spec.containers[0].resources == {"limits": {"memory": "1Gi"}}

    def test_apply_adds_missing_container(self, live):
        live.spec.template.spec.containers = []

        DriftDetector().apply(_desired(), live)

        assert [c.name for c in live.spec.template.spec.containers] == ["server"]

    def test_apply_does_not_alias_desired(self, live):
        desired = _desired()
        DriftDetector().apply(desired, live)

        live.spec.template.spec.volumes.append(V1Volume(name="extra"))

        assert len(desired.spec.template.spec.volumes) == 1


def test_content_hash_is_stable():
    """Test that key order does not change the hash."""
    first = content_hash({"a": 1, "b": [1, 2]})

    assert first == content_hash({"b": [1, 2], "a": 1})
    assert first != content_hash({"a": 2, "b": [1, 2]})
    assert len(first) == 16
    assert content_hash(copy.deepcopy({"a": 1})) == content_hash({"a": 1})
