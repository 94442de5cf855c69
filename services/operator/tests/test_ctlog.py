"""Tests for the CTlog pipeline."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from securesign_engine import READY
from securesign_k8s import ObjectKey

from securesign_operator import ctlog
from securesign_operator.api import CTlog, SecretKeySelector
from securesign_operator.common.constants import FULCIO_CA_LABEL
from securesign_operator.controller import Controller, DirectiveKind
from securesign_operator.ctlog.constants import CERT_CONDITION, KEYS_CONDITION
from securesign_operator.ctlog.server_config import render_log_config

NS = "ns"
ROOT = b"-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n"
OTHER_ROOT = b"-----BEGIN CERTIFICATE-----\nMIIC\n-----END CERTIFICATE-----\n"

S = SecretKeySelector


@pytest.fixture
def controller(cluster, settings):
    return Controller(CTlog, ctlog.build_pipeline(settings), ctlog.TRACKED_CONDITIONS, cluster, timeout=60.0)


def _create(cluster, spec=None):
    cluster.custom("CTlog").create({"metadata": {"name": "sample", "namespace": NS}, "spec": spec or {}})
    return ObjectKey(NS, "sample")


def _load(cluster, key):
    return CTlog.from_body(cluster.custom("CTlog").get(key.name, key.namespace))


def _add_fulcio_root(cluster, name="fulcio-cert-ca-abcde", cert=ROOT):
    cluster.secrets.add(name, NS, {"cert": cert}, labels={FULCIO_CA_LABEL: "cert"})


def _converge(cluster, controller, settle, key):
    directive = settle(controller, key)
    assert directive.kind == DirectiveKind.REQUEUE
    cluster.mark_available("ctlog", NS)
    return settle(controller, key)


def _server_config(cluster, instance):
    return cluster.secrets.get(instance.status.server_config_ref.name, NS)


def _encrypted_key(password):
    key = ec.generate_private_key(ec.SECP256R1())
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(password),
    )
    return key, pem


class TestCTlogReconcile:
    """End to end reconciliation against the fake cluster."""

    def test_waits_for_fulcio_root(self, cluster, controller, settle):
        key = _create(cluster, {"treeID": 7})

        directive = settle(controller, key)

        assert directive.requeue_after == 5.0
        instance = _load(cluster, key)
        assert instance.conditions.reason_of(CERT_CONDITION) == "Pending"
        assert instance.conditions.find(CERT_CONDITION).message == "Waiting for a Fulcio CA certificate"
        assert cluster.deployments.get("ctlog", NS) is None

    def test_brings_up_with_generated_key(self, cluster, controller, settle):
        _add_fulcio_root(cluster)
        key = _create(cluster, {"treeID": 7})

        assert _converge(cluster, controller, settle, key).kind == DirectiveKind.DONE

        instance = _load(cluster, key)
        assert instance.conditions.is_true(READY)
        assert instance.status.url == "http://ctlog.ns.svc"
        assert instance.status.root_certificates == [S(name="fulcio-cert-ca-abcde", key="cert")]

        private_ref, public_ref = instance.status.private_key_ref, instance.status.public_key_ref
        assert private_ref.name.startswith("ctlog-keys-sample-")
        assert public_ref == S(name=private_ref.name, key="public")
        private_pem = cluster.secrets.get_data(NS, private_ref.name, "private")
        private_key = serialization.load_pem_private_key(private_pem, password=None)
        public_key = serialization.load_pem_public_key(cluster.secrets.get_data(NS, public_ref.name, "public"))
        assert private_key.public_key().public_numbers() == public_key.public_numbers()

        config = _server_config(cluster, instance)
        assert config.metadata.name.startswith("ctlog-config-sample-")
        assert config.immutable is True
        assert cluster.secrets.get_data(NS, config.metadata.name, "roots.pem") == ROOT
        assert cluster.secrets.get_data(NS, config.metadata.name, "private") == private_pem
        text = cluster.secrets.get_data(NS, config.metadata.name, "config").decode()
        assert "log_id: 7" in text
        assert 'backend_spec: "trillian-logserver.ns.svc:8091"' in text
        assert "password" not in text

        pod = cluster.deployments.get("ctlog", NS).spec.template.spec
        assert pod.service_account_name == "ctlog"
        assert pod.volumes[0].secret.secret_name == config.metadata.name
        assert "--log_config=/ctfe-keys/config" in pod.containers[0].args
        assert cluster.service_accounts.get("ctlog", NS) is not None
        binding = cluster.role_bindings.get("ctlog", NS)
        assert (binding.role_ref.name, binding.subjects[0].name) == ("ctlog", "ctlog")
        assert cluster.roles.get("ctlog", NS).metadata.owner_references[0].kind == "CTlog"

        writes = list(cluster.writes)
        assert controller.reconcile(key).kind == DirectiveKind.DONE
        assert cluster.writes == writes

    def test_new_fulcio_root_rolls_config(self, cluster, controller, settle):
        _add_fulcio_root(cluster)
        key = _create(cluster, {"treeID": 7})
        assert _converge(cluster, controller, settle, key).kind == DirectiveKind.DONE
        old_config = _load(cluster, key).status.server_config_ref.name

        _add_fulcio_root(cluster, "fulcio-cert-ca-fghij", OTHER_ROOT)
        settle(controller, key)

        instance = _load(cluster, key)
        assert [r.name for r in instance.status.root_certificates] == ["fulcio-cert-ca-abcde", "fulcio-cert-ca-fghij"]
        assert cluster.secrets.get(old_config, NS) is None
        new_config = instance.status.server_config_ref.name
        assert cluster.secrets.get_data(NS, new_config, "roots.pem") == ROOT + OTHER_ROOT
        pod = cluster.deployments.get("ctlog", NS).spec.template.spec
        assert pod.volumes[0].secret.secret_name == new_config
        assert not instance.conditions.is_true(READY)
        assert "CTlogConfigUpdated" in cluster.recorder.reasons

    def test_user_key_derives_public_key(self, cluster, controller, settle):
        private_key, pem = _encrypted_key(b"hunter2")
        cluster.secrets.add("my-key", NS, {"private": pem, "password": b"hunter2"})
        cluster.secrets.add("my-root", NS, {"ca": ROOT})
        key = _create(
            cluster,
            {
                "treeID": 7,
                "privateKeyRef": {"name": "my-key", "key": "private"},
                "privateKeyPasswordRef": {"name": "my-key", "key": "password"},
                "rootCertificates": [{"name": "my-root", "key": "ca"}],
            },
        )

        assert _converge(cluster, controller, settle, key).kind == DirectiveKind.DONE

        instance = _load(cluster, key)
        assert instance.status.private_key_ref == S(name="my-key", key="private")
        public_ref = instance.status.public_key_ref
        assert public_ref.name.startswith("ctlog-keys-sample-")
        public_key = serialization.load_pem_public_key(cluster.secrets.get_data(NS, public_ref.name, "public"))
        assert public_key.public_numbers() == private_key.public_key().public_numbers()
        text = cluster.secrets.get_data(NS, instance.status.server_config_ref.name, "config").decode()
        assert 'password: "hunter2"' in text
        assert instance.status.root_certificates == [S(name="my-root", key="ca")]

    def test_missing_key_secret_waits(self, cluster, controller, settle):
        _add_fulcio_root(cluster)
        key = _create(cluster, {"treeID": 7, "privateKeyRef": {"name": "my-key", "key": "private"}})

        directive = settle(controller, key)

        assert directive.requeue_after == 5.0
        condition = _load(cluster, key).conditions.find(KEYS_CONDITION)
        assert (condition.reason, condition.message) == ("Pending", "Waiting for secret my-key/private")

    def test_wrong_key_password_fails(self, cluster, controller, settle):
        _, pem = _encrypted_key(b"right")
        cluster.secrets.add("my-key", NS, {"private": pem, "password": b"wrong"})
        _add_fulcio_root(cluster)
        key = _create(
            cluster,
            {
                "treeID": 7,
                "privateKeyRef": {"name": "my-key", "key": "private"},
                "privateKeyPasswordRef": {"name": "my-key", "key": "password"},
            },
        )

        directive = settle(controller, key)

        assert directive.kind == DirectiveKind.ERROR
        instance = _load(cluster, key)
        assert instance.conditions.reason_of(KEYS_CONDITION) == "Failure"
        assert instance.conditions.find(READY).message.startswith("handle keys: cannot load private key my-key/private")
        assert cluster.deployments.get("ctlog", NS) is None

    def test_creates_tree_for_log(self, cluster, controller, settle):
        _add_fulcio_root(cluster)
        key = _create(cluster)

        settle(controller, key)

        job = cluster.jobs.get("ctlog-createtree-sample", NS)
        args = job.spec.template.spec.containers[0].args
        assert "--configmap=ctlog-tree-sample" in args
        assert "--display_name=ctlog-tree" in args
        assert _load(cluster, key).status.server_config_ref is None


class TestRenderLogConfig:
    """Test cases for the rendered ct_server configuration."""

    def test_password_is_quoted(self):
        instance = CTlog.model_validate(
            {
                "metadata": {"name": "sample", "namespace": NS},
                "spec": {"trillianAddress": "trillian.other.svc", "trillianPort": 9000},
                "status": {"treeID": 11},
            }
        )

        text = render_log_config(instance, 'pa"ss')

        assert 'password: "pa\\"ss"' in text
        assert 'backend_spec: "trillian.other.svc:9000"' in text
        assert "log_id: 11" in text
