"""Pytest configuration and fixtures for operator tests."""

import base64
import copy
import itertools
import random
import string
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from kubernetes.client import V1DeploymentCondition, V1DeploymentStatus, V1ObjectMeta, V1Secret

from securesign_engine.drift import to_dict
from securesign_k8s import ConflictError, NotFoundError

from securesign_operator.api import KINDS
from securesign_operator.common.constants import SERVICE_MONITOR_KIND
from securesign_operator.config import Settings
from securesign_operator.controller import DirectiveKind


def _matches(labels, selector):
    labels = labels or {}
    for key, value in (selector or {}).items():
        if key not in labels or (value is not None and labels[key] != value):
            return False
    return True


def _suffix():
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=5))


class FakeStore:
    """
    In-memory stand-in for one namespaced resource manager.

    Objects are stored and returned as copies, resourceVersions are checked
    on replace and every write is appended to the cluster write log.
    """

    def __init__(self, cluster, kind):
        self.cluster = cluster
        self.kind = kind
        self.objects = {}

    def get(self, name, namespace):
        obj = self.objects.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def list(self, namespace, labels=None):
        return [
            copy.deepcopy(obj)
            for (ns, _), obj in sorted(self.objects.items(), key=lambda item: item[0])
            if ns == namespace and _matches(obj.metadata.labels, labels)
        ]

    def create(self, body):
        body = copy.deepcopy(body)
        meta = body.metadata
        if not meta.name:
            meta.name = f"{meta.generate_name}{_suffix()}"
        key = (meta.namespace, meta.name)
        if key in self.objects:
            raise ConflictError(f"{self.kind} {key} already exists", 409)
        meta.uid = str(uuid.uuid4())
        meta.resource_version = self.cluster.next_version()
        meta.generation = 1
        meta.creation_timestamp = datetime.now(timezone.utc)
        self.objects[key] = body
        self.cluster.log("create", self.kind, meta.name)
        return copy.deepcopy(body)

    def replace(self, body):
        meta = body.metadata
        key = (meta.namespace, meta.name)
        existing = self.objects.get(key)
        if existing is None:
            raise NotFoundError(f"{self.kind} {key} not found", 404)
        if meta.resource_version != existing.metadata.resource_version:
            raise ConflictError(f"{self.kind} {key} was modified", 409)
        body = copy.deepcopy(body)
        generation = existing.metadata.generation or 1
        if hasattr(body, "spec") and to_dict(body.spec) != to_dict(existing.spec):
            generation += 1
        body.metadata.generation = generation
        body.metadata.resource_version = self.cluster.next_version()
        self.objects[key] = body
        self.cluster.log("replace", self.kind, meta.name)
        return copy.deepcopy(body)

    def patch(self, name, namespace, body):
        raise NotImplementedError

    def delete(self, name, namespace):
        if self.objects.pop((namespace, name), None) is None:
            return False
        self.cluster.log("delete", self.kind, name)
        return True

    def tamper(self, name, namespace, mutate):
        """Change an object behind the operator's back, as another writer would."""
        obj = self.objects[(namespace, name)]
        mutate(obj)
        obj.metadata.resource_version = self.cluster.next_version()


class FakeSecrets(FakeStore):
    """Secret store with the lookup helpers of SecretManager."""

    def find_by_label(self, namespace, label):
        items = self.list(namespace, {label: None})
        return items[0] if items else None

    def get_data(self, namespace, name, key):
        secret = self.get(name, namespace)
        if secret is None or key not in (secret.data or {}):
            raise NotFoundError(f"{namespace}/{name}:{key} not found", 404)
        return base64.b64decode(secret.data[key])

    def has_key(self, namespace, name, key):
        secret = self.get(name, namespace)
        return secret is not None and key in (secret.data or {})

    def add(self, name, namespace, data, labels=None):
        """Create a user supplied secret from raw values."""
        return self.create(
            V1Secret(
                metadata=V1ObjectMeta(name=name, namespace=namespace, labels=labels),
                data={k: base64.b64encode(v).decode() for k, v in data.items()},
            )
        )


class FakeCustomObjects:
    """In-memory stand-in for CustomObjectManager holding plain dicts."""

    def __init__(self, cluster, group, version, plural, kind):
        self.cluster = cluster
        self.group = group
        self.version = version
        self.plural = plural
        self.kind = kind
        self.objects = {}

    @property
    def api_version(self):
        return f"{self.group}/{self.version}"

    def get(self, name, namespace):
        obj = self.objects.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def list(self, namespace=None, labels=None):
        return [
            copy.deepcopy(obj)
            for (ns, _), obj in sorted(self.objects.items(), key=lambda item: item[0])
            if (namespace is None or ns == namespace)
            and _matches(obj["metadata"].get("labels"), labels)
        ]

    def create(self, body):
        body = copy.deepcopy(body)
        body.setdefault("apiVersion", self.api_version)
        body.setdefault("kind", self.kind)
        meta = body["metadata"]
        key = (meta["namespace"], meta["name"])
        if key in self.objects:
            raise ConflictError(f"{self.kind} {key} already exists", 409)
        meta["uid"] = str(uuid.uuid4())
        meta["resourceVersion"] = self.cluster.next_version()
        meta["generation"] = 1
        self.objects[key] = body
        self.cluster.log("create", self.kind, meta["name"])
        return copy.deepcopy(body)

    def _existing(self, body):
        meta = body["metadata"]
        key = (meta["namespace"], meta["name"])
        existing = self.objects.get(key)
        if existing is None:
            raise NotFoundError(f"{self.kind} {key} not found", 404)
        if meta.get("resourceVersion") != existing["metadata"]["resourceVersion"]:
            raise ConflictError(f"{self.kind} {key} was modified", 409)
        return key, existing

    def replace(self, body):
        key, existing = self._existing(body)
        stored = copy.deepcopy(body)
        # The status subresource is not written through the main resource.
        if "status" in existing:
            stored["status"] = copy.deepcopy(existing["status"])
        else:
            stored.pop("status", None)
        if stored.get("spec") != existing.get("spec"):
            stored["metadata"]["generation"] = existing["metadata"]["generation"] + 1
        stored["metadata"]["resourceVersion"] = self.cluster.next_version()
        self.objects[key] = stored
        self.cluster.log("replace", self.kind, key[1])
        return copy.deepcopy(stored)

    def replace_status(self, body):
        key, existing = self._existing(body)
        existing["status"] = copy.deepcopy(body.get("status", {}))
        existing["metadata"]["resourceVersion"] = self.cluster.next_version()
        self.cluster.log("replace_status", self.kind, key[1])
        return copy.deepcopy(existing)

    def delete(self, name, namespace):
        if self.objects.pop((namespace, name), None) is None:
            return False
        self.cluster.log("delete", self.kind, name)
        return True

    def update_spec(self, name, namespace, mutate):
        """Edit the spec as a user would, through a read-modify-replace."""
        body = self.get(name, namespace)
        mutate(body["spec"])
        return self.replace(body)


class FakeRecorder:
    """Event sink keeping every recorded event."""

    def __init__(self):
        self.events = []

    def record(self, obj, event_type, reason, message):
        self.events.append((obj.kind, obj.name, event_type, reason, message))

    @property
    def reasons(self):
        return [event[3] for event in self.events]

    def close(self):
        pass


class FakeCluster:
    """In-memory cluster accessor."""

    def __init__(self):
        self._versions = itertools.count(1)
        self.writes = []
        self.cluster = MagicMock()
        self.deployments = FakeStore(self, "Deployment")
        self.jobs = FakeStore(self, "Job")
        self.secrets = FakeSecrets(self, "Secret")
        self.config_maps = FakeStore(self, "ConfigMap")
        self.services = FakeStore(self, "Service")
        self.pvcs = FakeStore(self, "PersistentVolumeClaim")
        self.ingresses = FakeStore(self, "Ingress")
        self.service_accounts = FakeStore(self, "ServiceAccount")
        self.roles = FakeStore(self, "Role")
        self.role_bindings = FakeStore(self, "RoleBinding")
        self.recorder = FakeRecorder()
        self._custom = {}

    def next_version(self):
        return str(next(self._versions))

    def log(self, verb, kind, name):
        self.writes.append((verb, kind, name))

    def register_kind(self, group, version, plural, kind):
        manager = FakeCustomObjects(self, group, version, plural, kind)
        self._custom[kind] = manager
        return manager

    def custom(self, kind):
        return self._custom[kind]

    def close(self):
        pass

    def mark_available(self, name, namespace):
        """Report a Deployment as fully rolled out at its current generation."""

        def rolled_out(deployment):
            replicas = deployment.spec.replicas or 1
            deployment.status = V1DeploymentStatus(
                observed_generation=deployment.metadata.generation,
                replicas=replicas,
                updated_replicas=replicas,
                available_replicas=replicas,
                conditions=[V1DeploymentCondition(type="Available", status="True")],
            )

        self.deployments.tamper(name, namespace, rolled_out)


@pytest.fixture
def cluster():
    """Fake cluster with every operator kind registered."""
    fake = FakeCluster()
    for kind in KINDS:
        fake.register_kind(kind.group, kind.version, kind.plural, kind.kind_name)
    fake.register_kind(*SERVICE_MONITOR_KIND)
    return fake


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return Settings(_env_file=None, wait_for_server_requeue_seconds=5.0)


@pytest.fixture
def settle():
    """Reconcile a key until it is done or waits on something external."""

    def run(controller, key, limit=50):
        for _ in range(limit):
            directive = controller.reconcile(key)
            if directive.kind != DirectiveKind.REQUEUE or directive.requeue_after > 0:
                return directive
        raise AssertionError(f"{controller.name} {key} did not settle after {limit} invocations")

    return run
