"""Drift detection for workloads the operator owns."""

import copy
import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from kubernetes.client import ApiClient, V1Deployment

logger = logging.getLogger(__name__)

_serializer = ApiClient()

# Container fields the operator synthesizes. Everything else on a container
# (resources tuned by users, health checks defaulted by the platform) is left alone.
CONTAINER_FIELDS = ("image", "command", "args", "env", "volumeMounts", "ports")
VOLUMES = "spec.template.spec.volumes"
# Maps merged with what other writers add. Every other owned field is
# compared as a whole value.
MERGED_FIELDS = ("metadata.labels", "spec.template.metadata.labels", "spec.template.metadata.annotations")


def to_dict(obj: Any) -> Any:
    """Serialize a client model to its camelCase wire form, dropping None."""
    return _serializer.sanitize_for_serialization(obj)


def content_hash(data: Any) -> str:
    """Stable digest of JSON-serializable data, used as a rollout marker."""
    encoded = json.dumps(data, sort_keys=True, default=str).encode()
    return hashlib.sha256(encoded).hexdigest()[:16]


def derivative_equal(desired: Any, live: Any) -> bool:
    """
    Compare ``live`` against ``desired`` ignoring what ``desired`` leaves unset.

    Fields the API server defaults (``protocol: TCP``, ``terminationMessagePath``)
    appear only on the live side and must not count as drift. Lists are
    compared element by element and must have the same length.
    """
    if desired is None or desired == "" or desired == [] or desired == {}:
        return True
    if isinstance(desired, dict):
        if not isinstance(live, dict):
            return False
        return all(derivative_equal(v, live.get(k)) for k, v in desired.items())
    if isinstance(desired, list):
        if not isinstance(live, list) or len(desired) != len(live):
            return False
        return all(derivative_equal(d, l) for d, l in zip(desired, live))
    return desired == live


def owned_equal(desired: Any, live: Any) -> bool:
    """
    Compare a field the operator owns as a whole.

    An unset or empty desired value requires an unset or empty live value,
    and lists must have the same length. Elements are still compared with
    :func:`derivative_equal`, so defaults the API server fills into list
    items (``fieldRef.apiVersion``) do not count as drift.
    """
    if desired in (None, "", [], {}):
        return live in (None, "", [], {})
    if isinstance(desired, list) and (not isinstance(live, list) or len(desired) != len(live)):
        return False
    return derivative_equal(desired, live)


@dataclass(frozen=True)
class Drift:
    """One owned field whose live value differs from the desired one."""

    path: str
    desired: Any
    live: Any

    def __str__(self) -> str:
        return self.path


class DriftDetector:
    """
    Compares a freshly synthesized Deployment with the live one.

    Only owned fields take part in the comparison: the labels and
    annotations the desired object sets, the synthesized fields of each
    container (matched by name), the pod volumes and the service account.
    Replica count and platform bookkeeping are never owned.
    """

    def __init__(self, container_fields: Iterable[str] = CONTAINER_FIELDS):
        self.container_fields = tuple(container_fields)

    def owned_fields(self, deployment: V1Deployment) -> dict[str, Any]:
        """
        Extract the owned fields of a Deployment as plain data.

        Returns:
            Dict keyed by field path
        """
        body = to_dict(deployment) or {}
        template = body.get("spec", {}).get("template", {})
        pod = template.get("spec", {})
        fields: dict[str, Any] = {
            "metadata.labels": body.get("metadata", {}).get("labels"),
            "spec.template.metadata.labels": template.get("metadata", {}).get("labels"),
            "spec.template.metadata.annotations": template.get("metadata", {}).get("annotations"),
            VOLUMES: pod.get("volumes"),
            "spec.template.spec.serviceAccountName": pod.get("serviceAccountName"),
        }
        for container in pod.get("containers", []):
            prefix = f"spec.template.spec.containers[{container['name']}]"
            for name in self.container_fields:
                fields[f"{prefix}.{name}"] = container.get(name)
        return fields

    def diff(self, desired: V1Deployment, live: V1Deployment) -> list[Drift]:
        """
        List the owned fields that drifted.

        Args:
            desired: Deployment synthesized from the current resource state
            live: Deployment as read from the cluster

        Returns:
            Drifted fields, empty when the live object matches
        """
        wanted = self.owned_fields(desired)
        actual = self.owned_fields(live)
        drifts = []
        for path, value in wanted.items():
            current = actual.get(path)
            equal = derivative_equal if path in MERGED_FIELDS else owned_equal
            if not equal(value, current):
                drifts.append(Drift(path, value, current))
        return drifts

    def has_drift(self, desired: V1Deployment, live: V1Deployment) -> bool:
        return bool(self.diff(desired, live))

    def apply(self, desired: V1Deployment, live: V1Deployment) -> V1Deployment:
        """
        Copy the owned fields of ``desired`` onto ``live``.

        Fields not owned by the operator, and the resourceVersion of the live
        object, are preserved so the following replace is an optimistic
        update that does not clobber other writers.

        Returns:
            The mutated live object
        """
        desired = copy.deepcopy(desired)
        live.metadata.labels = {**(live.metadata.labels or {}), **(desired.metadata.labels or {})}

        template = live.spec.template
        wanted = desired.spec.template
        template.metadata.labels = {**(template.metadata.labels or {}), **(wanted.metadata.labels or {})}
        if wanted.metadata.annotations:
            template.metadata.annotations = {
                **(template.metadata.annotations or {}),
                **wanted.metadata.annotations,
            }

        containers = {c.name: c for c in template.spec.containers or []}
        for container in wanted.spec.containers:
            current = containers.get(container.name)
            if current is None:
                template.spec.containers = list(template.spec.containers or []) + [container]
                continue
            current.image = container.image
            current.command = container.command
            current.args = container.args
            current.env = container.env
            current.volume_mounts = container.volume_mounts
            current.ports = container.ports

        template.spec.volumes = wanted.spec.volumes
        template.spec.service_account_name = wanted.spec.service_account_name
        logger.debug(f"Applied owned fields to deployment {live.metadata.namespace}/{live.metadata.name}")
        return live
