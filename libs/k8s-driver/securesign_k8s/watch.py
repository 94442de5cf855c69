"""Kubernetes watch functionality."""

import functools
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from kubernetes import watch as k8s_watch
from kubernetes.client.exceptions import ApiException

from .cluster import ClusterConnection
from .custom_objects import CustomObjectManager
from .models import ObjectKey, WatchEvent

logger = logging.getLogger(__name__)

INSTANCE_LABEL = "app.kubernetes.io/instance"


def _metadata(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return obj.get("metadata", {})
    meta = obj.metadata
    return {
        "name": meta.name,
        "namespace": meta.namespace,
        "labels": meta.labels or {},
        "ownerReferences": [
            {"kind": r.kind, "name": r.name, "controller": r.controller, "apiVersion": r.api_version}
            for r in (meta.owner_references or [])
        ],
    }


def owner_keys(event: WatchEvent, owner_kind: str) -> list[ObjectKey]:
    """
    Map a child event to the key of its controlling owner.

    Args:
        event: Event on a child object
        owner_kind: Kind of the owning resource

    Returns:
        Zero or one owner keys
    """
    for ref in event.owner_references:
        if ref.get("controller") and ref.get("kind") == owner_kind:
            return [ObjectKey(event.namespace, ref["name"])]
    return []


def instance_label_keys(event: WatchEvent) -> list[ObjectKey]:
    """Map a labelled object to the resource named by its instance label."""
    instance = event.labels.get(INSTANCE_LABEL)
    if instance:
        return [ObjectKey(event.namespace, instance)]
    return []


class ResourceWatcher:
    """Watches Kubernetes resources for changes."""

    def __init__(self, cluster: ClusterConnection):
        """
        Initialize resource watcher.

        Args:
            cluster: Cluster connection
        """
        self.cluster = cluster
        self._watches: list[k8s_watch.Watch] = []
        self._handlers: dict[str, list[Callable[[WatchEvent], None]]] = {}
        self._running = True

    def register_handler(
        self,
        resource_type: str,
        handler: Callable[[WatchEvent], None],
    ) -> None:
        """
        Register a handler for watch events.

        Args:
            resource_type: Type of resource (rekor, deployment, secret, ...)
            handler: Callback function that takes WatchEvent
        """
        self._handlers.setdefault(resource_type, []).append(handler)

    def _emit_event(self, event: WatchEvent) -> None:
        """
        Emit a watch event to registered handlers.

        Args:
            event: Watch event to emit
        """
        for handler in self._handlers.get(event.resource_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in watch event handler: {e}", exc_info=True)

    def watch(
        self,
        resource_type: str,
        list_func: Callable[..., Any],
        label_selector: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        """
        Stream events from ``list_func`` until stopped.

        The stream is restarted from a fresh list when the API server reports
        that the resource version is too old (410 Gone).

        Args:
            resource_type: Name handlers were registered under
            list_func: Generated client list function
            label_selector: Label selector string
            timeout_seconds: Server-side timeout per stream
            **kwargs: Extra arguments for list_func (namespace, group, ...)
        """
        logger.info(f"Starting watch on {resource_type} (selector={label_selector})")
        while self._running:
            stream = k8s_watch.Watch()
            self._watches.append(stream)
            try:
                for event in stream.stream(
                    list_func,
                    label_selector=label_selector,
                    timeout_seconds=timeout_seconds,
                    **kwargs,
                ):
                    if event["type"] == "ERROR":
                        logger.warning(f"Watch error on {resource_type}: {event['object']}")
                        continue
                    meta = _metadata(event["object"])
                    self._emit_event(
                        WatchEvent(
                            event_type=event["type"],
                            resource_type=resource_type,
                            name=meta.get("name", ""),
                            namespace=meta.get("namespace") or "",
                            labels=meta.get("labels") or {},
                            owner_references=meta.get("ownerReferences") or [],
                            timestamp=datetime.utcnow(),
                        )
                    )
            except ApiException as e:
                if e.status == 410:  # Resource version too old
                    logger.warning(f"Watch on {resource_type} expired, restarting...")
                    continue
                logger.error(f"Error watching {resource_type}: {e}", exc_info=True)
                raise
            finally:
                self._watches.remove(stream)
            if timeout_seconds is not None:
                break

    def watch_custom_objects(
        self,
        manager: CustomObjectManager,
        namespace: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ) -> None:
        """Watch one custom resource kind."""
        api = self.cluster.custom_objects
        if namespace is None:
            list_func = functools.partial(
                api.list_cluster_custom_object, manager.group, manager.version, manager.plural
            )
        else:
            list_func = functools.partial(
                api.list_namespaced_custom_object,
                manager.group,
                manager.version,
                namespace,
                manager.plural,
            )
        # Custom objects are streamed as plain dicts.
        self.watch(manager.plural, list_func, timeout_seconds=timeout_seconds)

    def watch_namespaced(
        self,
        resource_type: str,
        api: Any,
        method_suffix: str,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ) -> None:
        """
        Watch a built-in namespaced kind in one or all namespaces.

        Args:
            resource_type: Name handlers were registered under
            api: Generated API object (CoreV1Api, AppsV1Api, ...)
            method_suffix: Kind suffix of the list method (e.g. "deployment")
            namespace: Kubernetes namespace, None for every namespace
            label_selector: Label selector string
            timeout_seconds: Server-side timeout per stream
        """
        if namespace is None:
            list_func = getattr(api, f"list_{method_suffix}_for_all_namespaces")
            self.watch(resource_type, list_func, label_selector, timeout_seconds)
        else:
            list_func = getattr(api, f"list_namespaced_{method_suffix}")
            self.watch(
                resource_type, list_func, label_selector, timeout_seconds, namespace=namespace
            )

    def stop(self) -> None:
        """Stop all active watches."""
        self._running = False
        for stream in list(self._watches):
            stream.stop()
