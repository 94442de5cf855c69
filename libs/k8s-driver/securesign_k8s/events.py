"""Kubernetes event recording."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from kubernetes.client import CoreV1Event, V1EventSource, V1ObjectMeta, V1ObjectReference

from .cluster import ClusterConnection
from .models import EventType, ObjectReference

logger = logging.getLogger(__name__)


class EventRecorder:
    """
    Records Kubernetes events against reconciled resources.

    Recording is fire-and-forget: events are posted from a background
    thread and failures are logged, never raised to the caller.
    """

    def __init__(
        self,
        cluster: ClusterConnection,
        component: str = "securesign-operator",
        max_workers: int = 1,
    ):
        """
        Initialize event recorder.

        Args:
            cluster: Cluster connection
            component: Reporting component name
            max_workers: Threads posting events
        """
        self.cluster = cluster
        self.component = component
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="event-recorder"
        )

    def record(
        self,
        obj: ObjectReference,
        event_type: EventType,
        reason: str,
        message: str,
    ) -> None:
        """
        Record an event.

        Args:
            obj: Involved object
            event_type: Normal or Warning
            reason: Machine readable reason (CamelCase)
            message: Human readable message
        """
        if self._executor is None:
            logger.debug(f"Event recorder closed, dropping event {reason} for {obj.name}")
            return
        event = self._build(obj, event_type, reason, message)
        future = self._executor.submit(
            self.cluster.core_v1.create_namespaced_event, obj.namespace, event
        )
        future.add_done_callback(self._log_failure)

    def _build(
        self, obj: ObjectReference, event_type: EventType, reason: str, message: str
    ) -> CoreV1Event:
        now = datetime.now(timezone.utc)
        return CoreV1Event(
            metadata=V1ObjectMeta(
                name=f"{obj.name}.{uuid4().hex[:16]}",
                namespace=obj.namespace,
            ),
            involved_object=V1ObjectReference(
                api_version=obj.api_version,
                kind=obj.kind,
                name=obj.name,
                namespace=obj.namespace,
                uid=obj.uid,
                resource_version=obj.resource_version,
            ),
            type=EventType(event_type).value,
            reason=reason,
            message=message,
            source=V1EventSource(component=self.component),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )

    @staticmethod
    def _log_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning(f"Failed to record event: {exc}")

    def close(self) -> None:
        """Stop accepting events and wait for in-flight posts."""
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None
