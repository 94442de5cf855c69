"""Wires cluster watches to the per-kind controllers."""

import asyncio
import logging
from typing import Any, Optional

from securesign_k8s import (
    ClusterAccessor,
    ObjectKey,
    ResourceWatcher,
    WatchEvent,
    instance_label_keys,
    label_selector,
    owner_keys,
)
from securesign_k8s.meta import MANAGED_BY

from . import ctlog, fulcio, rekor, securesign
from .api import KINDS, CTlog, Fulcio, Rekor, Securesign
from .common.constants import FULCIO_CA_LABEL, SERVICE_MONITOR_KIND
from .config import Settings
from .controller import Controller, Directive, DirectiveKind
from .queue import WorkQueue
from .rekor.constants import REKOR_PUB_LABEL

logger = logging.getLogger(__name__)

PIPELINES = {
    Rekor.kind_name: (Rekor, rekor.build_pipeline, rekor.TRACKED_CONDITIONS),
    Fulcio.kind_name: (Fulcio, fulcio.build_pipeline, fulcio.TRACKED_CONDITIONS),
    CTlog.kind_name: (CTlog, ctlog.build_pipeline, ctlog.TRACKED_CONDITIONS),
    Securesign.kind_name: (Securesign, securesign.build_pipeline, securesign.TRACKED_CONDITIONS),
}

# Kinds that discover secrets by label, with the label they look for.
SECRET_CONSUMERS = {
    Rekor.kind_name: REKOR_PUB_LABEL,
    CTlog.kind_name: FULCIO_CA_LABEL,
}

# (resource type, accessor API attribute, client method suffix)
CHILD_KINDS = (
    ("deployment", "apps_v1", "deployment"),
    ("service", "core_v1", "service"),
    ("config_map", "core_v1", "config_map"),
    ("persistent_volume_claim", "core_v1", "persistent_volume_claim"),
    ("job", "batch_v1", "job"),
    ("ingress", "networking_v1", "ingress"),
)


def build_controllers(settings: Settings, client: ClusterAccessor) -> dict[str, Controller]:
    """
    Register every kind on the accessor and build the enabled controllers.

    Args:
        settings: Application settings
        client: Cluster accessor

    Returns:
        Controllers by kind name
    """
    for kind in KINDS:
        client.register_kind(kind.group, kind.version, kind.plural, kind.kind_name)
    client.register_kind(*SERVICE_MONITOR_KIND)

    controllers = {}
    for name in settings.enabled_kinds:
        if name not in PIPELINES:
            raise ValueError(f"Unknown kind {name}, expected one of {', '.join(PIPELINES)}")
        kind, build, tracked = PIPELINES[name]
        controllers[name] = Controller(
            kind, build(settings), tracked, client, timeout=settings.reconcile_timeout_seconds
        )
    return controllers


class Manager:
    """
    Runs watches and reconciliation workers.

    Watches run in threads and hand keys to the event loop; workers pull
    keys from the work queue and reconcile them in threads so that a slow
    resource never blocks the others. The queue guarantees a key is
    processed by one worker at a time.
    """

    def __init__(
        self,
        settings: Settings,
        client: ClusterAccessor,
        controllers: dict[str, Controller],
        queue: Optional[WorkQueue] = None,
    ):
        """
        Initialize manager.

        Args:
            settings: Application settings
            client: Cluster accessor
            controllers: Controllers by kind name
            queue: Work queue, created from settings when omitted
        """
        self.settings = settings
        self.client = client
        self.controllers = controllers
        if queue is None:
            queue = WorkQueue(
                base_delay=settings.requeue_base_delay_seconds,
                max_delay=settings.requeue_max_delay_seconds,
            )
        self.queue = queue
        self.watcher = ResourceWatcher(client.cluster)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: list[asyncio.Task] = []
        self._running = False

    async def start(self) -> None:
        """Start watches and workers."""
        if self._running:
            logger.warning("Manager already running")
            return
        self._running = True
        self._loop = asyncio.get_running_loop()
        namespace = self.settings.watch_namespace

        for name in self.controllers:
            manager = self.client.custom(name)
            self.watcher.register_handler(manager.plural, self.handle_custom_event)
            self._spawn(self.watcher.watch_custom_objects, manager, namespace)

        managed = label_selector({"app.kubernetes.io/managed-by": MANAGED_BY})
        for resource_type, api_name, suffix in CHILD_KINDS:
            api = getattr(self.client.cluster, api_name)
            self.watcher.register_handler(resource_type, self.handle_child_event)
            self._spawn(self.watcher.watch_namespaced, resource_type, api, suffix, namespace, managed)

        self.watcher.register_handler("secret", self.handle_secret_event)
        self._spawn(self.watcher.watch_namespaced, "secret", self.client.cluster.core_v1, "secret", namespace)

        for index in range(self.settings.workers):
            self._tasks.append(asyncio.create_task(self._worker(index)))
        logger.info(f"Manager started: {', '.join(self.controllers)} with {self.settings.workers} workers")

    async def stop(self) -> None:
        """Stop watches and workers."""
        logger.info("Stopping manager...")
        self._running = False
        self.watcher.stop()
        self.queue.shut_down()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Manager stopped")

    def _spawn(self, func: Any, *args: Any) -> None:
        self._tasks.append(asyncio.create_task(self._watch_loop(func, *args)))

    async def _watch_loop(self, func: Any, *args: Any) -> None:
        # Streams are bounded by the watch timeout so a stop is noticed.
        while self._running:
            try:
                await asyncio.to_thread(func, *args, timeout_seconds=self.settings.watch_timeout_seconds)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Watch failed, restarting: {e}", exc_info=True)
                await asyncio.sleep(self.settings.requeue_base_delay_seconds)

    def enqueue(self, kind: str, key: ObjectKey) -> None:
        """Queue a key from any thread."""
        if kind not in self.controllers or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self.queue.add, (kind, key))

    def handle_custom_event(self, event: WatchEvent) -> None:
        for name, controller in self.controllers.items():
            if controller.objects.plural == event.resource_type:
                self.enqueue(name, ObjectKey(event.namespace, event.name))
        self.handle_child_event(event)

    def handle_child_event(self, event: WatchEvent) -> None:
        for name in self.controllers:
            for key in owner_keys(event, name):
                self.enqueue(name, key)

    def handle_secret_event(self, event: WatchEvent) -> None:
        """
        Map a secret change to the resources that may reference it.

        Owned secrets go to their owner. A secret carrying the discovery
        label of a consumer kind also goes to the consumer named by its
        instance label or, for owned secrets and secrets without one, to
        every consumer in the namespace. Other secrets are ignored.
        """
        owned = any(owner_keys(event, name) for name in self.controllers)
        if owned:
            self.handle_child_event(event)
        for name, label in SECRET_CONSUMERS.items():
            if name not in self.controllers or label not in event.labels:
                continue
            keys = [] if owned else instance_label_keys(event)
            if not keys:
                keys = [
                    ObjectKey(event.namespace, body["metadata"]["name"])
                    for body in self.client.custom(name).list(event.namespace)
                ]
            for key in keys:
                self.enqueue(name, key)

    async def _worker(self, index: int) -> None:
        logger.debug(f"Worker {index} started")
        while True:
            item = await self.queue.get()
            name, key = item
            try:
                directive = await asyncio.to_thread(self.controllers[name].reconcile, key)
            except Exception as e:
                logger.error(f"Reconciliation of {name} {key} raised: {e}", exc_info=True)
                directive = Directive.failed(e)
            self.schedule(item, directive)
            self.queue.done(item)

    def schedule(self, item: tuple[str, ObjectKey], directive: Directive) -> None:
        """Apply a controller directive to the work queue."""
        if directive.kind == DirectiveKind.ERROR:
            delay = self.queue.add_rate_limited(item)
            logger.warning(f"{item[0]} {item[1]} failed ({directive.error}), retrying in {delay:.1f}s")
            return
        self.queue.forget(item)
        if directive.kind == DirectiveKind.REQUEUE:
            self.queue.add_after(item, directive.requeue_after)
