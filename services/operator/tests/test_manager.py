"""Tests for watch wiring and scheduling."""

import asyncio
from unittest.mock import MagicMock

import pytest

from securesign_k8s import ObjectKey, WatchEvent

from securesign_operator.common.constants import FULCIO_CA_LABEL
from securesign_operator.config import Settings
from securesign_operator.controller import Directive
from securesign_operator.manager import Manager, build_controllers
from securesign_operator.queue import WorkQueue
from securesign_operator.rekor.constants import REKOR_PUB_LABEL

NS = "ns"


def _event(resource_type, name, labels=None, owner=None):
    owners = [{"kind": owner[0], "name": owner[1], "controller": True}] if owner else []
    return WatchEvent(
        event_type="MODIFIED",
        resource_type=resource_type,
        name=name,
        namespace=NS,
        labels=labels or {},
        owner_references=owners,
    )


def _drain(queue):
    items = []
    while len(queue):
        items.append(queue._queue.popleft())
    return items


@pytest.fixture
def manager(cluster, settings):
    return Manager(settings, cluster, build_controllers(settings, cluster), WorkQueue(base_delay=0.5))


class TestBuildControllers:
    """Test cases for build_controllers."""

    def test_builds_enabled_kinds(self, cluster):
        settings = Settings(_env_file=None, enabled_kinds=["Rekor"], reconcile_timeout_seconds=12.0)

        controllers = build_controllers(settings, cluster)

        assert list(controllers) == ["Rekor"]
        assert controllers["Rekor"].timeout == 12.0
        assert controllers["Rekor"].pipeline.name == "rekor"
        # Every kind is known to the accessor, so owned children can be created.
        assert cluster.custom("Securesign").plural == "securesigns"
        assert cluster.custom("ServiceMonitor").api_version == "monitoring.coreos.com/v1"

    def test_rejects_unknown_kind(self, cluster):
        settings = Settings(_env_file=None, enabled_kinds=["Rekor", "Tuf"])

        with pytest.raises(ValueError, match="Unknown kind Tuf"):
            build_controllers(settings, cluster)


class TestEventMapping:
    """Test cases for mapping watch events to queue keys."""

    @pytest.mark.asyncio
    async def test_custom_event_queues_resource(self, manager):
        manager._loop = asyncio.get_running_loop()

        manager.handle_custom_event(_event("rekors", "sample"))
        await asyncio.sleep(0)

        assert _drain(manager.queue) == [("Rekor", ObjectKey(NS, "sample"))]

    @pytest.mark.asyncio
    async def test_owned_component_queues_owner(self, manager):
        """Test that a Rekor owned by a Securesign wakes both."""
        manager._loop = asyncio.get_running_loop()

        manager.handle_custom_event(_event("rekors", "stack", owner=("Securesign", "stack")))
        await asyncio.sleep(0)

        assert _drain(manager.queue) == [("Rekor", ObjectKey(NS, "stack")), ("Securesign", ObjectKey(NS, "stack"))]

    @pytest.mark.asyncio
    async def test_child_event_queues_controlling_owner(self, manager):
        manager._loop = asyncio.get_running_loop()

        manager.handle_child_event(_event("deployment", "rekor-server", owner=("Rekor", "sample")))
        manager.handle_child_event(_event("deployment", "unowned"))
        await asyncio.sleep(0)

        assert _drain(manager.queue) == [("Rekor", ObjectKey(NS, "sample"))]

    @pytest.mark.asyncio
    async def test_labelled_secret_queues_named_instance(self, manager):
        manager._loop = asyncio.get_running_loop()

        manager.handle_secret_event(
            _event("secret", "pub", labels={REKOR_PUB_LABEL: "public", "app.kubernetes.io/instance": "sample"})
        )
        await asyncio.sleep(0)

        assert _drain(manager.queue) == [("Rekor", ObjectKey(NS, "sample"))]

    @pytest.mark.asyncio
    async def test_labelled_secret_queues_consumers_in_namespace(self, manager, cluster):
        cluster.custom("CTlog").create({"metadata": {"name": "log", "namespace": NS}, "spec": {}})
        cluster.custom("CTlog").create({"metadata": {"name": "other", "namespace": "elsewhere"}, "spec": {}})
        manager._loop = asyncio.get_running_loop()

        manager.handle_secret_event(_event("secret", "root", labels={FULCIO_CA_LABEL: "cert"}))
        await asyncio.sleep(0)

        assert _drain(manager.queue) == [("CTlog", ObjectKey(NS, "log"))]

    @pytest.mark.asyncio
    async def test_owned_ca_secret_queues_owner_and_consumers(self, manager, cluster):
        """Test that a generated Fulcio CA wakes every CTlog, whatever their names."""
        cluster.custom("CTlog").create({"metadata": {"name": "log", "namespace": NS}, "spec": {}})
        manager._loop = asyncio.get_running_loop()

        manager.handle_secret_event(
            _event(
                "secret",
                "fulcio-cert-ca-x",
                labels={FULCIO_CA_LABEL: "cert", "app.kubernetes.io/instance": "ca"},
                owner=("Fulcio", "ca"),
            )
        )
        await asyncio.sleep(0)

        assert _drain(manager.queue) == [("Fulcio", ObjectKey(NS, "ca")), ("CTlog", ObjectKey(NS, "log"))]

    @pytest.mark.asyncio
    async def test_unlabelled_secret_queues_nothing(self, manager, cluster):
        for kind in ("Rekor", "Fulcio", "CTlog"):
            cluster.custom(kind).create({"metadata": {"name": "sample", "namespace": NS}, "spec": {}})
        manager._loop = asyncio.get_running_loop()

        manager.handle_secret_event(_event("secret", "pw"))
        manager.handle_secret_event(_event("secret", "token", labels={"app.kubernetes.io/instance": "sample"}))
        await asyncio.sleep(0)

        assert _drain(manager.queue) == []

    @pytest.mark.asyncio
    async def test_owned_secret_queues_owner_only(self, manager):
        manager._loop = asyncio.get_running_loop()

        manager.handle_secret_event(
            _event("secret", "rekor-signer-x", labels={"app.kubernetes.io/instance": "x"}, owner=("Rekor", "x"))
        )
        await asyncio.sleep(0)

        assert _drain(manager.queue) == [("Rekor", ObjectKey(NS, "x"))]

    def test_events_before_start_are_ignored(self, manager):
        manager.handle_custom_event(_event("rekors", "sample"))

        assert len(manager.queue) == 0


class TestScheduling:
    """Test cases for applying directives to the queue."""

    ITEM = ("Rekor", ObjectKey(NS, "sample"))

    @pytest.mark.asyncio
    async def test_error_backs_off(self, manager):
        manager.schedule(self.ITEM, Directive.failed(RuntimeError("boom")))
        manager.schedule(self.ITEM, Directive.failed(RuntimeError("boom")))

        assert manager.queue.num_requeues(self.ITEM) == 2
        assert len(manager.queue) == 0

    @pytest.mark.asyncio
    async def test_success_resets_backoff(self, manager):
        manager.schedule(self.ITEM, Directive.failed(RuntimeError("boom")))

        manager.schedule(self.ITEM, Directive.done())

        assert manager.queue.num_requeues(self.ITEM) == 0
        assert len(manager.queue) == 0

    @pytest.mark.asyncio
    async def test_requeue_now_and_later(self, manager):
        manager.schedule(self.ITEM, Directive.requeue())
        assert _drain(manager.queue) == [self.ITEM]

        manager.schedule(self.ITEM, Directive.requeue(0.01))
        assert len(manager.queue) == 0
        await asyncio.sleep(0.05)
        assert _drain(manager.queue) == [self.ITEM]


class TestWorker:
    """Test cases for the reconciliation workers."""

    @pytest.mark.asyncio
    async def test_worker_reconciles_and_schedules(self, cluster, settings):
        controller = MagicMock()
        controller.reconcile.side_effect = [Directive.requeue(), Directive.done()]
        queue = WorkQueue()
        manager = Manager(settings, cluster, {"Rekor": controller}, queue)
        key = ObjectKey(NS, "sample")

        queue.add(("Rekor", key))
        worker = asyncio.create_task(manager._worker(0))
        for _ in range(100):
            if controller.reconcile.call_count == 2:
                break
            await asyncio.sleep(0.01)
        worker.cancel()
        await asyncio.gather(worker, return_exceptions=True)

        assert controller.reconcile.call_count == 2
        controller.reconcile.assert_called_with(key)
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_worker_survives_controller_errors(self, cluster, settings):
        controller = MagicMock()
        controller.reconcile.side_effect = RuntimeError("bug")
        queue = WorkQueue(base_delay=10.0)
        manager = Manager(settings, cluster, {"Rekor": controller}, queue)
        item = ("Rekor", ObjectKey(NS, "sample"))

        queue.add(item)
        worker = asyncio.create_task(manager._worker(0))
        for _ in range(100):
            if queue.num_requeues(item):
                break
            await asyncio.sleep(0.01)

        assert not worker.done()
        assert queue.num_requeues(item) == 1
        worker.cancel()
        await asyncio.gather(worker, return_exceptions=True)
        queue.shut_down()
