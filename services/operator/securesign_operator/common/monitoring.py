"""Prometheus scraping of a component."""

from typing import Any

from securesign_engine import BaseAction, Context, Resource, Result, owned_equal
from securesign_engine.drift import to_dict
from securesign_k8s import controller_reference, labels_for

from .constants import SERVICE_MONITOR_KIND


class MonitorAction(BaseAction):
    """Keeps a ServiceMonitor on the component metrics port while ``spec.monitoring.enabled`` is set."""

    name = "monitor"
    component: str = ""
    service_name: str = ""
    port_name: str = "metrics"

    @property
    def monitors(self):
        return self.client.custom(SERVICE_MONITOR_KIND[3])

    def desired_spec(self, instance: Resource) -> dict[str, Any]:
        return {
            "selector": {"matchLabels": labels_for(self.component, self.service_name, instance.name)},
            "endpoints": [{"port": self.port_name, "interval": "30s"}],
        }

    def can_handle(self, ctx: Context, instance: Resource) -> bool:
        live = self.monitors.get(self.service_name, instance.namespace)
        if not instance.spec.monitoring.enabled:
            return live is not None
        return live is None or not owned_equal(self.desired_spec(instance), live.get("spec") or {})

    def handle(self, ctx: Context, instance: Resource) -> Result:
        live = self.monitors.get(self.service_name, instance.namespace)
        if not instance.spec.monitoring.enabled:
            self.monitors.delete(self.service_name, instance.namespace)
            self.record_event(instance, "MonitorDeleted", f"ServiceMonitor deleted: {self.service_name}")
            return self.continue_()

        if live is None:
            self.monitors.create(
                {
                    "apiVersion": self.monitors.api_version,
                    "kind": SERVICE_MONITOR_KIND[3],
                    "metadata": {
                        "name": self.service_name,
                        "namespace": instance.namespace,
                        "labels": labels_for(self.component, self.service_name, instance.name),
                        "ownerReferences": [to_dict(controller_reference(instance.owner_body()))],
                    },
                    "spec": self.desired_spec(instance),
                }
            )
            self.record_event(instance, "MonitorCreated", f"ServiceMonitor created: {self.service_name}")
            return self.continue_()

        live["spec"] = self.desired_spec(instance)
        ctx.check()
        self.monitors.replace(live)
        self.record_event(instance, "MonitorUpdated", f"ServiceMonitor updated: {self.service_name}")
        return self.continue_()
