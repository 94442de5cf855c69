"""External access to a component through an Ingress."""

from typing import Optional

from kubernetes.client import (
    V1HTTPIngressPath,
    V1HTTPIngressRuleValue,
    V1Ingress,
    V1IngressBackend,
    V1IngressRule,
    V1IngressServiceBackend,
    V1IngressSpec,
    V1ObjectMeta,
    V1ServiceBackendPort,
)
from securesign_engine import BaseAction, Context, InvalidConfigurationError, Resource, Result, owned_equal
from securesign_engine.drift import to_dict
from securesign_k8s import labels_for, set_controller_reference


class IngressAction(BaseAction):
    """
    Publishes the component Service through an Ingress.

    While ``spec.externalAccess.enabled`` is set the Ingress routes the
    external host to the Service and the status URL points at that host.
    Disabling it deletes the Ingress and clears the URL, which the service
    action then sets back to the in-cluster address.
    """

    name = "ingress"
    component: str = ""
    service_name: str = ""
    port_name: str = ""

    def __init__(self, domain: Optional[str] = None):
        super().__init__()
        self.domain = domain

    def host(self, instance: Resource) -> Optional[str]:
        access = instance.spec.external_access
        if access.host:
            return access.host
        if self.domain:
            return f"{self.service_name}-{instance.namespace}.{self.domain}"
        return None

    def build(self, instance: Resource, host: str) -> V1Ingress:
        labels = labels_for(self.component, self.service_name, instance.name)
        backend = V1IngressBackend(
            service=V1IngressServiceBackend(
                name=self.service_name, port=V1ServiceBackendPort(name=self.port_name)
            )
        )
        ingress = V1Ingress(
            api_version="networking.k8s.io/v1",
            kind="Ingress",
            metadata=V1ObjectMeta(name=self.service_name, namespace=instance.namespace, labels=labels),
            spec=V1IngressSpec(
                rules=[
                    V1IngressRule(
                        host=host,
                        http=V1HTTPIngressRuleValue(
                            paths=[V1HTTPIngressPath(path="/", path_type="Prefix", backend=backend)]
                        ),
                    )
                ]
            ),
        )
        set_controller_reference(instance.owner_body(), ingress.metadata)
        return ingress

    def can_handle(self, ctx: Context, instance: Resource) -> bool:
        live = self.client.ingresses.get(self.service_name, instance.namespace)
        if not instance.spec.external_access.enabled:
            return live is not None
        host = self.host(instance)
        if host is None or live is None:
            return True
        if instance.status.url != f"http://{host}":
            return True
        return not owned_equal(to_dict(self.build(instance, host).spec), to_dict(live.spec))

    def handle(self, ctx: Context, instance: Resource) -> Result:
        live = self.client.ingresses.get(self.service_name, instance.namespace)
        if not instance.spec.external_access.enabled:
            if live is not None:
                self.client.ingresses.delete(self.service_name, instance.namespace)
                self.record_event(instance, "IngressDeleted", f"Ingress deleted: {self.service_name}")
            instance.status.url = None
            return self.status_update()

        host = self.host(instance)
        if host is None:
            return self.failed(
                InvalidConfigurationError("externalAccess.host is required when no ingress domain is configured")
            )

        desired = self.build(instance, host)
        if live is None:
            self.client.ingresses.create(desired)
            self.record_event(instance, "IngressCreated", f"Ingress created: {host}")
        elif not owned_equal(to_dict(desired.spec), to_dict(live.spec)):
            live.spec = desired.spec
            ctx.check()
            self.client.ingresses.replace(live)
            self.record_event(instance, "IngressUpdated", f"Ingress updated: {host}")
        instance.status.url = f"http://{host}"
        return self.status_update()
