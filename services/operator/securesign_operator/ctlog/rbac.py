"""Identity the log server runs as."""

from kubernetes.client import (
    RbacV1Subject,
    V1ObjectMeta,
    V1PolicyRule,
    V1Role,
    V1RoleBinding,
    V1RoleRef,
    V1ServiceAccount,
)
from securesign_engine import BaseAction, Context, Result
from securesign_k8s import labels_for, set_controller_reference

from ..api import CTlog
from .constants import COMPONENT, RBAC_NAME


class RBACAction(BaseAction):
    """Creates the ServiceAccount of the server and a Role limited to reading configuration."""

    name = "rbac"

    def _metadata(self, instance: CTlog) -> V1ObjectMeta:
        metadata = V1ObjectMeta(
            name=RBAC_NAME,
            namespace=instance.namespace,
            labels=labels_for(COMPONENT, RBAC_NAME, instance.name),
        )
        return set_controller_reference(instance.owner_body(), metadata)

    def _managers(self):
        return (self.client.service_accounts, self.client.roles, self.client.role_bindings)

    def can_handle(self, ctx: Context, instance: CTlog) -> bool:
        return any(m.get(RBAC_NAME, instance.namespace) is None for m in self._managers())

    def handle(self, ctx: Context, instance: CTlog) -> Result:
        desired = (
            V1ServiceAccount(api_version="v1", kind="ServiceAccount", metadata=self._metadata(instance)),
            V1Role(
                api_version="rbac.authorization.k8s.io/v1",
                kind="Role",
                metadata=self._metadata(instance),
                rules=[V1PolicyRule(api_groups=[""], resources=["configmaps", "secrets"], verbs=["get"])],
            ),
            V1RoleBinding(
                api_version="rbac.authorization.k8s.io/v1",
                kind="RoleBinding",
                metadata=self._metadata(instance),
                role_ref=V1RoleRef(api_group="rbac.authorization.k8s.io", kind="Role", name=RBAC_NAME),
                subjects=[RbacV1Subject(kind="ServiceAccount", name=RBAC_NAME, namespace=instance.namespace)],
            ),
        )
        created = []
        for manager, body in zip(self._managers(), desired):
            if manager.get(RBAC_NAME, instance.namespace) is None:
                manager.create(body)
                created.append(body.kind)
        self.record_event(instance, "RBACCreated", f"{', '.join(created)} created: {RBAC_NAME}")
        return self.continue_()
