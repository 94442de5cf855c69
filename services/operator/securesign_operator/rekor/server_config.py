"""Sharding configuration of the Rekor server."""

from securesign_engine import BaseAction, Context, Result
from securesign_k8s import ConfigMapManager, labels_for, set_controller_reference

from ..api import LocalObjectReference, Rekor
from .constants import COMPONENT, SERVER_DEPLOYMENT, SHARDING_CONFIG_FORMAT, SHARDING_CONFIG_KEY


class ServerConfigAction(BaseAction):
    """Creates the sharding ConfigMap, again if the referenced one disappeared."""

    name = "server config"

    def can_handle(self, ctx: Context, instance: Rekor) -> bool:
        ref = instance.status.server_config_ref
        if ref is None:
            return True
        return self.client.config_maps.get(ref.name, instance.namespace) is None

    def handle(self, ctx: Context, instance: Rekor) -> Result:
        config_map = ConfigMapManager.build_immutable(
            SHARDING_CONFIG_FORMAT.format(instance.name),
            instance.namespace,
            {SHARDING_CONFIG_KEY: ""},
            labels_for(COMPONENT, SERVER_DEPLOYMENT, instance.name),
        )
        set_controller_reference(instance.owner_body(), config_map.metadata)
        created = self.client.config_maps.create(config_map)
        instance.status.server_config_ref = LocalObjectReference(name=created.metadata.name)
        self.record_event(instance, "ServerConfigCreated", f"Sharding config created: {created.metadata.name}")
        return self.status_update()
