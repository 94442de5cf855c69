"""OIDC issuer configuration of the Fulcio server."""

import json

from securesign_engine import BaseAction, Context, Result
from securesign_k8s import ConfigMapManager, labels_for, set_controller_reference

from ..api import Fulcio, LocalObjectReference
from .constants import COMPONENT, SERVER_CONFIG_FORMAT, SERVER_CONFIG_KEY, SERVER_CONFIG_NAME


def render_server_config(instance: Fulcio) -> str:
    return json.dumps(instance.spec.config.server_config(), indent=2, sort_keys=True)


class ServerConfigAction(BaseAction):
    """
    Keeps an immutable ConfigMap with the rendered server configuration.

    A content change creates a new ConfigMap and deletes the stale ones, so
    the Deployment picks the change up through its volume reference.
    """

    name = "server config"

    def can_handle(self, ctx: Context, instance: Fulcio) -> bool:
        ref = instance.status.server_config_ref
        if ref is None:
            return True
        config_map = self.client.config_maps.get(ref.name, instance.namespace)
        if config_map is None:
            return True
        return (config_map.data or {}).get(SERVER_CONFIG_KEY) != render_server_config(instance)

    def handle(self, ctx: Context, instance: Fulcio) -> Result:
        labels = labels_for(COMPONENT, SERVER_CONFIG_NAME, instance.name)
        config_map = ConfigMapManager.build_immutable(
            SERVER_CONFIG_FORMAT.format(instance.name),
            instance.namespace,
            {SERVER_CONFIG_KEY: render_server_config(instance)},
            labels,
        )
        set_controller_reference(instance.owner_body(), config_map.metadata)
        created = self.client.config_maps.create(config_map)
        instance.status.server_config_ref = LocalObjectReference(name=created.metadata.name)

        for stale in self.client.config_maps.list(instance.namespace, labels):
            if stale.metadata.name != created.metadata.name:
                self.client.config_maps.delete(stale.metadata.name, instance.namespace)
                self.logger.info(f"Deleted stale server config {instance.namespace}/{stale.metadata.name}")

        self.record_event(instance, "FulcioConfigUpdated", f"Server config updated: {created.metadata.name}")
        return self.status_update()
