"""Configuration secret of the CT log server."""

import json
from typing import Any, Optional

from securesign_engine import BaseAction, Context, Result, content_hash
from securesign_k8s import SecretManager, labels_for, set_controller_reference

from ..api import CTlog, LocalObjectReference
from ..common.constants import CONFIG_HASH_ANNOTATION
from ..common.tree import trillian_address
from .constants import (
    COMPONENT,
    CONFIG_KEY,
    CONFIG_PATH,
    LOG_PREFIX,
    PRIVATE_KEY,
    PUBLIC_KEY,
    ROOTS_KEY,
    SERVER_CONFIG_FORMAT,
    SERVER_CONFIG_NAME,
)


def render_log_config(instance: CTlog, password: Optional[str] = None) -> str:
    """
    Render the multi-log text protobuf configuration ct_server reads.

    Args:
        instance: CTlog with its tree resolved
        password: Passphrase of the private key, if it is encrypted

    Returns:
        Configuration text
    """
    backend = f"{trillian_address(instance)}:{instance.spec.trillian_port}"
    key_file = [f'      path: "{CONFIG_PATH}/{PRIVATE_KEY}"']
    if password is not None:
        key_file.append(f"      password: {json.dumps(password)}")
    lines = [
        "backends {",
        "  backend {",
        '    name: "trillian"',
        f'    backend_spec: "{backend}"',
        "  }",
        "}",
        "log_configs {",
        "  config {",
        f"    log_id: {instance.status.tree_id}",
        f'    prefix: "{LOG_PREFIX}"',
        f'    roots_pem_file: "{CONFIG_PATH}/{ROOTS_KEY}"',
        '    log_backend_name: "trillian"',
        '    ext_key_usages: "CodeSigning"',
        "    private_key {",
        "      [type.googleapis.com/keyspb.PEMKeyFile] {",
        *["  " + line for line in key_file],
        "      }",
        "    }",
        "  }",
        "}",
    ]
    return "\n".join(lines) + "\n"


class ServerConfigAction(BaseAction):
    """
    Keeps an immutable Secret holding everything the server mounts.

    The secret bundles the rendered configuration, the key pair and the
    root certificates. It is annotated with a digest of the references it
    was built from; a different digest creates a new secret and deletes the
    stale ones, so the Deployment rolls through its volume reference.
    """

    name = "server config"

    @staticmethod
    def inputs(instance: CTlog) -> Optional[dict[str, Any]]:
        status = instance.status
        if status.tree_id is None or status.private_key_ref is None or status.public_key_ref is None:
            return None
        if not status.root_certificates:
            return None
        return {
            "treeID": status.tree_id,
            "backend": f"{trillian_address(instance)}:{instance.spec.trillian_port}",
            "keys": [
                ref.model_dump(mode="json") if ref is not None else None
                for ref in (status.private_key_ref, status.private_key_password_ref, status.public_key_ref)
            ],
            "roots": [ref.model_dump(mode="json") for ref in status.root_certificates],
        }

    def can_handle(self, ctx: Context, instance: CTlog) -> bool:
        inputs = self.inputs(instance)
        if inputs is None:
            return False
        ref = instance.status.server_config_ref
        if ref is None:
            return True
        secret = self.client.secrets.get(ref.name, instance.namespace)
        if secret is None:
            return True
        return (secret.metadata.annotations or {}).get(CONFIG_HASH_ANNOTATION) != content_hash(inputs)

    def handle(self, ctx: Context, instance: CTlog) -> Result:
        status = instance.status
        namespace = instance.namespace

        def read(ref):
            return self.client.secrets.get_data(namespace, ref.name, ref.key)

        password = None
        if status.private_key_password_ref is not None:
            password = read(status.private_key_password_ref).decode()
        roots = b"".join(read(ref).rstrip(b"\n") + b"\n" for ref in status.root_certificates)
        data = {
            CONFIG_KEY: render_log_config(instance, password).encode(),
            PRIVATE_KEY: read(status.private_key_ref),
            PUBLIC_KEY: read(status.public_key_ref),
            ROOTS_KEY: roots,
        }

        labels = labels_for(COMPONENT, SERVER_CONFIG_NAME, instance.name)
        secret = SecretManager.build_immutable(SERVER_CONFIG_FORMAT.format(instance.name), namespace, data, labels)
        secret.metadata.annotations = {CONFIG_HASH_ANNOTATION: content_hash(self.inputs(instance))}
        set_controller_reference(instance.owner_body(), secret.metadata)
        ctx.check()
        created = self.client.secrets.create(secret)
        status.server_config_ref = LocalObjectReference(name=created.metadata.name)

        for stale in self.client.secrets.list(namespace, labels):
            if stale.metadata.name != created.metadata.name:
                self.client.secrets.delete(stale.metadata.name, namespace)
                self.logger.info(f"Deleted stale server config {namespace}/{stale.metadata.name}")

        self.record_event(instance, "CTlogConfigUpdated", f"Server config updated: {created.metadata.name}")
        return self.status_update()
