"""Rekor component names."""

from ..common.constants import SERVER_CONDITION

COMPONENT = "rekor"
SERVER_DEPLOYMENT = "rekor-server"

SIGNER_CONDITION = "SignerAvailable"
PUBLIC_KEY_CONDITION = "PublicKeyAvailable"
TRACKED_CONDITIONS = (SIGNER_CONDITION, SERVER_CONDITION, PUBLIC_KEY_CONDITION)

# Secrets holding a Rekor public key carry this label; its value is the key
# within the secret data.
REKOR_PUB_LABEL = "rhtas.redhat.com/rekor.pub"

SIGNER_SECRET_FORMAT = "rekor-signer-{}-"
PUBLIC_SECRET_FORMAT = "rekor-public-{}-"
SHARDING_CONFIG_FORMAT = "rekor-sharding-config-{}-"
SHARDING_CONFIG_KEY = "sharding-config.yaml"
PVC_FORMAT = "rekor-{}-pvc"

SERVER_PORT = 3000
PUBLIC_KEY_PATH = "/api/v1/log/publicKey"
