"""CTlog component names."""

from ..common.constants import SERVER_CONDITION

COMPONENT = "ctlog"
SERVER_DEPLOYMENT = "ctlog"
RBAC_NAME = "ctlog"

CERT_CONDITION = "FulcioCertAvailable"
KEYS_CONDITION = "KeysAvailable"
TRACKED_CONDITIONS = (CERT_CONDITION, KEYS_CONDITION, SERVER_CONDITION)

KEYS_SECRET_FORMAT = "ctlog-keys-{}-"
SERVER_CONFIG_FORMAT = "ctlog-config-{}-"
SERVER_CONFIG_NAME = "ctlog-config"

# Keys of the server config secret, mounted as files under CONFIG_PATH.
CONFIG_KEY = "config"
PRIVATE_KEY = "private"
PUBLIC_KEY = "public"
ROOTS_KEY = "roots.pem"
CONFIG_PATH = "/ctfe-keys"

LOG_PREFIX = "trusted-artifact-signer"
SERVER_PORT = 6962
METRICS_PORT = 6963
