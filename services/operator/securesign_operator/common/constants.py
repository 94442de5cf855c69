"""Names shared across components."""

SERVER_CONDITION = "ServerAvailable"

# Pod template annotation carrying a digest of the configuration the pods
# were started with; a new value rolls the Deployment.
CONFIG_HASH_ANNOTATION = "rhtas.redhat.com/config-hash"

METRICS_PORT = 2112

# Trillian tree creation, formatted with the component and resource names.
CREATETREE_JOB_FORMAT = "{}-createtree-{}"
TREE_CONFIGMAP_FORMAT = "{}-tree-{}"
TREE_ID_KEY = "tree_id"

# Secrets holding a Fulcio CA certificate carry this label; its value is the
# key within the secret data.
FULCIO_CA_LABEL = "rhtas.redhat.com/fulcio_v1.crt.pem"

# Prometheus operator kind scraping the component metrics ports.
SERVICE_MONITOR_KIND = ("monitoring.coreos.com", "v1", "servicemonitors", "ServiceMonitor")
