"""Fulcio component names."""

from ..common.constants import SERVER_CONDITION

COMPONENT = "fulcio"
SERVER_DEPLOYMENT = "fulcio-server"
SERVER_CONFIG_NAME = "fulcio-server-config"

CERT_CONDITION = "FulcioCertAvailable"
TRACKED_CONDITIONS = (CERT_CONDITION, SERVER_CONDITION)

CERT_SECRET_FORMAT = "fulcio-cert-{}-"
SERVER_CONFIG_FORMAT = "fulcio-config-{}-"
SERVER_CONFIG_KEY = "config.json"

HTTP_PORT = 5555
GRPC_PORT = 5554
