"""Securesign aggregate condition names."""

FULCIO_CONDITION = "FulcioAvailable"
REKOR_CONDITION = "RekorAvailable"
CTLOG_CONDITION = "CTlogAvailable"

TRACKED_CONDITIONS = (REKOR_CONDITION, FULCIO_CONDITION, CTLOG_CONDITION)
