"""Securesign Operator - reconciles the trusted artifact signing stack."""

__version__ = "0.1.0"
