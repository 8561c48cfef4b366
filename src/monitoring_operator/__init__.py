"""Reconciliation and readiness client for the cluster monitoring operator."""

__version__ = "0.1.0"
