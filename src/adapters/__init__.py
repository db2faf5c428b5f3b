"""Adapters to external systems (HTTP bridge)."""
