"""Adapters that connect the feedhook core to SQLite, JSON settings and webhooks."""
