"""API route modules."""

from pulse_sync.api.routes import admin, collection, health, records, sync

__all__ = ["admin", "collection", "health", "records", "sync"]
