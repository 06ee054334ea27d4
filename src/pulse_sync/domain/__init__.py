"""Domain layer: records, reports and errors independent of storage."""
