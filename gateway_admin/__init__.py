"""Gateway administration and live-store replication service."""
