"""Database workloads measured against the service."""
