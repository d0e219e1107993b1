"""Boundary I/O: presence API client, identity handling and snapshots."""
