"""Ingestion layer.

This package contains adapters that receive data from the backend (stream
frames, HTTP pulls) and emit normalized sensors/events as typed messages.
"""

__all__: list[str] = []
