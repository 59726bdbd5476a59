"""HTTP clients for earthquake data providers."""

from quake_monitor.clients.kandilli_client import FetchError, KandilliClient

__all__ = ["FetchError", "KandilliClient"]
