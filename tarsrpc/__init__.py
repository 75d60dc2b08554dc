"""TARS RPC building blocks: tagged binary codec, messages, filters, admin, endpoint health and selection, HTTP stats."""

__version__ = "0.1.0"

__all__ = [
    "adapter",
    "admin",
    "appcache",
    "communicator",
    "decoder",
    "encoder",
    "endpoints",
    "filters",
    "httpstat",
    "message",
]