"""API helper utilities."""
from api.helpers.ingest_response import build_ingest_response

__all__ = [
    "build_ingest_response",
]
