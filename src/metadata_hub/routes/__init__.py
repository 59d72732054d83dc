"""Route modules for the metadata hub API."""

from .stream import router as stream_router

__all__ = [
    'stream_router',
]
