from .store import IdTrackingFile

__all__ = [
    "IdTrackingFile",
]
