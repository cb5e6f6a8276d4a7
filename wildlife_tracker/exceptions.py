"""
Domain errors raised by the sighting store and media services.

Routers never see SQLAlchemy or botocore exceptions directly; they are
translated here and mapped to HTTP status codes in main.py.
"""


class SightingError(Exception):
    """Base class for all sighting service errors"""


class SightingValidationError(SightingError):
    """Bad animal tag, out-of-range coordinate, missing field or bad upload"""


class SightingNotFound(SightingError):
    """No active sighting with the requested id"""

    def __init__(self, sighting_id: str):
        self.sighting_id = sighting_id
        super().__init__(f"Sighting {sighting_id} not found")


class StoreUnavailable(SightingError):
    """The database could not be reached"""


class MediaUploadError(SightingError):
    """The media host rejected or failed an upload"""


class ConfigurationError(ValueError):
    """An environment variable holds a value the service cannot run with"""
