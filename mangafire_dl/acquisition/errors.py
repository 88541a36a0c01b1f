"""Exceptions raised by the acquisition layer."""

from typing import Optional


class AcquisitionError(Exception):
    """Base class for acquisition failures."""

    pass


class NetworkError(AcquisitionError):
    """Raised when a request fails in transport or returns a non-success status."""

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status = status


class DataFormatError(AcquisitionError):
    """Raised when a response is missing the shape we scrape from it."""

    pass
