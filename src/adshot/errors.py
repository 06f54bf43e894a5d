"""Exception types raised by the capture pipeline."""

from __future__ import annotations


class AdshotError(RuntimeError):
    """Base class for fatal capture errors."""


class NavigationError(AdshotError):
    """Every navigation strategy was exhausted for the page."""

    def __init__(self, url: str, attempt: int, cause: BaseException | None = None) -> None:
        self.url = url
        self.attempt = attempt
        detail = f": {cause}" if cause else ""
        super().__init__(f"navigation to {url} failed on attempt {attempt}{detail}")


class UploadError(AdshotError):
    """The storage backend rejected or failed an upload."""


class InvalidJobError(ValueError):
    """A render job was built from inconsistent parameters."""


__all__ = ["AdshotError", "InvalidJobError", "NavigationError", "UploadError"]
