"""Exceptions raised while loading bookmarks into a client view."""


class NotAuthenticatedError(Exception):
    """Raised when bookmarks are requested but no identity is established."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class FetchFailedError(Exception):
    """
    Raised when the bookmark list query fails.

    `detail` carries the upstream error text so the view can display it next
    to a retry control.
    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Failed to load bookmarks: {detail}")
