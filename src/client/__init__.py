"""Client library: API access, live change feed, and the bookmark Reconciler."""
from client.api_client import BookmarksApiClient
from client.exceptions import FetchFailedError, NotAuthenticatedError
from client.feed import FeedSubscription, SseChangeFeed
from client.live_view import LiveBookmarkView
from client.reconciler import Reconciler

__all__ = [
    "BookmarksApiClient",
    "FeedSubscription",
    "FetchFailedError",
    "LiveBookmarkView",
    "NotAuthenticatedError",
    "Reconciler",
    "SseChangeFeed",
]
