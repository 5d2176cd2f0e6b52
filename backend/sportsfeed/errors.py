from __future__ import annotations


class AcquisitionError(Exception):
    """Base class for failures recovered inside the fetch orchestrator."""


class TransportError(AcquisitionError):
    """Network failure or timeout while talking to a candidate endpoint."""


class HttpStatusError(AcquisitionError):
    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"{url} returned HTTP {status_code}")


class NormalizationError(AcquisitionError):
    """Payload parsed but no recognised container yielded any items."""


class SyntheticOverwriteError(RuntimeError):
    """A synthetic snapshot would replace live or cached data for a feed."""


class UnknownFeedError(KeyError):
    def __init__(self, feed_id: str) -> None:
        self.feed_id = feed_id
        super().__init__(feed_id)

    def __str__(self) -> str:
        return f"unknown feed: {self.feed_id}"
