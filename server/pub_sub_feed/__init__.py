"""
pub_sub_feed: Redis pub/sub publishing primitives.

Public API:
    FeedPublisher   publish dicts to named Redis channels
    serialize       encode (channel, dict) -> JSON envelope
    deserialize     decode JSON envelope -> (channel, dict), for channel consumers
"""
from .publisher import FeedPublisher, PublisherError
from .serializer import SerializationError, deserialize, serialize

__all__ = [
    "FeedPublisher",
    "PublisherError",
    "SerializationError",
    "serialize",
    "deserialize",
]
