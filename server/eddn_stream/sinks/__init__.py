"""
Event sinks for the EDDN subscriber output stream.
"""
from eddn_stream.sinks.base import EventSink
from eddn_stream.sinks.logging_sink import LoggingSink
from eddn_stream.sinks.redis_sink import RedisBroadcastSink, channels_for_event

__all__ = [
    "EventSink",
    "LoggingSink",
    "RedisBroadcastSink",
    "channels_for_event",
]
