"""
EDDN Client Module

ZeroMQ subscriber and frame decoder for the EDDN relay.
"""
from eddn_stream.eddn_client.client import DEFAULT_RELAY_URL, EDDNSubscriber
from eddn_stream.eddn_client.decoder import decode

__all__ = [
    "DEFAULT_RELAY_URL",
    "EDDNSubscriber",
    "decode",
]
