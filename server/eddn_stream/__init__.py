"""
EDDN Stream Service

Filters the Elite Dangerous Data Network relay down to mining activity.

Architecture:
    EDDN relay (ZeroMQ) -> eddn_client (decode) -> classifier -> sinks

Components:
    - eddn_client: ZeroMQ subscriber and frame decoder
    - classifier:  mining relevance rules (loaded from JSON)
    - sinks:       log and Redis broadcast consumers of the event stream
"""
