"""
Uplink Module
=============

Delivery of capture payloads to the processing server.

This module provides the outbound side of the pipeline:
    - PayloadBuilder: Pure payload assembly (omits null fields)
    - UplinkClient: HTTP POST with failure counting and reprobe trigger
    - HealthProbe: Reachability check that updates ConnectionState

Example:
    from quest_uplink.models import ConnectionState
    from quest_uplink.uplink import HealthProbe, PayloadBuilder, UplinkClient

    connection = ConnectionState()
    probe = HealthProbe("http://localhost:5000/api/ping", connection)
    client = UplinkClient("http://localhost:5000/api/frame", connection, probe)

    await probe.probe()
    ack = await client.send(PayloadBuilder().build(image=encoded))
"""

from quest_uplink.uplink.payload import PayloadBuilder, PayloadError
from quest_uplink.uplink.health import HealthProbe, ProbeError
from quest_uplink.uplink.client import Ack, SendError, UplinkClient, UplinkMetrics


__all__ = [
    "PayloadBuilder",
    "PayloadError",
    "HealthProbe",
    "ProbeError",
    "UplinkClient",
    "UplinkMetrics",
    "Ack",
    "SendError",
]
