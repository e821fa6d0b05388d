"""
Edge daemon package for the Aurora-to-PVOutput telemetry pipeline.

Samples energy production from an ABB/Power-One Aurora inverter through a
Modbus TCP gateway, caches the latest status snapshot, publishes it to an
MQTT broker, and reports daily energy to PVOutput on aligned schedules.

CHANGELOG:
- 2026-10-16: Initial creation

TODO:
- None
"""
