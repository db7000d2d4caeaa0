"""
PharmaChain Test Suite.

Test Categories:
- Unit Tests: registry, telemetry, lifecycle, store and alert sync
- Integration Tests: traceability workflows across store and API
- API / WebSocket Tests: Flask routes and Socket.IO pushes
"""
