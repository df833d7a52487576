"""
Asset Manager API client package.

A typed client for the data-center asset and ticket management REST API,
with a session-wide response cache in front of the HTTP transport.

Structure:
- app.main: AssetClient wiring and the create_client factory.
- app.adapters: HTTP transport, cached API and resource façades.
- app.caching: Key derivation, TTL store, cache manager and request gate.
"""
