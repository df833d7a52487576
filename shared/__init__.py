"""
Shared utilities for the Asset Manager client.

This package aggregates common building blocks consumed by the client:

- config: Client configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- test_helpers: Fake clock, recording adapter and sample data for tests

Any cross-cutting logic should live here to avoid import cycles. Do not
import from asset_client into shared/.
"""
