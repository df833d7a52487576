"""
Client-side response caching package.

Sits between the resource façades and the HTTP transport so that repeated
reads are answered locally. Entries expire by TTL and are dropped
explicitly whenever a write touches their resource family.
"""
