"""Key-value store adapters.

The rate limiter and the session cache only talk to ``AbstractKeyValueStore``.
Redis is the production backend; the in-memory backend mirrors its semantics
for local development and tests.
"""
