"""Rate limiting adapters.

Limiters keep no state of their own: counters live in the shared key-value
store, so every worker process enforces the same limit.
"""
