"""Rate limiting adapters.

Fixed-window limiters sharing one interface: a Redis-backed limiter for
multi-instance deployments, an in-process limiter used when no shared store
is available, and a pass-through used when limiting is disabled.
"""
