"""Cache storage backends.

The cache service talks to these through ``AbstractCacheStore`` so the
shared Redis store and the in-process fallback are interchangeable.
"""
