"""
Tests for the News Cache package.

Covers:
- Cache store adapters
- Fetch coordinator freshness, coalescing and stale fallback
"""
