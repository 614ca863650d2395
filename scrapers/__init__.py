"""Upstream job-search API clients."""
