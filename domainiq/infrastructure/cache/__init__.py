"""Caching Service Implementation.

Provides the in-memory analysis cache with per-entry TTL, lazy expiry on
read and bulk pruning for the daily sweep.
Bounded Context: Cache Management
"""
