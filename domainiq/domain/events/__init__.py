"""Domain Event definitions.

Represents significant occurrences inside the inference queue (deferrals,
retries, quota lockouts, fallbacks) that other parts of the system may observe.
"""
