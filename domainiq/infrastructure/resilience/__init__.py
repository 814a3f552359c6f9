"""API Resilience Implementations.

Contains the clock abstraction, the quota tracker and the rate-limited
inference queue that serializes calls to the scoring model.
Bounded Context: API Resilience
"""
