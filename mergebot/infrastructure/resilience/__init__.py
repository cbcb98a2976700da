"""API Resilience Implementations.

Contains the request executor (bounded retries with a constant backoff over
transient failures) and the response classification it relies on.
Bounded Context: API Resilience
"""
