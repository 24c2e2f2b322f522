"""Integration tests for the resilience core.

These tests wire the executor, circuit breaker, HTTP client and error
reporter together with real asyncio timing instead of patched sleeps.

Run with: pytest -m integration
Skip with: pytest -m "not integration"
"""
