"""Rate limiting adapters.

The HTTP layer depends on the abstract limiter only; the concrete limiter
keeps its request log in the JSON record store so limits survive restarts.
"""
