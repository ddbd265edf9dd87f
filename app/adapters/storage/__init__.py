"""Storage adapters.

The rate limiter and the submission ledger persist their state through the
record store defined here, one JSON file per logical record.
"""
