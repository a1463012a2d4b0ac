"""
Wish tree backend package.

This package holds the session-side wish store and access guard, plus a
FastAPI proxy that keeps the hosted JSON document store credentials off the
client.
"""
