"""Command-history primitives (command contract, lifecycle events, errors, coalescence FSM).

Kept free of FastAPI and Redis concerns so it can be reused by the engine, API routes, and tests.
"""
