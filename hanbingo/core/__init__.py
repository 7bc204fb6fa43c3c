"""Core gameplay primitives (events and agent context stacking).

Kept free of FastAPI concerns so it can be reused by API routes, the engine, and tests.
"""
