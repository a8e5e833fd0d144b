"""Core game primitives (state visibility, village statistics, and context stacking).

Kept free of FastAPI concerns so it can be reused by API routes and tests.
"""
