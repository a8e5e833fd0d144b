"""Lifecycle-operation processing helpers.

This package centralizes validation so every store operation (join, start, delete)
runs the same checks and reports the same error codes.
"""
