"""Turn/action processing helpers.

This package centralizes validation so both the human and the AI opponents
flow through the same pipeline and show up consistently in server logs.
"""
