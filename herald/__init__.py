"""
Herald: notification batching and dispatch for the messaging app.
"""

__version__ = "1.0.0"
