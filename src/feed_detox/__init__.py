"""
Feed Detox

Drives a visible, cookie-authenticated browser through long-form YouTube
videos on a chosen topic, streaming progress to a WebSocket subscriber.
"""

__version__ = "0.1.0"
