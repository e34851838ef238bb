"""
Plugin Runtime Core - protocol primitives.

This module contains the building blocks shared by every session:
- ids: Correlation ID generation
- event_channel: Synchronous publish/subscribe channel
- envelope: Envelope and WindowContext wire model
"""

__all__ = []
