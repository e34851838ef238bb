"""
Plugin Runtime Plugin System - loading plugins and serving their hooks.

This module handles:
- Package descriptor parsing
- Dynamic loading/reloading with file watching
- Capability contexts for hook code
- Request dispatch to plugin hooks
- Session lifecycle
"""

__all__ = []
