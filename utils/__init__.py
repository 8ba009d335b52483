"""
utils/ - Shared helpers
=======================
Cross-cutting utilities (logging) used by every other layer.
"""
