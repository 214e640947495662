"""
utils/ - Shared Helpers
=======================
Cross-cutting helpers used by every layer (currently: logging setup).
"""
