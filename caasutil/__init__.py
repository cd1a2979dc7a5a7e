"""
caasbase utility package.
Exposes the error taxonomy and name sanitization helpers.
"""

import caasutil.error_handling
import caasutil.sanitization

__all__ = ["error_handling", "sanitization"]
