"""
Vaultshare storage module.
"""

from .documents import DocumentStorage

__all__ = ["DocumentStorage"]
