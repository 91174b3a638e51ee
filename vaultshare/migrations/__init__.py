"""
Vaultshare schema migrations.
"""

from .manager import Migration, MigrationManager

__all__ = ["Migration", "MigrationManager"]
