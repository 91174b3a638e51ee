"""Vaultshare CLI command groups."""
