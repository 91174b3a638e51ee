"""Vaultshare command-line interface."""
