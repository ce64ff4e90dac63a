"""Archive index and reconciliation layer.

This module persists the local version index and reconciles it with the
archive directory tree and the remote catalog.
"""
