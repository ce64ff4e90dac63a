"""Remote registry access.

This module lists the version tags published for the cataloged image.
It is the authoritative source for extraction and reconciliation.
"""
