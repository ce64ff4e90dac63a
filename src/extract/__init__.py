"""Container artifact extraction.

This module runs published images with a probe script and archives the
manifest and lock files they contain. It also prunes stale local images.
"""
