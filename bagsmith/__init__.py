"""
bagsmith: BagIt bag creation, manifests, and integrity checks.

Bags bundle a payload with per-algorithm checksum manifests so that
tampering or incompleteness can be detected later.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
