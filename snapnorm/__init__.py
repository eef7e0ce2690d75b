"""
snapnorm: normalization for archived web-page snapshots.

Two independent pipelines over the same documents:
  - snapnorm.core.naming   stable, collision-free filenames from embedded metadata
  - snapnorm.core.compact  shrink inline payloads under a byte budget
"""

__version__ = "0.3.0"
