"""
Inventory export orchestration: validation, export, integrity verification,
retry and scheduled delivery of inventory data sets.
"""

__version__ = "0.1.0"
