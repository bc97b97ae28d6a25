"""
Record-set validation, quality scoring and artifact integrity verification.
"""

from .export_validator import ExportValidator, canonical_record_key
from .integrity import IntegrityChecker
from .quality import calculate_data_quality

__all__ = [
    "ExportValidator",
    "IntegrityChecker",
    "calculate_data_quality",
    "canonical_record_key",
]
