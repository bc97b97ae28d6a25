"""
Data quality scoring for validated record sets.
"""

from inventory_export.core.models import DataQuality


def _percent(part: int, total: int) -> float:
    return (part / total) * 100 if total > 0 else 0.0


def calculate_data_quality(total_records: int, valid_records: int, consistent_records: int) -> DataQuality:
    """
    Compute the quality score of a record set.

    completeness = valid / total, consistency = rows without warnings / total,
    accuracy is reported identical to completeness, overall is the mean of
    the three. Every figure is a percentage rounded to two decimals.

    Args:
        total_records: Number of records validated
        valid_records: Records with no error-severity failures
        consistent_records: Records with no row-level warnings

    Returns:
        DataQuality
    """
    completeness = _percent(valid_records, total_records)
    consistency = _percent(consistent_records, total_records)
    accuracy = completeness
    overall = (completeness + consistency + accuracy) / 3

    return DataQuality(
        completeness=round(completeness, 2),
        consistency=round(consistency, 2),
        accuracy=round(accuracy, 2),
        overall=round(overall, 2),
    )
