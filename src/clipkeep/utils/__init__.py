from clipkeep.utils.retention import filter_by_retention, retention_cutoff

__all__ = [
    'filter_by_retention',
    'retention_cutoff',
]
