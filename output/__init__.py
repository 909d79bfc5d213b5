"""
Output Package

Writers for exporting parse outcomes as JSON, JSON Lines or CSV.

Usage:
    from output import OutcomeWriter, ExportFormat

    OutcomeWriter().write(outcomes, 'results.json', ExportFormat.JSON, summary)
"""

from .writers import (
    OutcomeWriter,
    ExportFormat,
    CSV_COLUMNS,
)

__all__ = [
    'OutcomeWriter',
    'ExportFormat',
    'CSV_COLUMNS',
]
