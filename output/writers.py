"""
Outcome Writers

Export parse outcomes for review or loading into other systems.

- JSON: full outcomes plus the batch summary
- JSONL: one outcome per line
- CSV: one row per message, transaction fields flattened into columns
"""

import csv
import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, TextIO, Union

from loguru import logger

from mpesa.batch import BatchSummary
from mpesa.models import ParsedTransaction, ParseOutcome


class ExportFormat(str, Enum):
    """Supported export formats."""
    JSON = "json"
    JSONL = "jsonl"
    CSV = "csv"


# Outcome-level columns written before the transaction fields
CSV_META_COLUMNS = ['is_valid', 'tier', 'pattern_used', 'confidence', 'errors']
CSV_FIELD_COLUMNS = list(ParsedTransaction().to_dict().keys())
CSV_COLUMNS = CSV_META_COLUMNS + CSV_FIELD_COLUMNS + ['original_text']


class OutcomeWriter:
    """
    Writes parse outcomes to disk.

    Usage:
        writer = OutcomeWriter()
        writer.write(outcomes, Path('results.csv'), ExportFormat.CSV)
    """

    def __init__(self, indent: int = 2):
        self.indent = indent

    def write(
        self,
        outcomes: list[ParseOutcome],
        output_path: Union[str, Path],
        format: ExportFormat = ExportFormat.JSON,
        summary: Optional[BatchSummary] = None,
    ) -> Path:
        """
        Write outcomes in the requested format.

        Returns:
            Path of the written file
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8', newline='') as f:
            if format == ExportFormat.JSON:
                self.write_json(outcomes, f, summary)
            elif format == ExportFormat.JSONL:
                self.write_jsonl(outcomes, f)
            elif format == ExportFormat.CSV:
                self.write_csv(outcomes, f)
            else:
                raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Wrote {len(outcomes)} outcomes to {path}")
        return path

    def write_json(
        self,
        outcomes: list[ParseOutcome],
        stream: TextIO,
        summary: Optional[BatchSummary] = None,
    ) -> None:
        payload: dict[str, Any] = {'outcomes': [o.to_dict() for o in outcomes]}
        if summary is not None:
            payload['summary'] = summary.to_dict()
        json.dump(payload, stream, indent=self.indent, default=str)

    def write_jsonl(self, outcomes: list[ParseOutcome], stream: TextIO) -> None:
        for outcome in outcomes:
            stream.write(json.dumps(outcome.to_dict(), default=str))
            stream.write('\n')

    def write_csv(self, outcomes: list[ParseOutcome], stream: TextIO) -> None:
        writer = csv.DictWriter(stream, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for outcome in outcomes:
            writer.writerow(self.to_row(outcome))

    @staticmethod
    def to_row(outcome: ParseOutcome) -> dict[str, Any]:
        """Flatten one outcome into a CSV row (None becomes an empty cell)."""
        data = outcome.to_dict()
        row = {
            'is_valid': data['is_valid'],
            'tier': data['tier'],
            'pattern_used': data['pattern_used'],
            'confidence': data['confidence'],
            'errors': ' | '.join(data['errors']),
            'original_text': data['original_text'],
        }
        row.update(data['fields'])
        return {k: ('' if v is None else v) for k, v in row.items()}
