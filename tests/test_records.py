"""
Tests for settings, batch parsing, transaction records and exporters

Run with: pytest tests/ -v
"""

import csv
import json
import pytest
from pathlib import Path
from datetime import datetime
from decimal import Decimal
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from mpesa.batch import BatchSummary, parse_batch
from mpesa.config import ConfigLoader, EngineSettings, load_settings
from mpesa.engine import parse
from mpesa.exceptions import ConfigError
from mpesa.records import (
    ImportedTransaction,
    generate_manual_id,
    to_transaction_record,
    validate_import_batch,
)
from output.writers import CSV_COLUMNS, ExportFormat, OutcomeWriter


RECEIVED_SMS = (
    "MPESA received Ksh1,500.00 from 254712345678 JOHN DOE 12/01/24 3:45PM "
    "ABC123XYZ New MPESA balance is Ksh5,000.00"
)
DEPOSIT_SMS = (
    "MPESA Ksh3,000 deposited to 254733333333 MAMA MBOGA AGENCY 15/03/24 10:00AM "
    "DEP123XYZ New MPESA balance is Ksh4,000"
)
PAYMENT_SMS = (
    "MPESA Ksh250 paid to 123456 JAVA HOUSE 15/03/24 1:05PM "
    "PAY123ABC New MPESA balance is Ksh4,250.00"
)


class TestEngineSettings:
    """Tests for YAML settings loading."""

    def test_defaults(self):
        settings = EngineSettings()
        assert settings.strict_validation is False
        assert settings.max_message_length is None

    def test_bundled_file_matches_defaults(self):
        assert load_settings() == EngineSettings()

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("settings:\n  strict_validation: true\n  batch_workers: 2\n")
        settings = ConfigLoader(path).settings
        assert settings.strict_validation is True
        assert settings.batch_workers == 2
        assert settings.max_message_length is None

    def test_length_limit_from_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("settings:\n  max_message_length: 200\n")
        assert load_settings(path).max_message_length == 200

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("settings:\n  colour: blue\n  currency_marker: Ksh\n")
        assert load_settings(path) == EngineSettings()

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("settings:\n  max_message_length: -5\n")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_settings(tmp_path / "nope.yaml")


class TestParseBatch:
    """Tests for batch parsing."""

    def test_order_preserved(self):
        messages = [RECEIVED_SMS, "hello world 123", DEPOSIT_SMS, PAYMENT_SMS]
        outcomes, summary = parse_batch(messages, workers=3)
        assert [o.pattern_used for o in outcomes] == [
            'MONEY_RECEIVED', None, 'DEPOSIT', 'PAYMENT_TO_BUSINESS'
        ]
        assert summary.total == 4
        assert summary.valid == 3
        assert summary.invalid == 1
        assert summary.by_tier['primary'] == 3
        assert summary.by_tier['failed'] == 1

    def test_serial_matches_parallel(self):
        messages = [RECEIVED_SMS, DEPOSIT_SMS] * 3
        serial, _ = parse_batch(messages, workers=1)
        parallel, _ = parse_batch(messages, workers=4)
        assert [o.to_dict()['fields'] for o in serial] == [o.to_dict()['fields'] for o in parallel]

    def test_duplicates_reported(self):
        _, summary = parse_batch([RECEIVED_SMS, RECEIVED_SMS, DEPOSIT_SMS])
        assert summary.duplicate_transaction_ids == ['ABC123XYZ']

    def test_empty_batch(self):
        outcomes, summary = parse_batch([])
        assert outcomes == []
        assert summary.total == 0
        assert summary.average_confidence is None

    def test_summary_to_dict(self):
        summary = BatchSummary.from_outcomes([parse(RECEIVED_SMS)])
        data = summary.to_dict()
        assert data['valid'] == 1
        assert data['by_pattern'] == {'MONEY_RECEIVED': 1}
        assert data['average_confidence'] == pytest.approx(1.0)


class TestTransactionRecord:
    """Tests for mapping outcomes onto table rows."""

    def test_received_record(self):
        record = to_transaction_record(parse(RECEIVED_SMS))
        assert record['mpesa_transaction_id'] == 'ABC123XYZ'
        assert record['amount'] == Decimal("1500.00")
        assert record['transaction_type'] == 'received'
        assert record['sender_name'] == 'JOHN DOE'
        assert record['sender_phone'] == '254712345678'
        assert record['transaction_date'] == datetime(2024, 1, 12, 15, 45)
        assert record['sms_content'] == RECEIVED_SMS
        assert record['parsed_data']['pattern_used'] == 'MONEY_RECEIVED'

    def test_deposit_agent_is_sender(self):
        record = to_transaction_record(parse(DEPOSIT_SMS))
        assert record['sender_name'] == 'MAMA MBOGA AGENCY'
        assert record['sender_phone'] == '254733333333'
        assert record['recipient_name'] is None

    def test_business_is_recipient(self):
        record = to_transaction_record(parse(PAYMENT_SMS))
        assert record['recipient_name'] == 'JAVA HOUSE'
        assert record['business_short_code'] == '123456'

    def test_invalid_outcome_rejected(self):
        with pytest.raises(ValueError):
            to_transaction_record(parse("hello world 123"))


class TestImportedTransaction:
    """Tests for bulk import validation."""

    def test_manual_id_format(self):
        tx_id = generate_manual_id()
        prefix, millis, suffix = tx_id.split('_')
        assert prefix == 'MANUAL'
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_defaults_filled(self):
        record = ImportedTransaction.model_validate({'amount': '250', 'transaction_type': 'Sent'})
        assert record.amount == Decimal("250")
        assert record.transaction_type == 'sent'
        assert record.mpesa_transaction_id.startswith('MANUAL_')
        assert isinstance(record.transaction_date, datetime)

    def test_iso_date(self):
        record = ImportedTransaction.model_validate({
            'amount': 10,
            'transaction_type': 'deposit',
            'transaction_date': '2024-03-15T10:00:00',
            'mpesa_transaction_id': 'QWE123',
        })
        assert record.transaction_date == datetime(2024, 3, 15, 10, 0)
        assert record.mpesa_transaction_id == 'QWE123'

    def test_batch_report(self):
        report = validate_import_batch([
            {'amount': 100, 'transaction_type': 'received'},
            {'amount': 100, 'transaction_type': 'airtime'},
            {'amount': -5, 'transaction_type': 'sent'},
            {'amount': 100, 'transaction_type': 'sent', 'transaction_date': 'last tuesday'},
            'not a record',
        ])
        assert report.success == 1
        assert report.errors == 4
        data = report.to_dict()
        assert data['success'] == 1
        assert data['failed'][1]['transaction'] == {'amount': -5, 'transaction_type': 'sent'}

    def test_empty_batch_rejected(self):
        with pytest.raises(ValueError, match="Transactions array is required"):
            validate_import_batch([])
        with pytest.raises(ValueError):
            validate_import_batch({'amount': 1})


class TestOutcomeWriter:
    """Tests for JSON / JSONL / CSV export."""

    def setup_method(self):
        self.writer = OutcomeWriter()
        self.outcomes, self.summary = parse_batch([RECEIVED_SMS, "hello world 123"], workers=1)

    def test_json(self, tmp_path):
        path = self.writer.write(self.outcomes, tmp_path / "out" / "results.json", ExportFormat.JSON, self.summary)
        data = json.loads(path.read_text(encoding='utf-8'))
        assert len(data['outcomes']) == 2
        assert data['outcomes'][0]['fields']['transaction_id'] == 'ABC123XYZ'
        assert data['summary']['valid'] == 1

    def test_jsonl(self, tmp_path):
        path = self.writer.write(self.outcomes, tmp_path / "results.jsonl", ExportFormat.JSONL)
        lines = path.read_text(encoding='utf-8').splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])['tier'] == 'failed'

    def test_csv(self, tmp_path):
        path = self.writer.write(self.outcomes, tmp_path / "results.csv", ExportFormat.CSV)
        with open(path, newline='', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            rows = list(reader)
            assert reader.fieldnames == CSV_COLUMNS
        assert rows[0]['sender_name'] == 'JOHN DOE'
        assert rows[0]['amount'] == '1500.0'
        assert rows[1]['is_valid'] == 'False'
        assert rows[1]['sender_name'] == ''
