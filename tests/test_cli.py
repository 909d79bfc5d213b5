"""
Tests for the command-line interface

Run with: pytest tests/ -v
"""

import json
from pathlib import Path
import sys

from click.testing import CliRunner
from loguru import logger

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from main import main, read_messages


RECEIVED_SMS = (
    "MPESA received Ksh1,500.00 from 254712345678 JOHN DOE 12/01/24 3:45PM "
    "ABC123XYZ New MPESA balance is Ksh5,000.00"
)


class TestReadMessages:
    """Tests for message file loading."""

    def test_json_list(self, tmp_path):
        path = tmp_path / "messages.json"
        path.write_text(json.dumps([RECEIVED_SMS, {'sms_content': 'second'}]))
        assert read_messages(path) == [RECEIVED_SMS, 'second']

    def test_jsonl(self, tmp_path):
        path = tmp_path / "messages.jsonl"
        path.write_text(json.dumps("first") + "\n\n" + json.dumps({'text': 'second'}) + "\n")
        assert read_messages(path) == ['first', 'second']

    def test_plain_text_blocks(self, tmp_path):
        path = tmp_path / "messages.txt"
        path.write_text("first line\ncontinued\n\n\nsecond\n")
        assert read_messages(path) == ['first line\ncontinued', 'second']


class TestCli:
    """Tests for the click commands."""

    def setup_method(self):
        self.runner = CliRunner()

    def teardown_method(self):
        # The CLI points loguru at the runner's captured stderr
        logger.remove()
        logger.add(sys.stderr)

    def test_parse_valid(self):
        result = self.runner.invoke(main, ['parse', RECEIVED_SMS])
        assert result.exit_code == 0
        assert 'ABC123XYZ' in result.output
        assert 'MONEY_RECEIVED' in result.output

    def test_parse_json(self):
        result = self.runner.invoke(main, ['parse', '--json', RECEIVED_SMS])
        assert result.exit_code == 0
        assert '"transaction_id": "ABC123XYZ"' in result.output

    def test_parse_invalid_exits_nonzero(self):
        result = self.runner.invoke(main, ['parse', 'hello world 123'])
        assert result.exit_code == 1
        assert 'Unable to parse MPESA SMS format' in result.output

    def test_patterns(self):
        result = self.runner.invoke(main, ['patterns'])
        assert result.exit_code == 0
        assert 'MONEY_RECEIVED' in result.output
        assert 'SIMPLE_SENT' in result.output

    def test_batch(self, tmp_path):
        source = tmp_path / "messages.json"
        source.write_text(json.dumps([RECEIVED_SMS, 'hello world 123']))
        target = tmp_path / "results.csv"

        result = self.runner.invoke(
            main, ['batch', '-i', str(source), '-o', str(target), '-f', 'csv', '--workers', '2']
        )
        assert result.exit_code == 0
        assert target.exists()
        assert 'ABC123XYZ' in target.read_text(encoding='utf-8')

    def test_batch_empty_input(self, tmp_path):
        source = tmp_path / "messages.txt"
        source.write_text("\n\n")
        result = self.runner.invoke(
            main, ['batch', '-i', str(source), '-o', str(tmp_path / "out.json")]
        )
        assert result.exit_code == 1

    def test_validate_import(self, tmp_path):
        source = tmp_path / "records.json"
        source.write_text(json.dumps({'transactions': [
            {'amount': 100, 'transaction_type': 'received'},
            {'amount': 100, 'transaction_type': 'bogus'},
        ]}))
        result = self.runner.invoke(main, ['validate-import', '--json', str(source)])
        assert result.exit_code == 1
        assert '"success": 1' in result.output
        assert '"errors": 1' in result.output

    def test_validate_import_requires_records(self, tmp_path):
        source = tmp_path / "records.json"
        source.write_text("[]")
        result = self.runner.invoke(main, ['validate-import', str(source)])
        assert result.exit_code != 0
        assert 'Transactions array is required' in result.output

    def test_bad_config(self, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("settings:\n  batch_workers: 0\n")
        result = self.runner.invoke(main, ['--config', str(config), 'patterns'])
        assert result.exit_code != 0
