"""
Tests for the command-line interface.
"""

import pytest
from click.testing import CliRunner
from websocket import WebSocketException

from scripts import excel_importer_cli as cli_module
from services.row_validator import ROW_COLUMNS
from tests.conftest import build_workbook, data_row, read_workbook


class FakeResponse:
    """Just enough of requests.Response for the CLI."""

    def __init__(self, status_code=200, payload=None, content=b''):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.text = str(payload)

    def json(self):
        if self._payload is None:
            raise ValueError('no json')
        return self._payload


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def direct_db(tmp_path, monkeypatch):
    """Point direct mode at a throwaway SQLite file."""
    monkeypatch.setattr(cli_module, 'DATABASE_URL', f"sqlite:///{tmp_path / 'cli.db'}")


@pytest.fixture
def workbook_file(tmp_path):
    def write(rows, name='records.xlsx'):
        path = tmp_path / name
        path.write_bytes(build_workbook(rows))
        return str(path)
    return write


class TestDirectMode:
    """Commands running the services against a local database."""

    def test_validate_valid(self, runner, direct_db, workbook_file):
        """A clean file prints VALID and exits 0."""
        result = runner.invoke(cli_module.cli, ['validate', '--file', workbook_file([data_row('A')])])

        assert result.exit_code == 0
        assert 'VALID' in result.output

    def test_validate_invalid(self, runner, direct_db, workbook_file):
        """Row errors are printed and the exit code is 1."""
        path = workbook_file([data_row('A'), data_row('A', tanggal='2023-13-40')])

        result = runner.invoke(cli_module.cli, ['validate', '--file', path])

        assert result.exit_code == 1
        assert 'INVALID' in result.output
        assert 'Row 1: tanggal: Invalid date format. Use YYYY-MM-DD' in result.output
        assert "Row 1: Duplicate standardid 'A' within the file." in result.output

    def test_import_then_validate(self, runner, direct_db, workbook_file):
        """Imported keys collide on the next validation."""
        path = workbook_file([data_row('A'), data_row('B', actual=None)])

        imported = runner.invoke(cli_module.cli, ['import', '--file', path])
        validated = runner.invoke(cli_module.cli, ['validate', '--file', path])

        assert imported.exit_code == 0
        assert 'Imported: 1' in imported.output
        assert 'Rejected: 1' in imported.output
        assert "standardid 'A' already exists in the database." in validated.output

    def test_export(self, runner, direct_db, workbook_file, tmp_path):
        """Export writes the selected columns."""
        runner.invoke(cli_module.cli, ['import', '--file', workbook_file([data_row('A')])])
        output = tmp_path / 'out.xlsx'

        result = runner.invoke(cli_module.cli, [
            'export', '--output', str(output), '--columns', 'standardid,status',
            '--start-date', '2023-01-01', '--end-date', '2023-12-31'
        ])

        assert result.exit_code == 0
        assert read_workbook(output.read_bytes()) == [['standardid', 'status'], ['A', 'Active']]

    def test_template(self, runner, tmp_path):
        """The template is written to disk."""
        output = tmp_path / 'template.xlsx'

        result = runner.invoke(cli_module.cli, ['template', '--output', str(output)])

        assert result.exit_code == 0
        assert read_workbook(output.read_bytes(), sheet='Template')[0] == ROW_COLUMNS

    def test_unreadable_file(self, runner, direct_db, tmp_path):
        """A bad workbook exits with code 1."""
        path = tmp_path / 'bad.xlsx'
        path.write_bytes(b'garbage')

        result = runner.invoke(cli_module.cli, ['import', '--file', str(path)])

        assert result.exit_code == 1

    def test_background_requires_api(self, runner, workbook_file):
        """--background is only available in API mode."""
        result = runner.invoke(cli_module.cli, ['import', '--file', workbook_file([data_row('A')]),
                                                '--background'])

        assert result.exit_code == 2


class TestApiMode:
    """Commands calling the HTTP API."""

    def test_import_via_api(self, runner, workbook_file, monkeypatch):
        """The file is posted to the import endpoint."""
        calls = []

        def fake_post(url, files=None, timeout=None, **kwargs):
            calls.append(url)
            return FakeResponse(payload={'imported': 3, 'rejected': 0})

        monkeypatch.setattr(cli_module.requests, 'post', fake_post)

        result = runner.invoke(cli_module.cli, ['--api-url', 'http://api:8000/', 'import',
                                                '--file', workbook_file([data_row('A')])])

        assert result.exit_code == 0
        assert calls == ['http://api:8000/api/excel/import']
        assert 'Imported: 3' in result.output

    def test_api_error(self, runner, workbook_file, monkeypatch):
        """HTTP errors exit with code 1."""
        monkeypatch.setattr(cli_module.requests, 'post',
                            lambda *a, **k: FakeResponse(400, {'detail': 'Only .xlsx files are allowed'}))

        result = runner.invoke(cli_module.cli, ['--api-url', 'http://api:8000', 'validate',
                                                '--file', workbook_file([data_row('A')])])

        assert result.exit_code == 1

    def test_background_falls_back_to_polling(self, runner, workbook_file, monkeypatch):
        """When the WebSocket fails the job status is polled."""
        monkeypatch.setattr(cli_module.requests, 'post', lambda *a, **k: FakeResponse(202, {
            'job_id': 'job-1',
            'status_url': '/api/excel/import/jobs/job-1',
            'websocket_url': '/ws/import/job-1',
        }))

        def no_websocket(api_url, job_id):
            raise WebSocketException('refused')

        monkeypatch.setattr(cli_module, 'track_progress_websocket', no_websocket)
        polled = []

        def fake_get(url, timeout=None):
            polled.append(url)
            return FakeResponse(payload={
                'status': 'success',
                'progress': {'stage': 'complete', 'percent': 100.0, 'message': 'done'},
                'result': {'imported': 1, 'rejected': 0},
            })

        monkeypatch.setattr(cli_module.requests, 'get', fake_get)

        result = runner.invoke(cli_module.cli, ['--api-url', 'http://api:8000', 'import',
                                                '--file', workbook_file([data_row('A')]),
                                                '--background'])

        assert result.exit_code == 0
        assert polled == ['http://api:8000/api/excel/import/jobs/job-1']
        assert 'Imported: 1' in result.output

    def test_background_job_failed(self, runner, workbook_file, monkeypatch):
        """A failed job exits with code 1."""
        monkeypatch.setattr(cli_module.requests, 'post', lambda *a, **k: FakeResponse(202, {
            'job_id': 'job-1', 'status_url': '/s', 'websocket_url': '/w'
        }))
        monkeypatch.setattr(cli_module, 'track_progress_websocket', lambda api_url, job_id: {
            'status': 'failed', 'error': {'error': 'boom'}
        })

        result = runner.invoke(cli_module.cli, ['--api-url', 'http://api:8000', 'import',
                                                '--file', workbook_file([data_row('A')]),
                                                '--background'])

        assert result.exit_code == 1
