"""
Tests for the CLI.

CRITICAL TESTS:
1. test_analyze_json - analyze emits a parseable report
2. test_analyze_exit_codes - ERROR exits 1, CRITICAL exits 2
3. test_demo_creates_file - demo writes a readable sample file
"""

import json

import pytest

from typer.testing import CliRunner

from pingwatch import __version__
from pingwatch.cli.main import app
from pingwatch.samples import SampleReader


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config discovery away from the developer's own files."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('HOME', str(tmp_path))


def write_csv(path, latencies):
    lines = ['timestamp,latency,seq']
    for i, latency in enumerate(latencies):
        lines.append(f"{1_000 + i * 100},{'' if latency is None else latency},{i + 1}")
    path.write_text('\n'.join(lines) + '\n')
    return path


class TestVersion:
    """Test version command."""

    def test_version(self, runner):
        result = runner.invoke(app, ['version'])

        assert result.exit_code == 0
        assert f"pingwatch v{__version__}" in result.stdout


class TestAnalyze:
    """Test analyze command."""

    def test_analyze_json(self, runner, stable_csv):
        """CRITICAL TEST: clean session reports grade A and exits 0."""
        result = runner.invoke(app, ['analyze', str(stable_csv)])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report['status'] == 'ok'
        assert report['stats']['totalPings'] == 50
        assert report['analysis']['qualityGrade'] == 'A'
        assert report['analysis']['final'] is True
        assert report['source']['detection_method'] == 'iqr'

    def test_analyze_output_file(self, runner, stable_csv, tmp_path):
        out = tmp_path / 'report.json'
        result = runner.invoke(app, ['analyze', str(stable_csv), '-o', str(out), '-q'])

        assert result.exit_code == 0
        assert json.loads(out.read_text())['stats']['successfulPings'] == 50

    def test_analyze_table(self, runner, stable_csv):
        result = runner.invoke(app, ['analyze', str(stable_csv), '-f', 'table'])

        assert result.exit_code == 0
        assert 'Grade           A' in result.stdout
        assert 'Status          OK' in result.stdout

    def test_method_override(self, runner, stable_csv):
        result = runner.invoke(app, ['analyze', str(stable_csv), '-m', 'zscore', '-w', '20'])

        assert result.exit_code == 0
        assert json.loads(result.stdout)['source']['detection_method'] == 'zscore'

    def test_analyze_exit_codes(self, runner, tmp_path):
        """CRITICAL TEST: high loss exits 1, grade F exits 2."""

        lossy = write_csv(tmp_path / 'lossy.csv', [4.0] * 18 + [None] * 2)
        result = runner.invoke(app, ['analyze', str(lossy), '-q'])
        assert result.exit_code == 1
        assert json.loads(result.stdout)['status'] == 'error'

        slow = write_csv(tmp_path / 'slow.csv', [60.0] * 20)
        result = runner.invoke(app, ['analyze', str(slow), '-q'])
        assert result.exit_code == 2
        assert json.loads(result.stdout)['analysis']['qualityGrade'] == 'F'

    def test_analyze_empty_file(self, runner, tmp_path):
        empty = write_csv(tmp_path / 'empty.csv', [])
        result = runner.invoke(app, ['analyze', str(empty), '-q'])

        report = json.loads(result.stdout)
        assert report['errors'][0]['code'] == 'E1005'
        assert report['analysis']['qualitySummary'] == 'No data available for analysis.'
        assert result.exit_code == 2

    def test_analyze_unsupported_format(self, runner, tmp_path):
        path = tmp_path / 'samples.txt'
        path.write_text('1,2,3\n')
        result = runner.invoke(app, ['analyze', str(path)])

        assert result.exit_code == 1
        assert 'E1001' in result.stdout

    def test_analyze_missing_latency_column(self, runner, tmp_path):
        path = tmp_path / 'renamed.csv'
        path.write_text('timestamp,rtt_ms,seq\n1000,4.0,1\n1100,4.2,2\n')
        result = runner.invoke(app, ['analyze', str(path)])

        assert result.exit_code == 1
        assert 'E1002' in result.stdout

    def test_analyze_malformed_config(self, runner, stable_csv, tmp_path):
        cfg = tmp_path / 'broken.yml'
        cfg.write_text("detection: [unclosed\n")
        result = runner.invoke(app, ['analyze', str(stable_csv), '-c', str(cfg)])

        assert result.exit_code == 1
        assert 'E3001' in result.stdout
        assert isinstance(result.exception, SystemExit)

    def test_analyze_missing_config(self, runner, stable_csv, tmp_path):
        result = runner.invoke(app, ['analyze', str(stable_csv), '-c', str(tmp_path / 'nope.yml')])

        assert result.exit_code == 1
        assert 'Config not found' in result.stdout

    def test_analyze_unwritable_output(self, runner, stable_csv, tmp_path):
        out = tmp_path / 'no-such-dir' / 'report.json'
        result = runner.invoke(app, ['analyze', str(stable_csv), '-o', str(out), '-q'])

        assert result.exit_code == 1
        assert 'E4001' in result.stdout
        assert not out.exists()

    def test_analyze_reports_unset_env_var(self, runner, stable_csv, tmp_path, monkeypatch):
        monkeypatch.delenv('PINGWATCH_CLI_TARGET', raising=False)
        cfg = tmp_path / 'env.yml'
        cfg.write_text("session:\n  target: ${PINGWATCH_CLI_TARGET}\n")
        result = runner.invoke(app, ['analyze', str(stable_csv), '-c', str(cfg)])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report['errors'][0]['code'] == 'E3002'
        assert report['errors'][0]['severity'] == 'warning'
        assert report['status'] == 'ok'


class TestReplay:
    """Test replay command."""

    def test_replay_lists_deviations(self, runner, tmp_path):
        path = write_csv(tmp_path / 's.csv', [5.0] * 10 + [50.0, None])
        events = tmp_path / 'events.csv'

        result = runner.invoke(app, ['replay', str(path), '--events-csv', str(events)])

        assert result.exit_code == 0
        assert '12 samples, 3 deviations' in result.stdout
        assert len(events.read_text().splitlines()) == 4

    def test_replay_unwritable_events_csv(self, runner, tmp_path):
        path = write_csv(tmp_path / 's.csv', [5.0] * 10 + [50.0])
        events = tmp_path / 'missing' / 'events.csv'

        result = runner.invoke(app, ['replay', str(path), '--events-csv', str(events)])

        assert result.exit_code == 1
        assert 'E4001' in result.stdout


class TestDemo:
    """Test demo command."""

    def test_demo_creates_file(self, runner, tmp_path):
        """CRITICAL TEST: demo writes a sample file analyze can read."""
        out = tmp_path / 'demo.csv'
        result = runner.invoke(app, ['demo', '-o', str(out), '-s', 'stable', '--seed', '7'])

        assert result.exit_code == 0
        assert len(list(SampleReader.read_path(out))) == 600

    def test_demo_unknown_scenario(self, runner, tmp_path):
        result = runner.invoke(app, ['demo', '-o', str(tmp_path / 'x.csv'), '-s', 'nope'])
        assert result.exit_code == 1

    def test_demo_unwritable_output(self, runner, tmp_path):
        out = tmp_path / 'missing' / 'demo.csv'
        result = runner.invoke(app, ['demo', '-o', str(out), '-s', 'stable'])

        assert result.exit_code == 1
        assert 'E4001' in result.stdout


class TestConfig:
    """Test config command."""

    def test_init(self, runner):
        result = runner.invoke(app, ['config', 'init'])

        assert result.exit_code == 0
        assert 'method: iqr' in result.stdout

    def test_validate_valid(self, runner, tmp_path):
        path = tmp_path / 'ok.yml'
        path.write_text("detection:\n  method: zscore\n")
        result = runner.invoke(app, ['config', 'validate', str(path)])

        assert result.exit_code == 0

    def test_validate_invalid(self, runner, tmp_path):
        path = tmp_path / 'bad.yml'
        path.write_text("detection:\n  method: median\n  rolling_window_size: -5\n")
        result = runner.invoke(app, ['config', 'validate', str(path)])

        assert result.exit_code == 1
        assert 'Invalid configuration' in result.stdout
        assert 'E3003' in result.stdout

    def test_validate_non_numeric_interval(self, runner, tmp_path):
        path = tmp_path / 'bad.yml'
        path.write_text("session:\n  interval_ms: fast\n")
        result = runner.invoke(app, ['config', 'validate', str(path)])

        assert result.exit_code == 1
        assert 'interval_ms' in result.stdout

    def test_validate_malformed_yaml(self, runner, tmp_path):
        path = tmp_path / 'broken.yml'
        path.write_text("session: {target: [\n")
        result = runner.invoke(app, ['config', 'validate', str(path)])

        assert result.exit_code == 1
        assert 'E3001' in result.stdout

    def test_dump_defaults(self, runner):
        result = runner.invoke(app, ['config', 'dump'])

        assert result.exit_code == 0
        assert 'detection_method: iqr' in result.stdout

    def test_dump_missing_path(self, runner, tmp_path):
        result = runner.invoke(app, ['config', 'dump', str(tmp_path / 'nope.yml')])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_dump_malformed_yaml(self, runner, tmp_path):
        path = tmp_path / 'broken.yml'
        path.write_text("detection: [unclosed\n")
        result = runner.invoke(app, ['config', 'dump', str(path)])

        assert result.exit_code == 1
        assert 'E3001' in result.stdout

    def test_unknown_action(self, runner):
        result = runner.invoke(app, ['config', 'explode'])
        assert result.exit_code == 1
