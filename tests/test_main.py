"""Tests for main module."""

import pyarrow.parquet as pq

from resource_streams.main import main


def test_main_exports_records(monkeypatch, tmp_path, capsys):
    """Test an end-to-end export from the fake API to Parquet."""
    output_file = tmp_path / "export.parquet"
    monkeypatch.setenv("SOURCE_TYPE", "api")
    monkeypatch.setenv("PAGE_SIZE", "5")
    monkeypatch.setenv("TOTAL_PAGES", "3")
    monkeypatch.setenv("TAKE_LIMIT", "7")
    monkeypatch.setenv("ROWS_PER_GROUP", "3")
    monkeypatch.setenv("OUTPUT_FILE", str(output_file))

    assert main() == 0

    assert pq.read_table(output_file).num_rows == 7
    assert "Rows written: 7" in capsys.readouterr().out


def test_main_reports_configuration_errors(monkeypatch):
    """Test that a bad configuration returns a failure exit code."""
    monkeypatch.setenv("SOURCE_TYPE", "ftp")

    assert main() == 1
