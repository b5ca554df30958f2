"""Tests for the runmetrics command line."""
import json

import pytest

from runmetrics.__main__ import EXIT_DECODE_ERROR, EXIT_UNSUPPORTED, main


@pytest.fixture(name="gpx_path")
def gpx_path_fixture(tmp_path, steady_gpx):
    path = tmp_path / "tempo.gpx"
    path.write_bytes(steady_gpx)
    return path


class TestCli:
    def test_formats(self, capsys):
        assert main(["formats"]) == 0
        assert capsys.readouterr().out.strip() == "FIT, TCX, GPX"

    def test_parse_prints_json(self, gpx_path, capsys):
        """parse writes the canonical JSON document to stdout."""
        assert main(["parse", str(gpx_path)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["totalDistance"] == pytest.approx(3.4, abs=1e-6)
        assert len(data["laps"]) == 4
        assert data["records"]

    def test_summary_omits_records(self, gpx_path, capsys):
        """--summary leaves out the per-sample records."""
        assert main(["parse", str(gpx_path), "--summary"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert "records" not in data
        assert data["sourceFormat"] == "gpx"

    def test_fit_file(self, tmp_path, steady_fit, capsys):
        path = tmp_path / "run.fit"
        path.write_bytes(steady_fit)
        assert main(["--log-level", "debug", "parse", str(path), "--summary"]) == 0
        assert json.loads(capsys.readouterr().out)["avgCadence"] == 168

    def test_unsupported_file(self, tmp_path):
        """Unrecognised content exits non-zero."""
        path = tmp_path / "notes.txt"
        path.write_text("not an activity")
        assert main(["parse", str(path)]) == EXIT_UNSUPPORTED

    def test_corrupt_file(self, tmp_path, steady_fit):
        path = tmp_path / "broken.fit"
        path.write_bytes(steady_fit[:-40])
        assert main(["parse", str(path)]) == EXIT_DECODE_ERROR

    def test_missing_file(self, tmp_path):
        assert main(["parse", str(tmp_path / "nope.fit")]) == EXIT_DECODE_ERROR

    def test_command_required(self):
        """Running without a subcommand is a usage error."""
        with pytest.raises(SystemExit):
            main([])
