"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import mido
import pytest

from tabforge import main as cli
from tabforge.core import config as config_module
from tabforge.core.config import ConfigManager
from tabforge.core.project_file import load

TAB = """\
e|-3---|
B|-----|
G|0----|
D|-----|
A|--12-|
E|-----|
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "_global_config", ConfigManager(config_dir=tmp_path / "cfg"))


@pytest.fixture
def project(tmp_path: Path) -> Path:
    tab_file = tmp_path / "riff.txt"
    tab_file.write_text(TAB, encoding="utf-8")
    path = tmp_path / "riff.tfc"
    assert cli.main(["import-text", str(tab_file), str(path)]) == 0
    return path


class TestCli:
    def test_import_text_creates_project(self, project):
        canvas = load(project)
        assert canvas.id == "riff"
        assert len(canvas.lanes[0].notes) == 3

    def test_render(self, project, capsys):
        assert cli.main(["render", str(project), "--bar-width", "16"]) == 0
        out = capsys.readouterr().out
        assert "# Editor 1" in out
        assert "e|" in out

    def test_export_stamps(self, project, capsys):
        assert cli.main(["export-stamps", str(project)]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["stamps"] == [[0, [2, 0], 1], [1, [0, 3], 1], [2, [4, 12], 1]]

    def test_import_stamps_append(self, project, tmp_path):
        stamps = tmp_path / "more.json"
        stamps.write_text(json.dumps({"stamps": [[0, [1, 1], 10]]}), encoding="utf-8")
        assert cli.main(["import-stamps", str(stamps), str(project), "--append"]) == 0
        notes = load(project).lanes[0].notes
        assert len(notes) == 4
        assert notes[-1].start_time == 960

    def test_export_midi(self, project, tmp_path):
        out = tmp_path / "riff.mid"
        assert cli.main(["export-midi", str(project), str(out)]) == 0
        assert mido.MidiFile(str(out)).type == 1

    def test_unknown_lane_reports_error(self, project):
        assert cli.main(["render", str(project), "--lane", "ed-9"]) == 1
