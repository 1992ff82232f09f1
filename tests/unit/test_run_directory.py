"""
Unit tests for RunDirectory.
"""

import json
import os

import pandas as pd

from ev_station_sim.utils import RunDirectory


class TestRunDirectory:
    def test_creates_standard_subdirs(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path))
        assert os.path.isdir(run_dir.data_dir)
        assert os.path.isdir(run_dir.reports_dir)
        assert os.path.dirname(run_dir.root) == str(tmp_path)

    def test_slugified_name(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path), run_name="Rush Hour / Test!")
        assert run_dir.name.endswith("_rush-hour-test")
        assert run_dir.name.startswith(run_dir.created_at.strftime('%Y-%m-%d_%H%M%S'))

    def test_empty_slug(self):
        assert RunDirectory._slugify("!!!") == "unnamed"

    def test_paths(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path), run_name="paths")
        assert run_dir.data_path("a.csv") == os.path.join(run_dir.root, "data", "a.csv")
        assert run_dir.report_path("r.txt") == os.path.join(run_dir.root, "reports", "r.txt")


class TestWriters:
    def test_write_frame_drops_index_by_default(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path))
        frame = pd.DataFrame({'vehicle_id': [1, 2], 'energy_kwh': [12.5, 30.0]})
        path = run_dir.write_frame("completed_vehicles.csv", frame)

        assert path == run_dir.data_path("completed_vehicles.csv")
        loaded = pd.read_csv(path)
        assert list(loaded.columns) == ['vehicle_id', 'energy_kwh']
        assert loaded['energy_kwh'].tolist() == [12.5, 30.0]

    def test_write_frame_with_index_label(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path))
        frame = pd.DataFrame({'power_output_kw': [0.0, 50.0, 100.0]})
        path = run_dir.write_frame("history.csv", frame, index=True, index_label="tick")

        loaded = pd.read_csv(path)
        assert list(loaded.columns) == ['tick', 'power_output_kw']
        assert loaded['tick'].tolist() == [0, 1, 2]

    def test_write_json(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path))
        path = run_dir.write_json("summary.json", {'ticks': 30})
        assert os.path.dirname(path) == run_dir.reports_dir
        with open(path) as f:
            assert json.load(f) == {'ticks': 30}

    def test_write_text(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path))
        path = run_dir.write_text("report.txt", "CHARGING FACILITY REPORT\n")
        assert path == run_dir.report_path("report.txt")
        with open(path) as f:
            assert f.read() == "CHARGING FACILITY REPORT\n"

    def test_save_metadata(self, tmp_path):
        run_dir = RunDirectory(str(tmp_path), run_name="meta")
        path = run_dir.save_metadata({'num_stations': 3}, extra={'seed': 42})

        assert path == os.path.join(run_dir.root, "metadata.json")
        with open(path) as f:
            metadata = json.load(f)
        assert metadata['run_name'] == run_dir.name
        assert metadata['created_at'] == run_dir.created_at.isoformat()
        assert metadata['parameters'] == {'num_stations': 3}
        assert metadata['seed'] == 42
