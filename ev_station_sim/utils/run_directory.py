"""
Run Directory Module
One timestamped output folder per simulation run: tables under ``data/``,
summaries and the text report under ``reports/``.
"""

import json
import os
import re
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

import pandas as pd

DATA_SUBDIR = "data"
REPORTS_SUBDIR = "reports"


class RunDirectory:
    """Output folder for one run.

    Example layout::

        simulation_output/
          2026-02-17_143052_rush-hour/
            metadata.json
            data/
              completed_vehicles.csv
              history.csv
            reports/
              summary.json
              report.txt
    """

    def __init__(self, base_dir: str, run_name: Optional[str] = None):
        """
        Args:
            base_dir: Parent directory (e.g. ``./simulation_output``).
            run_name: Human-readable name, turned into a filesystem-safe
                slug. A short UUID is used when omitted.
        """
        self.created_at = datetime.now()
        slug = self._slugify(run_name) if run_name else str(uuid.uuid4())[:8]
        self.name = f"{self.created_at.strftime('%Y-%m-%d_%H%M%S')}_{slug}"
        self.root = os.path.join(base_dir, self.name)

        self.data_dir = os.path.join(self.root, DATA_SUBDIR)
        self.reports_dir = os.path.join(self.root, REPORTS_SUBDIR)
        os.makedirs(self.data_dir, exist_ok=True)
        os.makedirs(self.reports_dir, exist_ok=True)

    def data_path(self, filename: str) -> str:
        return os.path.join(self.data_dir, filename)

    def report_path(self, filename: str) -> str:
        return os.path.join(self.reports_dir, filename)

    # ========================================================================
    # WRITERS
    # ========================================================================

    def write_frame(self, filename: str, frame: pd.DataFrame, **to_csv_kwargs) -> str:
        """Write a table as CSV under ``data/``."""
        path = self.data_path(filename)
        to_csv_kwargs.setdefault("index", False)
        frame.to_csv(path, **to_csv_kwargs)
        return path

    def write_json(self, filename: str, payload: Dict[str, Any]) -> str:
        path = self.report_path(filename)
        with open(path, "w") as f:
            json.dump(payload, f, indent=2, default=str)
        return path

    def write_text(self, filename: str, text: str) -> str:
        path = self.report_path(filename)
        with open(path, "w") as f:
            f.write(text)
        return path

    def save_metadata(self, parameters: Dict[str, Any], extra: Optional[Dict[str, Any]] = None) -> str:
        """Write ``metadata.json`` at the run root: name, creation time, parameters."""
        metadata = {
            "run_name": self.name,
            "created_at": self.created_at.isoformat(),
            "parameters": parameters,
        }
        if extra:
            metadata.update(extra)
        path = os.path.join(self.root, "metadata.json")
        with open(path, "w") as f:
            json.dump(metadata, f, indent=2, default=str)
        return path

    @staticmethod
    def _slugify(name: str) -> str:
        slug = re.sub(r"[^a-z0-9]+", "-", name.lower().strip()).strip("-")
        return slug[:50] or "unnamed"

    def __repr__(self) -> str:
        return f"RunDirectory({self.root})"
