from __future__ import annotations

import json
from pathlib import Path
from typing import Any

DATA_DIR = Path(__file__).parent
CURATION_DIR = DATA_DIR / "curation"


def _load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def load_drugs_curation(path: Path | None = None) -> dict[str, Any]:
    """Load data/curation/drugs.json (v1).

    Source of truth for per-drug half-lives, cutoffs and dosing intervals.
    """
    if path is None:
        path = CURATION_DIR / "drugs.json"
    return _load_json(path)


def load_routes_curation(path: Path | None = None) -> dict[str, Any]:
    if path is None:
        path = CURATION_DIR / "routes.json"
    return _load_json(path)


def load_nmr_curation(path: Path | None = None) -> dict[str, Any]:
    """Load the synthetic NMR peak table.

    Shape: {"version": 1, "default": [peak...], "groups": [{"drugs": [...], "peaks": [...]}]}
    """
    if path is None:
        path = CURATION_DIR / "nmr_peaks.json"
    return _load_json(path)
