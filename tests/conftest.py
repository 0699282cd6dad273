"""Shared fixtures for ship-log search tests."""

from __future__ import annotations

import copy
from typing import Any, Dict

import pytest

from shiplog_search.document import MapDocument, parse_map
from shiplog_search.index import IndexBuilder, IndexSnapshot
from shiplog_search.metrics import reset_metrics


# ---------------------------------------------------------------------------
# Keep process-wide metrics isolated between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_metrics()
    yield
    reset_metrics()


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

SAMPLE_MAP: Dict[str, Any] = {
    "mapName": "solar_system",
    "nodes": [
        {"id": "timber_hearth", "title": "Timber Hearth", "x": 100, "y": 300},
        {"id": "observatory", "title": "Observatory", "x": 300, "y": 300},
        {"id": "quantum_moon", "title": "Quantum Moon", "x": 500, "y": 200},
        {"id": "tower", "title": "Tower of Quantum Trials", "x": 700, "y": 200},
        {"id": "white_hole_station", "title": "White Hole Station", "x": 500, "y": 400},
        {"id": "sun_station", "title": "Sun Station", "x": 300, "y": 500},
        {"id": "giants_deep", "title": "Giant's Deep", "x": 300, "y": 700},
        {"id": "vessel", "title": "The Vessel", "x": 1100, "y": 700},
        {"id": "ka_shrine", "title": "The Ka Shrine", "x": 900, "y": 100},
        {"id": "old_ridge", "title": "Old Ridge", "x": 100, "y": 900},
        {"id": "old_ridge_outpost", "title": "Old Ridge Outpost", "x": 200, "y": 900},
        {"id": "untitled", "title": "   ", "x": 0, "y": 0},
    ],
    "edges": [
        {"source": "observatory", "target": "quantum_moon", "type": "rumor"},
        {"source": "quantum_moon", "target": "tower", "type": "rumor"},
        {"source": "observatory", "target": "white_hole_station", "type": "rumor"},
        {"id": "deep_link", "source": "giants_deep", "target": "vessel", "type": "direct"},
    ],
    "notes": {
        "timber_hearth": ["#home village"],
        "observatory": ["#home base", "Visit the #Museum first"],
        "quantum_moon": ["#quantum #mystery unfolds here", "Sixth location?"],
        "tower": ["#quantum shrine on the moon"],
        "vessel": ["#myth retold"],
        "untitled": ["#hidden"],
        "observatory__quantum_moon": ["#rumor about #quantum objects"],
        "observatory__white_hole_station": ["#rumor"],
        "deep_link": ["#Signal, #signal!"],
    },
}


@pytest.fixture
def sample_map_data() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_MAP)


@pytest.fixture
def sample_document(sample_map_data) -> MapDocument:
    return parse_map(sample_map_data)


@pytest.fixture
def snapshot(sample_document) -> IndexSnapshot:
    """Index built from the sample map with the default notes extractor."""
    return IndexBuilder().build(sample_document.nodes, sample_document.edges)
