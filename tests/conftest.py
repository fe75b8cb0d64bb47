"""
Test Configuration and Shared Fixtures

Fixtures:
- make_vertices: builder for small vertex tables
- world_vertices: USA, Republic of Congo, DR Congo and France rings
- indicators: World Bank style attribute table (names need recoding)
- square_layer: GeoDataFrame with a polygon and a holed multipolygon
"""

import math
import sys

import geopandas as gpd
import matplotlib
import pandas as pd
import pytest
from loguru import logger
from shapely.geometry import MultiPolygon, Polygon

matplotlib.use("Agg")


def pytest_collection_modifyitems(config, items):
    """Mark CLI tests as integration, everything else as unit."""
    for item in items:
        if "test_run_pipeline" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_logger():
    """CLI tests replace loguru sinks; restore a plain stderr sink afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")


def _vertices(regions):
    rows = []
    order = 0
    for group, (region, n) in enumerate(regions, start=1):
        for i in range(n):
            order += 1
            rows.append(
                {
                    "long": group * 10 + math.cos(2 * math.pi * i / n),
                    "lat": math.sin(2 * math.pi * i / n),
                    "group": group,
                    "order": order,
                    "region": region,
                    "subregion": None,
                }
            )
    return pd.DataFrame(rows)


@pytest.fixture
def make_vertices():
    """Build a vertex table from [(region, n_vertices), ...]."""
    return _vertices


@pytest.fixture
def world_vertices():
    return _vertices(
        [
            ("USA", 4),
            ("Republic of Congo", 3),
            ("Democratic Republic of the Congo", 3),
            ("France", 4),
        ]
    )


@pytest.fixture
def indicators():
    return pd.DataFrame(
        {
            "country": ["United States", "Congo, Rep.", "Congo, Dem. Rep.", "Tuvalu", "Atlantis"],
            "code": ["USA", "COG", "COD", "TUV", "ATL"],
            "gdp_per_capita": [65000.0, 2300.0, 580.0, 5200.0, 99.0],
        }
    )


@pytest.fixture
def square_layer():
    square = Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])
    holed = Polygon(
        [(10, 0), (14, 0), (14, 4), (10, 4)],
        holes=[[(11, 1), (12, 1), (12, 2), (11, 2)]],
    )
    islands = MultiPolygon([holed, Polygon([(20, 0), (21, 0), (21, 1)])])
    return gpd.GeoDataFrame(
        {"name": ["Squareland", "Archipelago"], "state": ["north", "south"]},
        geometry=[square, islands],
        crs="EPSG:4326",
    )
