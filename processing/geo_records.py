#!/usr/bin/env python3
"""
geo_records.py - Polygon vertex tables

Choropleth code in this project works on a flat vertex table rather than on
geometry objects: one row per polygon vertex with the region it belongs to,
a ring (`group`) id and a drawing `order`. Joins then only need plain column
equality and every attribute lands on every vertex of its region.

Columns: long, lat, group, order, region, subregion
"""

from typing import List, Optional

import geopandas as gpd
import numpy as np
import pandas as pd
from loguru import logger
from shapely.geometry import MultiPolygon, Polygon

try:
    from .errors import GeoRecordError
except ImportError:
    from errors import GeoRecordError

VERTEX_COLUMNS = ["long", "lat", "group", "order", "region", "subregion"]


def _rings(geom) -> List:
    """Exterior and interior rings of a (Multi)Polygon, in drawing order."""
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom.exterior] + list(geom.interiors)
    if isinstance(geom, MultiPolygon):
        rings = []
        for part in geom.geoms:
            rings.extend(_rings(part))
        return rings
    raise GeoRecordError(f"Unsupported geometry type for vertex table: {geom.geom_type}")


def polygons_to_vertices(
    gdf: gpd.GeoDataFrame, region_col: str, subregion_col: Optional[str] = None
) -> pd.DataFrame:
    """Explode a polygon layer into a vertex table.

    Each ring (exterior or hole) gets its own group id, numbered from 1 in
    feature order. `order` runs from 1 across the whole table.

    Args:
        gdf: Polygon/MultiPolygon layer
        region_col: Column holding the region name
        subregion_col: Optional column holding a sub-region name

    Returns:
        DataFrame with VERTEX_COLUMNS
    """
    if region_col not in gdf.columns:
        raise GeoRecordError(f"Region column '{region_col}' not in layer: {list(gdf.columns)}")

    logger.info(f"🗺️ Converting {len(gdf):,} features to vertex records...")

    if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
        logger.info(f"  🔄 Reprojecting from {gdf.crs} to WGS84")
        gdf = gdf.to_crs("EPSG:4326")

    frames = []
    group_id = 0
    for _, row in gdf.iterrows():
        subregion = row[subregion_col] if subregion_col else None
        for ring in _rings(row.geometry):
            group_id += 1
            coords = np.asarray(ring.coords)
            frames.append(
                pd.DataFrame(
                    {
                        "long": coords[:, 0],
                        "lat": coords[:, 1],
                        "group": group_id,
                        "region": row[region_col],
                        "subregion": subregion,
                    }
                )
            )

    if not frames:
        logger.warning("  ⚠️ Layer produced no vertices")
        return pd.DataFrame(columns=VERTEX_COLUMNS)

    vertices = pd.concat(frames, ignore_index=True)
    vertices["order"] = np.arange(1, len(vertices) + 1)
    vertices["group"] = vertices["group"].astype(int)

    logger.success(f"  ✅ {len(vertices):,} vertices in {group_id:,} rings")
    return vertices[VERTEX_COLUMNS]


def validate_geo_records(vertices: pd.DataFrame) -> pd.DataFrame:
    """Check the ring layout rules of a vertex table.

    Raises GeoRecordError when a required column is missing, group ids are
    not integers, a group spans more than one region, or `order` is not
    strictly increasing inside a group (in row order).
    """
    missing = [c for c in ("long", "lat", "group", "order", "region") if c not in vertices.columns]
    if missing:
        raise GeoRecordError(f"Vertex table missing columns: {missing}")

    if not pd.api.types.is_integer_dtype(vertices["group"]):
        raise GeoRecordError(f"Group ids must be integers, got dtype {vertices['group'].dtype}")

    regions_per_group = vertices.groupby("group")["region"].nunique()
    shared = regions_per_group[regions_per_group > 1]
    if len(shared) > 0:
        raise GeoRecordError(f"Groups spanning several regions: {shared.index.tolist()[:5]}")

    increasing = vertices.groupby("group", sort=False)["order"].apply(
        lambda s: bool(s.is_monotonic_increasing and s.is_unique)
    ).astype(bool)
    bad = increasing[~increasing]
    if len(bad) > 0:
        raise GeoRecordError(f"Vertex order not increasing in groups: {bad.index.tolist()[:5]}")

    logger.debug(
        f"  ✓ {len(vertices):,} vertices, {vertices['group'].nunique():,} rings, "
        f"{vertices['region'].nunique():,} regions"
    )
    return vertices


def vertices_to_polygons(vertices: pd.DataFrame) -> gpd.GeoDataFrame:
    """Rebuild one polygon per group, carrying the group's other columns.

    Non-coordinate columns are taken from the first vertex of each group, so
    anything joined onto the vertices (attribute values, periods) survives.
    When the same group appears under several periods or fan-out matches,
    pass a table already filtered to one of them.
    """
    validate_geo_records(vertices)

    ordered = vertices.sort_values(["group", "order"], kind="stable")
    extra_cols = [c for c in ordered.columns if c not in ("long", "lat", "order")]

    records = []
    geometries = []
    for group_id, ring in ordered.groupby("group", sort=False):
        coords = list(zip(ring["long"], ring["lat"]))
        if len(coords) < 3:
            logger.debug(f"  Skipping degenerate ring {group_id} ({len(coords)} vertices)")
            continue
        geometries.append(Polygon(coords))
        records.append(ring.iloc[0][extra_cols].to_dict())

    return gpd.GeoDataFrame(
        pd.DataFrame(records, columns=extra_cols), geometry=geometries, crs="EPSG:4326"
    )
