#!/usr/bin/env python3
"""
data_utils.py - Shared Data Loading Utilities

Reading attribute tables and map layers from disk or URLs, plus the column
hygiene every dataset needs before it can be joined.
"""

import io
import re
from pathlib import Path
from typing import Mapping, Optional, Union

import geopandas as gpd
import pandas as pd
import requests
from loguru import logger

try:
    from .errors import DataSourceError
    from .geo_records import VERTEX_COLUMNS, polygons_to_vertices, validate_geo_records
except ImportError:
    # Fallback for development when running as script
    from errors import DataSourceError
    from geo_records import VERTEX_COLUMNS, polygons_to_vertices, validate_geo_records

VECTOR_SUFFIXES = {".geojson", ".json", ".shp", ".gpkg", ".zip"}


def _is_url(source: Union[str, Path]) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


def _suffix(source: Union[str, Path]) -> str:
    path = str(source).split("?", 1)[0]
    return Path(path).suffix.lower()


def fetch_bytes(url: str, timeout: float = 30.0) -> bytes:
    """Download a remote file. Any failure is fatal for the run."""
    logger.info(f"🌐 Fetching {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise DataSourceError(url, str(e)) from e

    logger.debug(f"  📦 {len(response.content):,} bytes received")
    return response.content


def _read_frame(handle, suffix: str, **kwargs) -> pd.DataFrame:
    if suffix in (".csv", ".txt", ""):
        return pd.read_csv(handle, **kwargs)
    if suffix == ".tsv":
        return pd.read_csv(handle, sep="\t", **kwargs)
    if suffix == ".dta":
        return pd.read_stata(handle, **kwargs)
    if suffix in (".xls", ".xlsx"):
        return pd.read_excel(handle, **kwargs)
    if suffix == ".parquet":
        return pd.read_parquet(handle, **kwargs)
    raise ValueError(f"Unsupported table format '{suffix}'")


def load_table(source: Union[str, Path], timeout: float = 30.0, **kwargs) -> pd.DataFrame:
    """Load an attribute table from a local path or an http(s) URL.

    The format follows the file extension: csv/txt, tsv, dta (Stata),
    xls/xlsx, parquet. Extra keyword arguments go to the pandas reader.

    Raises:
        DataSourceError: file missing, download failed or file unreadable
    """
    suffix = _suffix(source)

    if _is_url(source):
        handle = io.BytesIO(fetch_bytes(str(source), timeout=timeout))
    else:
        path = Path(source)
        if not path.exists():
            raise DataSourceError(path, "file not found")
        logger.info(f"📄 Loading {path.name}")
        handle = path

    try:
        df = _read_frame(handle, suffix, **kwargs)
    except ValueError as e:
        raise DataSourceError(source, str(e)) from e
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DataSourceError(source, f"could not parse: {e}") from e

    logger.info(f"  ✅ Loaded {len(df):,} rows, {len(df.columns)} columns")
    return df


def load_geo_records(
    source: Union[str, Path],
    region_col: str = "region",
    subregion_col: Optional[str] = None,
    rename: Optional[Mapping[str, str]] = None,
    timeout: float = 30.0,
) -> pd.DataFrame:
    """Load a map as a vertex table with the standard VERTEX_COLUMNS names.

    Vector layers (GeoJSON, Shapefile, GeoPackage) are exploded with
    polygons_to_vertices, reading region names from `region_col` and
    sub-region names from `subregion_col` when the layer has it. Anything else
    is read as an existing vertex table; `region_col`, `subregion_col` and the
    `rename` table ({source column: standard name}) map its headers onto
    long/lat/group/order/region/subregion.

    The result always carries the region name in `region`, whatever the
    source called it.
    """
    suffix = _suffix(source)
    if suffix not in VECTOR_SUFFIXES:
        vertices = load_table(source, timeout=timeout)
        mapping = dict(rename or {})
        mapping[region_col] = "region"
        if subregion_col:
            mapping[subregion_col] = "subregion"
        vertices = recode_columns(vertices, {k: v for k, v in mapping.items() if k != v})
        if "subregion" not in vertices.columns:
            vertices["subregion"] = None
        return validate_geo_records(vertices)

    if _is_url(source):
        handle = io.BytesIO(fetch_bytes(str(source), timeout=timeout))
    else:
        handle = Path(source)
        if not handle.exists():
            raise DataSourceError(handle, "file not found")

    try:
        gdf = gpd.read_file(handle)
    except Exception as e:  # pyogrio/fiona raise their own hierarchies
        raise DataSourceError(source, f"could not read vector layer: {e}") from e

    logger.info(f"🗺️ Loaded {len(gdf):,} features from {Path(str(source)).name}")
    gdf = gdf[gdf.geometry.notna()]
    if subregion_col and subregion_col not in gdf.columns:
        logger.debug(f"  Layer has no '{subregion_col}' column, sub-regions left empty")
        subregion_col = None
    return polygons_to_vertices(gdf, region_col=region_col, subregion_col=subregion_col)


def sanitize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Convert column names to clean snake_case format.

    Statistical archives ship headers like "GDP per capita (current US$)" or
    "2010 [YR2010]"; snake_case makes them usable as attribute names.

    Args:
        df: DataFrame with potentially messy column names

    Returns:
        DataFrame with clean snake_case column names
    """
    logger.info("🧹 Sanitizing column names...")

    original_cols = df.columns.tolist()

    clean_cols = []
    for col in original_cols:
        clean_col = str(col).strip()

        # Replace spaces and special chars with underscores
        clean_col = re.sub(r"[^\w\s]", "_", clean_col)
        clean_col = re.sub(r"\s+", "_", clean_col)
        clean_col = clean_col.lower()
        clean_col = re.sub(r"_+", "_", clean_col)
        clean_col = clean_col.strip("_")

        if not clean_col:
            clean_col = f"column_{len(clean_cols)}"
        elif clean_col[0].isdigit():
            # Year headers stay recognisable: "2010" -> "y2010"
            clean_col = f"y{clean_col}"

        clean_cols.append(clean_col)

    changed_cols = [(orig, new) for orig, new in zip(original_cols, clean_cols) if orig != new]
    if changed_cols:
        logger.info(f"  📝 Cleaned {len(changed_cols)} column names:")
        for orig, new in changed_cols[:5]:
            logger.info(f"    '{orig}' → '{new}'")
        if len(changed_cols) > 5:
            logger.info(f"    ... and {len(changed_cols) - 5} more")

    df = df.copy()
    df.columns = clean_cols
    return df


def recode_columns(df: pd.DataFrame, mapping: Mapping[str, str]) -> pd.DataFrame:
    """Rename columns through a lookup table, ignoring absent columns."""
    present = {old: new for old, new in mapping.items() if old in df.columns}
    absent = sorted(set(mapping) - set(present))
    if absent:
        logger.debug(f"  Columns not present for renaming: {absent}")
    if present:
        logger.debug(f"  ✏️ Renaming {len(present)} columns")
    return df.rename(columns=present)


def find_column_by_pattern(
    df: pd.DataFrame, patterns: list, description: str = "column"
) -> Optional[str]:
    """Find a column by matching patterns (case-insensitive substring).

    Args:
        df: DataFrame to search
        patterns: List of patterns to match (e.g., ["country", "name"])
        description: Description for logging

    Returns:
        Column name if found, None if not found
    """
    for pattern in patterns:
        matching_cols = [col for col in df.columns if pattern.lower() in str(col).lower()]
        if matching_cols:
            logger.debug(f"  📍 Found {description} column: {matching_cols[0]} (pattern: {pattern})")
            return matching_cols[0]

    logger.warning(f"  ⚠️ No {description} column found for patterns: {patterns}")
    return None


def ensure_output_directory(output_path: Union[str, Path]) -> Path:
    """Ensure output directory exists and return Path object."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path


def write_merged(merged: pd.DataFrame, output_path: Union[str, Path]) -> Path:
    """Write a merged vertex table as CSV, vertex columns first."""
    output_path = ensure_output_directory(output_path)
    leading = [c for c in VERTEX_COLUMNS if c in merged.columns]
    ordered = merged[leading + [c for c in merged.columns if c not in leading]]
    ordered.to_csv(output_path, index=False)
    logger.success(f"💾 Wrote {len(ordered):,} rows to {output_path}")
    return output_path
