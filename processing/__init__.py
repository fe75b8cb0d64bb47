"""
Processing package for the place-name reconciliation toolkit

This package contains the alias tables, code expansion, vertex-table and
join utilities used to attach statistical indicators to map regions.
"""

__version__ = "0.1.0"

# Import key utilities for easy access
from .aliases import WORLD_BANK_TO_WORLD_MAP, AliasMap, build_alias_map, load_alias_file
from .country_codes import code_to_name, expand_codes_to_names
from .data_utils import (
    find_column_by_pattern,
    load_geo_records,
    load_table,
    recode_columns,
    sanitize_column_names,
)
from .errors import DataSourceError, GeoRecordError, JoinKeyError, ReconcileError
from .geo_records import polygons_to_vertices, validate_geo_records, vertices_to_polygons
from .join import JoinReport, exact_join, find_unmatched, join, pattern_join

__all__ = [
    "AliasMap",
    "build_alias_map",
    "load_alias_file",
    "WORLD_BANK_TO_WORLD_MAP",
    "expand_codes_to_names",
    "code_to_name",
    "load_table",
    "load_geo_records",
    "sanitize_column_names",
    "find_column_by_pattern",
    "recode_columns",
    "polygons_to_vertices",
    "vertices_to_polygons",
    "validate_geo_records",
    "join",
    "exact_join",
    "pattern_join",
    "find_unmatched",
    "JoinReport",
    "ReconcileError",
    "DataSourceError",
    "JoinKeyError",
    "GeoRecordError",
]
