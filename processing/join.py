#!/usr/bin/env python3
"""
join.py - Attach attribute tables onto map vertex tables

Two join stages, both keeping every map vertex:

- exact:   equality on the region name (after alias recoding)
- pattern: attribute keys are regular expressions (see country_codes);
           a vertex matches every attribute row whose pattern accepts its
           region name, so one vertex can fan out into several rows

Attribute rows whose name finds no region are dropped by default: there is
no polygon to draw them on. `find_unmatched` lists them for manual review so
the alias table can be extended by hand.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd
from loguru import logger

try:
    from .errors import JoinKeyError
except ImportError:
    from errors import JoinKeyError

JOIN_MODES = ("exact", "pattern")

_ROW_ID = "_attr_row"


@dataclass
class JoinReport:
    """Match coverage for one join."""

    mode: str
    geo_rows: int
    merged_rows: int
    matched_regions: int
    unmatched_regions: List[str] = field(default_factory=list)
    unmatched_attr_keys: List[str] = field(default_factory=list)

    @property
    def fully_matched(self) -> bool:
        return not self.unmatched_regions and not self.unmatched_attr_keys

    def log(self) -> None:
        logger.info(
            f"  ✓ {self.mode} join: {self.geo_rows:,} vertices -> {self.merged_rows:,} rows, "
            f"{self.matched_regions:,} regions matched"
        )
        if self.unmatched_regions:
            logger.debug(
                f"  📍 {len(self.unmatched_regions)} regions without data: "
                f"{self.unmatched_regions[:5]}{'...' if len(self.unmatched_regions) > 5 else ''}"
            )
        if self.unmatched_attr_keys:
            logger.warning(
                f"  ⚠️ {len(self.unmatched_attr_keys)} attribute names not on the map: "
                f"{self.unmatched_attr_keys[:10]}{'...' if len(self.unmatched_attr_keys) > 10 else ''}"
            )


def _check_columns(df: pd.DataFrame, columns: List[str], side: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise JoinKeyError(f"{side} table has no column(s) {missing}. Available: {list(df.columns)}")


def _expand_periods(geo: pd.DataFrame, attrs: pd.DataFrame, time_key: str) -> pd.DataFrame:
    """Repeat the map once per period found in the attribute table."""
    if time_key in geo.columns:
        return geo

    periods = sorted(attrs[time_key].dropna().unique())
    if not periods:
        logger.warning(f"  ⚠️ No values in time column '{time_key}', map kept once")
        return geo.assign(**{time_key: pd.NA})

    logger.debug(f"  🗓️ Repeating map for {len(periods)} periods of '{time_key}'")
    return pd.concat([geo.assign(**{time_key: p}) for p in periods], ignore_index=True)


def _append_unmatched(merged: pd.DataFrame, attrs: pd.DataFrame, rows) -> pd.DataFrame:
    extra = attrs.loc[rows]
    if extra.empty:
        return merged
    logger.debug(f"  ➕ Keeping {len(extra)} unmatched attribute rows without geometry")
    return pd.concat([merged, extra], ignore_index=True)


def _key_tuples(df: pd.DataFrame, columns: List[str]) -> List[tuple]:
    return list(df[columns].itertuples(index=False, name=None))


def exact_join(
    geo: pd.DataFrame,
    attrs: pd.DataFrame,
    key_geo: str,
    key_attr: str,
    time_key: Optional[str] = None,
    keep_unmatched_attrs: bool = False,
) -> pd.DataFrame:
    """Equality join preserving every geo row.

    Attribute columns that clash with geo columns get an `_attr` suffix.
    Null keys never match. With `time_key`, a row is matched only when its
    (name, period) pair exists on the map side.
    """
    _check_columns(geo, [key_geo], "Geo")
    _check_columns(attrs, [key_attr] + ([time_key] if time_key else []), "Attribute")

    left = _expand_periods(geo, attrs, time_key) if time_key else geo
    right = attrs[attrs[key_attr].notna()]

    left_on = [key_geo] + ([time_key] if time_key else [])
    right_on = [key_attr] + ([time_key] if time_key else [])

    merged = left.merge(
        right, left_on=left_on, right_on=right_on, how="left", suffixes=("", "_attr")
    )
    if time_key and f"{time_key}_attr" in merged.columns:
        merged = merged.drop(columns=f"{time_key}_attr")

    if keep_unmatched_attrs:
        on_left = set(_key_tuples(left[left[key_geo].notna()], left_on))
        on_map = [
            pd.notna(key[0]) and key in on_left for key in _key_tuples(attrs, right_on)
        ]
        merged = _append_unmatched(merged, attrs, ~pd.Series(on_map, index=attrs.index, dtype=bool))

    return merged


def _compile_patterns(patterns: pd.Series) -> Dict[str, "re.Pattern"]:
    compiled = {}
    for pattern in patterns.dropna().unique():
        try:
            compiled[pattern] = re.compile(str(pattern), re.IGNORECASE)
        except re.error as e:
            raise JoinKeyError(f"Invalid name pattern {pattern!r}: {e}") from e
    return compiled


def match_patterns(names: pd.Series, patterns: pd.Series) -> List[Tuple[str, int]]:
    """All (name, pattern position) pairs where the pattern accepts the name.

    Positions index into `patterns` (0-based, in row order). Matching is a
    case-insensitive search, so anchored patterns need their own ^...$.
    """
    compiled = _compile_patterns(patterns)
    positions = [
        (pos, compiled[p]) for pos, p in enumerate(patterns.tolist()) if p in compiled
    ]

    pairs = []
    for name in names.dropna().unique():
        text = str(name)
        for pos, regex in positions:
            if regex.search(text):
                pairs.append((name, pos))
    return pairs


def pattern_join(
    geo: pd.DataFrame,
    attrs: pd.DataFrame,
    key_geo: str,
    key_attr: str,
    time_key: Optional[str] = None,
    keep_unmatched_attrs: bool = False,
    pairs: Optional[List[Tuple[str, int]]] = None,
) -> pd.DataFrame:
    """Regex join preserving every geo row, emitting every matching pair.

    `pairs` takes a precomputed match_patterns result for the same inputs.
    """
    _check_columns(geo, [key_geo], "Geo")
    _check_columns(attrs, [key_attr] + ([time_key] if time_key else []), "Attribute")

    attrs = attrs.reset_index(drop=True)
    if pairs is None:
        pairs = match_patterns(geo[key_geo], attrs[key_attr])
    logger.debug(f"  🔍 {len(pairs):,} region/pattern matches")

    bridge = pd.DataFrame(pairs, columns=[key_geo, _ROW_ID])
    bridge[_ROW_ID] = bridge[_ROW_ID].astype(float)
    on = [key_geo]
    left = geo
    if time_key:
        left = _expand_periods(geo, attrs, time_key)
        rows = bridge[_ROW_ID].astype(int).to_numpy()
        bridge[time_key] = attrs[time_key].to_numpy()[rows]
        on.append(time_key)

    linked = left.merge(bridge, on=on, how="left")
    # rows that landed on a vertex; with time_key the period must match too
    used = set(linked[_ROW_ID].dropna().astype(int))

    right = attrs.drop(columns=[time_key]) if time_key else attrs
    right = right.assign(**{_ROW_ID: right.index.astype(float)})
    merged = linked.merge(right, on=_ROW_ID, how="left", suffixes=("", "_attr"))
    merged = merged.drop(columns=_ROW_ID)

    if keep_unmatched_attrs:
        merged = _append_unmatched(merged, attrs, ~attrs.index.isin(list(used)))

    return merged


def _unmatched_labels(
    attrs: pd.DataFrame, missing_rows, key_attr: str, label_col: Optional[str]
) -> List[str]:
    labels = attrs.loc[missing_rows, label_col or key_attr]
    return sorted(set(labels.dropna()), key=str)


def find_unmatched(
    attrs: pd.DataFrame,
    geo: pd.DataFrame,
    key_attr: str,
    key_geo: str,
    mode: str = "exact",
    label_col: Optional[str] = None,
    pairs: Optional[List[Tuple[str, int]]] = None,
) -> List[str]:
    """Attribute keys that no map region will pick up, sorted.

    This is the manual-review list: extend the alias table with these names
    and run again. With `label_col` the list reports that column instead of
    the join key (e.g. the original codes behind expanded patterns); rows
    whose key is null are then listed as well.
    """
    _check_columns(attrs, [key_attr] + ([label_col] if label_col else []), "Attribute")
    _check_columns(geo, [key_geo], "Geo")

    attrs = attrs.reset_index(drop=True)
    keys = attrs[key_attr]

    if mode == "exact":
        missing = ~keys.isin(set(geo[key_geo].dropna()))
    elif mode == "pattern":
        if pairs is None:
            pairs = match_patterns(geo[key_geo], keys)
        matched = {pos for _, pos in pairs}
        missing = pd.Series([pos not in matched for pos in attrs.index], index=attrs.index, dtype=bool)
    else:
        raise ValueError(f"Unknown join mode '{mode}'. Expected one of {JOIN_MODES}")

    if label_col is None:
        missing &= keys.notna()
    return _unmatched_labels(attrs, missing, key_attr, label_col)


def summarize_join(
    geo: pd.DataFrame,
    attrs: pd.DataFrame,
    merged: pd.DataFrame,
    key_geo: str,
    key_attr: str,
    mode: str = "exact",
    label_col: Optional[str] = None,
    pairs: Optional[List[Tuple[str, int]]] = None,
) -> JoinReport:
    """Coverage figures for a finished join."""
    regions = set(geo[key_geo].dropna())
    if mode == "exact":
        hit = regions & set(attrs[key_attr].dropna())
    else:
        if pairs is None:
            pairs = match_patterns(geo[key_geo], attrs[key_attr].reset_index(drop=True))
        hit = {name for name, _ in pairs}

    return JoinReport(
        mode=mode,
        geo_rows=len(geo),
        merged_rows=len(merged),
        matched_regions=len(hit),
        unmatched_regions=sorted(regions - hit, key=str),
        unmatched_attr_keys=find_unmatched(
            attrs, geo, key_attr, key_geo, mode=mode, label_col=label_col, pairs=pairs
        ),
    )


def join(
    geo: pd.DataFrame,
    attrs: pd.DataFrame,
    key_geo: str,
    key_attr: str,
    mode: str = "exact",
    time_key: Optional[str] = None,
    keep_unmatched_attrs: bool = False,
    label_col: Optional[str] = None,
    with_report: bool = False,
):
    """Join an attribute table onto a map vertex table.

    Args:
        geo: Vertex table (see geo_records)
        attrs: Attribute table, one row per place (and period)
        key_geo: Region name column in `geo`
        key_attr: Name column in `attrs`; regex patterns when mode="pattern"
        mode: "exact" or "pattern"
        time_key: Optional period column for panel data
        keep_unmatched_attrs: Also return attribute rows that match no region,
            with null geo columns (a full outer join)
        label_col: Column reported for unmatched rows instead of `key_attr`
        with_report: Return (merged, JoinReport) instead of merged alone

    Returns:
        Merged DataFrame. Every geo row appears at least once (once per period
        with `time_key`); unmatched attribute columns are null.
    """
    if mode not in JOIN_MODES:
        raise ValueError(f"Unknown join mode '{mode}'. Expected one of {JOIN_MODES}")

    logger.info(f"🔗 Joining {len(attrs):,} attribute rows onto {len(geo):,} vertices ({mode})...")

    pairs = None
    if mode == "exact":
        merged = exact_join(
            geo,
            attrs,
            key_geo,
            key_attr,
            time_key=time_key,
            keep_unmatched_attrs=keep_unmatched_attrs,
        )
    else:
        _check_columns(geo, [key_geo], "Geo")
        _check_columns(attrs, [key_attr], "Attribute")
        pairs = match_patterns(geo[key_geo], attrs[key_attr].reset_index(drop=True))
        merged = pattern_join(
            geo,
            attrs,
            key_geo,
            key_attr,
            time_key=time_key,
            keep_unmatched_attrs=keep_unmatched_attrs,
            pairs=pairs,
        )

    report = summarize_join(
        geo, attrs, merged, key_geo, key_attr, mode=mode, label_col=label_col, pairs=pairs
    )
    report.log()
    return (merged, report) if with_report else merged
