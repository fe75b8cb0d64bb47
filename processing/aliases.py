#!/usr/bin/env python3
"""
aliases.py - Manual place-name recode tables

Statistical agencies and map datasets spell the same places differently
("United States" vs "USA", "Congo, Rep." vs "Republic of Congo"). The fix is
a hand-curated lookup table, applied before joining. There is deliberately
no fuzzy matching: a name missing from the table passes through unchanged
and, if the map has no region of that name, stays unmatched so it shows up
in the manual-review list.

Usage:
    from processing.aliases import build_alias_map, WORLD_BANK_TO_WORLD_MAP

    aliases = build_alias_map(WORLD_BANK_TO_WORLD_MAP)
    df["region"] = aliases.apply(df["country_name"])
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

import pandas as pd
import yaml
from loguru import logger

# World Bank / UN style names -> region names used by the Natural Earth
# derived world map (the layout ggplot2/maps ship as "world").
WORLD_BANK_TO_WORLD_MAP: Dict[str, str] = {
    "United States": "USA",
    "United Kingdom": "UK",
    "Russian Federation": "Russia",
    "Congo": "Republic of Congo",
    "Congo, Rep.": "Republic of Congo",
    "Congo, Dem. Rep.": "Democratic Republic of the Congo",
    "Democratic Republic of Congo": "Democratic Republic of the Congo",
    "Egypt, Arab Rep.": "Egypt",
    "Iran, Islamic Rep.": "Iran",
    "Korea, Rep.": "South Korea",
    "Korea, Dem. People's Rep.": "North Korea",
    "Lao PDR": "Laos",
    "Syrian Arab Republic": "Syria",
    "Venezuela, RB": "Venezuela",
    "Yemen, Rep.": "Yemen",
    "Gambia, The": "Gambia",
    "Bahamas, The": "Bahamas",
    "Kyrgyz Republic": "Kyrgyzstan",
    "Slovak Republic": "Slovakia",
    "Czechia": "Czech Republic",
    "Turkiye": "Turkey",
    "Cote d'Ivoire": "Ivory Coast",
    "Cabo Verde": "Cape Verde",
    "Eswatini": "Swaziland",
    "Brunei Darussalam": "Brunei",
    "Micronesia, Fed. Sts.": "Micronesia",
    "St. Lucia": "Saint Lucia",
    "St. Vincent and the Grenadines": "Saint Vincent",
    "St. Kitts and Nevis": "Saint Kitts",
    "Trinidad and Tobago": "Trinidad",
    "Antigua and Barbuda": "Antigua",
    "Hong Kong SAR, China": "China",
    "Macao SAR, China": "China",
    "West Bank and Gaza": "Palestine",
    "Viet Nam": "Vietnam",
}

# Names with no polygon in the world map. Left unmatched on purpose; the
# join reports them as nulls rather than guessing a target.
UNRESOLVED_NAMES = frozenset(
    {
        "Tuvalu",  # no separate region in the map layer, possibly folded elsewhere
        "World",
        "Euro area",
        "European Union",
        "High income",
        "Low income",
    }
)


class AliasMap(Mapping[str, str]):
    """Read-only lookup from source names to map region names."""

    def __init__(self, pairs: Optional[Mapping[str, str]] = None):
        self._pairs: Dict[str, str] = dict(pairs or {})

    def __getitem__(self, key: str) -> str:
        return self._pairs[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"AliasMap({len(self._pairs)} entries)"

    def resolve(self, name):
        """Return the aliased name, or the name itself when unmapped."""
        if name is None or (not isinstance(name, str) and pd.isna(name)):
            return name
        return self._pairs.get(name, name)

    def apply(self, names: Union[pd.Series, list]) -> pd.Series:
        """Recode a column of names. Unmapped names pass through."""
        series = names if isinstance(names, pd.Series) else pd.Series(list(names), dtype=object)
        recoded = series.map(self.resolve)

        changed = int((~(recoded.eq(series) | series.isna())).sum())
        logger.debug(f"  🔁 Recoded {changed} of {len(series)} names via alias map")
        return recoded

    def merged(self, other: Mapping[str, str]) -> "AliasMap":
        """New map with `other` layered on top (its entries win)."""
        pairs = dict(self._pairs)
        pairs.update(other)
        return AliasMap(pairs)


def build_alias_map(overrides: Optional[Mapping[str, str]] = None) -> AliasMap:
    """Build an alias map from explicit (source -> target) pairs.

    Args:
        overrides: Manually curated pairs. Keys and values must be strings.

    Returns:
        AliasMap that passes unmapped names through unchanged
    """
    pairs: Dict[str, str] = {}
    for source, target in (overrides or {}).items():
        if not isinstance(source, str) or not isinstance(target, str):
            raise TypeError(f"Alias entries must be strings, got {source!r} -> {target!r}")
        pairs[source] = target

    logger.debug(f"📖 Built alias map with {len(pairs)} entries")
    return AliasMap(pairs)


def load_alias_file(path: Union[str, Path]) -> AliasMap:
    """Read a YAML file of `source: target` pairs into an alias map."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Alias file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Alias file must contain a mapping, got {type(data).__name__}")

    logger.info(f"📖 Loaded {len(data)} aliases from {path.name}")
    return build_alias_map({str(k): str(v) for k, v in data.items()})
