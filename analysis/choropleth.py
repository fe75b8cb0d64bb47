#!/usr/bin/env python3
"""
choropleth.py - Draw merged vertex tables as choropleth maps

Consumes the join output (long, lat, group, order, region + attribute
columns) and fills each ring by one attribute. Regions without data are drawn
in a neutral colour so join misses stay visible on the map.
"""

import math
from pathlib import Path
from typing import Optional, Union

import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger

from processing.data_utils import ensure_output_directory
from processing.geo_records import vertices_to_polygons


def _one_vertex_per_slot(merged: pd.DataFrame) -> pd.DataFrame:
    """Keep the first row per (group, order); fan-out joins repeat vertices."""
    deduped = merged.dropna(subset=["group"]).drop_duplicates(subset=["group", "order"], keep="first")
    if len(deduped) < len(merged):
        logger.warning(
            f"  ⚠️ {len(merged) - len(deduped):,} repeated or geometry-less rows dropped before drawing"
        )
    return deduped.astype({"group": int})


def _draw(ax, polygons, value_col: str, cmap: str, missing_color: str, edge_color: str, legend: bool):
    polygons.plot(
        column=value_col,
        cmap=cmap,
        linewidth=0.2,
        edgecolor=edge_color,
        ax=ax,
        legend=legend,
        missing_kwds={"color": missing_color, "edgecolor": edge_color, "linewidth": 0.2},
    )
    ax.set_aspect("equal")
    ax.set_axis_off()


def plot_choropleth(
    merged: pd.DataFrame,
    value_col: str,
    output_path: Optional[Union[str, Path]] = None,
    title: Optional[str] = None,
    cmap: str = "OrRd",
    missing_color: str = "#d9d9d9",
    edge_color: str = "white",
    figure_width: float = 12,
    dpi: int = 200,
):
    """Fill map regions by `value_col`.

    Returns the matplotlib Figure, or the written path when `output_path` is
    given (the figure is closed after saving).
    """
    if value_col not in merged.columns:
        raise KeyError(f"Column '{value_col}' not in merged table")

    logger.info(f"🎨 Drawing choropleth of '{value_col}'...")
    polygons = vertices_to_polygons(_one_vertex_per_slot(merged))

    missing = polygons[value_col].isna().sum()
    logger.debug(f"  {len(polygons):,} rings, {missing:,} without data")

    fig, ax = plt.subplots(figsize=(figure_width, figure_width * 0.55), dpi=dpi)
    _draw(ax, polygons, value_col, cmap, missing_color, edge_color, legend=True)
    if title:
        fig.suptitle(title, fontsize=14, fontweight="bold", x=0.02, ha="left")

    if output_path is None:
        return fig

    output_path = ensure_output_directory(output_path)
    fig.savefig(output_path, bbox_inches="tight", dpi=dpi, facecolor="white")
    plt.close(fig)
    logger.success(f"  ✅ Map saved: {output_path}")
    return output_path


def plot_choropleth_facets(
    merged: pd.DataFrame,
    value_col: str,
    facet_col: str,
    output_path: Optional[Union[str, Path]] = None,
    ncols: int = 3,
    cmap: str = "OrRd",
    missing_color: str = "#d9d9d9",
    edge_color: str = "white",
    panel_width: float = 4,
    dpi: int = 200,
):
    """Small multiples: one map panel per value of `facet_col` (e.g. year).

    All panels share one colour scale so periods are comparable.
    """
    for col in (value_col, facet_col):
        if col not in merged.columns:
            raise KeyError(f"Column '{col}' not in merged table")

    facets = sorted(merged[facet_col].dropna().unique())
    if not facets:
        raise ValueError(f"No values to facet on in '{facet_col}'")

    logger.info(f"🎨 Drawing {len(facets)} panels of '{value_col}' by '{facet_col}'...")

    ncols = max(1, min(ncols, len(facets)))
    nrows = math.ceil(len(facets) / ncols)
    fig, axes = plt.subplots(
        nrows, ncols, figsize=(panel_width * ncols, panel_width * 0.6 * nrows), dpi=dpi, squeeze=False
    )

    values = pd.to_numeric(merged[value_col], errors="coerce")
    vmin, vmax = values.min(), values.max()

    for ax, facet in zip(axes.flat, facets):
        panel = vertices_to_polygons(_one_vertex_per_slot(merged[merged[facet_col] == facet]))
        panel.plot(
            column=value_col,
            cmap=cmap,
            vmin=vmin,
            vmax=vmax,
            linewidth=0.2,
            edgecolor=edge_color,
            ax=ax,
            missing_kwds={"color": missing_color, "edgecolor": edge_color, "linewidth": 0.2},
        )
        ax.set_title(str(facet), fontsize=10)
        ax.set_aspect("equal")
        ax.set_axis_off()

    for ax in list(axes.flat)[len(facets):]:
        ax.set_visible(False)

    if output_path is None:
        return fig

    output_path = ensure_output_directory(output_path)
    fig.savefig(output_path, bbox_inches="tight", dpi=dpi, facecolor="white")
    plt.close(fig)
    logger.success(f"  ✅ Facet map saved: {output_path}")
    return output_path
