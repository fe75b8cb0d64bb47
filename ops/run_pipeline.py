#!/usr/bin/env python3
"""
Place-Name Reconciliation Pipeline with Click CLI

Loads a map vertex table and an attribute table, recodes place names
(manual alias table or code expansion), joins the two and writes the merged
table for plotting. Configuration comes from config.yaml; any value can be
overridden on the command line.

Usage:
    python -m ops.run_pipeline join
    python -m ops.run_pipeline join --geo data/world.geojson --attributes data/wdi.csv
    python -m ops.run_pipeline join --set join.mode=pattern --set join.code_scheme=iso3c
    python -m ops.run_pipeline unmatched          # manual-review list only
    python -m ops.run_pipeline plot gdp_per_capita --facet year

    # Verbose logging:
    python -m ops.run_pipeline --verbose join
"""

import sys
from pathlib import Path
from typing import Any, Optional, Tuple

import click
import pandas as pd
from loguru import logger

from ops.config_loader import Config
from processing.aliases import (
    UNRESOLVED_NAMES,
    WORLD_BANK_TO_WORLD_MAP,
    AliasMap,
    build_alias_map,
    load_alias_file,
)
from processing.country_codes import code_to_name, expand_codes_to_names, is_code
from processing.data_utils import (
    find_column_by_pattern,
    load_geo_records,
    load_table,
    recode_columns,
    sanitize_column_names,
    write_merged,
)
from processing.errors import ReconcileError
from processing.join import JoinReport, find_unmatched, join


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    logger.remove()

    if enable_trace or verbose:
        log_level = "TRACE" if enable_trace else "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )


class ConfigOverride(click.ParamType):
    """KEY=VALUE pairs applied to the config with dot notation."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        if val.lower() in ("true", "false"):
            parsed_val: Any = val.lower() == "true"
        elif val.lower() in ("null", "none"):
            parsed_val = None
        elif val.isdigit():
            parsed_val = int(val)
        elif "." in val and val.replace(".", "", 1).isdigit():
            parsed_val = float(val)
        else:
            parsed_val = val

        return key, parsed_val


# Original codes are kept beside their expanded patterns for review lists
SOURCE_KEY_COL = "source_key"


def build_aliases(config: Config, alias_file: Optional[str] = None) -> AliasMap:
    """Built-in table, then config `aliases`, then an alias file; later wins."""
    builtin = WORLD_BANK_TO_WORLD_MAP if config.get_join_setting("use_builtin_aliases") else {}
    aliases = build_alias_map(builtin).merged(config.get_aliases())
    if alias_file:
        aliases = aliases.merged(load_alias_file(alias_file))
    logger.info(f"📖 Alias map ready: {len(aliases)} entries")
    return aliases


def load_map(config: Config, geo_source=None) -> pd.DataFrame:
    """Load the map with the configured source headers, normalised to `region` etc."""
    return load_geo_records(
        geo_source or config.get_input_path("geo"),
        region_col=config.get_column_name("geo_region"),
        subregion_col=config.get_column_name("geo_subregion"),
        rename=config.get_vertex_rename(),
        timeout=config.get("http.timeout", 30),
    )


def prepare_attributes(
    attrs: pd.DataFrame, config: Config, aliases: AliasMap
) -> Tuple[pd.DataFrame, str]:
    """Clean the attribute table, recode its name column and pick the join mode.

    Headers are renamed (`attributes.rename`) and optionally sanitized first.
    When the configured name column is still absent, the first header matching
    `attributes.name_patterns` takes its place.

    Exact mode applies the alias map. With a code scheme the column is
    expanded into name patterns, the original codes are kept in
    SOURCE_KEY_COL and the join switches to pattern mode.
    """
    name_col = config.get_column_name("attr_name")

    attrs = recode_columns(attrs, config.get_attribute_rename())
    if config.get("attributes.sanitize_headers"):
        attrs = sanitize_column_names(attrs)
    else:
        attrs = attrs.copy()

    if name_col not in attrs.columns:
        found = find_column_by_pattern(attrs, config.get("attributes.name_patterns", []), "name")
        if found is None:
            raise ReconcileError(f"Attribute name column '{name_col}' not found: {list(attrs.columns)}")
        logger.info(f"  📍 Using '{found}' as the name column")
        attrs = attrs.rename(columns={found: name_col})

    mode = config.get_join_setting("mode")
    scheme = config.get_join_setting("code_scheme")

    if scheme:
        attrs[SOURCE_KEY_COL] = attrs[name_col]
        attrs[name_col] = expand_codes_to_names(attrs[name_col], scheme=scheme)
        mode = "pattern"
    elif mode == "exact":
        attrs[name_col] = aliases.apply(attrs[name_col])

    return attrs, mode


def _label_col(attrs: pd.DataFrame) -> Optional[str]:
    return SOURCE_KEY_COL if SOURCE_KEY_COL in attrs.columns else None


def run_reconciliation(
    config: Config,
    geo_source=None,
    attrs_source=None,
    alias_file: Optional[str] = None,
) -> Tuple[pd.DataFrame, JoinReport]:
    """Load both tables, recode names and join. Returns (merged, report)."""
    name_col = config.get_column_name("attr_name")

    geo = load_map(config, geo_source)
    attrs = load_table(
        attrs_source or config.get_input_path("attributes"), timeout=config.get("http.timeout", 30)
    )
    attrs, mode = prepare_attributes(attrs, config, build_aliases(config, alias_file))

    return join(
        geo,
        attrs,
        key_geo="region",
        key_attr=name_col,
        mode=mode,
        time_key=config.get("columns.time"),
        keep_unmatched_attrs=bool(config.get_join_setting("keep_unmatched_attrs")),
        label_col=_label_col(attrs),
        with_report=True,
    )


def describe_unmatched(key, scheme: Optional[str] = None) -> str:
    """One review line: the key, its place name for codes, and a known-gap note."""
    parts = [str(key)]
    name = key
    if scheme and is_code(key, scheme):
        name = code_to_name(key, scheme)
        parts.append(name if name else "(unknown code)")
    if name in UNRESOLVED_NAMES:
        parts.append("(known: no map region)")
    return "\t".join(parts)


@click.group()
@click.option(
    "--config-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to config.yaml (default: RECONCILE_CONFIG_PATH, ./config.yaml, ops/config.yaml)",
)
@click.option(
    "--set",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., join.mode=pattern)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option("--trace", is_flag=True, help="Enable TRACE level logging for deep debugging")
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_file, config_overrides, verbose, trace, log_file):
    """🗺️ Place-name reconciliation: attach indicators to map regions."""
    setup_logging(verbose=verbose, enable_trace=trace)

    if log_file:
        logger.add(
            log_file,
            level="TRACE" if trace else ("DEBUG" if verbose else "INFO"),
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    try:
        config = Config(config_file, project_root_override=Path.cwd() if config_file is None else None)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    for key, value in config_overrides:
        config.set(key, value)

    config.print_config_summary()
    ctx.obj = config


@cli.command("join")
@click.option("--geo", "geo_source", help="Map vertex table or vector layer (path or URL)")
@click.option("--attributes", "attrs_source", help="Attribute table (path or URL)")
@click.option("--aliases", "alias_file", type=click.Path(exists=True, dir_okay=False), help="YAML alias file")
@click.option("--output", "output_path", type=click.Path(dir_okay=False), help="Merged CSV output path")
@click.pass_obj
def join_command(config: Config, geo_source, attrs_source, alias_file, output_path):
    """Join attributes onto the map and write the merged table."""
    try:
        merged, report = run_reconciliation(config, geo_source, attrs_source, alias_file)
    except ReconcileError as e:
        raise click.ClickException(str(e)) from e

    write_merged(merged, output_path or config.get_output_path("merged"))

    if report.unmatched_attr_keys:
        logger.warning(
            f"📝 {len(report.unmatched_attr_keys)} names need manual review "
            "(run the 'unmatched' command for the full list)"
        )
    logger.success("🎉 Join complete")


@cli.command("unmatched")
@click.option("--geo", "geo_source", help="Map vertex table or vector layer (path or URL)")
@click.option("--attributes", "attrs_source", help="Attribute table (path or URL)")
@click.option("--aliases", "alias_file", type=click.Path(exists=True, dir_okay=False), help="YAML alias file")
@click.pass_obj
def unmatched_command(config: Config, geo_source, attrs_source, alias_file):
    """Print attribute names (or codes) that no map region picks up."""
    name_col = config.get_column_name("attr_name")

    try:
        geo = load_map(config, geo_source)
        attrs = load_table(
            attrs_source or config.get_input_path("attributes"), timeout=config.get("http.timeout", 30)
        )
        attrs, mode = prepare_attributes(attrs, config, build_aliases(config, alias_file))
    except ReconcileError as e:
        raise click.ClickException(str(e)) from e

    names = find_unmatched(attrs, geo, name_col, "region", mode=mode, label_col=_label_col(attrs))
    scheme = config.get_join_setting("code_scheme")
    for name in names:
        click.echo(describe_unmatched(name, scheme))
    logger.info(f"📝 {len(names)} unmatched names")


@cli.command("plot")
@click.argument("value_col")
@click.option("--merged", "merged_path", type=click.Path(exists=True, dir_okay=False), help="Merged CSV")
@click.option("--facet", "facet_col", help="Draw one panel per value of this column")
@click.option("--title", help="Map title")
@click.option("--output", "output_path", type=click.Path(dir_okay=False), help="PNG output path")
@click.pass_obj
def plot_command(config: Config, value_col, merged_path, facet_col, title, output_path):
    """Render a choropleth PNG from a merged table."""
    from analysis.choropleth import plot_choropleth, plot_choropleth_facets

    try:
        merged = load_table(merged_path or config.get_output_path("merged"))
    except ReconcileError as e:
        raise click.ClickException(str(e)) from e

    if value_col not in merged.columns:
        raise click.BadParameter(f"'{value_col}' is not a column of the merged table", param_hint="VALUE_COL")

    output_path = output_path or config.get_output_path("map")
    style = dict(
        cmap=config.get_visualization_setting("colormap_default"),
        missing_color=config.get_visualization_setting("missing_color"),
        edge_color=config.get_visualization_setting("edge_color"),
        dpi=config.get_visualization_setting("map_dpi"),
    )

    if facet_col:
        plot_choropleth_facets(
            merged,
            value_col,
            facet_col,
            output_path=output_path,
            ncols=config.get_visualization_setting("facet_columns"),
            **style,
        )
    else:
        plot_choropleth(
            merged,
            value_col,
            output_path=output_path,
            title=title,
            figure_width=config.get_visualization_setting("figure_width"),
            **style,
        )


if __name__ == "__main__":
    cli()
