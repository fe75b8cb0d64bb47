"""
Configuration Loader for the Place-Name Reconciliation Pipeline

This module provides a centralized way to load and access configuration
settings from the config.yaml file.

Usage:
    from ops.config_loader import Config

    config = Config()
    attrs_csv = config.get_input_path('attributes')
    region_col = config.get_column_name('geo_region')
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGE_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the reconciliation pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        # Map-side names describe the source file; loaded maps always use the
        # standard long/lat/group/order/region/subregion headers.
        "columns": {
            "geo_region": "region",
            "geo_subregion": "subregion",
            "geo_group": "group",
            "geo_order": "order",
            "longitude": "long",
            "latitude": "lat",
            "attr_name": "name",
            "time": None,
        },
        "attributes": {
            "sanitize_headers": False,
            "rename": {},
            "name_patterns": ["country", "name", "state"],
        },
        "join": {
            "mode": "exact",
            "code_scheme": None,
            "use_builtin_aliases": True,
            "keep_unmatched_attrs": False,
        },
        "aliases": {},
        "http": {"timeout": 30},
        "visualization": {
            "map_dpi": 200,
            "figure_width": 12,
            "colormap_default": "OrRd",
            "missing_color": "#d9d9d9",
            "edge_color": "white",
            "facet_columns": 3,
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable RECONCILE_CONFIG_PATH
                        2. config.yaml in current directory
                        3. ops/config.yaml shipped with the package
            project_root_override: Base directory for relative input/output paths
        """
        if config_file is None:
            env_config = os.environ.get("RECONCILE_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            elif PACKAGE_CONFIG.exists():
                config_file = PACKAGE_CONFIG
                logger.debug("Using packaged ops/config.yaml")
            else:
                raise FileNotFoundError(
                    "No config.yaml found. Check current directory or set RECONCILE_CONFIG_PATH"
                )

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r") as f:
            self.data = yaml.safe_load(f) or {}

        if not isinstance(self.data, dict):
            raise ValueError(f"Config file must contain a mapping: {self.config_path}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default
            if value is None:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Override a value in memory using dot notation."""
        keys = key_path.split(".")
        current = self.data
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value
        logger.debug(f"Added override: {key_path} = {value}")

    def get_input_path(self, filename_key: str) -> Union[Path, str]:
        """
        Get the location of an input file from `input_files`.

        URLs are returned unchanged; relative paths are joined with the
        project root.
        """
        location = self.data.get("input_files", {}).get(filename_key)
        if not location:
            raise ValueError(f"Input filename key '{filename_key}' not found in config: input_files")

        if str(location).lower().startswith(("http://", "https://")):
            return str(location)
        return self.project_root / location

    def get_output_path(self, filename_key: str) -> Path:
        """Get full path to an output file from `output_files`."""
        relative = self.data.get("output_files", {}).get(filename_key)
        if not relative:
            raise ValueError(f"Output filename key '{filename_key}' not found in config: output_files")
        return self.project_root / relative

    def get_column_name(self, column_key: str) -> str:
        """Get column name with intelligent defaults."""
        result = self.get(f"columns.{column_key}")
        if isinstance(result, str):
            return result
        raise ValueError(f"Column name not found or not a string: {column_key}")

    def get_vertex_rename(self) -> Dict[str, str]:
        """Source header -> standard header for vertex tables with their own naming."""
        standard = {
            "geo_group": "group",
            "geo_order": "order",
            "longitude": "long",
            "latitude": "lat",
        }
        rename = {}
        for key, target in standard.items():
            source = self.get_column_name(key)
            if source != target:
                rename[source] = target
        return rename

    def get_attribute_rename(self) -> Dict[str, str]:
        """Header renames applied to the attribute table before anything else."""
        rename = self.get("attributes.rename", {}) or {}
        if not isinstance(rename, dict):
            raise ValueError("Config 'attributes.rename' must be a mapping of old -> new headers")
        return {str(k): str(v) for k, v in rename.items()}

    def get_join_setting(self, setting_key: str) -> Any:
        """Get join setting with intelligent defaults."""
        return self.get(f"join.{setting_key}")

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with intelligent defaults."""
        return self.get(f"visualization.{setting_key}")

    def get_aliases(self) -> Dict[str, str]:
        """Manual alias pairs configured under `aliases`."""
        aliases = self.get("aliases", {}) or {}
        if not isinstance(aliases, dict):
            raise ValueError("Config 'aliases' must be a mapping of source -> target names")
        return {str(k): str(v) for k, v in aliases.items()}

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Config file: {self.config_path}")
        logger.debug(f"Join mode: {self.get_join_setting('mode')}")
        logger.debug(f"Manual aliases: {len(self.get_aliases())}")

        logger.debug("📊 Input Files:")
        for key in self.data.get("input_files", {}):
            location = self.get_input_path(key)
            if isinstance(location, Path):
                status = "✅" if location.exists() else "❌"
            else:
                status = "🌐"
            logger.debug(f"  {status} {key}: {location}")

    def _find_project_root(self) -> Path:
        """Project root is the parent of ops/, otherwise the config directory."""
        if self.config_path.parent.name == "ops":
            return self.config_path.parent.parent
        return self.config_path.parent

