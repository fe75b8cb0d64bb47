"""
Alias Map Tests

Manual recode tables: passthrough of unmapped names, layering, YAML files.
"""

import pandas as pd
import pytest

from processing.aliases import (
    UNRESOLVED_NAMES,
    WORLD_BANK_TO_WORLD_MAP,
    AliasMap,
    build_alias_map,
    load_alias_file,
)


class TestBuildAliasMap:
    def test_mapped_name_is_recoded(self):
        aliases = build_alias_map({"United States": "USA"})
        assert aliases.resolve("United States") == "USA"

    def test_unmapped_name_passes_through(self):
        aliases = build_alias_map({"United States": "USA"})
        assert aliases.resolve("Narnia") == "Narnia"

    def test_empty_overrides(self):
        aliases = build_alias_map()
        assert len(aliases) == 0
        assert aliases.resolve("France") == "France"

    def test_rejects_non_string_entries(self):
        with pytest.raises(TypeError):
            build_alias_map({"Congo": 42})

    def test_behaves_as_mapping(self):
        aliases = build_alias_map({"a": "b", "c": "d"})
        assert isinstance(aliases, AliasMap)
        assert dict(aliases) == {"a": "b", "c": "d"}
        assert "a" in aliases


class TestApply:
    def test_series_recode_keeps_nulls(self):
        aliases = build_alias_map({"Congo": "Republic of Congo"})
        recoded = aliases.apply(pd.Series(["Congo", None, "Chad"]))
        assert recoded.tolist()[0] == "Republic of Congo"
        assert recoded.isna().tolist() == [False, True, False]
        assert recoded.tolist()[2] == "Chad"

    def test_list_input(self):
        aliases = build_alias_map({"Viet Nam": "Vietnam"})
        assert aliases.apply(["Viet Nam", "Laos"]).tolist() == ["Vietnam", "Laos"]

    def test_preserves_index(self):
        aliases = build_alias_map({"x": "y"})
        series = pd.Series(["x", "z"], index=[10, 20])
        assert aliases.apply(series).index.tolist() == [10, 20]


class TestLayering:
    def test_later_entries_win(self):
        base = build_alias_map({"Congo": "Republic of Congo", "UK": "UK"})
        layered = base.merged({"Congo": "Congo-Brazzaville"})
        assert layered.resolve("Congo") == "Congo-Brazzaville"
        assert layered.resolve("UK") == "UK"
        # original untouched
        assert base.resolve("Congo") == "Republic of Congo"


class TestBuiltinTables:
    def test_world_bank_names(self):
        aliases = build_alias_map(WORLD_BANK_TO_WORLD_MAP)
        assert aliases.resolve("United States") == "USA"
        assert aliases.resolve("Congo, Dem. Rep.") == "Democratic Republic of the Congo"
        assert aliases.resolve("Russian Federation") == "Russia"

    def test_tuvalu_left_unresolved(self):
        assert "Tuvalu" in UNRESOLVED_NAMES
        assert "Tuvalu" not in WORLD_BANK_TO_WORLD_MAP
        assert build_alias_map(WORLD_BANK_TO_WORLD_MAP).resolve("Tuvalu") == "Tuvalu"


class TestAliasFile:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "aliases.yaml"
        path.write_text('"Cote d\'Ivoire": "Ivory Coast"\nBurma: Myanmar\n')
        aliases = load_alias_file(path)
        assert aliases.resolve("Cote d'Ivoire") == "Ivory Coast"
        assert aliases.resolve("Burma") == "Myanmar"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_alias_file(tmp_path / "nope.yaml")

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "aliases.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_alias_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "aliases.yaml"
        path.write_text("")
        assert len(load_alias_file(path)) == 0
