"""
Data Loading Tests

Local and remote table loading, map layer loading and column hygiene.
"""

import pandas as pd
import pytest
import requests

from processing import data_utils
from processing.data_utils import (
    find_column_by_pattern,
    load_geo_records,
    load_table,
    recode_columns,
    sanitize_column_names,
    write_merged,
)
from processing.errors import DataSourceError, GeoRecordError


class FakeResponse:
    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


class TestLoadTable:
    def test_csv(self, tmp_path):
        path = tmp_path / "wdi.csv"
        path.write_text("country,value\nChad,1\nMali,2\n")
        df = load_table(path)
        assert df["country"].tolist() == ["Chad", "Mali"]

    def test_tsv(self, tmp_path):
        path = tmp_path / "wdi.tsv"
        path.write_text("country\tvalue\nChad\t1\n")
        assert load_table(path)["value"].tolist() == [1]

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataSourceError, match="file not found"):
            load_table(tmp_path / "missing.csv")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "wdi.sav"
        path.write_text("x")
        with pytest.raises(DataSourceError):
            load_table(path)

    def test_empty_csv(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(DataSourceError):
            load_table(path)

    def test_stata(self, tmp_path):
        path = tmp_path / "panel.dta"
        pd.DataFrame({"state": ["ohio"], "year": [2000]}).to_stata(path, write_index=False)
        df = load_table(path)
        assert df["state"].tolist() == ["ohio"]

    def test_url(self, monkeypatch):
        calls = {}

        def fake_get(url, timeout):
            calls["url"] = url
            calls["timeout"] = timeout
            return FakeResponse(b"country,value\nPeru,3\n")

        monkeypatch.setattr(data_utils.requests, "get", fake_get)
        df = load_table("https://example.org/data/wdi.csv?download=1", timeout=5)

        assert df["country"].tolist() == ["Peru"]
        assert calls == {"url": "https://example.org/data/wdi.csv?download=1", "timeout": 5}

    def test_url_http_error(self, monkeypatch):
        monkeypatch.setattr(data_utils.requests, "get", lambda url, timeout: FakeResponse(b"", 404))
        with pytest.raises(DataSourceError, match="404"):
            load_table("https://example.org/wdi.csv")

    def test_url_connection_error(self, monkeypatch):
        def fake_get(url, timeout):
            raise requests.ConnectionError("name resolution failed")

        monkeypatch.setattr(data_utils.requests, "get", fake_get)
        with pytest.raises(DataSourceError) as excinfo:
            load_table("https://example.org/wdi.csv")
        assert excinfo.value.source == "https://example.org/wdi.csv"


class TestLoadGeoRecords:
    def test_vertex_csv(self, tmp_path, world_vertices):
        path = tmp_path / "world.csv"
        world_vertices.drop(columns="subregion").to_csv(path, index=False)

        vertices = load_geo_records(path)

        assert len(vertices) == len(world_vertices)
        assert "subregion" in vertices.columns

    def test_broken_vertex_csv(self, tmp_path, world_vertices):
        path = tmp_path / "world.csv"
        world_vertices.drop(columns="group").to_csv(path, index=False)
        with pytest.raises(GeoRecordError):
            load_geo_records(path)

    def test_geojson_layer(self, tmp_path, square_layer):
        path = tmp_path / "layer.geojson"
        square_layer.to_file(path, driver="GeoJSON")

        vertices = load_geo_records(path, region_col="name")

        assert set(vertices["region"]) == {"Squareland", "Archipelago"}
        assert vertices["group"].nunique() == 4

    def test_geojson_subregion_column(self, tmp_path, square_layer):
        path = tmp_path / "layer.geojson"
        square_layer.to_file(path, driver="GeoJSON")

        vertices = load_geo_records(path, region_col="name", subregion_col="state")
        assert set(vertices["subregion"]) == {"north", "south"}

        # a sub-region column the layer lacks is ignored
        vertices = load_geo_records(path, region_col="name", subregion_col="county")
        assert vertices["subregion"].isna().all()

    def test_vertex_csv_with_own_headers(self, tmp_path, world_vertices):
        path = tmp_path / "world.csv"
        world_vertices.rename(
            columns={"region": "country", "long": "x", "lat": "y", "order": "seq"}
        ).to_csv(path, index=False)

        vertices = load_geo_records(
            path, region_col="country", rename={"x": "long", "y": "lat", "seq": "order"}
        )

        assert {"long", "lat", "order", "region"} <= set(vertices.columns)
        assert vertices["region"].tolist() == world_vertices["region"].tolist()

    def test_missing_layer(self, tmp_path):
        with pytest.raises(DataSourceError):
            load_geo_records(tmp_path / "nothing.geojson")


class TestColumnHygiene:
    def test_sanitize(self):
        df = pd.DataFrame(columns=["Country Name", "GDP per capita (current US$)", "2010 [YR2010]", "%"])
        cleaned = sanitize_column_names(df)
        assert list(cleaned.columns) == [
            "country_name",
            "gdp_per_capita_current_us",
            "y2010_yr2010",
            "column_3",
        ]
        # input left alone
        assert "Country Name" in df.columns

    def test_recode_columns(self):
        df = pd.DataFrame({"Country Name": ["Chad"], "Value": [1]})
        renamed = recode_columns(df, {"Country Name": "country", "Missing": "x"})
        assert list(renamed.columns) == ["country", "Value"]

    def test_find_column_by_pattern(self):
        df = pd.DataFrame(columns=["iso3c", "Country Name"])
        assert find_column_by_pattern(df, ["name"]) == "Country Name"
        assert find_column_by_pattern(df, ["year"]) is None


class TestWriteMerged:
    def test_vertex_columns_first(self, tmp_path, world_vertices):
        merged = world_vertices.assign(value=1.0)[["value"] + list(world_vertices.columns)]
        path = write_merged(merged, tmp_path / "out" / "merged.csv")

        written = pd.read_csv(path)
        assert list(written.columns)[:5] == ["long", "lat", "group", "order", "region"]
        assert written.columns[-1] == "value"
