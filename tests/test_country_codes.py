"""
Code Expansion Tests

ISO and USPS codes into name patterns.
"""

import re

import pandas as pd
import pytest

from processing.country_codes import (
    COUNTRIES,
    code_to_name,
    expand_codes_to_names,
    is_code,
)


def _matches(pattern, name):
    return re.search(pattern, name, re.IGNORECASE) is not None


class TestExpandIso3:
    def test_usa_variants(self):
        [pattern] = expand_codes_to_names(["USA"])
        for name in ("USA", "United States", "united states of america"):
            assert _matches(pattern, name)
        assert not _matches(pattern, "United States Virgin Islands")

    def test_congo_codes_stay_apart(self):
        cog, cod = expand_codes_to_names(["COG", "COD"])
        assert _matches(cog, "Republic of Congo")
        assert not _matches(cog, "Democratic Republic of the Congo")
        assert _matches(cod, "Democratic Republic of the Congo")
        assert _matches(cod, "Zaire")
        assert not _matches(cod, "Republic of Congo")

    def test_niger_does_not_match_nigeria(self):
        [pattern] = expand_codes_to_names(["NER"])
        assert _matches(pattern, "Niger")
        assert not _matches(pattern, "Nigeria")

    def test_lowercase_codes(self):
        assert expand_codes_to_names(["fra"]) == expand_codes_to_names(["FRA"])

    def test_unknown_code_is_none(self):
        assert expand_codes_to_names(["XYZ"]) == [None]

    def test_non_codes_pass_through(self):
        assert expand_codes_to_names(["Germany", "^foo$"]) == ["Germany", "^foo$"]

    def test_nulls(self):
        assert expand_codes_to_names([None, float("nan")]) == [None, None]

    def test_series_input_keeps_length(self):
        codes = pd.Series(["USA", "GBR", "XYZ"])
        assert len(expand_codes_to_names(codes)) == 3


class TestIdempotence:
    @pytest.mark.parametrize("scheme", ["iso3c", "iso2c", "us_state"])
    def test_expanding_twice_equals_once(self, scheme):
        codes = ["USA", "COD", "GB", "NY", "tx", "Germany", None, "XYZ", "new york"]
        once = expand_codes_to_names(codes, scheme=scheme)
        twice = expand_codes_to_names(once, scheme=scheme)
        assert twice == once


class TestOtherSchemes:
    def test_iso2_matches_iso3(self):
        assert expand_codes_to_names(["CD"], scheme="iso2c") == expand_codes_to_names(["COD"])

    def test_us_states(self):
        [pattern] = expand_codes_to_names(["NY"], scheme="us_state")
        assert _matches(pattern, "new york")
        assert not _matches(pattern, "new jersey")

    def test_unknown_scheme(self):
        with pytest.raises(ValueError):
            expand_codes_to_names(["USA"], scheme="fips")


class TestLookups:
    def test_code_to_name(self):
        assert code_to_name("GBR") == "UK"
        assert code_to_name("ci", scheme="iso2c") == "Ivory Coast"
        assert code_to_name("DC", scheme="us_state") == "district of columbia"
        assert code_to_name("XYZ") is None
        assert code_to_name(None) is None

    def test_is_code(self):
        assert is_code("USA")
        assert not is_code("United States")
        assert is_code("NY", scheme="us_state")

    def test_table_codes_are_unique(self):
        iso3 = [p.iso3 for p in COUNTRIES]
        iso2 = [p.iso2 for p in COUNTRIES]
        assert len(iso3) == len(set(iso3))
        assert len(iso2) == len(set(iso2))
