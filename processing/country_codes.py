#!/usr/bin/env python3
"""
country_codes.py - Expand standard place codes into name patterns

Indicator archives usually key countries by ISO-3166 code while map layers
key them by display name, and one code can correspond to several spellings
("COD" -> "Democratic Republic of the Congo", "Congo, Dem. Rep.", "Zaire").
`expand_codes_to_names` turns each code into a single case-insensitive
regular expression that accepts every known spelling, ready for a pattern
join against map region names.

Inputs that are not codes (display names, or patterns produced by an
earlier expansion) pass through untouched, so expanding twice gives the same
result as expanding once.
"""

import re
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

import pandas as pd
from loguru import logger


class Place(NamedTuple):
    iso2: str
    iso3: str
    name: str  # region name as used by the world map layer
    variants: Tuple[str, ...] = ()


# fmt: off
COUNTRIES: Tuple[Place, ...] = (
    Place("AF", "AFG", "Afghanistan"),
    Place("AL", "ALB", "Albania"),
    Place("DZ", "DZA", "Algeria"),
    Place("AD", "AND", "Andorra"),
    Place("AO", "AGO", "Angola"),
    Place("AG", "ATG", "Antigua", ("Antigua and Barbuda",)),
    Place("AR", "ARG", "Argentina"),
    Place("AM", "ARM", "Armenia"),
    Place("AU", "AUS", "Australia"),
    Place("AT", "AUT", "Austria"),
    Place("AZ", "AZE", "Azerbaijan"),
    Place("BS", "BHS", "Bahamas", ("Bahamas, The", "The Bahamas")),
    Place("BH", "BHR", "Bahrain"),
    Place("BD", "BGD", "Bangladesh"),
    Place("BB", "BRB", "Barbados"),
    Place("BY", "BLR", "Belarus", ("Byelorussia",)),
    Place("BE", "BEL", "Belgium"),
    Place("BZ", "BLZ", "Belize"),
    Place("BJ", "BEN", "Benin", ("Dahomey",)),
    Place("BT", "BTN", "Bhutan"),
    Place("BO", "BOL", "Bolivia", ("Bolivia (Plurinational State of)", "Plurinational State of Bolivia")),
    Place("BA", "BIH", "Bosnia and Herzegovina", ("Bosnia-Herzegovina", "Bosnia")),
    Place("BW", "BWA", "Botswana"),
    Place("BR", "BRA", "Brazil"),
    Place("BN", "BRN", "Brunei", ("Brunei Darussalam",)),
    Place("BG", "BGR", "Bulgaria"),
    Place("BF", "BFA", "Burkina Faso", ("Upper Volta",)),
    Place("BI", "BDI", "Burundi"),
    Place("KH", "KHM", "Cambodia", ("Kampuchea",)),
    Place("CM", "CMR", "Cameroon"),
    Place("CA", "CAN", "Canada"),
    Place("CV", "CPV", "Cape Verde", ("Cabo Verde",)),
    Place("CF", "CAF", "Central African Republic"),
    Place("TD", "TCD", "Chad"),
    Place("CL", "CHL", "Chile"),
    Place("CN", "CHN", "China", ("People's Republic of China",)),
    Place("CO", "COL", "Colombia"),
    Place("KM", "COM", "Comoros"),
    Place("CG", "COG", "Republic of Congo", ("Congo", "Congo, Rep.", "Republic of the Congo", "Congo-Brazzaville")),
    Place("CD", "COD", "Democratic Republic of the Congo",
          ("Congo, Dem. Rep.", "Democratic Republic of Congo", "DR Congo", "DRC", "Congo-Kinshasa", "Zaire")),
    Place("CR", "CRI", "Costa Rica"),
    Place("CI", "CIV", "Ivory Coast", ("Cote d'Ivoire", "Côte d'Ivoire")),
    Place("HR", "HRV", "Croatia"),
    Place("CU", "CUB", "Cuba"),
    Place("CY", "CYP", "Cyprus"),
    Place("CZ", "CZE", "Czech Republic", ("Czechia",)),
    Place("DK", "DNK", "Denmark"),
    Place("DJ", "DJI", "Djibouti"),
    Place("DM", "DMA", "Dominica"),
    Place("DO", "DOM", "Dominican Republic"),
    Place("EC", "ECU", "Ecuador"),
    Place("EG", "EGY", "Egypt", ("Egypt, Arab Rep.", "Arab Republic of Egypt")),
    Place("SV", "SLV", "El Salvador"),
    Place("GQ", "GNQ", "Equatorial Guinea"),
    Place("ER", "ERI", "Eritrea"),
    Place("EE", "EST", "Estonia"),
    Place("SZ", "SWZ", "Swaziland", ("Eswatini",)),
    Place("ET", "ETH", "Ethiopia", ("Abyssinia",)),
    Place("FJ", "FJI", "Fiji"),
    Place("FI", "FIN", "Finland"),
    Place("FR", "FRA", "France"),
    Place("GA", "GAB", "Gabon"),
    Place("GM", "GMB", "Gambia", ("Gambia, The", "The Gambia")),
    Place("GE", "GEO", "Georgia"),
    Place("DE", "DEU", "Germany", ("Federal Republic of Germany", "West Germany")),
    Place("GH", "GHA", "Ghana", ("Gold Coast",)),
    Place("GR", "GRC", "Greece"),
    Place("GL", "GRL", "Greenland"),
    Place("GD", "GRD", "Grenada"),
    Place("GT", "GTM", "Guatemala"),
    Place("GN", "GIN", "Guinea"),
    Place("GW", "GNB", "Guinea-Bissau", ("Guinea Bissau", "Portuguese Guinea")),
    Place("GY", "GUY", "Guyana"),
    Place("HT", "HTI", "Haiti"),
    Place("HN", "HND", "Honduras"),
    Place("HU", "HUN", "Hungary"),
    Place("IS", "ISL", "Iceland"),
    Place("IN", "IND", "India"),
    Place("ID", "IDN", "Indonesia"),
    Place("IR", "IRN", "Iran", ("Iran, Islamic Rep.", "Islamic Republic of Iran", "Persia")),
    Place("IQ", "IRQ", "Iraq"),
    Place("IE", "IRL", "Ireland"),
    Place("IL", "ISR", "Israel"),
    Place("IT", "ITA", "Italy"),
    Place("JM", "JAM", "Jamaica"),
    Place("JP", "JPN", "Japan"),
    Place("JO", "JOR", "Jordan"),
    Place("KZ", "KAZ", "Kazakhstan"),
    Place("KE", "KEN", "Kenya"),
    Place("KI", "KIR", "Kiribati"),
    Place("KP", "PRK", "North Korea", ("Korea, Dem. People's Rep.", "Democratic People's Republic of Korea", "DPRK")),
    Place("KR", "KOR", "South Korea", ("Korea, Rep.", "Republic of Korea", "Korea")),
    Place("KW", "KWT", "Kuwait"),
    Place("KG", "KGZ", "Kyrgyzstan", ("Kyrgyz Republic",)),
    Place("LA", "LAO", "Laos", ("Lao PDR", "Lao People's Democratic Republic")),
    Place("LV", "LVA", "Latvia"),
    Place("LB", "LBN", "Lebanon"),
    Place("LS", "LSO", "Lesotho", ("Basutoland",)),
    Place("LR", "LBR", "Liberia"),
    Place("LY", "LBY", "Libya"),
    Place("LI", "LIE", "Liechtenstein"),
    Place("LT", "LTU", "Lithuania"),
    Place("LU", "LUX", "Luxembourg"),
    Place("MK", "MKD", "Macedonia", ("North Macedonia", "Republic of North Macedonia")),
    Place("MG", "MDG", "Madagascar"),
    Place("MW", "MWI", "Malawi", ("Nyasaland",)),
    Place("MY", "MYS", "Malaysia"),
    Place("MV", "MDV", "Maldives"),
    Place("ML", "MLI", "Mali"),
    Place("MT", "MLT", "Malta"),
    Place("MH", "MHL", "Marshall Islands"),
    Place("MR", "MRT", "Mauritania"),
    Place("MU", "MUS", "Mauritius"),
    Place("MX", "MEX", "Mexico"),
    Place("FM", "FSM", "Micronesia", ("Micronesia, Fed. Sts.", "Federated States of Micronesia")),
    Place("MD", "MDA", "Moldova", ("Republic of Moldova",)),
    Place("MC", "MCO", "Monaco"),
    Place("MN", "MNG", "Mongolia"),
    Place("ME", "MNE", "Montenegro"),
    Place("MA", "MAR", "Morocco"),
    Place("MZ", "MOZ", "Mozambique"),
    Place("MM", "MMR", "Myanmar", ("Burma",)),
    Place("NA", "NAM", "Namibia"),
    Place("NR", "NRU", "Nauru"),
    Place("NP", "NPL", "Nepal"),
    Place("NL", "NLD", "Netherlands", ("Holland", "The Netherlands")),
    Place("NZ", "NZL", "New Zealand"),
    Place("NI", "NIC", "Nicaragua"),
    Place("NE", "NER", "Niger"),
    Place("NG", "NGA", "Nigeria"),
    Place("NO", "NOR", "Norway"),
    Place("OM", "OMN", "Oman"),
    Place("PK", "PAK", "Pakistan"),
    Place("PW", "PLW", "Palau"),
    Place("PS", "PSE", "Palestine", ("West Bank and Gaza", "State of Palestine")),
    Place("PA", "PAN", "Panama"),
    Place("PG", "PNG", "Papua New Guinea"),
    Place("PY", "PRY", "Paraguay"),
    Place("PE", "PER", "Peru"),
    Place("PH", "PHL", "Philippines"),
    Place("PL", "POL", "Poland"),
    Place("PT", "PRT", "Portugal"),
    Place("PR", "PRI", "Puerto Rico"),
    Place("QA", "QAT", "Qatar"),
    Place("RO", "ROU", "Romania", ("Rumania",)),
    Place("RU", "RUS", "Russia", ("Russian Federation", "Soviet Union", "USSR")),
    Place("RW", "RWA", "Rwanda"),
    Place("KN", "KNA", "Saint Kitts", ("St. Kitts and Nevis", "Saint Kitts and Nevis")),
    Place("LC", "LCA", "Saint Lucia", ("St. Lucia",)),
    Place("VC", "VCT", "Saint Vincent", ("St. Vincent and the Grenadines", "Saint Vincent and the Grenadines")),
    Place("WS", "WSM", "Samoa", ("Western Samoa",)),
    Place("SM", "SMR", "San Marino"),
    Place("ST", "STP", "Sao Tome and Principe", ("São Tomé and Príncipe",)),
    Place("SA", "SAU", "Saudi Arabia"),
    Place("SN", "SEN", "Senegal"),
    Place("RS", "SRB", "Serbia"),
    Place("SC", "SYC", "Seychelles"),
    Place("SL", "SLE", "Sierra Leone"),
    Place("SG", "SGP", "Singapore"),
    Place("SK", "SVK", "Slovakia", ("Slovak Republic",)),
    Place("SI", "SVN", "Slovenia"),
    Place("SB", "SLB", "Solomon Islands"),
    Place("SO", "SOM", "Somalia"),
    Place("ZA", "ZAF", "South Africa"),
    Place("SS", "SSD", "South Sudan"),
    Place("ES", "ESP", "Spain"),
    Place("LK", "LKA", "Sri Lanka", ("Ceylon",)),
    Place("SD", "SDN", "Sudan"),
    Place("SR", "SUR", "Suriname", ("Surinam",)),
    Place("SE", "SWE", "Sweden"),
    Place("CH", "CHE", "Switzerland"),
    Place("SY", "SYR", "Syria", ("Syrian Arab Republic",)),
    Place("TW", "TWN", "Taiwan", ("Taiwan, China", "Republic of China")),
    Place("TJ", "TJK", "Tajikistan"),
    Place("TZ", "TZA", "Tanzania", ("United Republic of Tanzania",)),
    Place("TH", "THA", "Thailand", ("Siam",)),
    Place("TL", "TLS", "Timor-Leste", ("East Timor",)),
    Place("TG", "TGO", "Togo"),
    Place("TO", "TON", "Tonga"),
    Place("TT", "TTO", "Trinidad", ("Trinidad and Tobago",)),
    Place("TN", "TUN", "Tunisia"),
    Place("TR", "TUR", "Turkey", ("Turkiye", "Türkiye")),
    Place("TM", "TKM", "Turkmenistan"),
    # Tuvalu is known by code but has no polygon in the world layer; its
    # pattern will simply find nothing to match.
    Place("TV", "TUV", "Tuvalu"),
    Place("UG", "UGA", "Uganda"),
    Place("UA", "UKR", "Ukraine"),
    Place("AE", "ARE", "United Arab Emirates"),
    Place("GB", "GBR", "UK", ("United Kingdom", "Great Britain", "Britain")),
    Place("US", "USA", "USA", ("United States", "United States of America", "US", "U.S.", "U.S.A.")),
    Place("UY", "URY", "Uruguay"),
    Place("UZ", "UZB", "Uzbekistan"),
    Place("VU", "VUT", "Vanuatu", ("New Hebrides",)),
    Place("VA", "VAT", "Vatican", ("Holy See", "Vatican City")),
    Place("VE", "VEN", "Venezuela", ("Venezuela, RB", "Bolivarian Republic of Venezuela")),
    Place("VN", "VNM", "Vietnam", ("Viet Nam",)),
    Place("EH", "ESH", "Western Sahara"),
    Place("YE", "YEM", "Yemen", ("Yemen, Rep.",)),
    Place("ZM", "ZMB", "Zambia", ("Northern Rhodesia",)),
    Place("ZW", "ZWE", "Zimbabwe", ("Rhodesia", "Southern Rhodesia")),
)

# USPS abbreviation -> lowercase name, the spelling state-level map layers use
US_STATES: Dict[str, str] = {
    "AL": "alabama", "AK": "alaska", "AZ": "arizona", "AR": "arkansas",
    "CA": "california", "CO": "colorado", "CT": "connecticut", "DE": "delaware",
    "DC": "district of columbia", "FL": "florida", "GA": "georgia", "HI": "hawaii",
    "ID": "idaho", "IL": "illinois", "IN": "indiana", "IA": "iowa",
    "KS": "kansas", "KY": "kentucky", "LA": "louisiana", "ME": "maine",
    "MD": "maryland", "MA": "massachusetts", "MI": "michigan", "MN": "minnesota",
    "MS": "mississippi", "MO": "missouri", "MT": "montana", "NE": "nebraska",
    "NV": "nevada", "NH": "new hampshire", "NJ": "new jersey", "NM": "new mexico",
    "NY": "new york", "NC": "north carolina", "ND": "north dakota", "OH": "ohio",
    "OK": "oklahoma", "OR": "oregon", "PA": "pennsylvania", "RI": "rhode island",
    "SC": "south carolina", "SD": "south dakota", "TN": "tennessee", "TX": "texas",
    "UT": "utah", "VT": "vermont", "VA": "virginia", "WA": "washington",
    "WV": "west virginia", "WI": "wisconsin", "WY": "wyoming",
}
# fmt: on

SCHEMES = ("iso3c", "iso2c", "us_state")

_CODE_SHAPES = {
    "iso3c": re.compile(r"[A-Za-z]{3}"),
    "iso2c": re.compile(r"[A-Za-z]{2}"),
    "us_state": re.compile(r"[A-Za-z]{2}"),
}


def _names_pattern(names: Iterable[str]) -> str:
    """Anchored alternation over literal names, longest first."""
    unique = sorted({n for n in names}, key=lambda n: (-len(n), n))
    return "^(?:" + "|".join(re.escape(n) for n in unique) + ")$"


def _build_lookup(scheme: str) -> Dict[str, Tuple[str, str]]:
    """Map upper-case code -> (display name, pattern) for one scheme."""
    if scheme == "us_state":
        return {
            code: (name, _names_pattern([name])) for code, name in US_STATES.items()
        }

    key = 0 if scheme == "iso2c" else 1
    lookup = {}
    for place in COUNTRIES:
        lookup[place[key]] = (place.name, _names_pattern((place.name,) + place.variants))
    return lookup


_LOOKUPS: Dict[str, Dict[str, Tuple[str, str]]] = {s: _build_lookup(s) for s in SCHEMES}


def _check_scheme(scheme: str) -> Dict[str, Tuple[str, str]]:
    if scheme not in _LOOKUPS:
        raise ValueError(f"Unknown code scheme '{scheme}'. Expected one of {SCHEMES}")
    return _LOOKUPS[scheme]


def is_code(value, scheme: str = "iso3c") -> bool:
    """True when `value` has the shape of a code in `scheme`."""
    _check_scheme(scheme)
    return isinstance(value, str) and bool(_CODE_SHAPES[scheme].fullmatch(value.strip()))


def code_to_name(code: str, scheme: str = "iso3c") -> Optional[str]:
    """Display name for a single code, or None if the code is unknown."""
    lookup = _check_scheme(scheme)
    if not isinstance(code, str):
        return None
    entry = lookup.get(code.strip().upper())
    return entry[0] if entry else None


def expand_codes_to_names(codes, scheme: str = "iso3c") -> List[Optional[str]]:
    """Expand codes into case-insensitive name patterns.

    Args:
        codes: Sequence (or Series) of codes. Non-code strings are kept as is.
        scheme: "iso3c", "iso2c" or "us_state"

    Returns:
        One entry per input: a regex pattern for known codes, None for
        code-shaped values that are not in the table (or null inputs), and
        the original string for anything that is not a code.
    """
    lookup = _check_scheme(scheme)

    expanded: List[Optional[str]] = []
    unknown = []
    for value in codes:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            expanded.append(None)
        elif is_code(value, scheme):
            entry = lookup.get(value.strip().upper())
            if entry is None:
                unknown.append(value)
                expanded.append(None)
            else:
                expanded.append(entry[1])
        else:
            expanded.append(value)

    if unknown:
        logger.warning(f"  ⚠️ {len(unknown)} unknown {scheme} codes: {sorted(set(unknown))[:10]}")
    logger.debug(f"  🔤 Expanded {len(expanded)} {scheme} values into name patterns")
    return expanded
