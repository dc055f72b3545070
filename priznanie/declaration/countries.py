"""Countries of dividend sources.

The DPFO form identifies a country by its ISO 3166-1 numeric code
("840"); broker exports use alpha-2 codes ("US").
"""

from __future__ import annotations

from typing import NamedTuple

from priznanie.declaration.models import Currency


class Country(NamedTuple):
    code: str
    name: str


DIVIDEND_COUNTRIES: tuple[Country, ...] = (
    Country("840", "USA"),
    Country("372", "Írsko"),
    Country("826", "Veľká Británia"),
    Country("276", "Nemecko"),
    Country("528", "Holandsko"),
    Country("756", "Švajčiarsko"),
    Country("250", "Francúzsko"),
    Country("442", "Luxembursko"),
    Country("124", "Kanada"),
    Country("040", "Rakúsko"),
    Country("056", "Belgicko"),
    Country("203", "Česká republika"),
    Country("208", "Dánsko"),
    Country("233", "Estónsko"),
    Country("246", "Fínsko"),
    Country("300", "Grécko"),
    Country("348", "Maďarsko"),
    Country("380", "Taliansko"),
    Country("428", "Lotyšsko"),
    Country("440", "Litva"),
    Country("578", "Nórsko"),
    Country("616", "Poľsko"),
    Country("620", "Portugalsko"),
    Country("642", "Rumunsko"),
    Country("724", "Španielsko"),
    Country("752", "Švédsko"),
    Country("036", "Austrália"),
    Country("156", "Čína"),
    Country("344", "Hongkong"),
    Country("392", "Japonsko"),
    Country("410", "Kórejská republika"),
    Country("158", "Taiwan"),
    Country("076", "Brazília"),
    Country("376", "Izrael"),
    Country("710", "Južná Afrika"),
)

_BY_CODE = {country.code: country for country in DIVIDEND_COUNTRIES}

ALPHA2_TO_NUMERIC: dict[str, str] = {
    "US": "840",
    "FR": "250",
    "IE": "372",
    "GB": "826",
    "DE": "276",
    "NL": "528",
    "CH": "756",
    "LU": "442",
    "CA": "124",
    "AT": "040",
    "BE": "056",
    "CZ": "203",
    "DK": "208",
    "EE": "233",
    "FI": "246",
    "GR": "300",
    "HU": "348",
    "IT": "380",
    "LV": "428",
    "LT": "440",
    "NO": "578",
    "PL": "616",
    "PT": "620",
    "RO": "642",
    "ES": "724",
    "SE": "752",
    "AU": "036",
    "CN": "156",
    "HK": "344",
    "JP": "392",
    "KR": "410",
    "TW": "158",
    "BR": "076",
    "IL": "376",
    "ZA": "710",
    "CY": "196",
    "MT": "470",
    "SI": "705",
    "SK": "703",
    # Form 1042-S writes Ireland as EI
    "EI": "372",
}

EUROZONE_CODES = frozenset(
    {
        "040", "056", "196", "233", "246", "250", "276", "300", "372", "380",
        "428", "440", "442", "470", "528", "620", "703", "705", "724",
    }
)


def find_country(code: str) -> Country | None:
    return _BY_CODE.get(code.strip())


def country_name(code: str) -> str:
    """Slovak display name, or the code itself for unlisted countries."""
    country = find_country(code)
    return country.name if country else code.strip()


def alpha2_to_numeric(alpha2: str) -> str:
    """Convert an alpha-2 code; unknown codes are returned upper-cased."""
    upper = (alpha2 or "").strip().upper()
    return ALPHA2_TO_NUMERIC.get(upper, upper)


def currency_for_country(code: str) -> Currency:
    """Currency a dividend from the country is usually paid in."""
    code = code.strip()
    if code == "203":
        return "CZK"
    if code in EUROZONE_CODES:
        return "EUR"
    return "USD"
