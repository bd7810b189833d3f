"""Static per-country financial norms (tax rate, emergency months, savings rate)"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

FALLBACK_INCOME_TAX_RATE = 0.22


@dataclass(frozen=True)
class CountryConfig:
    country_code: str
    country_name: str
    currency: str
    income_tax_rate: float
    sales_tax_rate: float
    recommended_emergency_months: int
    typical_savings_rate: float


COUNTRIES: Mapping[str, CountryConfig] = MappingProxyType(
    {
        c.country_code: c
        for c in (
            CountryConfig("US", "United States", "USD", 0.22, 0.07, 6, 0.08),
            CountryConfig("GB", "United Kingdom", "GBP", 0.20, 0.20, 6, 0.05),
            CountryConfig("CA", "Canada", "CAD", 0.25, 0.13, 6, 0.10),
            CountryConfig("FR", "France", "EUR", 0.30, 0.20, 4, 0.15),
            CountryConfig("DE", "Germany", "EUR", 0.30, 0.19, 5, 0.18),
            CountryConfig("ES", "Spain", "EUR", 0.24, 0.21, 5, 0.06),
            CountryConfig("JP", "Japan", "JPY", 0.20, 0.10, 8, 0.25),
            CountryConfig("AU", "Australia", "AUD", 0.25, 0.10, 6, 0.09),
            CountryConfig("IN", "India", "INR", 0.20, 0.18, 8, 0.30),
            CountryConfig("MX", "Mexico", "MXN", 0.30, 0.16, 6, 0.12),
            CountryConfig("BR", "Brazil", "BRL", 0.275, 0.17, 6, 0.05),
        )
    }
)

DEFAULT_COUNTRY = COUNTRIES["US"]


def get_country(code: Optional[str]) -> Optional[CountryConfig]:
    if not code:
        return None
    return COUNTRIES.get(code.upper())


def country_or_default(code: Optional[str]) -> CountryConfig:
    return get_country(code) or DEFAULT_COUNTRY


def effective_income_tax_rate(country_code: Optional[str], custom_rate: Optional[float] = None) -> float:
    """Custom override, else the country's configured rate, else the fallback"""
    if custom_rate is not None:
        return custom_rate
    country = get_country(country_code)
    return country.income_tax_rate if country else FALLBACK_INCOME_TAX_RATE
