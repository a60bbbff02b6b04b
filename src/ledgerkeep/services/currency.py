"""Exchange rates and currency formatting.

Rates come from a frankfurter-compatible endpoint (``GET /latest?from=XXX``)
and are cached in the settings table for one hour per base currency.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

import httpx

from ..errors import RatesUnavailableError, ValidationError
from ..infra.repositories.settings import SQLModelSettingsRepository
from ..logging_config import get_logger
from .balances import CENT, to_amount

logger = get_logger("currency")

CACHE_KEY = "currency_rates"


@dataclass(frozen=True, slots=True)
class CurrencyInfo:
    code: str
    name: str
    symbol: str


CURRENCIES = [
    CurrencyInfo("INR", "Indian Rupee", "₹"),
    CurrencyInfo("USD", "US Dollar", "$"),
    CurrencyInfo("EUR", "Euro", "€"),
    CurrencyInfo("GBP", "British Pound", "£"),
    CurrencyInfo("JPY", "Japanese Yen", "¥"),
    CurrencyInfo("AUD", "Australian Dollar", "A$"),
    CurrencyInfo("CAD", "Canadian Dollar", "C$"),
    CurrencyInfo("CHF", "Swiss Franc", "Fr"),
    CurrencyInfo("CNY", "Chinese Yuan", "¥"),
    CurrencyInfo("SGD", "Singapore Dollar", "S$"),
    CurrencyInfo("AED", "UAE Dirham", "د.إ"),
    CurrencyInfo("SAR", "Saudi Riyal", "﷼"),
]
CURRENCY_CODES = [currency.code for currency in CURRENCIES]

# Approximate INR-based rates used when the rate service is unreachable.
FALLBACK_INR_RATES = {
    "INR": 1.0,
    "USD": 0.012,
    "EUR": 0.011,
    "GBP": 0.0095,
    "JPY": 1.78,
    "AUD": 0.018,
    "CAD": 0.016,
    "CHF": 0.011,
    "CNY": 0.086,
    "SGD": 0.016,
    "AED": 0.044,
    "SAR": 0.045,
}


def currency_symbol(code: str) -> str:
    for currency in CURRENCIES:
        if currency.code == code:
            return currency.symbol
    return code


def format_currency(amount: object, code: str = "INR") -> str:
    """Render ``amount`` with its symbol and two decimals, e.g. ``₹1,234.50``."""

    value = to_amount(amount, round_cents=True)
    sign = "-" if value < 0 else ""
    return f"{sign}{currency_symbol(code)}{abs(value):,.2f}"


class CurrencyConverter:
    """Fetches, caches, and applies exchange rates for one base currency."""

    def __init__(
        self,
        settings: SQLModelSettingsRepository,
        *,
        base_currency: str = "INR",
        rates_url: str = "https://api.frankfurter.app",
        cache_seconds: int = 3600,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.base_currency = base_currency.upper()
        self.rates_url = rates_url.rstrip("/")
        self.cache_seconds = cache_seconds
        self._client = client or httpx.Client(timeout=timeout)
        self._clock = clock
        self.last_updated: Optional[float] = None
        self.using_fallback = False

    def _cached(self) -> Optional[dict]:
        setting = self.settings.get(CACHE_KEY)
        if setting is None or not setting.value:
            return None
        try:
            cached = json.loads(setting.value)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable rate cache")
            return None
        if cached.get("base") != self.base_currency:
            return None
        return cached

    def _fetch(self) -> dict[str, float]:
        response = self._client.get(
            f"{self.rates_url}/latest", params={"from": self.base_currency}
        )
        response.raise_for_status()
        data = response.json()
        rates = {code: float(rate) for code, rate in data.get("rates", {}).items()}
        rates[self.base_currency] = 1.0
        return rates

    def rates(self, *, refresh: bool = False) -> dict[str, float]:
        """Return rates relative to the base currency.

        Fresh cache wins unless ``refresh`` is set. When the service fails the
        last cached rates are used, then the built-in INR table.
        """

        now = self._clock()
        cached = self._cached()
        if cached and not refresh and now - cached.get("timestamp", 0) < self.cache_seconds:
            self.last_updated = cached["timestamp"]
            self.using_fallback = False
            return cached["rates"]

        try:
            rates = self._fetch()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "Exchange rate fetch failed",
                extra={"base": self.base_currency, "error": str(exc)},
            )
            if cached:
                self.last_updated = cached["timestamp"]
                return cached["rates"]
            if self.base_currency == "INR":
                self.using_fallback = True
                return dict(FALLBACK_INR_RATES)
            raise RatesUnavailableError(
                f"Could not fetch exchange rates for {self.base_currency}"
            ) from exc

        self.settings.set(
            CACHE_KEY,
            json.dumps({"base": self.base_currency, "timestamp": now, "rates": rates}),
            "Exchange rates cache",
        )
        self.last_updated = now
        self.using_fallback = False
        logger.info("Exchange rates refreshed", extra={"base": self.base_currency, "count": len(rates)})
        return rates

    def rate(self, from_code: str, to_code: str) -> Decimal:
        """Units of ``to_code`` per one ``from_code``."""

        from_code, to_code = from_code.upper(), to_code.upper()
        if from_code == to_code:
            return Decimal("1")
        rates = self.rates()
        if from_code not in rates or to_code not in rates:
            raise ValidationError(f"Unsupported currency pair {from_code}/{to_code}")
        return Decimal(str(rates[to_code])) / Decimal(str(rates[from_code]))

    def convert(self, amount: object, from_code: str, to_code: str) -> Decimal:
        value = to_amount(amount, round_cents=True)
        return (value * self.rate(from_code, to_code)).quantize(CENT)

    def close(self) -> None:
        self._client.close()
