"""Exchange rate fetching, caching and fallback."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from ledgerkeep.errors import RatesUnavailableError, ValidationError
from ledgerkeep.services.currency import (
    CACHE_KEY,
    FALLBACK_INR_RATES,
    CurrencyConverter,
    currency_symbol,
    format_currency,
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _converter(repos, handler, *, base="INR", clock=None) -> CurrencyConverter:
    return CurrencyConverter(
        repos.settings,
        base_currency=base,
        rates_url="https://rates.example.test/",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        clock=clock or FakeClock(),
    )


def _rates_handler(calls: list, rates: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"base": request.url.params["from"], "rates": rates})

    return handler


def _offline(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("offline", request=request)


def test_fetches_and_caches_rates(repos):
    calls: list = []
    converter = _converter(repos, _rates_handler(calls, {"USD": 0.012, "EUR": 0.011}))

    rates = converter.rates()

    assert rates == {"USD": 0.012, "EUR": 0.011, "INR": 1.0}
    assert str(calls[0].url) == "https://rates.example.test/latest?from=INR"
    cached = json.loads(repos.settings.get(CACHE_KEY).value)
    assert cached["base"] == "INR"
    assert cached["rates"]["USD"] == 0.012
    assert converter.using_fallback is False


def test_fresh_cache_skips_the_network(repos):
    calls: list = []
    clock = FakeClock()
    converter = _converter(repos, _rates_handler(calls, {"USD": 0.012}), clock=clock)

    converter.rates()
    clock.now += 1800
    converter.rates()
    assert len(calls) == 1

    converter.rates(refresh=True)
    assert len(calls) == 2

    clock.now += 3601
    converter.rates()
    assert len(calls) == 3


def test_stale_cache_used_when_offline(repos):
    clock = FakeClock()
    _converter(repos, _rates_handler([], {"USD": 0.02}), clock=clock).rates()
    clock.now += 10_000

    rates = _converter(repos, _offline, clock=clock).rates()

    assert rates["USD"] == 0.02


def test_inr_fallback_when_offline_without_cache(repos):
    converter = _converter(repos, _offline)

    rates = converter.rates()

    assert rates == FALLBACK_INR_RATES
    assert converter.using_fallback is True
    assert repos.settings.get(CACHE_KEY) is None


def test_other_base_without_rates_raises(repos):
    with pytest.raises(RatesUnavailableError):
        _converter(repos, _offline, base="USD").rates()


def test_cache_for_other_base_is_ignored(repos):
    _converter(repos, _rates_handler([], {"INR": 83.0}), base="USD").rates()

    with pytest.raises(RatesUnavailableError):
        _converter(repos, _offline, base="EUR").rates()


def test_http_error_status_falls_back(repos):
    converter = _converter(repos, lambda request: httpx.Response(500))

    assert converter.rates()["USD"] == FALLBACK_INR_RATES["USD"]


def test_convert(repos):
    converter = _converter(repos, _rates_handler([], {"USD": 0.012, "EUR": 0.011}))

    assert converter.convert("1000", "INR", "USD") == Decimal("12.00")
    assert converter.convert("12", "USD", "INR") == Decimal("1000.00")
    assert converter.convert("5", "usd", "USD") == Decimal("5.00")
    assert converter.rate("USD", "EUR") == Decimal("0.011") / Decimal("0.012")


def test_convert_unknown_currency(repos):
    converter = _converter(repos, _rates_handler([], {"USD": 0.012}))

    with pytest.raises(ValidationError):
        converter.convert("1", "INR", "XYZ")


@pytest.mark.parametrize(
    "amount, code, expected",
    [
        ("1234.5", "INR", "₹1,234.50"),
        (Decimal("-20"), "USD", "-$20.00"),
        (0, "EUR", "€0.00"),
        ("99.999", "GBP", "£100.00"),
        ("7", "XYZ", "XYZ7.00"),
    ],
)
def test_format_currency(amount, code, expected):
    assert format_currency(amount, code) == expected


def test_currency_symbol():
    assert currency_symbol("INR") == "₹"
    assert currency_symbol("SGD") == "S$"
