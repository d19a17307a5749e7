import pytest
import requests

from limitbot.errors import TransientExternalError, ValidationError
from limitbot.services.price_oracle import (
    DexScreenerOracle,
    NativePriceFeed,
    market_cap_from_price,
    price_from_market_cap,
)

MINT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"


class FakeResponse:
    def __init__(self, body, status_code=200):
        self._body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.urls = []

    def get(self, url, timeout=None, headers=None):
        self.urls.append(url)
        if self.exc is not None:
            raise self.exc
        return self.response


def pair(**overrides):
    data = {
        "priceUsd": "0.00042",
        "marketCap": 42000,
        "fdv": 50000,
        "baseToken": {"symbol": "PEPE", "name": "Pepe"},
    }
    data.update(overrides)
    return {"pairs": [data]}


def make_oracle(session):
    return DexScreenerOracle(base_url="https://dex.test/tokens/", timeout=3, session=session)


def test_get_price_reads_first_pair():
    session = FakeSession(FakeResponse(pair()))

    assert make_oracle(session).get_price(MINT) == pytest.approx(0.00042)
    assert session.urls == [f"https://dex.test/tokens/{MINT}"]


@pytest.mark.parametrize("body", [
    {"pairs": []},
    {"pairs": None},
    {},
    pair(priceUsd=None),
    pair(priceUsd="0"),
    pair(priceUsd="not-a-number"),
])
def test_missing_price_is_unavailable(body):
    assert make_oracle(FakeSession(FakeResponse(body))).get_price(MINT) is None


def test_http_failure_is_transient():
    with pytest.raises(TransientExternalError):
        make_oracle(FakeSession(exc=requests.ConnectionError("down"))).get_price(MINT)
    with pytest.raises(TransientExternalError):
        make_oracle(FakeSession(FakeResponse({}, status_code=503))).get_price(MINT)


def test_token_info_prefers_market_cap_over_fdv():
    info = make_oracle(FakeSession(FakeResponse(pair()))).get_token_info(MINT)

    assert info.symbol == "PEPE"
    assert info.name == "Pepe"
    assert info.price == pytest.approx(0.00042)
    assert info.market_cap == 42000


def test_token_info_falls_back_to_fdv():
    info = make_oracle(FakeSession(FakeResponse(pair(marketCap=None, baseToken={})))).get_token_info(MINT)

    assert info.market_cap == 50000
    assert info.symbol == MINT[:8]


def test_token_info_for_unknown_token():
    assert make_oracle(FakeSession(FakeResponse({"pairs": []}))).get_token_info(MINT) is None


def test_market_cap_conversions():
    target_price = price_from_market_cap(100000, 50000, 0.001)
    assert target_price == pytest.approx(0.002)
    assert market_cap_from_price(target_price, 0.001, 50000) == pytest.approx(100000)


def test_market_cap_conversion_needs_known_values():
    with pytest.raises(ValidationError):
        price_from_market_cap(100000, 0, 0.001)
    with pytest.raises(ValidationError):
        price_from_market_cap(-1, 50000, 0.001)
    with pytest.raises(ValidationError):
        market_cap_from_price(0.002, 0, 50000)


def test_native_price_refresh_updates_value():
    feed = NativePriceFeed(initial_price=150.0, url="https://cg.test", session=FakeSession(
        FakeResponse({"solana": {"usd": 172.5}})))

    assert feed.current() == 150.0
    assert feed.refresh() == 172.5
    assert feed.current() == 172.5


@pytest.mark.parametrize("session", [
    FakeSession(exc=requests.Timeout("slow")),
    FakeSession(FakeResponse({"bitcoin": {"usd": 1}})),
    FakeSession(FakeResponse({"solana": {"usd": 0}})),
])
def test_native_price_keeps_previous_value_on_failure(session):
    feed = NativePriceFeed(initial_price=150.0, url="https://cg.test", session=session)

    assert feed.refresh() == 150.0
