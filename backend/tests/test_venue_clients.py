from __future__ import annotations

import json

import httpx
import pytest

from ingestion.client import BinanceClient, HyperliquidClient, VenueRequestError


def _hyperliquid(handler, sleeps=None) -> HyperliquidClient:
    return HyperliquidClient(
        base_url="https://hyperliquid.test",
        transport=httpx.MockTransport(handler),
        retry_attempts=2,
        retry_base_seconds=0.5,
        sleep=(sleeps.append if sleeps is not None else lambda _: None),
    )


def _binance(handler, sleeps=None) -> BinanceClient:
    return BinanceClient(
        base_url="https://binance.test",
        transport=httpx.MockTransport(handler),
        retry_attempts=2,
        retry_base_seconds=0.5,
        sleep=(sleeps.append if sleeps is not None else lambda _: None),
    )


def test_hyperliquid_history_posts_info_request(hyperliquid_history_payload):
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/info"
        assert request.headers["user-agent"]
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=hyperliquid_history_payload)

    with _hyperliquid(handler) as client:
        samples = client.fetch_funding_history("BTC", 1717200000000)

    assert seen == [{"type": "fundingHistory", "coin": "BTC", "startTime": 1717200000000}]
    assert len(samples) == 4


def test_rate_limit_honours_retry_after_then_succeeds():
    responses = iter(
        [
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(429),
            httpx.Response(200, json=[]),
        ]
    )
    sleeps: list[float] = []

    with _hyperliquid(lambda request: next(responses), sleeps) as client:
        assert client.fetch_funding_history("BTC", 0) == []

    assert sleeps == [2.0, 1.0]


def test_rate_limit_gives_up_after_configured_retries():
    sleeps: list[float] = []

    with _hyperliquid(lambda request: httpx.Response(429), sleeps) as client:
        with pytest.raises(VenueRequestError) as excinfo:
            client.fetch_universe()

    assert excinfo.value.status_code == 429
    assert excinfo.value.venue == "hyperliquid"
    assert sleeps == [0.5, 1.0]


def test_server_error_is_wrapped():
    with _hyperliquid(lambda request: httpx.Response(500, text="boom")) as client:
        with pytest.raises(VenueRequestError) as excinfo:
            client.fetch_meta_and_contexts()

    assert excinfo.value.status_code == 500
    assert "boom" in str(excinfo.value)


def test_transport_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _hyperliquid(handler) as client:
        with pytest.raises(VenueRequestError) as excinfo:
            client.fetch_funding_history("BTC", 0)

    assert excinfo.value.status_code is None


def test_hyperliquid_live_funding_skips_request_for_no_symbols():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with _hyperliquid(handler) as client:
        assert client.fetch_live_funding([]) == {}


def test_hyperliquid_live_funding_and_universe(hyperliquid_meta_payload):
    with _hyperliquid(lambda request: httpx.Response(200, json=hyperliquid_meta_payload)) as client:
        assert client.fetch_live_funding(["BTC"]) == {"BTC": pytest.approx(0.0000125)}
        assert client.fetch_universe() == ["BTC", "ETH"]


def test_binance_history_falls_back_when_start_time_is_rejected(binance_history_payload):
    seen: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/fapi/v1/fundingRate"
        params = dict(request.url.params)
        seen.append(params)
        if "startTime" in params:
            return httpx.Response(403, text="Forbidden")
        return httpx.Response(200, json=binance_history_payload)

    with _binance(handler) as client:
        samples = client.fetch_funding_history("BTCUSDT", 1717200000000)

    assert [sample.time for sample in samples] == [1717200000000, 1717228800000]
    assert seen[0] == {"symbol": "BTCUSDT", "limit": "1000", "startTime": "1717200000000"}
    assert seen[1] == {"symbol": "BTCUSDT", "limit": "1000"}


def test_binance_history_forbidden_without_start_time_raises():
    with _binance(lambda request: httpx.Response(403)) as client:
        with pytest.raises(VenueRequestError) as excinfo:
            client.fetch_funding_history("BTCUSDT", None)

    assert excinfo.value.status_code == 403
    assert excinfo.value.venue == "binance"


def test_binance_live_funding_divides_by_settlement_interval():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/fapi/v1/premiumIndex":
            return httpx.Response(
                200,
                json=[
                    {"symbol": "BTCUSDT", "lastFundingRate": "0.0008"},
                    {"symbol": "ETHUSDT", "lastFundingRate": "0.0004"},
                ],
            )
        if request.url.path == "/fapi/v1/fundingInfo":
            return httpx.Response(200, json=[{"symbol": "ETHUSDT", "fundingIntervalHours": 4}])
        return httpx.Response(404)

    with _binance(handler) as client:
        funding = client.fetch_live_funding(["BTCUSDT", "ETHUSDT"], default_period_hours=8)

    assert funding == {"BTCUSDT": pytest.approx(0.0001), "ETHUSDT": pytest.approx(0.0001)}


def test_binance_funding_intervals_degrade_to_empty_map():
    with _binance(lambda request: httpx.Response(503)) as client:
        assert client.fetch_funding_intervals() == {}


def test_binance_perpetual_symbols_use_allowed_quotes():
    payload = {
        "symbols": [
            {"symbol": "BTCUSDT", "contractType": "PERPETUAL", "quoteAsset": "USDT"},
            {"symbol": "BTCUSDC", "contractType": "PERPETUAL", "quoteAsset": "USDC"},
        ]
    }

    with _binance(lambda request: httpx.Response(200, json=payload)) as client:
        assert client.fetch_perpetual_symbols(["USDC"]) == {"BTCUSDC"}
        assert client.fetch_perpetual_symbols() == {"BTCUSDT"}
