import json
from decimal import Decimal

import httpx

from fund_ledger.data.client.eastmoney import EastmoneyClient

_GZ_BODY = (
    'jsonpgz({"fundcode":"001467","name":"华夏成长","jzrq":"2024-01-05","dwjz":"1.2300",'
    '"gsz":"1.2355","gszzl":"0.45","gztime":"2024-01-08 15:00"});'
)


def _client(handler, **kwargs) -> EastmoneyClient:
    kwargs.setdefault("backoff_base", 0)
    return EastmoneyClient(transport=httpx.MockTransport(handler), **kwargs)


def test_get_estimate_parses_jsonp():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/js/001467.js"
        return httpx.Response(200, text=_GZ_BODY)

    estimate = _client(handler).get_estimate("001467")

    assert estimate.code == "001467"
    assert estimate.name == "华夏成长"
    assert estimate.nav_estimate == Decimal("1.2355")
    assert estimate.nav_last == Decimal("1.2300")
    assert estimate.day_change_percent == Decimal("0.45")
    assert estimate.as_of == "2024-01-08 15:00"
    assert estimate.nav == Decimal("1.2355")


def test_get_estimate_handles_garbage():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="jsonpgz();")

    assert _client(handler).get_estimate("001467") is None


def test_client_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        return httpx.Response(404)

    assert _client(handler, retries=3).get_estimate("001467") is None
    assert len(calls) == 1


def test_server_error_is_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, text=_GZ_BODY)

    estimate = _client(handler, retries=1).get_estimate("001467")

    assert estimate is not None
    assert len(calls) == 2


def test_network_error_gives_up_after_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        raise httpx.ConnectError("boom", request=request)

    assert _client(handler, retries=2).get_estimate("001467") is None
    assert len(calls) == 3


def test_get_estimates_dedupes_codes():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/js/001467.js":
            return httpx.Response(200, text=_GZ_BODY)
        return httpx.Response(404)

    estimates = _client(handler).get_estimates(["001467", " 001467 ", "", "000001"])

    assert list(estimates) == ["001467"]
    assert calls == ["/js/001467.js", "/js/000001.js"]


def test_search_fund_name_requires_exact_code():
    payload = {
        "Datas": [
            {"CODE": "0014670", "NAME": "相似代码"},
            {"CODE": "001467", "NAME": "华夏成长混合"},
        ]
    }

    keys = []

    def handler(request: httpx.Request) -> httpx.Response:
        keys.append(request.url.params["key"])
        return httpx.Response(200, text=json.dumps(payload, ensure_ascii=False))

    client = _client(handler)
    assert client.search_fund_name("001467") == "华夏成长混合"
    assert client.search_fund_name("000001") is None
    assert keys == ["001467", "000001"]
