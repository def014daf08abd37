import httpx
import pytest

from baliza.domain.errors import AuthFailure, GeocodeFailure, RateLimited
from baliza.infrastructure.geocoding import LocationIQGeocoder


def _geocoder(handler, api_key="secret"):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return LocationIQGeocoder(api_key, base_url="https://geo.test/v1", client=client)


def test_search_sends_query_and_returns_items():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(
            200, json=[{"lat": "51.5549", "lon": "-0.1086", "display_name": "Emirates Stadium"}]
        )

    results = _geocoder(handler).search("Emirates Stadium, London, England")

    assert results == [{"lat": "51.5549", "lon": "-0.1086", "display_name": "Emirates Stadium"}]
    url = seen["url"]
    assert url.path == "/v1/search.php"
    assert url.params["q"] == "Emirates Stadium, London, England"
    assert url.params["key"] == "secret"
    assert url.params["format"] == "json"
    assert url.params["limit"] == "1"


def test_unable_to_geocode_is_an_empty_result():
    def handler(request):
        return httpx.Response(404, json={"error": "Unable to geocode"})

    assert _geocoder(handler).search("Atlantis Arena") == []


@pytest.mark.parametrize(
    ("status", "error"),
    [(429, RateLimited), (401, AuthFailure), (403, AuthFailure), (500, GeocodeFailure)],
)
def test_http_errors_are_translated(status, error):
    def handler(request):
        return httpx.Response(status, text="nope")

    with pytest.raises(error):
        _geocoder(handler).search("Anfield")


def test_auth_failure_keeps_status_code():
    def handler(request):
        return httpx.Response(401, json={"error": "Invalid key"})

    with pytest.raises(AuthFailure) as exc_info:
        _geocoder(handler).search("Anfield")

    assert exc_info.value.status_code == 401


class _TimeoutClient:
    """Cliente HTTP falso que simula tempo esgotado."""

    def get(self, *_args, **_kwargs):
        request = httpx.Request("GET", "https://geo.test/v1/search.php")
        raise httpx.ReadTimeout("boom", request=request)


def test_transport_error_becomes_geocode_failure():
    geocoder = LocationIQGeocoder("secret", client=_TimeoutClient())

    with pytest.raises(GeocodeFailure) as exc_info:
        geocoder.search("Anfield")

    assert not isinstance(exc_info.value, RateLimited)
    assert exc_info.value.query == "Anfield"


def test_error_object_in_success_body_is_rejected():
    def handler(request):
        return httpx.Response(200, json={"error": "Rate Limited Day"})

    with pytest.raises(GeocodeFailure):
        _geocoder(handler).search("Anfield")


def test_missing_api_key_fails_before_any_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[])

    with pytest.raises(AuthFailure):
        _geocoder(handler, api_key=None).search("Anfield")

    assert calls == []


def test_close_leaves_injected_client_open():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])))
    geocoder = LocationIQGeocoder("secret", client=client)

    geocoder.close()

    assert not client.is_closed
