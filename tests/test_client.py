"""
Tests for endpoint selection and the Sanity fetch primitive.
"""
from unittest.mock import MagicMock, PropertyMock

import pytest
import requests

from sanity_fetcher.client import (
    QueryRequest,
    SanityClient,
    create_fetcher,
    encode_param,
    select_endpoint,
)
from sanity_fetcher.errors import ConfigurationError, RemoteRequestError, TransportError
from sanity_fetcher.rate_gate import RateGate
from sanity_fetcher.retry import RetryConfig

from tests.helpers import make_client, make_response

NO_WAIT = RetryConfig(attempts=3, min_wait=0, max_wait=0)


# =============================================================================
# Endpoint selection
# =============================================================================

class TestSelectEndpoint:
    """Tests for the (use_cdn, use_auth) endpoint table."""

    def test_published_cdn(self):
        endpoint = select_endpoint("abc123", use_cdn=True, use_auth=False, token="secret")
        assert endpoint.base_url == "https://abc123.apicdn.sanity.io"
        assert endpoint.perspective is None
        assert endpoint.headers == {"Accept": "application/json"}

    def test_published_primary(self):
        endpoint = select_endpoint("abc123", use_cdn=False, use_auth=False, token="secret")
        assert endpoint.base_url == "https://abc123.api.sanity.io"
        assert endpoint.perspective is None
        assert "Authorization" not in endpoint.headers

    @pytest.mark.parametrize("use_cdn", [True, False])
    def test_authenticated_always_uses_primary_host(self, use_cdn):
        endpoint = select_endpoint("abc123", use_cdn=use_cdn, use_auth=True, token="secret")
        assert endpoint.base_url == "https://abc123.api.sanity.io"
        assert endpoint.perspective == "previewDrafts"
        assert endpoint.headers["Authorization"] == "Bearer secret"

    def test_authenticated_without_token_degrades(self):
        endpoint = select_endpoint("abc123", use_cdn=False, use_auth=True, token=None)
        assert endpoint.base_url == "https://abc123.api.sanity.io"
        assert endpoint.perspective == "previewDrafts"
        assert "Authorization" not in endpoint.headers


class TestEncodeParam:

    def test_string_is_quoted(self):
        assert encode_param("home") == '"home"'

    def test_number_is_bare(self):
        assert encode_param(3) == "3"

    def test_list_keeps_element_types(self):
        assert encode_param(["a", 1, True, None]) == '["a",1,true,null]'


# =============================================================================
# Request building
# =============================================================================

class TestBuildRequest:

    def test_url_and_param_order(self):
        client = make_client()
        url, params, headers = client.build_request(QueryRequest(
            dataset="production",
            query='*[_type == "post" && slug.current == $slug]',
            params={"slug": "hello", "limit": 5},
            use_cdn=True,
        ))

        assert url == "https://test-project.apicdn.sanity.io/v2024-01-12/data/query/production"
        assert params == [
            ("query", '*[_type == "post" && slug.current == $slug]'),
            ("$slug", '"hello"'),
            ("$limit", "5"),
        ]
        assert headers == {"Accept": "application/json"}

    def test_perspective_follows_query(self):
        client = make_client()
        _, params, headers = client.build_request(QueryRequest(
            dataset="staging", query="*[0]", params={"id": "x"}, use_auth=True,
        ))

        assert params[0] == ("query", "*[0]")
        assert params[1] == ("perspective", "previewDrafts")
        assert params[2] == ("$id", '"x"')
        assert headers["Authorization"] == "Bearer test-token"

    def test_missing_project_id(self):
        client = make_client(project_id=None)
        with pytest.raises(ConfigurationError):
            client.build_request(QueryRequest(dataset="production", query="*"))

    def test_missing_dataset(self):
        client = make_client()
        with pytest.raises(ConfigurationError):
            client.build_request(QueryRequest(dataset="", query="*"))


# =============================================================================
# Fetch
# =============================================================================

class TestFetch:

    def test_returns_result_field(self):
        response = make_response(payload={"result": [{"_id": "a"}], "ms": 4})
        client = make_client(response)

        result = client.fetch(QueryRequest(dataset="production", query="*"))

        assert result == [{"_id": "a"}]
        client.session.get.assert_called_once()
        _, kwargs = client.session.get.call_args
        assert kwargs["timeout"] == client.timeout
        assert kwargs["params"][0] == ("query", "*")
        response.close.assert_called_once()

    def test_missing_result_is_none(self):
        client = make_client(make_response(payload={"ms": 1}))
        assert client.fetch(QueryRequest(dataset="production", query="*")) is None

    def test_error_status_raises_and_drains_body(self):
        response = make_response(status_code=403, reason="Forbidden")
        content = PropertyMock(return_value=b'{"error": "forbidden"}')
        type(response).content = content
        client = make_client(response)

        with pytest.raises(RemoteRequestError) as exc_info:
            client.fetch(QueryRequest(dataset="production", query="*"))

        assert exc_info.value.status == 403
        assert exc_info.value.status_text == "Forbidden"
        assert str(exc_info.value) == "Sanity fetch failed: 403 Forbidden"
        content.assert_called_once()
        response.close.assert_called_once()

    def test_redirect_status_is_not_success(self):
        response = make_response(status_code=304, reason="Not Modified")
        client = make_client(response)

        with pytest.raises(RemoteRequestError) as exc_info:
            client.fetch(QueryRequest(dataset="production", query="*"))

        assert exc_info.value.status == 304
        response.json.assert_not_called()
        response.close.assert_called_once()

    def test_network_failure_is_transport_error(self):
        client = make_client()
        cause = requests.ConnectionError("connection refused")
        client.session.get.side_effect = cause

        with pytest.raises(TransportError) as exc_info:
            client.fetch(QueryRequest(dataset="production", query="*"))

        assert exc_info.value.cause is cause

    def test_invalid_json_is_transport_error(self):
        response = make_response()
        response.json.side_effect = ValueError("Expecting value")
        client = make_client(response)

        with pytest.raises(TransportError):
            client.fetch(QueryRequest(dataset="production", query="*"))
        response.close.assert_called_once()

    def test_configuration_error_skips_network(self):
        client = make_client(project_id="")
        with pytest.raises(ConfigurationError):
            client.fetch(QueryRequest(dataset="production", query="*"))
        client.session.get.assert_not_called()

    def test_passes_rate_gate(self):
        gate = MagicMock(spec=RateGate)
        client = SanityClient(
            project_id="p", session=MagicMock(), rate_gate=gate,
        )
        client.session.get.return_value = make_response(payload={"result": 1})

        client.fetch(QueryRequest(dataset="production", query="*"))

        gate.throttle.assert_called_once()


class TestFetchWithRetry:

    def test_retries_server_errors(self):
        client = make_client()
        client.session.get.side_effect = [
            make_response(status_code=503, reason="Service Unavailable"),
            make_response(payload={"result": "ok"}),
        ]

        assert client.fetch_with_retry(QueryRequest(dataset="production", query="*"), NO_WAIT) == "ok"
        assert client.session.get.call_count == 2

    def test_does_not_retry_client_errors(self):
        client = make_client(make_response(status_code=404, reason="Not Found"))

        with pytest.raises(RemoteRequestError):
            client.fetch_with_retry(QueryRequest(dataset="production", query="*"), NO_WAIT)
        assert client.session.get.call_count == 1

    def test_gives_up_after_attempts(self):
        client = make_client()
        client.session.get.side_effect = requests.Timeout("timed out")

        with pytest.raises(TransportError):
            client.fetch_with_retry(QueryRequest(dataset="production", query="*"), NO_WAIT)
        assert client.session.get.call_count == 3


class TestBatchFetch:

    def test_failed_queries_map_to_none(self):
        client = make_client()

        def fake_get(url, params, headers, timeout):
            if params[0][1] == "broken":
                raise requests.ConnectionError("boom")
            return make_response(payload={"result": params[0][1].upper()})

        client.session.get.side_effect = fake_get

        results = client.batch_fetch(
            {"posts": ("posts", None), "authors": ("authors", {}), "bad": ("broken", None)},
            dataset="production",
        )

        assert results == {"posts": "POSTS", "authors": "AUTHORS", "bad": None}

    def test_empty_batch(self):
        assert make_client().batch_fetch({}, dataset="production") == {}


def test_create_fetcher_binds_dataset():
    client = make_client(make_response(payload={"result": {"title": "Home"}}))
    fetch_pages = create_fetcher("staging", client=client)

    assert fetch_pages("*[_type == 'page'][0]") == {"title": "Home"}
    url = client.session.get.call_args[0][0]
    assert url.endswith("/data/query/staging")
