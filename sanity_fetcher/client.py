"""
Sanity HTTP API client.

Endpoint selection (CDN vs. primary host, draft perspective, auth header)
and the single-request fetch primitive. Every outbound request passes the
process-wide rate gate first.
"""
import contextvars
import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote

import requests

from config.settings import settings
from .errors import ConfigurationError, RemoteRequestError, TransportError
from .rate_gate import RateGate
from .retry import RetryConfig, with_retry

logger = logging.getLogger("sanity_fetcher.client")

Scalar = Union[str, int, float, bool, None]
QueryParams = Mapping[str, Union[Scalar, List[Scalar]]]

PREVIEW_PERSPECTIVE = "previewDrafts"
MAX_BATCH_WORKERS = 10


@dataclass(frozen=True)
class QueryRequest:
    """One GROQ query against one dataset. Compared by value only."""
    dataset: str
    query: str
    params: QueryParams = field(default_factory=dict)
    use_cdn: bool = False
    use_auth: bool = False


@dataclass(frozen=True)
class Endpoint:
    """Resolved host, perspective and headers for a request."""
    base_url: str
    perspective: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


def encode_param(value: Any) -> str:
    """
    Render a parameter value as a self-describing JSON literal.

    Strings become quoted literals, numbers stay bare, lists keep their
    element types. GROQ placeholder substitution relies on this.
    """
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def select_endpoint(
    project_id: str,
    use_cdn: bool,
    use_auth: bool,
    token: Optional[str] = None,
) -> Endpoint:
    """
    Pick host, perspective and headers for a (use_cdn, use_auth) pair.

    Authenticated requests always go to the primary host, since the CDN
    cannot see drafts. A missing token degrades to an unauthenticated
    request on the primary host; it is not an error.
    """
    headers = {"Accept": "application/json"}

    if use_auth:
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return Endpoint(
            base_url=f"https://{project_id}.api.sanity.io",
            perspective=PREVIEW_PERSPECTIVE,
            headers=headers,
        )

    host = "apicdn" if use_cdn else "api"
    return Endpoint(base_url=f"https://{project_id}.{host}.sanity.io", headers=headers)


class SanityClient:
    """
    Performs GROQ query requests against the Sanity HTTP API.

    Usage:
        client = SanityClient(project_id="abc123", token=token)
        posts = client.fetch(QueryRequest("production", '*[_type == "post"]'))
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        api_version: str = "2025-02-10",
        token: Optional[str] = None,
        timeout: float = 30.0,
        rate_gate: Optional[RateGate] = None,
        session: Optional[requests.Session] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Initialize the client.

        Args:
            project_id: Sanity project id (checked at call time, not here)
            api_version: API version date, e.g. '2025-02-10'
            token: Viewer token used for authenticated requests
            timeout: Network timeout in seconds for every request
            rate_gate: Shared rate gate; a private one is created if omitted
            session: requests session (injectable for testing)
            retry_config: Retry settings used by fetch_with_retry
        """
        self.project_id = project_id
        self.api_version = api_version
        self.token = token
        self.timeout = timeout
        self.rate_gate = rate_gate or RateGate()
        self.session = session or requests.Session()
        self.retry_config = retry_config or RetryConfig()

    @classmethod
    def from_settings(cls, app_settings=None, rate_gate: Optional[RateGate] = None) -> "SanityClient":
        app_settings = app_settings or settings
        return cls(
            project_id=app_settings.sanity_project_id,
            api_version=app_settings.sanity_api_version,
            token=app_settings.sanity_viewer_token,
            timeout=app_settings.request_timeout_seconds,
            rate_gate=rate_gate or RateGate(app_settings.rate_limit_min_interval_ms / 1000.0),
            retry_config=RetryConfig.from_settings(app_settings),
        )

    def build_request(self, request: QueryRequest) -> Tuple[str, List[Tuple[str, str]], Dict[str, str]]:
        """
        Assemble URL, query string pairs and headers for a request.

        Raises:
            ConfigurationError: If the project id or dataset is missing
        """
        if not self.project_id:
            raise ConfigurationError("Sanity project id is required (set SANITY_PROJECT_ID)")
        if not request.dataset:
            raise ConfigurationError("Sanity dataset is required")

        endpoint = select_endpoint(
            self.project_id, request.use_cdn, request.use_auth, self.token
        )
        url = f"{endpoint.base_url}/v{self.api_version}/data/query/{quote(request.dataset, safe='')}"

        query_params = [("query", request.query)]
        if endpoint.perspective:
            query_params.append(("perspective", endpoint.perspective))
        for name, value in (request.params or {}).items():
            query_params.append((f"${name}", encode_param(value)))

        return url, query_params, dict(endpoint.headers)

    def fetch(self, request: QueryRequest) -> Any:
        """
        Perform one GET against the selected endpoint.

        Returns:
            The `result` field of the response body (None if absent)

        Raises:
            ConfigurationError: Missing project id or dataset
            RemoteRequestError: Non-success HTTP status
            TransportError: Network failure or unreadable body
        """
        url, query_params, headers = self.build_request(request)

        self.rate_gate.throttle()

        try:
            response = self.session.get(
                url,
                params=query_params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Sanity transport error for dataset {request.dataset}: {e}")
            raise TransportError(f"Sanity request failed: {e}", cause=e) from e

        try:
            if not 200 <= response.status_code < 300:
                self._drain(response)
                logger.warning(
                    f"Sanity API error {response.status_code} {response.reason} "
                    f"for dataset {request.dataset}"
                )
                raise RemoteRequestError(response.status_code, response.reason or "")

            try:
                payload = response.json()
            except ValueError as e:
                raise TransportError("Sanity response body is not valid JSON", cause=e) from e
        finally:
            response.close()

        if not isinstance(payload, dict):
            return None
        return payload.get("result")

    def fetch_with_retry(self, request: QueryRequest, config: Optional[RetryConfig] = None) -> Any:
        """Fetch with exponential-backoff retries on transient failures."""
        return with_retry(self.fetch, config or self.retry_config)(request)

    def batch_fetch(
        self,
        queries: Mapping[str, Tuple[str, Optional[QueryParams]]],
        dataset: str,
        use_cdn: bool = False,
        use_auth: bool = False,
    ) -> Dict[str, Any]:
        """
        Fetch several named queries in parallel.

        Args:
            queries: {name: (query, params)} mapping
            dataset: Dataset shared by every query
            use_cdn: Use the CDN host
            use_auth: Send the viewer token with the draft perspective

        Returns:
            {name: result}; a query that failed maps to None
        """
        results: Dict[str, Any] = {name: None for name in queries}
        if not queries:
            return results

        def fetch_one(query: str, params: Optional[QueryParams]) -> Any:
            return self.fetch(QueryRequest(
                dataset=dataset,
                query=query,
                params=params or {},
                use_cdn=use_cdn,
                use_auth=use_auth,
            ))

        with ThreadPoolExecutor(max_workers=min(len(queries), MAX_BATCH_WORKERS)) as executor:
            future_to_name = {
                executor.submit(contextvars.copy_context().run, fetch_one, query, params): name
                for name, (query, params) in queries.items()
            }

            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.warning(f"Batch query '{name}' failed: {e}")

        return results

    @staticmethod
    def _drain(response: requests.Response) -> None:
        """Consume the body so the connection can be released."""
        try:
            _ = response.content
        except requests.RequestException as e:
            logger.debug(f"Failed to drain error response body: {e}")


def create_fetcher(
    dataset: str,
    use_auth: bool = False,
    client: Optional[SanityClient] = None,
) -> Callable[..., Any]:
    """
    Create a fetcher bound to one dataset.

    Usage:
        fetch_posts = create_fetcher("production")
        posts = fetch_posts('*[_type == "post"]')
    """
    def fetcher(query: str, params: Optional[QueryParams] = None) -> Any:
        return (client or get_client()).fetch(QueryRequest(
            dataset=dataset,
            query=query,
            params=params or {},
            use_auth=use_auth,
        ))

    return fetcher


# Global client instance (owns the process-wide rate gate)
_client: Optional[SanityClient] = None


def get_client() -> SanityClient:
    """Get or create the global Sanity client."""
    global _client
    if _client is None:
        _client = SanityClient.from_settings(settings)
    return _client
