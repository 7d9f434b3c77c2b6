"""HTTP client for the backend's metadata, query and version APIs."""

import logging
from typing import Any

import requests

from .constants import (
    ADMIN_SECRET_HEADER,
    CATALOG_STATE_TYPE,
    METADATA_API_PATH,
    MIN_METADATA_V3_SERVER_MAJOR,
    NETWORK_OPERATION_TIMEOUT,
    QUERY_API_PATH,
    VERSION_API_PATH,
)

logger = logging.getLogger(__name__)


class APIError(Exception):
    """
    Raised when a backend API call fails.

    Covers transport failures (connection refused, timeouts) as well as non-2xx
    responses. status_code is None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MetadataClient:
    """Synchronous client for one backend endpoint.

    Every call is a single attempt; retrying is left to the caller.
    """

    def __init__(
        self,
        endpoint: str,
        admin_secret: str | None = None,
        timeout: float = NETWORK_OPERATION_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """
        Initialize client.

        Args:
            endpoint: Base URL of the backend, e.g. http://localhost:8080
            admin_secret: Admin secret sent with every request, if set
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if admin_secret:
            self.session.headers.update({ADMIN_SECRET_HEADER: admin_secret})

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.endpoint}{path}"
        logger.debug("%s %s %s", method, url, payload.get("type") if payload else "")
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise APIError(f"request to {url} failed: {e}") from e

        if not response.ok:
            try:
                detail = response.json().get("error", response.text)
            except ValueError:
                detail = response.text
            raise APIError(f"{url} returned {response.status_code}: {detail}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"{url} returned invalid JSON: {e}", response.status_code) from e

    def _metadata(self, query_type: str, args: dict[str, Any] | None = None) -> Any:
        return self._request("POST", METADATA_API_PATH, {"type": query_type, "args": args or {}})

    def export_metadata(self) -> dict[str, Any]:
        """Export the server's metadata as a JSON object."""
        result = self._metadata("export_metadata")
        if not isinstance(result, dict):
            raise APIError("export_metadata returned an unexpected payload")
        return result

    def get_inconsistent_metadata(self) -> bool:
        """
        Check server metadata consistency.

        Returns:
            True if the server reports its metadata as consistent
        """
        result = self._metadata("get_inconsistent_metadata")
        return bool(result.get("is_consistent", False))

    def add_source(self, config: dict[str, Any]) -> None:
        """Register a data source with the server."""
        self._metadata("pg_add_source", config)

    def get_sources(self) -> list[str]:
        """Return the names of data sources connected to the server."""
        metadata = self.export_metadata()
        return [source["name"] for source in metadata.get("sources", []) if "name" in source]

    def run_sql(self, sql: str, source: str) -> list[list[str]]:
        """
        Run a SQL statement on a data source.

        Args:
            sql: Statement to run
            source: Data source name

        Returns:
            Result rows including the header row, or an empty list for
            statements that return no tuples
        """
        result = self._request(
            "POST",
            QUERY_API_PATH,
            {"type": "run_sql", "args": {"sql": sql, "source": source}},
        )
        if result.get("result_type") != "TuplesOk":
            return []
        return result.get("result") or []

    def get_catalog_state(self) -> dict[str, Any]:
        """Return the raw CLI section of the server's catalog state."""
        result = self._metadata("get_catalog_state")
        return result.get("cli_state") or {}

    def set_catalog_state(self, state: dict[str, Any]) -> None:
        """Replace the CLI section of the server's catalog state."""
        self._metadata("set_catalog_state", {"type": CATALOG_STATE_TYPE, "state": state})

    def get_server_version(self) -> str:
        """Return the server version string."""
        result = self._request("GET", VERSION_API_PATH)
        return str(result.get("version", ""))

    def has_metadata_v3(self) -> bool:
        """
        Check whether the server supports the multi-source metadata model.

        Development builds without a semantic version are assumed to support it.
        """
        version = self.get_server_version().lstrip("v")
        major = version.split(".", 1)[0]
        if not major.isdigit():
            return True
        return int(major) >= MIN_METADATA_V3_SERVER_MAJOR
