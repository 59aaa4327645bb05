# Overview: HTTP client for the remote backend (PostgREST tables) plus the connectivity signal.

"""
Remote Backend

The only component that talks to the network. Everything goes through
RemoteBackend so the sync workflow can be exercised against a fake.

ERROR MAPPING:
- HTTP 409, or PostgreSQL unique violation (code 23505) -> RemoteConflict
- any other HTTP status >= 400                          -> RemoteRejected
- transport failure (DNS, refused, timeout)             -> NetworkUnreachable
"""

from __future__ import annotations

import httpx


UNIQUE_VIOLATION = "23505"


class RemoteError(Exception):
    """Base class for remote backend failures."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class RemoteConflict(RemoteError):
    """Duplicate-key response: the identifier already denotes a different record."""
    pass


class RemoteRejected(RemoteError):
    """Non-conflict backend failure (validation, permission, server error)."""
    pass


class NetworkUnreachable(RemoteError):
    """The backend could not be reached at all."""
    pass


class RemoteBackend:
    """
    Table-like access to the remote resources.

    Logical resource names (employees, inventory_items, master_items,
    tickets, sessions, timesheets) are mapped to table names by `tables`.
    """

    def __init__(self, base_url: str, api_key: str = "", *, tables: dict, timeout: float = 10.0,
                 transport: httpx.BaseTransport | None = None):
        self.base_url = (base_url or "").rstrip("/")
        self.tables = dict(tables)
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=f"{self.base_url}/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def fetch(self, resource: str, *, filters: dict | None = None, order: str | None = None,
              select: str = "*") -> list[dict]:
        params = {"select": select}
        for column, value in (filters or {}).items():
            params[column] = _eq(value)
        if order:
            params["order"] = order
        response = self._request("GET", resource, f"fetch {resource}", params=params)
        return _rows(response)

    def insert(self, resource: str, rows: list[dict]) -> list[dict]:
        if not rows:
            return []
        response = self._request(
            "POST", resource, f"insert {resource}",
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        return _rows(response)

    def update(self, resource: str, record_id: str, values: dict) -> list[dict]:
        response = self._request(
            "PATCH", resource, f"update {resource}",
            params={"id": _eq(record_id)},
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return _rows(response)

    def delete(self, resource: str, record_id: str) -> None:
        self._request("DELETE", resource, f"delete {resource}", params={"id": _eq(record_id)})

    def upsert(self, resource: str, rows: list[dict]) -> list[dict]:
        """Insert-or-update by id. A duplicate on any other unique key raises RemoteConflict."""
        if not rows:
            return []
        response = self._request(
            "POST", resource, f"upsert {resource}",
            params={"on_conflict": "id"},
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        return _rows(response)

    def exists(self, resource: str, record_id: str) -> bool:
        return bool(self.fetch(resource, filters={"id": record_id}, select="id"))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _table(self, resource: str) -> str:
        try:
            return self.tables[resource]
        except KeyError:
            raise RemoteRejected(resource, f"unknown remote resource '{resource}'") from None

    def _request(self, method: str, resource: str, operation: str, **kwargs) -> httpx.Response:
        if not self.configured:
            raise NetworkUnreachable(operation, "remote backend is not configured")
        path = f"/{self._table(resource)}"
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise NetworkUnreachable(operation, str(exc) or exc.__class__.__name__) from exc

        if response.status_code < 400:
            return response

        code, message = _error_details(response)
        if response.status_code == 409 or code == UNIQUE_VIOLATION:
            raise RemoteConflict(operation, message)
        raise RemoteRejected(operation, f"HTTP {response.status_code}: {message}")


class Connectivity:
    """
    Boolean "online" signal consulted at the start of each sync phase.

    Offline when forced by configuration or when no remote is configured;
    otherwise a short probe against the REST root.
    """

    def __init__(self, base_url: str, *, force_offline: bool = False, timeout: float = 3.0,
                 transport: httpx.BaseTransport | None = None):
        self.base_url = (base_url or "").rstrip("/")
        self.force_offline = force_offline
        self.timeout = timeout
        self._transport = transport

    def is_online(self) -> bool:
        if self.force_offline or not self.base_url:
            return False
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                client.get(f"{self.base_url}/rest/v1/")
        except httpx.HTTPError:
            return False
        return True


def _eq(value) -> str:
    if value is None:
        return "is.null"
    return f"eq.{value}"


def _error_details(response: httpx.Response) -> tuple[str | None, str]:
    try:
        body = response.json()
    except ValueError:
        return None, response.text[:500] or response.reason_phrase
    if isinstance(body, dict):
        return body.get("code"), body.get("message") or body.get("details") or response.reason_phrase
    return None, str(body)[:500]


def _rows(response: httpx.Response) -> list[dict]:
    if not response.content:
        return []
    body = response.json()
    if isinstance(body, dict):
        return [body]
    return body or []
