from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from domain.errors import ApiError, ParseError

logger = logging.getLogger(__name__)

USER_AGENT = "cryptoprice/0.1.0"


def build_session(pool_size: int = 4) -> requests.Session:
    """Pooled session shared by all calls of one provider. No retries are configured."""

    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class HttpClient:
    """GET helper used by the provider implementations.

    Non-success statuses become ``ApiError`` carrying the status and body;
    undecodable JSON becomes ``ParseError``. Floats in JSON bodies are decoded
    straight into ``Decimal``.
    """

    def __init__(
        self,
        *,
        label: str,
        base_url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.label = label
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or build_session()

    def get_text(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        return self._request(path, params=params, headers=headers).text

    def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        response = self._request(path, params=params, headers=headers)
        try:
            return response.json(parse_float=Decimal)
        except ValueError as exc:
            raise ParseError(f"{self.label} JSON: {exc}") from exc

    def _request(
        self,
        path: str,
        *,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s params=%s (%s)", url, params, self.label)
        try:
            response = self._session.request("GET", url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            status_code = getattr(resp, "status_code", None)
            body = getattr(resp, "text", "")
            raise ApiError(f"{self.label} returned {status_code}: {body}", status_code=status_code, payload=body) from exc
        except requests.RequestException as exc:
            raise ApiError(f"{self.label} request failed: {exc}") from exc

        logger.debug("%s responded with status %s", self.label, response.status_code)
        return response


def parse_decimal(value: Any, *, source: str, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ParseError(f"{source}: non-numeric '{field}' value {value!r}")
    try:
        parsed = Decimal(str(value).strip())
    except ArithmeticError as exc:
        raise ParseError(f"{source}: non-numeric '{field}' value {value!r}") from exc
    if not parsed.is_finite():
        raise ParseError(f"{source}: non-finite '{field}' value {value!r}")
    return parsed


def parse_optional_decimal(value: Any, *, source: str, field: str) -> Decimal | None:
    if value is None:
        return None
    return parse_decimal(value, source=source, field=field)


__all__ = ["HttpClient", "USER_AGENT", "build_session", "parse_decimal", "parse_optional_decimal"]
