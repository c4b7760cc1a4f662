"""
TheCatAPI passthrough: random images and votes.
"""
from typing import Any, Optional

import httpx

from logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

RATE_LIMITED_IMAGE = "https://http.cat/429"


class CatApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class CatApi:
    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key
        self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def _params(self, **extra) -> dict:
        params = dict(extra)
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    def _call(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = self._http.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json()
            except ValueError:
                body = None
            logger.error("TheCatAPI %s %s returned %s", method, path, e.response.status_code)
            raise CatApiError("TheCatAPI error", e.response.status_code, body) from e
        except httpx.HTTPError as e:
            logger.error("TheCatAPI unreachable: %s", e)
            raise CatApiError("TheCatAPI unreachable") from e
        return resp

    def search(self, limit: int) -> Any:
        return self._call("GET", "/images/search", params=self._params(limit=limit)).json()

    def vote(self, image_id: Any, value: Any) -> httpx.Response:
        """Forward the vote exactly as received"""
        return self._call("POST", "/votes", params=self._params(), json={"image_id": image_id, "value": value})
