from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import cached_property
from http.client import HTTPException
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .auth_inputs import bearer_headers
from .cli_shared import OpError

PATH_PUT_OBJECT = "/v1/bucket/{bucket}/{key}"
PATH_LIST_OBJECTS = "/v1/list_objects"
PATH_SEARCH = "/v1/search"
PATH_SEARCH_GET_PAGE = "/v1/search_get_page"
PATH_DOCUMENT_QUERY = "/v1/document_query"


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: float | None = None,
) -> tuple[int, dict[str, str], bytes]:
    req = Request(url, data=body, method=str(method).upper())
    for k, v in headers.items():
        req.add_header(k, v)
    kwargs: dict[str, Any] = {}
    if timeout_seconds is not None:
        kwargs["timeout"] = timeout_seconds
    try:
        with urlopen(req, **kwargs) as resp:
            status = getattr(resp, "status", 200)
            hdrs = {k.lower(): v for k, v in dict(resp.headers).items()}
            data = resp.read()
            return int(status), hdrs, data
    except HTTPError as e:
        hdrs = {k.lower(): v for k, v in dict(e.headers or {}).items()}
        try:
            data = e.read() if hasattr(e, "read") else b""
        except (HTTPException, OSError) as read_err:
            raise OpError(f"http request failed: {read_err}") from read_err
        return int(getattr(e, "code", 0) or 0), hdrs, data
    except (URLError, HTTPException, OSError) as e:
        raise OpError(f"http request failed: {e}") from e


@dataclass(frozen=True)
class ApiResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @cached_property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @cached_property
    def json(self) -> Any:
        """Parsed body, or ``None`` when the body is empty or not JSON."""
        raw = self.text.strip()
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None


def _bucket_locations(bucket: str) -> list[dict[str, Any]]:
    return [{"bucket": {"name": bucket}}]


def list_objects_payload(bucket: str) -> dict[str, Any]:
    return {"bucket_location": {"bucket": {"name": bucket}}}


def search_payload(*, query: str, bucket: str, request_id: str = "") -> dict[str, Any]:
    payload: dict[str, Any] = {"input": query, "bucket_locations": _bucket_locations(bucket)}
    if request_id:
        payload["request_id"] = request_id
    return payload


def search_get_page_payload(*, request_id: str, page: int) -> dict[str, Any]:
    return {"request_id": request_id, "page": int(page)}


def document_query_payload(*, query: str, bucket: str, request_id: str = "") -> dict[str, Any]:
    payload: dict[str, Any] = {"input": query, "bucket_locations": _bucket_locations(bucket)}
    if request_id:
        payload["request_id"] = request_id
    return payload


def summary_prompt(*, key: str, page: str | int | None = None) -> str:
    page_text = str(page if page is not None else "").strip()
    if page_text:
        return f"Summarize page {page_text} of the document {key}"
    return f"Summarize the document {key}"


def summarize_payload(*, key: str, bucket: str, page: str | int | None = None) -> dict[str, Any]:
    return {
        "input": summary_prompt(key=key, page=page),
        "bucket_locations": _bucket_locations(bucket),
    }


def object_path(*, bucket: str, key: str) -> str:
    return PATH_PUT_OBJECT.format(
        bucket=quote(bucket, safe=""),
        key=quote(key.lstrip("/"), safe="/"),
    )


class SmartBucketApi:
    """One method per remote operation; each performs exactly one request."""

    def __init__(self, *, base_url: str, api_key: str) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.last_request: str = ""
        self.last_payload: dict[str, Any] | None = None

    def _url(self, path: str) -> str:
        p = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{p}"

    def _send(
        self,
        *,
        method: str,
        path: str,
        body: bytes | None = None,
        content_type: str = "",
        payload: dict[str, Any] | None = None,
    ) -> ApiResponse:
        url = self._url(path)
        headers = bearer_headers(self._api_key)
        if content_type:
            headers["content-type"] = content_type
        self.last_request = f"{method} {url}"
        self.last_payload = payload
        status, hdrs, data = _http_request(method=method, url=url, headers=headers, body=body)
        return ApiResponse(status=status, headers=hdrs, body=data)

    def _post_json(self, path: str, payload: dict[str, Any]) -> ApiResponse:
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return self._send(
            method="POST", path=path, body=body, content_type="application/json", payload=payload
        )

    def put_object(self, *, bucket: str, key: str, data: bytes) -> ApiResponse:
        return self._send(
            method="PUT",
            path=object_path(bucket=bucket, key=key),
            body=data,
            content_type="application/octet-stream",
        )

    def upload_file(self, *, bucket: str, key: str, file_path: str | Path) -> ApiResponse:
        try:
            data = Path(file_path).read_bytes()
        except OSError as e:
            raise OpError(f"failed to read {file_path}: {e}") from e
        return self.put_object(bucket=bucket, key=key, data=data)

    def delete_object(self, *, bucket: str, key: str) -> ApiResponse:
        return self._send(method="DELETE", path=object_path(bucket=bucket, key=key))

    def list_objects(self, *, bucket: str) -> ApiResponse:
        return self._post_json(PATH_LIST_OBJECTS, list_objects_payload(bucket))

    def search(self, *, query: str, bucket: str, request_id: str = "") -> ApiResponse:
        return self._post_json(
            PATH_SEARCH, search_payload(query=query, bucket=bucket, request_id=request_id)
        )

    def search_get_page(self, *, request_id: str, page: int) -> ApiResponse:
        return self._post_json(
            PATH_SEARCH_GET_PAGE, search_get_page_payload(request_id=request_id, page=page)
        )

    def document_query(self, *, query: str, bucket: str, request_id: str = "") -> ApiResponse:
        return self._post_json(
            PATH_DOCUMENT_QUERY,
            document_query_payload(query=query, bucket=bucket, request_id=request_id),
        )

    def summarize(self, *, key: str, bucket: str, page: str | int | None = None) -> ApiResponse:
        return self._post_json(PATH_DOCUMENT_QUERY, summarize_payload(key=key, bucket=bucket, page=page))
