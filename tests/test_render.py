from __future__ import annotations

import json
import re

import pytest

from smartbucket_cli.api import ApiResponse
from smartbucket_cli.render import (
    MORE_PAGES_HINT,
    OUTCOME_API_ERROR,
    OUTCOME_AUTH_ERROR,
    OUTCOME_OK,
    classify_response,
    display_search_results,
    format_body,
    render_response,
    render_search_results,
)

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


def _plain(s: str) -> str:
    return _ANSI_RE.sub("", s)


def _json_resp(obj, *, status: int = 200) -> ApiResponse:
    return ApiResponse(status=status, body=json.dumps(obj).encode("utf-8"))


def _text_resp(text: str, *, status: int = 200) -> ApiResponse:
    return ApiResponse(status=status, body=text.encode("utf-8"))


@pytest.mark.parametrize(
    "resp,expected",
    [
        (_json_resp({"status": "not_found"}), OUTCOME_API_ERROR),
        (_json_resp({"errorCode": "NONE", "objects": []}), OUTCOME_OK),
        (_json_resp({"code": "not_found", "message": "bucket missing"}), OUTCOME_API_ERROR),
        (_json_resp({"code": "unauthenticated", "message": "bad key"}), OUTCOME_AUTH_ERROR),
        (_json_resp({"error": {"code": "permission_denied"}}), OUTCOME_AUTH_ERROR),
        (_json_resp({"error": "boom"}), OUTCOME_API_ERROR),
        (_json_resp({"error": True}), OUTCOME_API_ERROR),
        (_json_resp({"error": None, "results": []}), OUTCOME_OK),
        (_json_resp({"code": 200, "status": "ok"}), OUTCOME_OK),
        (_json_resp({"code": 500}), OUTCOME_API_ERROR),
        (_json_resp({"content": "this chunk mentions an Error in the text"}), OUTCOME_OK),
        (_json_resp({"message": "fine"}, status=401), OUTCOME_AUTH_ERROR),
        (_json_resp({"message": "fine"}, status=403), OUTCOME_AUTH_ERROR),
        (_json_resp({"message": "fine"}, status=500), OUTCOME_API_ERROR),
        (_text_resp("404 page not found", status=404), OUTCOME_API_ERROR),
    ],
)
def test_classify_response_structured(resp, expected):
    assert classify_response(resp) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("upstream ERROR occurred", OUTCOME_API_ERROR),
        ("object not_found", OUTCOME_API_ERROR),
        ("Unauthorized", OUTCOME_AUTH_ERROR),
        ("UNAUTHORIZED request", OUTCOME_AUTH_ERROR),
        ("unauthorized: error validating key", OUTCOME_API_ERROR),
        ("", OUTCOME_OK),
        ("uploaded", OUTCOME_OK),
    ],
)
def test_classify_response_text_fallback(text, expected):
    assert classify_response(_text_resp(text)) == expected


def test_classify_response_json_array_uses_text_fallback():
    assert classify_response(_json_resp([{"status": "error"}])) == OUTCOME_API_ERROR
    assert classify_response(_json_resp([{"name": "a"}])) == OUTCOME_OK


def test_format_body_pretty_compact_and_raw():
    resp = _json_resp({"a": {"b": 1}})
    assert format_body(resp) == '{\n  "a": {\n    "b": 1\n  }\n}'
    assert format_body(resp, pretty=False) == '{"a":{"b":1}}'
    assert format_body(_text_resp("not json [x]")) == "not json [x]"


def test_render_response_success(capsys):
    outcome = render_response(_json_resp({"objects": [{"key": "a.txt"}]}))
    out = _plain(capsys.readouterr().out)
    assert outcome == OUTCOME_OK
    assert "Response:" in out
    assert '"key": "a.txt"' in out
    assert "✓ Request completed successfully" in out


def test_render_response_api_error_shows_status(capsys):
    outcome = render_response(_json_resp({"code": "not_found", "message": "no bucket"}, status=404))
    out = _plain(capsys.readouterr().out)
    assert outcome == OUTCOME_API_ERROR
    assert "HTTP status: 404" in out
    assert "✗ API returned an error" in out


def test_render_response_auth_error(capsys):
    outcome = render_response(_text_resp("Unauthorized", status=401))
    out = _plain(capsys.readouterr().out)
    assert outcome == OUTCOME_AUTH_ERROR
    assert "Authentication failed - check your API key" in out


def _search_body(**extra):
    body = {
        "results": [
            {
                "chunkSignature": "sig-1",
                "source": {"objectKey": "a.txt"},
                "content": "first chunk",
                "score": 0.91,
            },
            {
                "chunkSignature": "sig-2",
                "source": {"objectKey": "b.pdf"},
                "content": "second chunk",
                "score": 0.5,
            },
        ]
    }
    body.update(extra)
    return body


def test_render_search_results_lists_entries_and_more_pages(capsys):
    outcome = render_search_results(
        _json_resp(_search_body(hasMorePages=True, currentPage=1)),
        "Search Results (page 1)",
    )
    out = _plain(capsys.readouterr().out)
    assert outcome == OUTCOME_OK
    assert "Search Results (page 1):" in out
    assert "Found 2 result(s)" in out
    for needle in (
        "Result ID: sig-1",
        "Source: a.txt",
        "Content: first chunk",
        "Score: 0.91",
        "Result ID: sig-2",
        "Source: b.pdf",
        "Score: 0.5",
    ):
        assert needle in out
    assert out.count("-" * 50) == 2
    assert "Pagination: Page 1" in out
    assert MORE_PAGES_HINT in out


def test_render_search_results_last_page(capsys):
    render_search_results(_json_resp(_search_body(hasMorePages=False, currentPage=3)), "Search Results (page 3)")
    out = _plain(capsys.readouterr().out)
    assert "Pagination: Page 3" in out
    assert "This is the last page" in out
    assert MORE_PAGES_HINT not in out


def test_render_search_results_defaults_missing_fields(capsys):
    display_search_results(_json_resp({"results": [{}], "hasMorePages": True}), "Results")
    out = _plain(capsys.readouterr().out)
    assert "Result ID: N/A" in out
    assert "Source: N/A" in out
    assert "Content: N/A" in out
    assert "Score: 0" in out
    assert "Pagination: Page 1" in out


def test_render_search_results_without_pagination_fields(capsys):
    display_search_results(_json_resp({"results": []}), "Results")
    out = _plain(capsys.readouterr().out)
    assert "Found 0 result(s)" in out
    assert "Pagination" not in out


def test_render_search_results_without_results_field(capsys):
    outcome = render_search_results(_json_resp({"status": "pending"}), "Search Results (page 1)")
    out = _plain(capsys.readouterr().out)
    assert outcome == OUTCOME_OK
    assert "No results field found in response" in out
    assert '"status": "pending"' in out


def test_render_search_results_reports_errors_without_listing(capsys):
    outcome = render_search_results(
        _json_resp({"code": "not_found", "message": "unknown request id"}, status=404),
        "Search Results (page 2)",
    )
    out = _plain(capsys.readouterr().out)
    assert outcome == OUTCOME_API_ERROR
    assert "API returned an error" in out
    assert "unknown request id" in out
    assert "Found" not in out
