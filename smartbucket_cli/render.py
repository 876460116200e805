from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape

from .api import ApiResponse
from .cli_shared import _format_json

OUTCOME_OK = "ok"
OUTCOME_API_ERROR = "api_error"
OUTCOME_AUTH_ERROR = "auth_error"

MSG_API_ERROR = "API returned an error"
MSG_AUTH_ERROR = "Authentication failed - check your API key"
MSG_SUCCESS = "Request completed successfully"
MORE_PAGES_HINT = "More pages available - use option 7 to get next page"

_AUTH_CODES = {"unauthenticated", "unauthorized", "permission_denied", "forbidden"}
_ERROR_STATUSES = {"not_found", "error", "failed"}
_NO_ERROR_CODES = {"", "none", "ok", "0"}

# Heuristic for bodies that are not JSON objects: plain substring checks,
# errors before auth failures. Legitimate content containing these words
# is misreported.
_TEXT_ERROR_MARKERS = ("not_found", "error", "Error", "ERROR")
_TEXT_AUTH_MARKERS = ("unauthorized", "Unauthorized", "UNAUTHORIZED")

_CONSOLE = Console(highlight=False, soft_wrap=True, emoji=False)
_ERROR_CONSOLE = Console(stderr=True, highlight=False, soft_wrap=True, emoji=False)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}")


def print_header() -> None:
    bar = "=" * 48
    _CONSOLE.print(f"[cyan]{bar}[/cyan]")
    _CONSOLE.print("[cyan]    Raindrop SmartBucket Manager[/cyan]")
    _CONSOLE.print(f"[cyan]{bar}[/cyan]")
    _CONSOLE.print("")


def print_section(title: str) -> None:
    _CONSOLE.print(f"--- {title} ---", style="blue", markup=False)


def print_success(msg: str) -> None:
    _CONSOLE.print(f"✓ {msg}", style="green", markup=False)


def print_error(msg: str) -> None:
    _CONSOLE.print(f"✗ {msg}", style="red", markup=False)


def print_warning(msg: str) -> None:
    _CONSOLE.print(f"⚠ {msg}", style="yellow", markup=False)


def print_info(msg: str) -> None:
    _CONSOLE.print(f"ℹ {msg}", style="magenta", markup=False)


def print_label(msg: str) -> None:
    _CONSOLE.print(msg, style="cyan", markup=False)


def print_text(msg: str = "") -> None:
    _CONSOLE.print(msg, markup=False)


def _field_text(val: Any) -> str:
    if isinstance(val, bool) or val is None:
        return ""
    if isinstance(val, (str, int, float)):
        return str(val).strip().lower()
    return ""


def _is_error_code(code: str) -> bool:
    if code in _NO_ERROR_CODES:
        return False
    if code.isdigit():
        n = int(code)
        return not (n == 0 or 200 <= n < 300)
    return True


def _classify_json_object(doc: dict[str, Any]) -> str:
    code = _field_text(doc.get("code"))
    status = _field_text(doc.get("status"))
    error_code = _field_text(doc.get("errorCode"))
    err = doc.get("error")
    if isinstance(err, dict):
        err_text = _field_text(err.get("code")) or _field_text(err.get("status")) or "error"
    elif isinstance(err, str):
        err_text = err.strip().lower()
    else:
        err_text = "error" if err else ""

    if {code, status, error_code, err_text} & _AUTH_CODES:
        return OUTCOME_AUTH_ERROR
    if err_text and err_text not in _NO_ERROR_CODES:
        return OUTCOME_API_ERROR
    if status in _ERROR_STATUSES:
        return OUTCOME_API_ERROR
    if _is_error_code(code) or _is_error_code(error_code):
        return OUTCOME_API_ERROR
    return OUTCOME_OK


def _classify_text(text: str) -> str:
    if any(m in text for m in _TEXT_ERROR_MARKERS):
        return OUTCOME_API_ERROR
    if any(m in text for m in _TEXT_AUTH_MARKERS):
        return OUTCOME_AUTH_ERROR
    return OUTCOME_OK


def classify_response(resp: ApiResponse) -> str:
    if resp.status in (401, 403):
        return OUTCOME_AUTH_ERROR
    if resp.status >= 400:
        return OUTCOME_API_ERROR
    doc = resp.json
    if isinstance(doc, dict):
        return _classify_json_object(doc)
    return _classify_text(resp.text)


def format_body(resp: ApiResponse, *, pretty: bool = True) -> str:
    doc = resp.json
    if doc is not None:
        return _format_json(doc, pretty=pretty)
    return resp.text


def _print_outcome(outcome: str) -> None:
    if outcome == OUTCOME_AUTH_ERROR:
        print_error(MSG_AUTH_ERROR)
    elif outcome == OUTCOME_API_ERROR:
        print_error(MSG_API_ERROR)
    else:
        print_success(MSG_SUCCESS)


def render_response(resp: ApiResponse, *, pretty: bool = True) -> str:
    print_label("Response:")
    print_text(format_body(resp, pretty=pretty))
    print_text()
    outcome = classify_response(resp)
    if outcome != OUTCOME_OK:
        print_text(f"HTTP status: {resp.status}")
    _print_outcome(outcome)
    return outcome


def _or_na(val: Any) -> str:
    if val is None:
        return "N/A"
    return str(val)


def _score_text(val: Any) -> str:
    if val is None or isinstance(val, bool):
        return "0"
    return str(val)


def _result_lines(entry: Any) -> list[str]:
    if not isinstance(entry, dict):
        entry = {}
    source = entry.get("source")
    object_key = source.get("objectKey") if isinstance(source, dict) else None
    return [
        f"Result ID: {_or_na(entry.get('chunkSignature'))}",
        f"Source: {_or_na(object_key)}",
        f"Content: {_or_na(entry.get('content'))}",
        f"Score: {_score_text(entry.get('score'))}",
        "-" * 50,
    ]


def display_search_results(resp: ApiResponse, description: str, *, pretty: bool = True) -> None:
    print_label(f"{description}:")
    doc = resp.json
    results = doc.get("results") if isinstance(doc, dict) else None
    if not isinstance(results, list):
        print_warning("No results field found in response")
        print_text(format_body(resp, pretty=pretty))
        print_text()
        return

    _CONSOLE.print(f"Found {len(results)} result(s)", style="green", markup=False)
    print_text()
    for entry in results:
        for line in _result_lines(entry):
            print_text(line)

    has_more = doc.get("hasMorePages")
    if has_more is not None:
        current_page = doc.get("currentPage")
        if current_page is None:
            current_page = 1
        print_text()
        _CONSOLE.print(f"Pagination: Page {current_page}", style="yellow", markup=False)
        if has_more is True:
            _CONSOLE.print(MORE_PAGES_HINT, style="yellow", markup=False)
        else:
            _CONSOLE.print("This is the last page", style="green", markup=False)
    print_text()


def render_search_results(resp: ApiResponse, description: str, *, pretty: bool = True) -> str:
    outcome = classify_response(resp)
    if outcome != OUTCOME_OK:
        _print_outcome(outcome)
        print_text(format_body(resp, pretty=pretty))
        return outcome
    print_success(MSG_SUCCESS)
    display_search_results(resp, description, pretty=pretty)
    return outcome
