from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable

from .api import ApiResponse, SmartBucketApi
from .auth_inputs import AuthInputError, MissingApiKeyError, api_key_preview, resolve_api_key
from .cli_shared import (
    RAINDROP_API_KEY,
    OpError,
    _env_or_none,
    _eprint,
    _format_json,
)
from .manifest import ManifestError, ManifestUpdate, ensure_bucket, read_manifest_text
from .render import (
    OUTCOME_OK,
    print_error,
    print_info,
    print_label,
    print_section,
    print_success,
    print_text,
    print_warning,
    render_response,
    render_search_results,
)
from .request_ids import normalize_request_id, request_id_or_new
from .session import Session

Prompt = Callable[[str], str]

RAINDROP_CLI = "raindrop"
RAINDROP_INSTALL_URL = "https://docs.liquidmetal.ai/getting-started/"


def _api_key_status() -> tuple[str, str]:
    """Return ``(api_key, problem)``; both are empty when no key is set."""

    try:
        return resolve_api_key(env_or_none=_env_or_none, api_key_env_names=(RAINDROP_API_KEY,)), ""
    except MissingApiKeyError:
        return "", ""
    except AuthInputError as e:
        return "", str(e)


def _api_or_none(session: Session) -> SmartBucketApi | None:
    api_key, problem = _api_key_status()
    if not api_key:
        print_error(problem or "API key not set. Please run setup first.")
        return None
    return SmartBucketApi(base_url=session.opts.base_url, api_key=api_key)


def _warn_no_bucket() -> None:
    print_warning("No bucket configured. Please run setup first.")


def _bucket_or_none(session: Session, prompt: Prompt) -> str | None:
    bucket = session.resolve_bucket(prompt, on_missing=_warn_no_bucket)
    if not bucket:
        print_error("Bucket name is required")
        return None
    print_info(f"Using bucket: {bucket}")
    return bucket


def _execute(
    session: Session,
    api: SmartBucketApi,
    description: str,
    send: Callable[[], ApiResponse],
    *,
    search: bool = False,
) -> str | None:
    """Perform one request and render it; transport failures are reported."""

    print_label(f"Executing: {description}")
    try:
        resp = send()
    except OpError as e:
        if api.last_request:
            print_text(f"Request: {api.last_request}")
        print_error(f"Request failed: {e}")
        return None
    print_text(f"Request: {api.last_request}")
    if api.last_payload is not None and not session.opts.quiet:
        _eprint(f"payload: {_format_json(api.last_payload, pretty=False)}")
    print_text()
    if search:
        outcome = render_search_results(resp, description, pretty=session.opts.pretty)
    else:
        outcome = render_response(resp, pretty=session.opts.pretty)
    print_text()
    return outcome


def cmd_setup(session: Session, prompt: Prompt) -> None:
    del prompt
    print_section("Setup Credentials")
    print_info(f"Set the {RAINDROP_API_KEY} environment variable to configure your API key:")
    print_text(f'  export {RAINDROP_API_KEY}="your_api_key_here"')
    print_text(f"  (or add {RAINDROP_API_KEY}=... to a .env file in this directory)")
    print_text()

    api_key, problem = _api_key_status()
    if api_key:
        print_success(f"API key is set: {api_key_preview(api_key, visible=16)}")
    elif problem:
        print_error(f"{RAINDROP_API_KEY} is set but unusable: {problem}")
    else:
        print_warning(f"{RAINDROP_API_KEY} environment variable not set")

    print_text()
    print_info(f"Bucket configuration comes from {session.opts.manifest_path} file")
    if session.bucket_name:
        print_success(f"Found bucket in manifest: {session.bucket_name}")
    else:
        print_warning("No buckets found in manifest file")
        print_info("Run option 2 to create a manifest with a bucket")


def build_smartbucket(session: Session) -> bool:
    print_section("Building SmartBucket")
    print_info(f"Running: {RAINDROP_CLI} build generate")
    exe = shutil.which(RAINDROP_CLI)
    if exe is None:
        print_error("Raindrop CLI not found. Please install it first.")
        print_info(f"You can install it from: {RAINDROP_INSTALL_URL}")
        return False
    cwd = session.manifest_path.resolve().parent
    try:
        subprocess.run([exe, "build", "generate"], cwd=str(cwd), check=True)
    except subprocess.CalledProcessError as e:
        print_error(f"{RAINDROP_CLI} build generate failed with exit code {e.returncode}")
        return False
    except OSError as e:
        print_error(f"failed to run {RAINDROP_CLI}: {e}")
        return False
    print_success("SmartBucket generated successfully")
    if session.bucket_name:
        print_info(f"Current bucket name: {session.bucket_name}")
    return True


def cmd_update_smartbucket(
    session: Session,
    prompt: Prompt,
    *,
    build: Callable[[Session], bool] = build_smartbucket,
) -> ManifestUpdate | None:
    print_section("Creating/Updating Raindrop Manifest")
    name = session.bucket_name or (prompt("Enter bucket name") or "").strip()
    if not name:
        print_error("Bucket name is required")
        return None

    path = session.manifest_path
    if path.exists():
        print_info("Manifest file exists. Checking for bucket definition...")
    else:
        print_info("Creating new manifest file")

    try:
        update = ensure_bucket(
            path,
            name,
            app_name_prompt=lambda: prompt("Enter application name (default: my-app)"),
        )
    except ManifestError as e:
        print_error(str(e))
        return None
    except OSError as e:
        print_error(f"failed to update {path}: {e}")
        return None

    if update.action == "unchanged":
        print_success(f"Bucket '{update.bucket_name}' already defined in manifest")
    elif update.action == "created":
        print_success(
            f"Created new manifest with application '{update.app_name}' and bucket '{update.bucket_name}'"
        )
    else:
        print_info(f"Adding bucket '{update.bucket_name}' to existing manifest")
        print_success("Added bucket to manifest")

    session.reload()
    if not session.bucket_name:
        session.bucket_name = update.bucket_name
    print_text()
    build(session)
    return update


def cmd_upload_document(session: Session, prompt: Prompt) -> str | None:
    print_section("Upload Document")
    api = _api_or_none(session)
    if api is None:
        return None

    raw_path = (prompt("Enter file path to upload") or "").strip()
    file_path = Path(raw_path).expanduser()
    if not raw_path or not file_path.is_file():
        print_error(f"File not found: {raw_path}")
        return None

    doc_key = (prompt("Enter document key (or press Enter for filename)") or "").strip()
    if not doc_key:
        doc_key = file_path.name

    bucket = _bucket_or_none(session, prompt)
    if bucket is None:
        return None

    outcome = _execute(
        session,
        api,
        f"Upload document '{doc_key}'",
        lambda: api.upload_file(bucket=bucket, key=doc_key, file_path=file_path),
    )
    if outcome != OUTCOME_OK:
        print_warning("If the bucket doesn't exist, run option 2 to create it first")
    return outcome


def cmd_list_documents(session: Session, prompt: Prompt) -> str | None:
    print_section("List Documents")
    api = _api_or_none(session)
    if api is None:
        return None
    bucket = _bucket_or_none(session, prompt)
    if bucket is None:
        return None

    outcome = _execute(session, api, "List documents in bucket", lambda: api.list_objects(bucket=bucket))
    if outcome != OUTCOME_OK:
        print_warning("If the bucket doesn't exist, you may need to:")
        print_info("1. Run option 2 (Create/Update SmartBucket) to build and deploy the bucket")
        print_info(f"2. Make sure the bucket name '{bucket}' is correct")
        print_info("3. Verify your API key has access to this bucket")
    return outcome


def cmd_delete_document(session: Session, prompt: Prompt) -> str | None:
    print_section("Delete Document")
    api = _api_or_none(session)
    if api is None:
        return None
    doc_key = (prompt("Enter document key to delete") or "").strip()
    if not doc_key:
        print_error("Document key is required")
        return None
    bucket = _bucket_or_none(session, prompt)
    if bucket is None:
        return None

    return _execute(
        session,
        api,
        f"Delete document '{doc_key}'",
        lambda: api.delete_object(bucket=bucket, key=doc_key),
    )


def _request_id_from_prompt(prompt: Prompt) -> str:
    request_id, generated = request_id_or_new(prompt("Enter request ID (press Enter to generate new)"))
    if generated:
        print_info(f"Generated request ID: {request_id}")
    return request_id


def cmd_semantic_search(session: Session, prompt: Prompt) -> str | None:
    print_section("Semantic Search")
    api = _api_or_none(session)
    if api is None:
        return None
    query = (prompt("Enter search query") or "").strip()
    if not query:
        print_error("Search query is required")
        return None
    request_id = _request_id_from_prompt(prompt)
    bucket = _bucket_or_none(session, prompt)
    if bucket is None:
        return None

    outcome = _execute(
        session,
        api,
        "Initiate semantic search",
        lambda: api.search(query=query, bucket=bucket, request_id=request_id),
    )
    if outcome != OUTCOME_OK:
        return outcome

    print_info("Getting first page of results...")
    return _execute(
        session,
        api,
        "Search Results (page 1)",
        lambda: api.search_get_page(request_id=request_id, page=1),
        search=True,
    )


def _parse_page(raw: str | None) -> int | None:
    text = (raw or "").strip()
    if not text:
        return 1
    try:
        page = int(text)
    except ValueError:
        return None
    return page if page >= 1 else None


def cmd_get_search_page(session: Session, prompt: Prompt) -> str | None:
    print_section("Get Search Page")
    api = _api_or_none(session)
    if api is None:
        return None
    request_id = normalize_request_id(prompt("Enter request ID from previous search"))
    if not request_id:
        print_error("Request ID is required")
        return None
    raw_page = prompt("Enter page number")
    page = _parse_page(raw_page)
    if page is None:
        print_error(f"Invalid page number: {(raw_page or '').strip()} (expected a positive integer)")
        return None

    print_info(f"Getting page {page} for request ID: {request_id}")
    return _execute(
        session,
        api,
        f"Search Results (page {page})",
        lambda: api.search_get_page(request_id=request_id, page=page),
        search=True,
    )


def cmd_document_query(session: Session, prompt: Prompt) -> str | None:
    print_section("Natural Language Document Query")
    api = _api_or_none(session)
    if api is None:
        return None
    question = (prompt("Enter your question") or "").strip()
    if not question:
        print_error("Question is required")
        return None
    request_id = _request_id_from_prompt(prompt)
    bucket = _bucket_or_none(session, prompt)
    if bucket is None:
        return None

    return _execute(
        session,
        api,
        "Document query",
        lambda: api.document_query(query=question, bucket=bucket, request_id=request_id),
    )


def cmd_summarize_document(session: Session, prompt: Prompt) -> str | None:
    print_section("Summarize Document/Page")
    api = _api_or_none(session)
    if api is None:
        return None
    doc_key = (prompt("Enter document key") or "").strip()
    if not doc_key:
        print_error("Document key is required")
        return None
    page = (prompt("Enter page number (optional, press Enter for entire document)") or "").strip()
    bucket = _bucket_or_none(session, prompt)
    if bucket is None:
        return None

    return _execute(
        session,
        api,
        "Summarize document",
        lambda: api.summarize(key=doc_key, bucket=bucket, page=page or None),
    )


def _manifest_text_or_none(path: Path) -> str | None:
    try:
        return read_manifest_text(path)
    except ManifestError as e:
        print_error(str(e))
        return None


def cmd_show_config(session: Session, prompt: Prompt) -> None:
    del prompt
    print_section("Current Configuration")
    print_label("Environment Variables:")
    api_key, problem = _api_key_status()
    if api_key:
        print_text(f"  {RAINDROP_API_KEY} = {api_key_preview(api_key, visible=10)} (truncated)")
    elif problem:
        print_text(f"  {RAINDROP_API_KEY} = INVALID ({problem})")
    else:
        print_text(f"  {RAINDROP_API_KEY} = NOT SET")

    print_text()
    print_label("Session:")
    print_text(f"  BUCKET_NAME = {session.bucket_name} (from manifest)")
    print_text(f"  API_BASE_URL = {session.opts.base_url}")

    print_text()
    if not session.manifest_path.is_file():
        print_warning("No manifest file found")
        return
    text = _manifest_text_or_none(session.manifest_path)
    if text is None:
        return
    print_label(f"Manifest file: {session.manifest_path}")
    print_text(text.rstrip("\n"))


def cmd_debug_bucket(session: Session, prompt: Prompt) -> None:
    del prompt
    print_section("Debug Bucket Resolution")

    print_label("Step 1: Current session variables")
    print_text(f"  BUCKET_NAME = '{session.bucket_name}'")

    print_text()
    print_label("Step 2: Bucket configuration")
    if session.bucket_name:
        print_text(f"  Using bucket name directly: {session.bucket_name}")
        print_success("Bucket name configured")
    else:
        print_error("No bucket name configured")

    print_text()
    print_label("Step 3: Environment variables")
    api_key, problem = _api_key_status()
    if api_key:
        print_text(f"  {RAINDROP_API_KEY}: {api_key_preview(api_key, visible=10)} (truncated)")
    elif problem:
        print_text(f"  {RAINDROP_API_KEY}: INVALID ({problem})")
    else:
        print_text(f"  {RAINDROP_API_KEY}: NOT SET")

    print_text()
    print_label("Step 4: Manifest file check")
    if not session.manifest_path.is_file():
        print_text("  No manifest file found")
        return
    print_text(f"  Manifest file exists: {session.manifest_path}")
    text = _manifest_text_or_none(session.manifest_path)
    if text is None:
        return
    print_text("  Contents:")
    for line in text.splitlines():
        print_text(f"    {line}")
