from __future__ import annotations

from typing import Any, Callable

from . import commands
from .cli_shared import SmartBucketOpsError
from .commands import Prompt
from .render import _CONSOLE, _rich_error, print_error, print_success, print_text
from .session import Session

CHOICE_EXIT = "0"
CHOICE_GET_PAGE = "7"
INVALID_CHOICE_MESSAGE = "Invalid option. Please choose 0-10 or d."

Action = Callable[[Session, Prompt], Any]

MENU: list[tuple[str, str, Action | None]] = [
    ("1", "Setup credentials and configuration", commands.cmd_setup),
    ("2", "Create/Update SmartBucket (manifest + build)", commands.cmd_update_smartbucket),
    ("3", "Upload document", commands.cmd_upload_document),
    ("4", "List documents", commands.cmd_list_documents),
    ("5", "Delete document", commands.cmd_delete_document),
    ("6", "Semantic search", commands.cmd_semantic_search),
    (CHOICE_GET_PAGE, "Get additional search pages", commands.cmd_get_search_page),
    ("8", "Natural language document query", commands.cmd_document_query),
    ("9", "Summarize document/page", commands.cmd_summarize_document),
    ("10", "Show current configuration", commands.cmd_show_config),
    ("d", "Debug bucket resolution", commands.cmd_debug_bucket),
    (CHOICE_EXIT, "Exit", None),
]

ACTIONS: dict[str, Action] = {choice: action for choice, _label, action in MENU if action is not None}


def show_menu() -> None:
    print_text()
    _CONSOLE.print("Select an option:", style="yellow", markup=False)
    for choice, label, _action in MENU:
        print_text(f"{choice}. {label}")
    print_text()


def dispatch(choice: str, session: Session, prompt: Prompt) -> bool:
    """Run one menu choice; return False when the loop should stop."""

    key = (choice or "").strip().lower()
    if key == CHOICE_EXIT:
        print_success("Goodbye!")
        return False
    action = ACTIONS.get(key)
    if action is None:
        print_error(INVALID_CHOICE_MESSAGE)
        return True
    try:
        action(session, prompt)
    except SmartBucketOpsError as e:
        _rich_error(str(e))
    return True


def run_menu(
    session: Session,
    prompt: Prompt,
    *,
    pause: Callable[[], None] | None = None,
) -> int:
    while True:
        show_menu()
        choice = prompt("Enter your choice [0-10,d]")
        if not dispatch(choice, session, prompt):
            return 0
        print_text()
        if pause is not None:
            pause()
