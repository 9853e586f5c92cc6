"""
Message types dispatched by the file transfer activity.

Messages fall into three disjoint categories, each with its own transition
function: pending-action messages, transfer messages and UI messages.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Id(str, Enum):
    """Mountable popup identifiers."""

    COPY_POPUP = "copy"
    DELETE_POPUP = "delete"
    DISCONNECT_POPUP = "disconnect"
    ERROR_POPUP = "error"
    EXEC_POPUP = "exec"
    FATAL_POPUP = "fatal"
    FILE_INFO_POPUP = "file_info"
    FIND_POPUP = "find"
    GOTO_POPUP = "goto"
    KEYBINDINGS_POPUP = "keybindings"
    MKDIR_POPUP = "mkdir"
    NEWFILE_POPUP = "newfile"
    OPEN_WITH_POPUP = "open_with"
    PROGRESS_BAR = "progress"
    QUIT_POPUP = "quit"
    RENAME_POPUP = "rename"
    REPLACE_POPUP = "replace"
    REPLACING_FILES_LIST_POPUP = "replacing_files_list"
    SAVE_AS_POPUP = "save_as"
    SORTING_POPUP = "sorting"
    SYMLINK_POPUP = "symlink"
    SYNC_BROWSING_MKDIR_POPUP = "sync_browsing_mkdir"
    WAIT_POPUP = "wait"
    WATCHED_PATHS_LIST = "watched_paths_list"
    WATCHER_POPUP = "watcher"


class ExitReason(str, Enum):
    """Why the activity asked to be unmounted."""

    QUIT = "quit"
    DISCONNECT = "disconnect"


class PendingActionMsg(str, Enum):
    ASK_EACH_CONFLICT = "ask_each_conflict"
    CLOSE_REPLACE_POPUPS = "close_replace_popups"
    CLOSE_SYNC_BROWSING_MKDIR_POPUP = "close_sync_browsing_mkdir_popup"
    MAKE_PENDING_DIRECTORY = "make_pending_directory"
    RESOLVE_CONFLICT = "resolve_conflict"
    TRANSFER_PENDING_FILE = "transfer_pending_file"


class TransferMsg(str, Enum):
    ABORT = "abort"
    COPY_FILE_TO = "copy_file_to"
    CREATE_SYMLINK = "create_symlink"
    DELETE_FILE = "delete_file"
    ENTER_DIRECTORY = "enter_directory"
    EXEC = "exec"
    GO_TO = "go_to"
    GO_TO_PARENT = "go_to_parent"
    GO_TO_PREVIOUS = "go_to_previous"
    MKDIR = "mkdir"
    NEW_FILE = "new_file"
    OPEN_FILE = "open_file"
    OPEN_FILE_WITH = "open_file_with"
    OPEN_TEXT_FILE = "open_text_file"
    RELOAD_DIR = "reload_dir"
    RENAME_FILE = "rename_file"
    SAVE_FILE_AS = "save_file_as"
    SEARCH = "search"
    TOGGLE_WATCH = "toggle_watch"
    TOGGLE_WATCH_FOR = "toggle_watch_for"
    TRANSFER_FILE = "transfer_file"


class UiMsg(str, Enum):
    CHANGE_FOCUS = "change_focus"
    CHANGE_SORTING = "change_sorting"
    CLEAR_MARKS = "clear_marks"
    CLOSE_FIND_EXPLORER = "close_find_explorer"
    CLOSE_POPUP = "close_popup"
    CURSOR_END = "cursor_end"
    CURSOR_HOME = "cursor_home"
    DISCONNECT = "disconnect"
    MARK_ALL = "mark_all"
    MOVE_CURSOR = "move_cursor"
    QUIT = "quit"
    SHOW_POPUP = "show_popup"
    TOGGLE_HIDDEN = "toggle_hidden"
    TOGGLE_LOG_PANEL = "toggle_log_panel"
    TOGGLE_MARK = "toggle_mark"
    TOGGLE_SYNC_BROWSING = "toggle_sync_browsing"


@dataclass(frozen=True)
class Msg:
    """One message plus its optional payload."""

    kind: Enum
    payload: Any = None
