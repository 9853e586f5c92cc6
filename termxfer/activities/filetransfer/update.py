"""
Transition functions, one per message category.

Each function applies one message to the activity and returns an optional
follow-up message; the activity keeps dispatching until none is left.
"""
import logging

from ...errors import CapacityExceeded, TermxferError, TransferAborted
from ...explorer import FileSorting
from . import actions
from .browser import Side, SyncStatus
from .messages import Id, Msg, PendingActionMsg, TransferMsg, UiMsg
from .pending import PendingKind
from .transfer import TransferDecision, TransferDirection

LOGGER = logging.getLogger(__name__)


def dispatch(act, msg):
    if isinstance(msg.kind, PendingActionMsg):
        return update_pending(act, msg)
    if isinstance(msg.kind, TransferMsg):
        return update_transfer(act, msg)
    if isinstance(msg.kind, UiMsg):
        return update_ui(act, msg)
    raise TypeError(f'unknown message kind: {msg.kind!r}')


# ----------------------------------------------------------------------
# Pending actions
# ----------------------------------------------------------------------

def update_pending(act, msg):
    kind = msg.kind
    if kind == PendingActionMsg.ASK_EACH_CONFLICT:
        act.executor.queue.ask_each = True
        act.view.umount(Id.REPLACING_FILES_LIST_POPUP)
        return Msg(UiMsg.SHOW_POPUP, Id.REPLACE_POPUP)
    elif kind == PendingActionMsg.CLOSE_REPLACE_POPUPS:
        act.view.umount(Id.REPLACE_POPUP)
        act.view.umount(Id.REPLACING_FILES_LIST_POPUP)
    elif kind == PendingActionMsg.CLOSE_SYNC_BROWSING_MKDIR_POPUP:
        act.view.umount(Id.SYNC_BROWSING_MKDIR_POPUP)
        act.pending.drop_kind(PendingKind.MAKE_DIRECTORY_THEN)
        if act.browser.sync_browsing:
            act.browser.toggle_sync_browsing()
    elif kind == PendingActionMsg.MAKE_PENDING_DIRECTORY:
        act.view.umount(Id.SYNC_BROWSING_MKDIR_POPUP)
        act.pending.confirm(PendingKind.MAKE_DIRECTORY_THEN)
    elif kind == PendingActionMsg.RESOLVE_CONFLICT:
        entry = act.executor.resolve(msg.payload)
        if entry is not None:
            LOGGER.debug('conflict on %s resolved: %s', entry.dest_path, TransferDecision(msg.payload).value)
        return Msg(PendingActionMsg.CLOSE_REPLACE_POPUPS)
    elif kind == PendingActionMsg.TRANSFER_PENDING_FILE:
        act.run_transfers()
    return None


def run_pending_action(act, action):
    """Effect of a pending action whose precondition holds."""
    if action.kind == PendingKind.MAKE_DIRECTORY_THEN:
        actions.make_directory(act, action.side, action.path)
    return action.then


# ----------------------------------------------------------------------
# Transfer
# ----------------------------------------------------------------------

def _focused_side(act):
    """Side the focused explorer belongs to."""
    browser = act.browser
    if browser.found is not None:
        return browser.found_side
    return browser.focus


def _selection(act):
    return act.browser.focused_explorer().selection()


def _selected(act):
    return act.browser.focused_explorer().selected_entry()


def _side_path(act, payload):
    """Payload is either a path on the focused side or a (side, path) pair."""
    if isinstance(payload, tuple):
        side, path = payload
        return Side(side), path
    side = _focused_side(act)
    return side, act.browser.resolve_path(side, payload)


def _require_remote(act):
    if act.session.connected:
        return True
    act.show_error('Not connected to the remote host')
    return False


def _sync_after_move(act, side):
    if act.browser.sync_browsing:
        return handle_sync_result(act, act.browser.equalize(side))
    return None


def handle_sync_result(act, result):
    """Mount the mkdir confirmation when the mirrored directory is missing."""
    if result.status == SyncStatus.MISSING:
        act.pending.make_directory_then(
            result.side,
            result.path,
            then=Msg(TransferMsg.GO_TO, (result.side, result.path)),
        )
        act.view.show_sync_browsing_mkdir(result.path)
    return None


def _reload(act, *sides):
    for side in sides or (Side.LOCAL, Side.REMOTE):
        if side == Side.REMOTE and not act.session.connected:
            continue
        act.browser.list(side)


def _for_selection(act, label, operation):
    """Apply `operation(side, entry)` to the selection, reporting each failure."""
    side = _focused_side(act)
    selection = _selection(act)
    if not selection:
        return side
    if side == Side.REMOTE and not _require_remote(act):
        return side
    for entry in selection:
        try:
            operation(side, entry)
        except TermxferError as exc:
            act.show_error(f'Could not {label} {entry.name}: {exc}')
    act.browser.focused_explorer().clear_marks()
    return side


def update_transfer(act, msg):
    kind = msg.kind
    payload = msg.payload
    browser = act.browser

    if kind == TransferMsg.ABORT:
        act.executor.abort()
        return Msg(PendingActionMsg.CLOSE_REPLACE_POPUPS)

    if kind in (TransferMsg.TRANSFER_FILE, TransferMsg.SAVE_FILE_AS):
        return _transfer_selection(act, rename=payload if kind == TransferMsg.SAVE_FILE_AS else None)

    if kind == TransferMsg.ENTER_DIRECTORY:
        entry = payload or _selected(act)
        if entry is None:
            return None
        side = _focused_side(act)
        if not (entry.is_dir or entry.is_symlink):
            return None
        if side == Side.REMOTE and not _require_remote(act):
            return None
        browser.close_found()
        if browser.enter_directory(side, entry.path):
            return _sync_after_move(act, side)
        return None

    if kind == TransferMsg.GO_TO:
        side, path = _side_path(act, payload)
        if side == Side.REMOTE and not _require_remote(act):
            return None
        browser.close_found()
        if browser.enter_directory(side, path):
            return _sync_after_move(act, side)
        return None

    if kind in (TransferMsg.GO_TO_PARENT, TransferMsg.GO_TO_PREVIOUS):
        side = browser.focus
        if side == Side.REMOTE and not _require_remote(act):
            return None
        browser.close_found()
        moved = browser.go_to_parent(side) if kind == TransferMsg.GO_TO_PARENT else browser.go_to_previous(side)
        if moved:
            return _sync_after_move(act, side)
        return None

    if kind == TransferMsg.RELOAD_DIR:
        _reload(act)
        return None

    if kind == TransferMsg.MKDIR:
        side, path = _side_path(act, payload)
        if side == Side.REMOTE and not _require_remote(act):
            return None
        try:
            actions.make_directory(act, side, path)
        except TermxferError as exc:
            act.show_error(f'Could not create directory {path}: {exc}')
        _reload(act, side)
        return None

    if kind == TransferMsg.NEW_FILE:
        side, path = _side_path(act, payload)
        if side == Side.REMOTE and not _require_remote(act):
            return None
        try:
            actions.create_file(act, side, path)
        except TermxferError as exc:
            act.show_error(f'Could not create file {path}: {exc}')
        _reload(act, side)
        return None

    if kind == TransferMsg.DELETE_FILE:
        side = _for_selection(act, 'delete', lambda s, e: actions.remove_entry(act, s, e))
        browser.close_found()
        _reload(act, side)
        return None

    if kind == TransferMsg.RENAME_FILE:
        entry = _selected(act)
        if entry is None:
            return None
        side, dst = _side_path(act, payload)
        if side == Side.REMOTE and not _require_remote(act):
            return None
        try:
            actions.rename_entry(act, side, entry, dst)
        except TermxferError as exc:
            act.show_error(f'Could not rename {entry.name}: {exc}')
        browser.close_found()
        _reload(act, side)
        return None

    if kind == TransferMsg.COPY_FILE_TO:
        side, dst = _side_path(act, payload)
        selection = _selection(act)

        def copy(s, e):
            target = dst
            if len(selection) > 1:
                target = s.pathmod.join(dst, e.name)
            actions.copy_entry(act, s, e, target)

        _for_selection(act, 'copy', copy)
        browser.close_found()
        _reload(act, side)
        return None

    if kind == TransferMsg.CREATE_SYMLINK:
        entry = _selected(act)
        if entry is None:
            return None
        side, link = _side_path(act, payload)
        if side == Side.REMOTE and not _require_remote(act):
            return None
        try:
            actions.create_symlink(act, side, entry, link)
        except TermxferError as exc:
            act.show_error(f'Could not create symlink {link}: {exc}')
        _reload(act, side)
        return None

    if kind == TransferMsg.EXEC:
        side = _focused_side(act)
        if side == Side.REMOTE and not _require_remote(act):
            return None
        act.view.show_wait(f'Executing "{payload}"...')
        try:
            actions.exec_command(act, side, payload)
        except TermxferError as exc:
            act.show_error(f'Could not execute "{payload}": {exc}')
        finally:
            act.view.umount(Id.WAIT_POPUP)
        _reload(act, side)
        return None

    if kind in (TransferMsg.OPEN_FILE, TransferMsg.OPEN_FILE_WITH, TransferMsg.OPEN_TEXT_FILE):
        entry = _selected(act)
        side = _focused_side(act)
        if entry is None or entry.is_dir:
            return None
        if side == Side.REMOTE and not _require_remote(act):
            return None
        try:
            if kind == TransferMsg.OPEN_TEXT_FILE:
                actions.edit_text_file(act, side, entry)
            else:
                actions.open_file(act, side, entry, program=payload)
        except TermxferError as exc:
            act.show_error(f'Could not open {entry.name}: {exc}')
        _reload(act, side)
        return None

    if kind == TransferMsg.SEARCH:
        side = _focused_side(act)
        if side == Side.REMOTE and not _require_remote(act):
            return None
        browser.close_found()
        cancel = act.executor.cancel
        cancel.reset()
        act.view.show_wait(f'Searching for "{payload}"... (Esc to cancel)')
        act.view.render()
        try:
            browser.search(side, payload, cancel, on_directory=_cancel_on_escape(act, cancel))
        except TransferAborted:
            act.log.warn(f'Search for "{payload}" cancelled')
        except TermxferError as exc:
            act.show_error(f'Search aborted: {exc}')
        finally:
            cancel.reset()
            act.view.umount(Id.WAIT_POPUP)
        return None

    if kind == TransferMsg.TOGGLE_WATCH:
        return _toggle_watch(act)

    if kind == TransferMsg.TOGGLE_WATCH_FOR:
        if act.watcher is None:
            return None
        watched = act.watcher.watched()
        if 0 <= payload < len(watched):
            act.watcher.unwatch(watched[payload])
            act.log.info(f'Stopped watching {watched[payload]}')
        act.view.umount(Id.WATCHED_PATHS_LIST)
        return None

    LOGGER.warning('unhandled transfer message %s', kind)
    return None


def _cancel_on_escape(act, cancel):
    def check(_path):
        if act.abort_key_pressed():
            cancel.cancel()
    return check


def _transfer_selection(act, rename=None):
    side = _focused_side(act)
    selection = _selection(act)
    if not selection or not _require_remote(act):
        return None
    if side == Side.LOCAL:
        direction, dest_dir = TransferDirection.UPLOAD, act.browser.remote.wrkdir
    else:
        direction, dest_dir = TransferDirection.DOWNLOAD, act.browser.local.wrkdir
    try:
        act.executor.enqueue(selection, direction, dest_dir, rename=rename)
    except TermxferError as exc:
        act.show_error(f'Could not prepare transfer: {exc}')
        return None
    act.browser.focused_explorer().clear_marks()
    return Msg(PendingActionMsg.TRANSFER_PENDING_FILE)


def _toggle_watch(act):
    if act.watcher is None:
        act.show_error('The file watcher is not available')
        return None
    entry = act.browser.local.selected_entry() if act.browser.focus == Side.LOCAL else None
    path = entry.path if entry is not None else act.browser.local.wrkdir
    if path in act.watcher.watched():
        act.watcher.unwatch(path)
        act.log.info(f'Stopped watching {path}')
        return None
    try:
        act.watcher.watch(path)
    except CapacityExceeded as exc:
        act.show_error(f'Could not watch {path}: {exc}')
        return None
    act.log.info(f'Watching {path}')
    return None


# ----------------------------------------------------------------------
# UI
# ----------------------------------------------------------------------

def update_ui(act, msg):
    kind = msg.kind
    payload = msg.payload
    browser = act.browser
    explorer = browser.focused_explorer()

    if kind == UiMsg.CHANGE_FOCUS:
        browser.switch_focus()
    elif kind == UiMsg.CHANGE_SORTING:
        explorer.sort(FileSorting(payload) if payload else explorer.sorting.next())
        act.view.umount(Id.SORTING_POPUP)
    elif kind == UiMsg.CLEAR_MARKS:
        explorer.clear_marks()
    elif kind == UiMsg.CLOSE_FIND_EXPLORER:
        browser.close_found()
    elif kind == UiMsg.CLOSE_POPUP:
        act.view.umount(Id(payload))
    elif kind == UiMsg.CURSOR_END:
        explorer.cursor_end()
    elif kind == UiMsg.CURSOR_HOME:
        explorer.cursor_home()
    elif kind == UiMsg.DISCONNECT:
        act.view.umount(Id.DISCONNECT_POPUP)
        act.disconnect()
    elif kind == UiMsg.MARK_ALL:
        explorer.mark_all()
    elif kind == UiMsg.MOVE_CURSOR:
        explorer.move_cursor(int(payload))
    elif kind == UiMsg.QUIT:
        act.view.umount(Id.QUIT_POPUP)
        act.quit()
    elif kind == UiMsg.SHOW_POPUP:
        act.view.show(Id(payload))
    elif kind == UiMsg.TOGGLE_HIDDEN:
        explorer.toggle_hidden()
    elif kind == UiMsg.TOGGLE_LOG_PANEL:
        act.view.log_panel = not act.view.log_panel
    elif kind == UiMsg.TOGGLE_MARK:
        explorer.toggle_mark()
        explorer.move_cursor(1)
    elif kind == UiMsg.TOGGLE_SYNC_BROWSING:
        return handle_sync_result(act, browser.toggle_sync_browsing())
    return None
