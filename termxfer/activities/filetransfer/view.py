"""
Curses rendering and key mapping for the file transfer activity.

Popups are kept in mount order; the most recently mounted one receives the
keys and is drawn last.
"""
import curses
import logging
import time

from ...constants import (
    FOOTER_HEIGHT,
    LOG_PANEL_HEIGHT,
    MIN_TERM_HEIGHT,
    MIN_TERM_WIDTH,
    STATUS_BAR_HEIGHT,
)
from ...explorer import FileSorting
from ...ui.dialog import Dialog, InputDialog, ListDialog, ProgressDialog, WaitDialog
from ...utils import (
    draw_box,
    fit_text_to_cells,
    format_mode,
    format_size,
    format_time,
    init_colors,
    normalize_key_code,
    safe_addstr,
    theme_attr,
)
from .browser import Side
from .logring import LogLevel
from .messages import Id, Msg, PendingActionMsg, TransferMsg, UiMsg
from .transfer import TransferDecision

LOGGER = logging.getLogger(__name__)

KEYBINDINGS = (
    ('<ARROWS>', 'Move cursor'),
    ('<PGUP/PGDN>', 'Scroll one page'),
    ('<HOME/END>', 'First / last entry'),
    ('<TAB>', 'Switch explorer'),
    ('<ENTER>', 'Enter directory'),
    ('<BACKSPACE>', 'Previous directory'),
    ('<SPACE>', 'Transfer selection'),
    ('<ESC>', 'Close search results / disconnect'),
    ('<CTRL+A>', 'Mark all'),
    ('<CTRL+T>', 'Watched paths'),
    ('<B>', 'Sort files'),
    ('<C>', 'Copy'),
    ('<D>', 'Make directory'),
    ('<E|DEL>', 'Delete'),
    ('<F>', 'Search files'),
    ('<G>', 'Go to path'),
    ('<H>', 'Show / hide hidden files'),
    ('<I>', 'File info'),
    ('<K>', 'Create symlink'),
    ('<L>', 'Reload directories'),
    ('<M>', 'Mark / unmark'),
    ('<N>', 'New file'),
    ('<O>', 'Edit text file'),
    ('<P>', 'Toggle log panel'),
    ('<Q>', 'Quit'),
    ('<R>', 'Rename'),
    ('<S>', 'Save as'),
    ('<T>', 'Watch / unwatch path'),
    ('<U>', 'Parent directory'),
    ('<V>', 'Open with default program'),
    ('<W>', 'Open with...'),
    ('<X>', 'Execute command'),
    ('<Y>', 'Toggle synchronized browsing'),
    ('<?>', 'Show keybindings'),
)

REPLACE_BUTTONS = (
    ('Replace', TransferDecision.REPLACE_THIS),
    ('Replace all', TransferDecision.REPLACE_ALL),
    ('Skip', TransferDecision.SKIP_THIS),
    ('Skip all', TransferDecision.SKIP_ALL),
    ('Abort', TransferDecision.ABORT),
)

REPLACING_LIST_BUTTONS = ('Replace all', 'Skip all', 'Ask each', 'Abort')

# Input popups: id -> (title, prompt, message sent with the entered value)
INPUT_POPUPS = {
    Id.COPY_POPUP: ('Copy', 'Copy selection to:', TransferMsg.COPY_FILE_TO),
    Id.EXEC_POPUP: ('Execute', 'Command to execute:', TransferMsg.EXEC),
    Id.FIND_POPUP: ('Search', 'Search files matching (glob):', TransferMsg.SEARCH),
    Id.GOTO_POPUP: ('Go to', 'Change working directory to:', TransferMsg.GO_TO),
    Id.MKDIR_POPUP: ('New directory', 'Directory name:', TransferMsg.MKDIR),
    Id.NEWFILE_POPUP: ('New file', 'File name:', TransferMsg.NEW_FILE),
    Id.OPEN_WITH_POPUP: ('Open with', 'Open file with program:', TransferMsg.OPEN_FILE_WITH),
    Id.RENAME_POPUP: ('Rename', 'Move selected entry to:', TransferMsg.RENAME_FILE),
    Id.SAVE_AS_POPUP: ('Save as', 'Transfer selected entry as:', TransferMsg.SAVE_FILE_AS),
    Id.SYMLINK_POPUP: ('Symlink', 'Create symlink pointing to the selection at:', TransferMsg.CREATE_SYMLINK),
}

# Explorer keys: normalized key code -> message
EXPLORER_KEYS = {
    curses.KEY_UP: Msg(UiMsg.MOVE_CURSOR, -1),
    curses.KEY_DOWN: Msg(UiMsg.MOVE_CURSOR, 1),
    curses.KEY_HOME: Msg(UiMsg.CURSOR_HOME),
    curses.KEY_END: Msg(UiMsg.CURSOR_END),
    curses.KEY_LEFT: Msg(UiMsg.CHANGE_FOCUS),
    curses.KEY_RIGHT: Msg(UiMsg.CHANGE_FOCUS),
    9: Msg(UiMsg.CHANGE_FOCUS),
    10: Msg(TransferMsg.ENTER_DIRECTORY),
    13: Msg(TransferMsg.ENTER_DIRECTORY),
    curses.KEY_ENTER: Msg(TransferMsg.ENTER_DIRECTORY),
    curses.KEY_BACKSPACE: Msg(TransferMsg.GO_TO_PREVIOUS),
    127: Msg(TransferMsg.GO_TO_PREVIOUS),
    8: Msg(TransferMsg.GO_TO_PREVIOUS),
    curses.KEY_DC: Msg(UiMsg.SHOW_POPUP, Id.DELETE_POPUP),
    1: Msg(UiMsg.MARK_ALL),                          # Ctrl+A
    20: Msg(UiMsg.SHOW_POPUP, Id.WATCHED_PATHS_LIST),  # Ctrl+T
    ord(' '): Msg(TransferMsg.TRANSFER_FILE),
    ord('b'): Msg(UiMsg.SHOW_POPUP, Id.SORTING_POPUP),
    ord('c'): Msg(UiMsg.SHOW_POPUP, Id.COPY_POPUP),
    ord('d'): Msg(UiMsg.SHOW_POPUP, Id.MKDIR_POPUP),
    ord('e'): Msg(UiMsg.SHOW_POPUP, Id.DELETE_POPUP),
    ord('f'): Msg(UiMsg.SHOW_POPUP, Id.FIND_POPUP),
    ord('g'): Msg(UiMsg.SHOW_POPUP, Id.GOTO_POPUP),
    ord('h'): Msg(UiMsg.TOGGLE_HIDDEN),
    ord('i'): Msg(UiMsg.SHOW_POPUP, Id.FILE_INFO_POPUP),
    ord('k'): Msg(UiMsg.SHOW_POPUP, Id.SYMLINK_POPUP),
    ord('l'): Msg(TransferMsg.RELOAD_DIR),
    ord('m'): Msg(UiMsg.TOGGLE_MARK),
    ord('n'): Msg(UiMsg.SHOW_POPUP, Id.NEWFILE_POPUP),
    ord('o'): Msg(TransferMsg.OPEN_TEXT_FILE),
    ord('p'): Msg(UiMsg.TOGGLE_LOG_PANEL),
    ord('q'): Msg(UiMsg.SHOW_POPUP, Id.QUIT_POPUP),
    ord('r'): Msg(UiMsg.SHOW_POPUP, Id.RENAME_POPUP),
    ord('s'): Msg(UiMsg.SHOW_POPUP, Id.SAVE_AS_POPUP),
    ord('t'): Msg(UiMsg.SHOW_POPUP, Id.WATCHER_POPUP),
    ord('u'): Msg(TransferMsg.GO_TO_PARENT),
    ord('v'): Msg(TransferMsg.OPEN_FILE),
    ord('w'): Msg(UiMsg.SHOW_POPUP, Id.OPEN_WITH_POPUP),
    ord('x'): Msg(UiMsg.SHOW_POPUP, Id.EXEC_POPUP),
    ord('y'): Msg(UiMsg.TOGGLE_SYNC_BROWSING),
    ord('?'): Msg(UiMsg.SHOW_POPUP, Id.KEYBINDINGS_POPUP),
}

_LOG_ROLES = {
    LogLevel.ERROR: 'log_error',
    LogLevel.WARN: 'log_warn',
    LogLevel.INFO: 'log_info',
}


class View:
    """Draws the activity and turns keys into messages."""

    def __init__(self, act):
        self.act = act
        self.popups = {}
        self.log_panel = True
        self.page_size = 10
        self._scroll = {}

    @property
    def stdscr(self):
        return self.act.context.terminal.stdscr

    def init(self):
        try:
            init_colors(self.act.context.theme)
        except curses.error as exc:
            LOGGER.debug('colors unavailable: %s', exc)

    # ------------------------------------------------------------------
    # Popup stack
    # ------------------------------------------------------------------

    def mount(self, popup_id, widget):
        self.popups.pop(popup_id, None)
        self.popups[popup_id] = widget
        self.act.redraw = True

    def umount(self, popup_id):
        if self.popups.pop(popup_id, None) is not None:
            self.act.redraw = True

    def mounted(self, popup_id):
        return popup_id in self.popups

    def top(self):
        if not self.popups:
            return None, None
        popup_id = next(reversed(self.popups))
        return popup_id, self.popups[popup_id]

    def awaiting_decision(self):
        return self.mounted(Id.REPLACE_POPUP) or self.mounted(Id.REPLACING_FILES_LIST_POPUP)

    def show(self, popup_id):
        """Mount a popup built from the current selection."""
        explorer = self.act.browser.focused_explorer()
        entry = explorer.selected_entry()
        if popup_id in INPUT_POPUPS:
            title, prompt, _ = INPUT_POPUPS[popup_id]
            initial = ''
            if popup_id in (Id.RENAME_POPUP, Id.SAVE_AS_POPUP, Id.COPY_POPUP) and entry is not None:
                initial = entry.name
            elif popup_id == Id.FIND_POPUP:
                initial = '*'
            self.mount(popup_id, InputDialog(title, prompt, initial))
        elif popup_id == Id.DELETE_POPUP:
            selection = explorer.selection()
            if not selection:
                return
            names = selection[0].name if len(selection) == 1 else f'{len(selection)} entries'
            self.mount(popup_id, Dialog('Delete', f'Delete {names}?', ['Yes', 'No']))
            self.popups[popup_id].selected = 1
        elif popup_id == Id.FILE_INFO_POPUP:
            if entry is not None:
                self.mount(popup_id, Dialog('File info', self._file_info(entry), ['OK'], width=60))
        elif popup_id == Id.KEYBINDINGS_POPUP:
            lines = [f'{key:<14}{text}' for key, text in KEYBINDINGS]
            self.mount(popup_id, ListDialog('Keybindings', '', lines, width=56, visible_rows=14))
        elif popup_id == Id.SORTING_POPUP:
            members = list(FileSorting)
            self.mount(popup_id, ListDialog(
                'File sorting', 'Sort files by:', [m.label for m in members],
                width=40, visible_rows=len(members), selected=members.index(explorer.sorting),
            ))
        elif popup_id == Id.QUIT_POPUP:
            self.mount(popup_id, Dialog('Quit', 'Are you sure you want to quit?', ['Quit', 'Cancel']))
        elif popup_id == Id.DISCONNECT_POPUP:
            self.mount(popup_id, Dialog('Disconnect', 'Are you sure you want to disconnect?',
                                        ['Disconnect', 'Cancel']))
        elif popup_id == Id.WATCHER_POPUP:
            self._show_watcher_popup()
        elif popup_id == Id.WATCHED_PATHS_LIST:
            watcher = self.act.watcher
            paths = watcher.watched() if watcher is not None else []
            self.mount(popup_id, ListDialog(
                'Watched paths', 'Select a path to stop watching it:', paths or ['(none)'],
            ))
        elif popup_id == Id.REPLACE_POPUP:
            conflict = self.act.executor.queue.next_conflict()
            if conflict is not None:
                self.show_replace(conflict)
        else:
            LOGGER.debug('popup %s cannot be shown directly', popup_id)

    def _show_watcher_popup(self):
        browser = self.act.browser
        entry = browser.local.selected_entry() if browser.focus == Side.LOCAL else None
        path = entry.path if entry is not None else browser.local.wrkdir
        watcher = self.act.watcher
        verb = 'Stop watching' if watcher is not None and path in watcher.watched() else 'Watch'
        self.mount(Id.WATCHER_POPUP, Dialog('File watcher', f'{verb} {path}?', ['Yes', 'No']))

    def _file_info(self, entry):
        lines = [
            f'Name:        {entry.name}',
            f'Path:        {entry.path}',
            f'Kind:        {entry.kind.value}',
            f'Size:        {format_size(entry.size)} ({entry.size} bytes)',
            f'Modified:    {format_time(entry.modified_time, "%Y-%m-%d %H:%M:%S")}',
            f'Permissions: {format_mode(entry.permissions)}',
        ]
        if entry.symlink_target:
            lines.append(f'Target:      {entry.symlink_target}')
        return '\n'.join(lines)

    def show_error(self, message):
        self.mount(Id.ERROR_POPUP, Dialog('Error', message, ['OK'], role='log_error'))

    def show_fatal(self, message):
        self.mount(Id.FATAL_POPUP, Dialog('Fatal error', message or 'Unrecoverable error', ['Quit'],
                                          role='fatal'))

    def show_wait(self, message):
        self.mount(Id.WAIT_POPUP, WaitDialog('Please wait', message))

    def show_progress(self):
        self.mount(Id.PROGRESS_BAR, ProgressDialog('Transfer in progress'))

    def update_progress(self, states, now=None):
        dialog = self.popups.get(Id.PROGRESS_BAR)
        if dialog is None:
            return
        now = time.monotonic() if now is None else now
        speed = states.bytes_per_second(now)
        overall = (
            f'{states.file_done}/{states.file_total} files  '
            f'{format_size(states.bytes_done)}/{format_size(states.bytes_total)}  '
            f'{format_size(int(speed))}/s'
        )
        active = states.active_entry
        show_file = active is not None and states.file_total > 1 and not active.is_dir
        file_label = ''
        if active is not None:
            file_label = (
                f'{active.source.name}  '
                f'{format_size(states.file_bytes_done)}/{format_size(states.file_bytes_total)}'
            )
        if active is not None and not show_file:
            overall = f'{file_label}  {format_size(int(speed))}/s'
        dialog.update(states.full_ratio, overall, states.partial_ratio, file_label, show_file)

    def show_replace(self, entry):
        dialog = Dialog(
            'Replace file?',
            f'{entry.dest_path} already exists. Replace it?',
            [label for label, _ in REPLACE_BUTTONS],
            width=64,
        )
        self.mount(Id.REPLACE_POPUP, dialog)

    def show_replacing_files_list(self, conflicts):
        names = [entry.dest_path for entry in conflicts[:8]]
        if len(conflicts) > 8:
            names.append(f'... and {len(conflicts) - 8} more')
        message = 'These files already exist at the destination:\n' + '\n'.join(names)
        self.mount(Id.REPLACING_FILES_LIST_POPUP, Dialog('Replace files?', message,
                                                         list(REPLACING_LIST_BUTTONS), width=64))

    def show_sync_browsing_mkdir(self, path):
        self.mount(Id.SYNC_BROWSING_MKDIR_POPUP, Dialog(
            'Synchronized browsing',
            f'{path} does not exist. Create it?',
            ['Yes', 'No'],
        ))

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def on_key(self, key):
        key_code = normalize_key_code(key)
        if key_code == curses.KEY_RESIZE:
            self.act.redraw = True
            return None
        popup_id, widget = self.top()
        if popup_id is not None:
            return self._popup_key(popup_id, widget, key)
        return self._explorer_key(key_code)

    def _explorer_key(self, key_code):
        if key_code is None:
            return None
        if key_code == curses.KEY_PPAGE:
            return Msg(UiMsg.MOVE_CURSOR, -self.page_size)
        if key_code == curses.KEY_NPAGE:
            return Msg(UiMsg.MOVE_CURSOR, self.page_size)
        if key_code == 27:
            if self.act.browser.found is not None:
                return Msg(UiMsg.CLOSE_FIND_EXPLORER)
            return Msg(UiMsg.SHOW_POPUP, Id.DISCONNECT_POPUP)
        if ord('A') <= key_code <= ord('Z'):
            key_code += 32
        return EXPLORER_KEYS.get(key_code)

    def _popup_key(self, popup_id, widget, key):
        result = widget.handle_key(key)

        if popup_id in (Id.WAIT_POPUP, Id.PROGRESS_BAR):
            return None
        if popup_id in INPUT_POPUPS:
            if result == 0:
                self.umount(popup_id)
                value = widget.value.strip()
                if not value:
                    return None
                return Msg(INPUT_POPUPS[popup_id][2], value)
            if result == 1:
                self.umount(popup_id)
            return None
        if popup_id == Id.FATAL_POPUP:
            if result >= 0:
                return Msg(UiMsg.QUIT)
            return None
        if popup_id == Id.REPLACE_POPUP:
            if result >= 0:
                return Msg(PendingActionMsg.RESOLVE_CONFLICT, REPLACE_BUTTONS[result][1])
            return None
        if popup_id == Id.REPLACING_FILES_LIST_POPUP:
            return self._replacing_list_result(result)
        if popup_id == Id.SYNC_BROWSING_MKDIR_POPUP:
            if result == 0:
                return Msg(PendingActionMsg.MAKE_PENDING_DIRECTORY)
            if result == 1:
                return Msg(PendingActionMsg.CLOSE_SYNC_BROWSING_MKDIR_POPUP)
            return None
        if popup_id == Id.SORTING_POPUP:
            if result >= 0:
                return Msg(UiMsg.CHANGE_SORTING, list(FileSorting)[result])
            if result == ListDialog.CANCELLED:
                self.umount(popup_id)
            return None
        if popup_id == Id.WATCHED_PATHS_LIST:
            watcher = self.act.watcher
            if result >= 0 and watcher is not None and result < len(watcher.watched()):
                return Msg(TransferMsg.TOGGLE_WATCH_FOR, result)
            if result != -1:
                self.umount(popup_id)
            return None
        if popup_id in (Id.DELETE_POPUP, Id.QUIT_POPUP, Id.DISCONNECT_POPUP, Id.WATCHER_POPUP):
            if result == 0:
                self.umount(popup_id)
                return {
                    Id.DELETE_POPUP: Msg(TransferMsg.DELETE_FILE),
                    Id.QUIT_POPUP: Msg(UiMsg.QUIT),
                    Id.DISCONNECT_POPUP: Msg(UiMsg.DISCONNECT),
                    Id.WATCHER_POPUP: Msg(TransferMsg.TOGGLE_WATCH),
                }[popup_id]
            if result > 0:
                self.umount(popup_id)
            return None
        # Informational popups close on any confirmation
        if result != -1:
            self.umount(popup_id)
        return None

    def _replacing_list_result(self, result):
        if result == 0:
            return Msg(PendingActionMsg.RESOLVE_CONFLICT, TransferDecision.REPLACE_ALL)
        if result == 1:
            return Msg(PendingActionMsg.RESOLVE_CONFLICT, TransferDecision.SKIP_ALL)
        if result == 2:
            self.umount(Id.REPLACING_FILES_LIST_POPUP)
            return Msg(PendingActionMsg.ASK_EACH_CONFLICT)
        if result == 3:
            return Msg(PendingActionMsg.RESOLVE_CONFLICT, TransferDecision.ABORT)
        return None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self):
        stdscr = self.stdscr
        stdscr.erase()
        height, width = stdscr.getmaxyx()
        if height < MIN_TERM_HEIGHT or width < MIN_TERM_WIDTH:
            safe_addstr(stdscr, 0, 0, f'Terminal too small ({width}x{height})', theme_attr('log_error'))
            stdscr.noutrefresh()
            curses.doupdate()
            return

        log_h = LOG_PANEL_HEIGHT if self.log_panel else 0
        pane_h = height - FOOTER_HEIGHT - STATUS_BAR_HEIGHT - log_h
        half = width // 2
        self.page_size = max(1, pane_h - 2)

        self._draw_pane(stdscr, Side.LOCAL, 0, 0, half, pane_h)
        self._draw_pane(stdscr, Side.REMOTE, 0, half, width - half, pane_h)
        self._draw_status(stdscr, Side.LOCAL, pane_h, 0, half)
        self._draw_status(stdscr, Side.REMOTE, pane_h, half, width - half)
        if log_h:
            self._draw_log(stdscr, pane_h + STATUS_BAR_HEIGHT, width, log_h)
        self._draw_footer(stdscr, height - 1, width)

        for widget in self.popups.values():
            widget.draw(stdscr)

        stdscr.noutrefresh()
        curses.doupdate()

    def _pane_title(self, side):
        browser = self.act.browser
        explorer = browser.pane(side)
        if side == Side.LOCAL:
            name = 'Localhost'
        else:
            params = self.act.session.params
            name = params.host if params is not None else 'Remote'
        title = f' {name}: {explorer.wrkdir} '
        if browser.found is not None and browser.found_side == side:
            title = f' Search results in {explorer.wrkdir} '
        return title

    def _draw_pane(self, stdscr, side, y, x, w, h):
        browser = self.act.browser
        explorer = browser.found if browser.found_side == side and browser.found is not None else browser.pane(side)
        focused = browser.focus == side
        border_attr = theme_attr('explorer_focus' if focused else 'explorer')
        draw_box(stdscr, y, x, h, w, border_attr, double=focused)
        safe_addstr(stdscr, y, x + 2, fit_text_to_cells(self._pane_title(side), w - 4).rstrip(),
                    border_attr | curses.A_BOLD)

        rows = h - 2
        inner_w = w - 2
        files = explorer.files
        offset = self._scroll.get(side, 0)
        if explorer.cursor < offset:
            offset = explorer.cursor
        elif explorer.cursor >= offset + rows:
            offset = explorer.cursor - rows + 1
        self._scroll[side] = offset

        if side == Side.REMOTE and not self.act.session.connected and not files:
            safe_addstr(stdscr, y + 1, x + 2, self.act.session.state.value.capitalize(), theme_attr('explorer'))
            return

        for row in range(rows):
            idx = offset + row
            if idx >= len(files):
                break
            entry = files[idx]
            marked = entry.path in explorer.marked
            if focused and idx == explorer.cursor:
                attr = theme_attr('file_selected') | curses.A_BOLD
            elif marked:
                attr = theme_attr('file_marked')
            elif entry.is_dir:
                attr = theme_attr('file_directory')
            elif entry.is_symlink:
                attr = theme_attr('file_symlink')
            else:
                attr = theme_attr('explorer')
            size = '' if entry.is_dir else format_size(entry.size)
            right = f' {size:>7} {format_time(entry.modified_time)}'
            name_w = max(1, inner_w - len(right) - 2)
            mark = '*' if marked else ' '
            line = f'{mark}{fit_text_to_cells(entry.display_name(), name_w)}{right}'
            safe_addstr(stdscr, y + 1 + row, x + 1, fit_text_to_cells(line, inner_w), attr)

    def _draw_status(self, stdscr, side, y, x, w):
        browser = self.act.browser
        explorer = browser.pane(side)
        parts = [
            explorer.sorting.label,
            f'hidden: {"shown" if explorer.show_hidden else "hidden"}',
            f'sync: {"on" if browser.sync_browsing else "off"}',
        ]
        if side == Side.REMOTE:
            parts.append(self.act.session.state.value)
        if explorer.marked:
            parts.append(f'{len(explorer.marked)} marked')
        safe_addstr(stdscr, y, x, fit_text_to_cells(' ' + ' | '.join(parts), w), theme_attr('status'))

    def _draw_log(self, stdscr, y, width, h):
        attr = theme_attr('explorer')
        draw_box(stdscr, y, 0, h, width, attr, double=False)
        safe_addstr(stdscr, y, 2, ' Log ', attr | curses.A_BOLD)
        for row, record in enumerate(self.act.log.records()[: h - 2]):
            stamp = time.strftime('%H:%M:%S', time.localtime(record.time))
            text = f'{stamp} [{record.level.value.upper():<5}] {record.message}'
            safe_addstr(stdscr, y + 1 + row, 1, fit_text_to_cells(text, width - 2),
                        theme_attr(_LOG_ROLES[record.level]))

    def _draw_footer(self, stdscr, y, width):
        hints = '<?> Help  <TAB> Switch  <SPACE> Transfer  <Y> Sync  <P> Log  <Q> Quit'
        safe_addstr(stdscr, y, 0, fit_text_to_cells(hints, width), theme_attr('footer'))
