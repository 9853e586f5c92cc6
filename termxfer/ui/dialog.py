"""
Dialog Components.
"""
import curses

from ..constants import PROGRESS_EMPTY, PROGRESS_FILL
from ..utils import draw_box, fit_text_to_cells, normalize_key_code, safe_addstr, theme_attr


def _wrap_dialog_message(message, inner_w):
    """Word-wrap a dialog message into a list of lines."""
    lines = []
    for paragraph in str(message).split('\n'):
        words = paragraph.split()
        if not words:
            lines.append('')
            continue
        line = ''
        for word in words:
            needs_space = 1 if line else 0
            if len(line) + len(word) + needs_space <= inner_w:
                line = f'{line} {word}' if line else word
            else:
                if line:
                    lines.append(line)
                line = word[:inner_w]
        lines.append(line)
    return lines or ['']


def _progress_bar(ratio, width):
    ratio = max(0.0, min(1.0, ratio))
    filled = int(round(ratio * width))
    return PROGRESS_FILL * filled + PROGRESS_EMPTY * (width - filled)


class Dialog:
    """Modal dialog box."""

    def __init__(self, title, message, buttons=None, width=50, role='dialog'):
        self.title = title
        self.message = message
        self.buttons = buttons or ['OK']
        self.selected = 0
        self.role = role
        self.width = max(width, len(title) + 8)

        inner_w = self.width - 6
        self.lines = _wrap_dialog_message(message, inner_w)

        self.height = len(self.lines) + 7

    def _origin(self, stdscr):
        max_h, max_w = stdscr.getmaxyx()
        return max(0, (max_h - self.height) // 2), max(0, (max_w - self.width) // 2)

    def draw(self, stdscr):
        y, x = self._origin(stdscr)

        attr = theme_attr(self.role)
        title_attr = theme_attr('dialog_title') | curses.A_BOLD

        # Shadow
        shadow_attr = curses.A_DIM
        for row in range(self.height):
            safe_addstr(stdscr, y + row + 1, x + 2, ' ' * self.width, shadow_attr)

        for row in range(self.height):
            safe_addstr(stdscr, y + row, x, ' ' * self.width, attr)

        draw_box(stdscr, y, x, self.height, self.width, attr, double=True)

        title_text = f' {self.title} '
        safe_addstr(stdscr, y, x + 1, title_text.ljust(self.width - 2), title_attr)

        for i, line in enumerate(self.lines):
            safe_addstr(stdscr, y + 2 + i, x + 3, line, attr)

        self._draw_buttons(stdscr, y, x)

    def _draw_buttons(self, stdscr, y, x):
        btn_y = y + self.height - 3
        total_btn_width = sum(len(b) + 6 for b in self.buttons) + (len(self.buttons) - 1) * 2
        btn_x = x + max(1, (self.width - total_btn_width) // 2)

        for i, btn_text in enumerate(self.buttons):
            btn_w = len(btn_text) + 4
            if i == self.selected:
                btn_attr = theme_attr('button_selected') | curses.A_BOLD
                label = f'▸ {btn_text} ◂'
            else:
                btn_attr = theme_attr('button')
                label = f'[ {btn_text} ]'
            safe_addstr(stdscr, btn_y, btn_x, label, btn_attr)
            btn_x += btn_w + 2

    def handle_key(self, key):
        """Handle keyboard input. Returns button index or -1."""
        key_code = normalize_key_code(key)

        if key_code in (curses.KEY_LEFT, curses.KEY_BTAB):
            self.selected = (self.selected - 1) % len(self.buttons)
        elif key_code in (curses.KEY_RIGHT, 9):
            self.selected = (self.selected + 1) % len(self.buttons)
        elif key_code in (curses.KEY_ENTER, 10, 13):
            return self.selected
        elif key_code == 27:  # Escape
            return len(self.buttons) - 1  # Last button (usually Cancel)
        return -1


class InputDialog(Dialog):
    """Modal dialog with a text input field."""

    def __init__(self, title, message, initial_value='', width=50):
        super().__init__(title, message, ['OK', 'Cancel'], width)
        self.value = initial_value
        self.height += 3
        self.cursor_pos = len(initial_value)

    def draw(self, stdscr):
        super().draw(stdscr)
        y, x = self._origin(stdscr)

        # Input row sits between the message and the buttons
        input_y = y + self.height - 5
        input_x = x + 4
        input_w = self.width - 8

        attr = theme_attr('input')
        safe_addstr(stdscr, input_y, input_x, ' ' * input_w, attr)

        start = max(0, self.cursor_pos - input_w + 1)
        display_val = self.value[start:start + input_w - 1]
        safe_addstr(stdscr, input_y, input_x, display_val, attr)
        safe_addstr(stdscr, input_y, input_x + self.cursor_pos - start, ' ', attr | curses.A_REVERSE)

    def handle_key(self, key):
        key_code = normalize_key_code(key)

        if key_code in (curses.KEY_ENTER, 10, 13):
            return 0
        if key_code == 27:
            return 1

        if key_code in (curses.KEY_BACKSPACE, 127, 8):
            if self.cursor_pos > 0:
                self.value = self.value[:self.cursor_pos - 1] + self.value[self.cursor_pos:]
                self.cursor_pos -= 1
        elif key_code == curses.KEY_DC:
            if self.cursor_pos < len(self.value):
                self.value = self.value[:self.cursor_pos] + self.value[self.cursor_pos + 1:]
        elif key_code == curses.KEY_LEFT:
            self.cursor_pos = max(0, self.cursor_pos - 1)
        elif key_code == curses.KEY_RIGHT:
            self.cursor_pos = min(len(self.value), self.cursor_pos + 1)
        elif key_code == curses.KEY_HOME:
            self.cursor_pos = 0
        elif key_code == curses.KEY_END:
            self.cursor_pos = len(self.value)
        elif isinstance(key, str) and key.isprintable() and key not in ('\n', '\r', '\t'):
            self.value = self.value[:self.cursor_pos] + key + self.value[self.cursor_pos:]
            self.cursor_pos += 1
        elif isinstance(key, int) and 32 <= key <= 126:
            self.value = self.value[:self.cursor_pos] + chr(key) + self.value[self.cursor_pos:]
            self.cursor_pos += 1

        return -1


class ListDialog(Dialog):
    """Modal dialog with a scrollable, single-selection list.

    `handle_key` returns the selected row index on Enter, or -2 on Esc.
    """

    CANCELLED = -2

    def __init__(self, title, message, items, width=60, visible_rows=8, selected=0):
        super().__init__(title, message, ['Close'], width)
        self.items = list(items)
        self.visible_rows = visible_rows
        self.list_selected = max(0, min(selected, len(self.items) - 1))
        self.list_offset = 0
        self.height += visible_rows + 1
        self._scroll_into_view()

    def _scroll_into_view(self):
        if self.list_selected < self.list_offset:
            self.list_offset = self.list_selected
        elif self.list_selected >= self.list_offset + self.visible_rows:
            self.list_offset = self.list_selected - self.visible_rows + 1

    def draw(self, stdscr):
        super().draw(stdscr)
        y, x = self._origin(stdscr)

        list_y = y + len(self.lines) + 3
        list_x = x + 3
        list_w = self.width - 6

        attr = theme_attr(self.role)
        sel_attr = theme_attr('file_selected') | curses.A_BOLD

        for i in range(self.visible_rows):
            idx = self.list_offset + i
            if idx < len(self.items):
                text = fit_text_to_cells(f' {self.items[idx]}', list_w)
                row_attr = sel_attr if idx == self.list_selected else attr
                safe_addstr(stdscr, list_y + i, list_x, text.ljust(list_w), row_attr)
            else:
                safe_addstr(stdscr, list_y + i, list_x, ' ' * list_w, attr)

        if len(self.items) > self.visible_rows:
            span = max(1, len(self.items) - self.visible_rows)
            thumb_pos = int(self.list_offset / span * (self.visible_rows - 1))
            for i in range(self.visible_rows):
                ch = PROGRESS_FILL if i == thumb_pos else PROGRESS_EMPTY
                safe_addstr(stdscr, list_y + i, list_x + list_w, ch, attr)

    def handle_key(self, key):
        key_code = normalize_key_code(key)

        if key_code == 27:
            return self.CANCELLED
        if key_code == curses.KEY_UP:
            self.list_selected = max(0, self.list_selected - 1)
        elif key_code == curses.KEY_DOWN:
            self.list_selected = min(max(0, len(self.items) - 1), self.list_selected + 1)
        elif key_code == curses.KEY_PPAGE:
            self.list_selected = max(0, self.list_selected - self.visible_rows)
        elif key_code == curses.KEY_NPAGE:
            self.list_selected = min(max(0, len(self.items) - 1), self.list_selected + self.visible_rows)
        elif key_code in (curses.KEY_ENTER, 10, 13):
            return self.list_selected if self.items else self.CANCELLED
        self._scroll_into_view()
        return -1


class ProgressDialog:
    """Transfer progress with an overall bar and an optional per-file bar."""

    def __init__(self, title, width=64):
        self.title = title
        self.buttons = []
        self.width = width
        self.height = 9
        self.file_label = ''
        self.file_ratio = 0.0
        self.overall_label = ''
        self.overall_ratio = 0.0
        self.show_file_bar = True

    def update(self, overall_ratio, overall_label, file_ratio=0.0, file_label='', show_file_bar=True):
        self.overall_ratio = overall_ratio
        self.overall_label = overall_label
        self.file_ratio = file_ratio
        self.file_label = file_label
        self.show_file_bar = show_file_bar
        self.height = 9 if show_file_bar else 6

    def draw(self, stdscr):
        max_h, max_w = stdscr.getmaxyx()
        x = max(0, (max_w - self.width) // 2)
        y = max(0, (max_h - self.height) // 2)

        attr = theme_attr('dialog')
        title_attr = theme_attr('dialog_title') | curses.A_BOLD
        bar_attr = theme_attr('progress')

        for row in range(self.height):
            safe_addstr(stdscr, y + row, x, ' ' * self.width, attr)
        draw_box(stdscr, y, x, self.height, self.width, attr, double=True)
        safe_addstr(stdscr, y, x + 1, f' {self.title} '.ljust(self.width - 2), title_attr)

        bar_w = self.width - 6
        row = y + 2
        if self.show_file_bar:
            safe_addstr(stdscr, row, x + 3, fit_text_to_cells(self.file_label, bar_w), attr)
            safe_addstr(stdscr, row + 1, x + 3, _progress_bar(self.file_ratio, bar_w), bar_attr)
            row += 3
        safe_addstr(stdscr, row, x + 3, fit_text_to_cells(self.overall_label, bar_w), attr)
        safe_addstr(stdscr, row + 1, x + 3, _progress_bar(self.overall_ratio, bar_w), bar_attr)
        safe_addstr(stdscr, y + self.height - 1, x + 3, ' Press <Esc> to abort ', attr)

    def handle_key(self, key):
        """Progress dialogs only react through the abort key."""
        _ = key
        return -1


class WaitDialog:
    """Spinner shown while a blocking operation runs."""

    SPINNER_FRAMES = ('|', '/', '-', '\\')

    def __init__(self, title, message, width=50):
        self.title = title
        self.message = message
        self.buttons = []
        self.width = max(width, len(title) + 8)
        self.lines = _wrap_dialog_message(message, self.width - 6)
        self.frame = 0
        self.height = len(self.lines) + 5

    def draw(self, stdscr):
        max_h, max_w = stdscr.getmaxyx()
        x = max(0, (max_w - self.width) // 2)
        y = max(0, (max_h - self.height) // 2)

        attr = theme_attr('dialog')
        title_attr = theme_attr('dialog_title') | curses.A_BOLD
        for row in range(self.height):
            safe_addstr(stdscr, y + row, x, ' ' * self.width, attr)
        draw_box(stdscr, y, x, self.height, self.width, attr, double=True)
        safe_addstr(stdscr, y, x + 1, f' {self.title} '.ljust(self.width - 2), title_attr)
        for i, line in enumerate(self.lines):
            safe_addstr(stdscr, y + 2 + i, x + 3, line, attr)
        spinner = self.SPINNER_FRAMES[self.frame % len(self.SPINNER_FRAMES)]
        safe_addstr(stdscr, y + self.height - 2, x + self.width - 5, spinner, attr)
        self.frame += 1

    def handle_key(self, key):
        _ = key
        return -1
