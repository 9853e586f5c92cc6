import types
import unittest
from unittest import mock

from _support import load_with_fake_curses, unload_fake_curses


class UtilsCoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_curses, cls.curses, (cls.utils, cls.theme) = load_with_fake_curses(
            "termxfer.utils", "termxfer.theme"
        )

    @classmethod
    def tearDownClass(cls):
        unload_fake_curses(cls._prev_curses)

    def test_init_colors_registers_every_role(self):
        with mock.patch.object(self.curses, "init_pair") as init_pair:
            self.utils.init_colors("hacker")

        self.assertEqual(init_pair.call_count, len(self.theme.ROLE_TO_PAIR_ID))

    def test_safe_addstr_clips_and_handles_errors(self):
        win = types.SimpleNamespace(
            getmaxyx=mock.Mock(return_value=(5, 10)),
            addnstr=mock.Mock(),
        )
        self.utils.safe_addstr(win, 1, 1, "hello", 0)
        win.addnstr.assert_called_once_with(1, 1, "hello", 8, 0)

        win.addnstr.reset_mock()
        self.utils.safe_addstr(win, -1, 1, "x", 0)
        self.utils.safe_addstr(win, 1, 10, "x", 0)
        self.utils.safe_addstr(win, 1, 9, "x", 0)
        self.assertFalse(win.addnstr.called)

        win_error = types.SimpleNamespace(
            getmaxyx=mock.Mock(return_value=(5, 10)),
            addnstr=mock.Mock(side_effect=self.curses.error("boom")),
        )
        self.utils.safe_addstr(win_error, 1, 1, "hello", 0)

    def test_normalize_key_code_variants(self):
        self.assertEqual(self.utils.normalize_key_code(123), 123)
        self.assertEqual(self.utils.normalize_key_code("\n"), 10)
        self.assertEqual(self.utils.normalize_key_code("\r"), 10)
        self.assertEqual(self.utils.normalize_key_code("\x1b"), 27)
        self.assertEqual(self.utils.normalize_key_code("\t"), 9)
        self.assertEqual(self.utils.normalize_key_code("\x7f"), 127)
        self.assertEqual(self.utils.normalize_key_code("a"), ord("a"))
        self.assertIsNone(self.utils.normalize_key_code(""))
        self.assertIsNone(self.utils.normalize_key_code("ab"))
        self.assertIsNone(self.utils.normalize_key_code(None))

    def test_draw_box_edges(self):
        win = types.SimpleNamespace()
        with mock.patch.object(self.utils, "safe_addstr") as safe_addstr:
            self.utils.draw_box(win, y=2, x=3, h=4, w=8, attr=9, double=True)
        self.assertEqual(safe_addstr.call_count, 6)
        self.assertTrue(safe_addstr.call_args_list[0].args[3].startswith("╔"))

        with mock.patch.object(self.utils, "safe_addstr") as safe_addstr:
            self.utils.draw_box(win, y=0, x=0, h=3, w=5, attr=1, double=False)
        self.assertEqual(safe_addstr.call_count, 4)
        self.assertEqual(safe_addstr.call_args_list[0].args[3], "┌───┐")

    def test_fit_text_to_cells_counts_wide_characters(self):
        self.assertEqual(self.utils.fit_text_to_cells("abc", 5), "abc  ")
        self.assertEqual(self.utils.fit_text_to_cells("abcdef", 3), "abc")
        self.assertEqual(self.utils.fit_text_to_cells("日本語", 5), "日本 ")
        self.assertEqual(self.utils.fit_text_to_cells("x", 0), "")

    def test_format_helpers(self):
        self.assertEqual(self.utils.format_size(512), "512B")
        self.assertEqual(self.utils.format_size(2048), "2.0K")
        self.assertEqual(self.utils.format_size(5 * 1048576), "5.0M")
        self.assertEqual(self.utils.format_size(3 * 1073741824), "3.0G")
        self.assertEqual(self.utils.format_time(None), "-")
        self.assertEqual(self.utils.format_mode(0o754), "rwxr-xr--")
        self.assertEqual(self.utils.format_mode(None), "---------")


if __name__ == "__main__":
    unittest.main()
