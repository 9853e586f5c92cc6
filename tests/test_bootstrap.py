import types
import unittest
from unittest import mock

from _support import FakeScreen, load_with_fake_curses, unload_fake_curses


def _install_fake_termios():
    fake = types.ModuleType("termios")
    fake.error = OSError
    fake.IXON = 0x0200
    fake.IXOFF = 0x0400
    fake.TCSANOW = 0
    fake.tcgetattr = mock.Mock(return_value=[fake.IXON | fake.IXOFF | 0x1, 0, 0, 0, 0, 0, 0])
    fake.tcsetattr = mock.Mock()
    return fake


class BootstrapTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_curses, cls.curses, (cls.bootstrap,) = load_with_fake_curses("termxfer.core.bootstrap")

    @classmethod
    def tearDownClass(cls):
        unload_fake_curses(cls._prev_curses)

    def setUp(self):
        self.curses.calls.clear()
        self.termios = _install_fake_termios()
        patcher = mock.patch.object(self.bootstrap, "termios", self.termios)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_configure_terminal_applies_curses_setup(self):
        screen = FakeScreen()

        self.bootstrap.configure_terminal(screen, timeout_ms=20)

        self.assertEqual(self.curses.calls, ["curs_set", "noecho"])
        self.assertTrue(screen.keypad_enabled)
        self.assertEqual(screen.timeout_ms, 20)

    def test_configure_terminal_tolerates_missing_cursor_support(self):
        screen = FakeScreen()

        def no_cursor(_value):
            raise self.curses.error("no cursor")

        with mock.patch.object(self.curses, "curs_set", no_cursor):
            self.bootstrap.configure_terminal(screen)

        self.assertIn("noecho", self.curses.calls)

    def test_disable_flow_control_clears_ixon_ixoff(self):
        stream = types.SimpleNamespace(fileno=lambda: 0)

        self.bootstrap.disable_flow_control(stream)

        attrs = self.termios.tcsetattr.call_args.args[2]
        self.assertEqual(attrs[0], 0x1)

    def test_disable_flow_control_ignores_streams_without_fd(self):
        self.bootstrap.disable_flow_control(types.SimpleNamespace())

        self.termios.tcsetattr.assert_not_called()

    def test_raw_mode_round_trip(self):
        screen = FakeScreen()
        terminal = self.bootstrap.Terminal(screen)

        with mock.patch.object(self.bootstrap, "disable_flow_control") as flow:
            terminal.enable_raw_mode(timeout_ms=30)
        self.assertTrue(terminal.raw_mode)
        flow.assert_called_once_with()
        self.assertEqual(self.curses.calls[0], "raw")

        terminal.disable_raw_mode()
        terminal.disable_raw_mode()
        self.assertFalse(terminal.raw_mode)
        self.assertEqual(self.curses.calls.count("noraw"), 1)
        self.assertFalse(screen.keypad_enabled)

    def test_read_key_returns_none_on_timeout(self):
        screen = FakeScreen(keys=["q"])
        terminal = self.bootstrap.Terminal(screen)

        self.assertEqual(terminal.read_key(10), "q")
        self.assertIsNone(terminal.read_key(10))
        self.assertEqual(screen.timeout_ms, 10)

    def test_clear_screen_and_size(self):
        screen = FakeScreen(rows=40, cols=120)
        terminal = self.bootstrap.Terminal(screen)

        terminal.clear_screen()

        self.assertEqual(screen.erased, 1)
        self.assertEqual(terminal.size(), (40, 120))

    def test_suspend_restores_program_mode(self):
        screen = FakeScreen()
        terminal = self.bootstrap.Terminal(screen)

        with self.assertRaises(RuntimeError):
            with terminal.suspend():
                self.assertEqual(self.curses.calls, ["def_prog_mode", "endwin"])
                raise RuntimeError("editor crashed")

        self.assertEqual(self.curses.calls[-1], "reset_prog_mode")
        self.assertEqual(screen.refreshed, 1)


if __name__ == "__main__":
    unittest.main()
