import types
import unittest

from _support import FakeScreen, FakeTerminal, load_with_fake_curses, unload_fake_curses


class ViewTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_curses, cls.curses, modules = load_with_fake_curses(
            "termxfer.activities.filetransfer.view",
            "termxfer.activities.filetransfer.messages",
            "termxfer.activities.filetransfer.transfer",
            "termxfer.ui.dialog",
        )
        cls.view_mod, cls.messages, cls.transfer_mod, cls.dialog = modules

    @classmethod
    def tearDownClass(cls):
        unload_fake_curses(cls._prev_curses)

    def setUp(self):
        self.screen = FakeScreen()
        self.act = types.SimpleNamespace(
            redraw=False,
            browser=types.SimpleNamespace(found=None),
            context=types.SimpleNamespace(terminal=FakeTerminal(self.screen)),
            watcher=None,
        )
        self.view = self.view_mod.View(self.act)

    def _msg(self, kind, payload=None):
        return self.messages.Msg(kind, payload)

    def test_explorer_keys_map_to_messages(self):
        UiMsg = self.messages.UiMsg
        TransferMsg = self.messages.TransferMsg
        Id = self.messages.Id

        self.assertEqual(self.view.on_key(" "), self._msg(TransferMsg.TRANSFER_FILE))
        self.assertEqual(self.view.on_key("Y"), self._msg(UiMsg.TOGGLE_SYNC_BROWSING))
        self.assertEqual(self.view.on_key("\t"), self._msg(UiMsg.CHANGE_FOCUS))
        self.assertEqual(self.view.on_key(self.curses.KEY_DC), self._msg(UiMsg.SHOW_POPUP, Id.DELETE_POPUP))
        self.assertIsNone(self.view.on_key("z"))
        self.assertIsNone(self.view.on_key("too long"))

    def test_page_keys_use_page_size(self):
        UiMsg = self.messages.UiMsg
        self.view.page_size = 7

        self.assertEqual(self.view.on_key(self.curses.KEY_NPAGE), self._msg(UiMsg.MOVE_CURSOR, 7))
        self.assertEqual(self.view.on_key(self.curses.KEY_PPAGE), self._msg(UiMsg.MOVE_CURSOR, -7))

    def test_escape_closes_search_results_first(self):
        UiMsg = self.messages.UiMsg

        self.assertEqual(
            self.view.on_key("\x1b"),
            self._msg(UiMsg.SHOW_POPUP, self.messages.Id.DISCONNECT_POPUP),
        )
        self.act.browser.found = object()
        self.assertEqual(self.view.on_key("\x1b"), self._msg(UiMsg.CLOSE_FIND_EXPLORER))

    def test_resize_only_requests_redraw(self):
        self.assertIsNone(self.view.on_key(self.curses.KEY_RESIZE))
        self.assertTrue(self.act.redraw)

    def test_remounting_moves_popup_to_top(self):
        Id = self.messages.Id
        Dialog = self.dialog.Dialog
        self.view.mount(Id.ERROR_POPUP, Dialog("Error", "first"))
        self.view.mount(Id.QUIT_POPUP, Dialog("Quit", "sure?"))

        self.view.mount(Id.ERROR_POPUP, Dialog("Error", "second"))

        popup_id, widget = self.view.top()
        self.assertEqual(popup_id, Id.ERROR_POPUP)
        self.assertEqual(widget.message, "second")
        self.assertEqual(list(self.view.popups), [Id.QUIT_POPUP, Id.ERROR_POPUP])

        self.view.umount(Id.ERROR_POPUP)
        self.assertEqual(self.view.top()[0], Id.QUIT_POPUP)

    def test_replace_popup_buttons_map_to_decisions(self):
        Decision = self.transfer_mod.TransferDecision
        PendingActionMsg = self.messages.PendingActionMsg
        entry = types.SimpleNamespace(dest_path="/home/user/b.txt")

        self.view.show_replace(entry)
        self.assertTrue(self.view.awaiting_decision())
        self.view.on_key(self.curses.KEY_RIGHT)

        self.assertEqual(
            self.view.on_key("\n"),
            self._msg(PendingActionMsg.RESOLVE_CONFLICT, Decision.REPLACE_ALL),
        )

    def test_replacing_list_ask_each_switches_popups(self):
        Id = self.messages.Id
        PendingActionMsg = self.messages.PendingActionMsg
        conflicts = [types.SimpleNamespace(dest_path=f"/r/{n}") for n in range(10)]

        self.view.show_replacing_files_list(conflicts)
        self.assertIn("... and 2 more", self.view.popups[Id.REPLACING_FILES_LIST_POPUP].message)
        self.view.on_key(self.curses.KEY_RIGHT)
        self.view.on_key(self.curses.KEY_RIGHT)

        self.assertEqual(self.view.on_key("\n"), self._msg(PendingActionMsg.ASK_EACH_CONFLICT))
        self.assertFalse(self.view.mounted(Id.REPLACING_FILES_LIST_POPUP))

    def test_input_popup_sends_trimmed_value(self):
        Id = self.messages.Id
        TransferMsg = self.messages.TransferMsg
        self.view.mount(Id.GOTO_POPUP, self.dialog.InputDialog("Go to", "Path:", " /tmp "))

        self.assertEqual(self.view.on_key("\n"), self._msg(TransferMsg.GO_TO, "/tmp"))
        self.assertFalse(self.view.mounted(Id.GOTO_POPUP))

        self.view.mount(Id.GOTO_POPUP, self.dialog.InputDialog("Go to", "Path:", "   "))
        self.assertIsNone(self.view.on_key("\n"))
        self.assertFalse(self.view.mounted(Id.GOTO_POPUP))

    def test_sync_mkdir_popup_choices(self):
        PendingActionMsg = self.messages.PendingActionMsg

        self.view.show_sync_browsing_mkdir("/home/user/docs")
        self.assertEqual(self.view.on_key("\n"), self._msg(PendingActionMsg.MAKE_PENDING_DIRECTORY))

        self.view.on_key(self.curses.KEY_RIGHT)
        self.assertEqual(
            self.view.on_key("\n"),
            self._msg(PendingActionMsg.CLOSE_SYNC_BROWSING_MKDIR_POPUP),
        )

    def test_progress_and_wait_popups_swallow_keys(self):
        Id = self.messages.Id

        self.view.show_wait("Connecting...")
        self.assertIsNone(self.view.on_key("q"))
        self.assertTrue(self.view.mounted(Id.WAIT_POPUP))

    def test_render_reports_small_terminal(self):
        self.screen.rows, self.screen.cols = 10, 40

        self.view.render()

        self.assertIn("Terminal too small (40x10)", self.screen.text())
        self.assertIn("doupdate", self.curses.calls)


if __name__ == "__main__":
    unittest.main()
