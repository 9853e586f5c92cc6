import unittest

from _support import load_with_fake_curses, unload_fake_curses


class FileExplorerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_curses, _, (cls.explorer,) = load_with_fake_curses("termxfer.explorer")
        FileEntry = cls.explorer.FileEntry
        FileKind = cls.explorer.FileKind
        cls.entries = [
            FileEntry("zeta.txt", "/w/zeta.txt", size=10, modified_time=3.0),
            FileEntry("Alpha.txt", "/w/Alpha.txt", size=300, modified_time=1.0),
            FileEntry("src", "/w/src", kind=FileKind.DIRECTORY, modified_time=2.0),
            FileEntry(".hidden", "/w/.hidden", size=1, modified_time=4.0),
            FileEntry("link", "/w/link", kind=FileKind.SYMLINK, symlink_target="/etc"),
        ]

    @classmethod
    def tearDownClass(cls):
        unload_fake_curses(cls._prev_curses)

    def _explorer(self, **kwargs):
        explorer = self.explorer.FileExplorer("/w", **kwargs)
        explorer.set_files(self.entries)
        return explorer

    def _names(self, explorer):
        return [entry.name for entry in explorer.files]

    def test_default_view_groups_dirs_and_hides_dotfiles(self):
        explorer = self._explorer()

        self.assertEqual(self._names(explorer), ["src", "Alpha.txt", "link", "zeta.txt"])
        self.assertEqual(len(explorer.entries), 5)

    def test_toggle_hidden(self):
        explorer = self._explorer()

        self.assertTrue(explorer.toggle_hidden())
        self.assertIn(".hidden", self._names(explorer))

    def test_sorting_modes(self):
        explorer = self._explorer(group_dirs=self.explorer.GroupDirs.NONE, show_hidden=True)

        explorer.sort(self.explorer.FileSorting.SIZE)
        self.assertEqual(self._names(explorer)[:2], ["Alpha.txt", "zeta.txt"])

        explorer.sort(self.explorer.FileSorting.MODIFY_TIME)
        self.assertEqual(self._names(explorer)[0], ".hidden")

    def test_sorting_cycles(self):
        sorting = self.explorer.FileSorting.NAME
        seen = [sorting]
        for _ in range(3):
            sorting = sorting.next()
            seen.append(sorting)

        self.assertEqual(seen[0], seen[3])
        self.assertEqual(len(set(seen)), 3)
        self.assertEqual(self.explorer.FileSorting.SIZE.label, "By size")

    def test_selection_falls_back_to_cursor(self):
        explorer = self._explorer()
        explorer.move_cursor(1)

        self.assertEqual([entry.name for entry in explorer.selection()], ["Alpha.txt"])

        explorer.toggle_mark()
        explorer.move_cursor(2)
        explorer.toggle_mark()
        self.assertEqual([entry.name for entry in explorer.selection()], ["Alpha.txt", "zeta.txt"])

        explorer.clear_marks()
        self.assertEqual([entry.name for entry in explorer.selection()], ["zeta.txt"])

    def test_mark_all_and_relisting_drops_stale_marks(self):
        explorer = self._explorer()
        explorer.mark_all()
        self.assertEqual(len(explorer.marked), 4)

        explorer.set_files(self.entries[:2])

        self.assertEqual(explorer.marked, {"/w/zeta.txt", "/w/Alpha.txt"})

    def test_cursor_is_clamped(self):
        explorer = self._explorer()

        explorer.move_cursor(100)
        self.assertEqual(explorer.cursor, 3)
        explorer.move_cursor(-100)
        self.assertEqual(explorer.cursor, 0)
        explorer.cursor_end()
        explorer.set_files(self.entries[:1])
        self.assertEqual(explorer.cursor, 0)

        explorer.set_files([])
        self.assertIsNone(explorer.selected_entry())
        self.assertEqual(explorer.selection(), [])

    def test_directory_stack(self):
        explorer = self._explorer()

        self.assertIsNone(explorer.popd())
        explorer.pushd("/a")
        explorer.pushd("/b")

        self.assertEqual(explorer.popd(), "/b")
        self.assertEqual(explorer.popd(), "/a")

    def test_display_name(self):
        by_name = {entry.name: entry for entry in self.entries}

        self.assertEqual(by_name["src"].display_name(), "src/")
        self.assertEqual(by_name["link"].display_name(), "link -> /etc")
        self.assertEqual(by_name["zeta.txt"].display_name(), "zeta.txt")


if __name__ == "__main__":
    unittest.main()
