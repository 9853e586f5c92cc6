import os
import unittest
from pathlib import Path

from _support import load_with_fake_curses, make_fake_remote, make_repo_tmpdir, unload_fake_curses


class TransferExecutorTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_curses, _, mods = load_with_fake_curses(
            "termxfer.errors",
            "termxfer.explorer",
            "termxfer.filetransfer.remotefs",
            "termxfer.filetransfer",
            "termxfer.host",
            "termxfer.activities.filetransfer.logring",
            "termxfer.activities.filetransfer.session",
            "termxfer.activities.filetransfer.transfer",
        )
        (cls.errors, cls.explorer, cls.remotefs, cls.filetransfer,
         cls.host_mod, cls.logring, cls.session_mod, cls.transfer) = mods

    @classmethod
    def tearDownClass(cls):
        unload_fake_curses(cls._prev_curses)

    def setUp(self):
        self.tmp = make_repo_tmpdir("_tmp_transfer_")
        self.addCleanup(self.tmp.cleanup)
        root = Path(self.tmp.name)
        self.local_dir = root / "local"
        self.local_dir.mkdir()
        fake_remote_cls = make_fake_remote(self.errors, self.explorer, self.remotefs, root / "remote")
        self.remote = fake_remote_cls()
        self.log = self.logring.LogRing()
        params = self.filetransfer.FileTransferParams(
            self.filetransfer.Protocol.SFTP, "example.org", 22, "user"
        )
        self.clock = [100.0]
        self.session = self.session_mod.ConnectionManager(
            params, self.log, builder=lambda _params: self.remote, clock=lambda: self.clock[0]
        )
        self.assertTrue(self.session.build())
        self.assertTrue(self.session.connect())
        self.host = self.host_mod.Localhost(str(self.local_dir))
        self.snapshots = []
        self.executor = self.transfer.TransferExecutor(
            self.host,
            self.session,
            self.log,
            chunk_size=4,
            on_progress=self._record,
            clock=lambda: self.clock[0],
        )

    def _record(self, states):
        active = states.active_entry
        self.snapshots.append((
            states.file_done,
            states.file_total,
            states.bytes_done,
            states.bytes_total,
            active.status if active is not None else None,
        ))

    def _local_file(self, name, data):
        path = self.local_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return self.host.stat(str(path))

    def _assert_counters_bounded(self):
        for file_done, file_total, bytes_done, bytes_total, _ in self.snapshots:
            self.assertLessEqual(file_done, file_total)
            self.assertLessEqual(bytes_done, bytes_total)

    def _upload(self, *entries):
        return self.executor.enqueue(list(entries), self.transfer.TransferDirection.UPLOAD, "/home/user")

    def test_upload_new_file_goes_pending_in_progress_done(self):
        entry = self._local_file("a.txt", b"0123456789")

        [queued] = self._upload(entry)
        self.assertEqual(queued.status, self.transfer.TransferStatus.PENDING)

        outcome = self.executor.run()

        self.assertEqual(outcome, self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(queued.status, self.transfer.TransferStatus.DONE)
        self.assertIn(self.transfer.TransferStatus.IN_PROGRESS, [snap[4] for snap in self.snapshots])
        self.assertEqual(self.executor.states.bytes_done, 10)
        self.assertEqual(self.executor.states.file_done, 1)
        names = [item.name for item in self.session.invoke("list_dir", "/home/user")]
        self.assertIn("a.txt", names)
        self.assertEqual(self.remote.read("/home/user/a.txt"), b"0123456789")

    def test_progress_counters_stay_bounded_and_reach_totals(self):
        entries = [self._local_file(f"f{i}.bin", b"x" * (3 + i * 5)) for i in range(4)]

        self._upload(*entries)
        self.executor.run()

        self._assert_counters_bounded()
        states = self.executor.states
        self.assertEqual(states.file_done, states.file_total)
        self.assertEqual(states.bytes_done, states.bytes_total)
        self.assertEqual(states.bytes_total, sum(entry.size for entry in entries))
        self.assertAlmostEqual(states.full_ratio, 1.0)

    def test_existing_remote_file_is_conflict_and_skip_this_transfers_nothing(self):
        self.remote.write("/home/user/a.txt", b"old")
        entry = self._local_file("a.txt", b"0123456789")

        [queued] = self._upload(entry)
        self.assertEqual(queued.status, self.transfer.TransferStatus.CONFLICT)
        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.NEEDS_DECISION)

        self.executor.resolve(self.transfer.TransferDecision.SKIP_THIS)
        outcome = self.executor.run()

        self.assertEqual(outcome, self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(queued.status, self.transfer.TransferStatus.SKIPPED)
        self.assertEqual(self.executor.states.bytes_done, 0)
        self.assertEqual(self.remote.read("/home/user/a.txt"), b"old")

    def test_replace_this_overwrites_remote_file(self):
        self.remote.write("/home/user/a.txt", b"old")
        entry = self._local_file("a.txt", b"0123456789")

        [queued] = self._upload(entry)
        self.executor.run()
        self.executor.resolve(self.transfer.TransferDecision.REPLACE_THIS)
        self.executor.run()

        self.assertEqual(queued.status, self.transfer.TransferStatus.DONE)
        self.assertEqual(self.session.invoke("stat", "/home/user/a.txt").size, 10)

    def test_replace_all_resolves_every_conflict_without_new_prompts(self):
        entries = []
        for i in range(3):
            self.remote.write(f"/home/user/c{i}.txt", b"old")
            entries.append(self._local_file(f"c{i}.txt", b"new-content"))
        queued = self._upload(*entries)
        self.assertTrue(all(item.in_conflict for item in queued))

        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.NEEDS_DECISION)
        self.executor.resolve(self.transfer.TransferDecision.REPLACE_ALL)
        outcome = self.executor.run()

        self.assertEqual(outcome, self.transfer.ExecOutcome.COMPLETED)
        for i, item in enumerate(queued):
            self.assertEqual(item.status, self.transfer.TransferStatus.DONE)
            self.assertEqual(self.remote.read(f"/home/user/c{i}.txt"), b"new-content")

    def test_skip_all_marks_every_conflict_skipped_with_zero_bytes(self):
        entries = []
        for i in range(3):
            self.remote.write(f"/home/user/s{i}.txt", b"old")
            entries.append(self._local_file(f"s{i}.txt", b"new-content"))
        fresh = self._local_file("fresh.txt", b"1234")
        queued = self._upload(*entries, fresh)

        self.executor.run()
        self.executor.resolve(self.transfer.TransferDecision.SKIP_ALL)
        self.executor.run()

        for item in queued[:3]:
            self.assertEqual(item.status, self.transfer.TransferStatus.SKIPPED)
        self.assertEqual(queued[3].status, self.transfer.TransferStatus.DONE)
        self.assertEqual(self.executor.states.bytes_done, 4)
        self.assertEqual(self.executor.states.bytes_total, 4)
        self.assertEqual(self.remote.read("/home/user/s0.txt"), b"old")

    def test_abort_mid_queue_leaves_following_entries_pending(self):
        entries = [self._local_file(f"q{i}.txt", b"abcdefghijkl") for i in range(3)]
        queued = self._upload(*entries)
        self.executor.on_progress = lambda states: self.executor.abort() if states.file_bytes_done else None

        outcome = self.executor.run()

        self.assertEqual(outcome, self.transfer.ExecOutcome.ABORTED)
        self.assertEqual(queued[0].status, self.transfer.TransferStatus.FAILED)
        for item in queued[1:]:
            self.assertIn(item.status, (self.transfer.TransferStatus.PENDING, self.transfer.TransferStatus.SKIPPED))
        self.assertTrue(self.executor.idle)

    def test_abort_decision_stops_queue(self):
        self.remote.write("/home/user/a.txt", b"old")
        queued = self._upload(self._local_file("a.txt", b"new"), self._local_file("b.txt", b"bbb"))

        self.executor.run()
        self.executor.resolve(self.transfer.TransferDecision.ABORT)

        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.ABORTED)
        self.assertEqual(queued[1].status, self.transfer.TransferStatus.PENDING)
        self.assertFalse(os.path.exists(self.remote._local("/home/user/b.txt")))

    def test_abort_while_conflict_is_open_ends_the_queue(self):
        Status = self.transfer.TransferStatus
        self.remote.write("/home/user/b.txt", b"old")
        queued = self._upload(self._local_file("b.txt", b"new"), self._local_file("a.txt", b"aaa"))
        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.NEEDS_DECISION)

        self.executor.abort()

        self.assertTrue(self.executor.states.aborted)
        self.assertTrue(self.executor.idle)
        self.assertEqual([item.status for item in queued], [Status.SKIPPED, Status.PENDING])
        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.ABORTED)
        self.assertFalse(os.path.exists(self.remote._local("/home/user/a.txt")))
        self.assertEqual(self.remote.read("/home/user/b.txt"), b"old")
        self.assertEqual(self.log.records()[0].message, "Transfer aborted")

    def test_abort_is_forgotten_by_the_next_queue(self):
        self.executor.abort()
        [queued] = self._upload(self._local_file("a.txt", b"aaa"))

        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(queued.status, self.transfer.TransferStatus.DONE)

    def test_connection_loss_pauses_queue_and_resumes_after_reconnect(self):
        entry = self._local_file("a.txt", b"0123456789")
        [queued] = self._upload(entry)
        self.remote.drop_after_bytes = 4

        outcome = self.executor.run()

        self.assertEqual(outcome, self.transfer.ExecOutcome.CONNECTION_LOST)
        self.assertTrue(self.executor.queue.paused)
        self.assertEqual(queued.status, self.transfer.TransferStatus.PENDING)
        self.assertEqual(self.session.state, self.session_mod.ConnectionState.DISCONNECTED)
        self.assertEqual(self.executor.states.bytes_done, 0)

        self.assertTrue(self.session.should_connect())
        self.assertTrue(self.session.connect())
        self.executor.queue.paused = False
        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(queued.status, self.transfer.TransferStatus.DONE)
        self.assertEqual(self.executor.states.bytes_done, 10)
        self._assert_counters_bounded()

    def test_failed_entry_does_not_stop_the_queue(self):
        missing = self._local_file("vanishing.txt", b"zzz")
        os.remove(missing.path)
        ok = self._local_file("ok.txt", b"fine")
        queued = self._upload(missing, ok)

        outcome = self.executor.run()

        self.assertEqual(outcome, self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(queued[0].status, self.transfer.TransferStatus.FAILED)
        self.assertEqual(queued[1].status, self.transfer.TransferStatus.DONE)
        self.assertTrue(any("vanishing.txt" in record.message for record in self.log.records()))

    def test_directory_upload_creates_tree(self):
        self._local_file("tree/x.txt", b"x")
        self._local_file("tree/sub/y.txt", b"yy")
        tree = self.host.stat(str(self.local_dir / "tree"))

        self._upload(tree)
        outcome = self.executor.run()

        self.assertEqual(outcome, self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(self.remote.read("/home/user/tree/x.txt"), b"x")
        self.assertEqual(self.remote.read("/home/user/tree/sub/y.txt"), b"yy")
        states = self.executor.states
        self.assertEqual(states.file_done, states.file_total)
        self.assertEqual(states.bytes_done, 3)

    def test_replacing_existing_directory_replaces_its_children(self):
        self.remote.write("/home/user/tree/x.txt", b"old")
        self._local_file("tree/x.txt", b"new")
        self._local_file("tree/z.txt", b"zz")
        tree = self.host.stat(str(self.local_dir / "tree"))

        [parent] = self._upload(tree)
        self.assertEqual(parent.status, self.transfer.TransferStatus.CONFLICT)
        self.executor.resolve(self.transfer.TransferDecision.REPLACE_THIS)

        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(self.remote.read("/home/user/tree/x.txt"), b"new")
        self.assertEqual(self.remote.read("/home/user/tree/z.txt"), b"zz")

    def test_skipping_existing_directory_transfers_none_of_its_children(self):
        self.remote.write("/home/user/tree/x.txt", b"old")
        self._local_file("tree/x.txt", b"new")
        self._local_file("tree/z.txt", b"zz")
        tree = self.host.stat(str(self.local_dir / "tree"))

        self._upload(tree)
        self.executor.resolve(self.transfer.TransferDecision.SKIP_THIS)
        self.executor.run()

        self.assertEqual(self.remote.read("/home/user/tree/x.txt"), b"old")
        self.assertFalse(os.path.exists(self.remote._local("/home/user/tree/z.txt")))

    def test_download_writes_local_file_and_records_local_write(self):
        self.executor.is_watched = lambda path: path.startswith(str(self.local_dir))
        self.remote.write("/home/user/remote.txt", b"from-remote")
        source = self.session.invoke("stat", "/home/user/remote.txt")

        [queued] = self.executor.enqueue(
            [source], self.transfer.TransferDirection.DOWNLOAD, str(self.local_dir)
        )
        self.executor.run()

        target = self.local_dir / "remote.txt"
        self.assertEqual(queued.status, self.transfer.TransferStatus.DONE)
        self.assertEqual(target.read_bytes(), b"from-remote")
        self.assertIn(str(target), self.executor.local_writes)

    def test_unwatched_download_is_not_remembered(self):
        self.executor.is_watched = lambda path: False
        self.remote.write("/home/user/remote.txt", b"from-remote")
        source = self.session.invoke("stat", "/home/user/remote.txt")

        self.executor.enqueue([source], self.transfer.TransferDirection.DOWNLOAD, str(self.local_dir))
        self.executor.run()

        self.assertTrue((self.local_dir / "remote.txt").exists())
        self.assertEqual(self.executor.local_writes, set())

    def test_save_as_renames_single_entry(self):
        entry = self._local_file("a.txt", b"abc")

        [queued] = self.executor.enqueue(
            [entry], self.transfer.TransferDirection.UPLOAD, "/home/user", rename="b.txt"
        )
        self.executor.run()

        self.assertEqual(queued.dest_path, "/home/user/b.txt")
        self.assertEqual(self.remote.read("/home/user/b.txt"), b"abc")

    def test_remove_of_missing_remote_path_counts_as_done(self):
        queued = self.executor.enqueue_remove("/home/user/never-there.txt")

        self.assertEqual(self.executor.run(), self.transfer.ExecOutcome.COMPLETED)
        self.assertEqual(queued.status, self.transfer.TransferStatus.DONE)

    def test_enqueue_after_completion_starts_fresh_queue(self):
        self._upload(self._local_file("one.txt", b"1"))
        self.executor.run()
        first_queue = self.executor.queue

        self._upload(self._local_file("two.txt", b"22"))

        self.assertIsNot(self.executor.queue, first_queue)
        self.assertEqual(self.executor.states.bytes_total, 2)


class TransferStatesTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_curses, _, (cls.transfer, cls.explorer) = load_with_fake_curses(
            "termxfer.activities.filetransfer.transfer",
            "termxfer.explorer",
        )

    @classmethod
    def tearDownClass(cls):
        unload_fake_curses(cls._prev_curses)

    def _entry(self, size):
        source = self.explorer.FileEntry(name="f", path="/f", size=size)
        return self.transfer.TransferEntry(source, "/dst/f", self.transfer.TransferDirection.UPLOAD)

    def test_advance_is_clamped_to_file_size(self):
        states = self.transfer.TransferStates()
        entry = self._entry(5)
        states.grow(1, 5)
        states.begin_file(entry, 0.0)

        states.advance(3)
        states.advance(10)

        self.assertEqual(states.file_bytes_done, 5)
        self.assertEqual(states.bytes_done, 5)

    def test_rewind_forgets_partial_bytes(self):
        states = self.transfer.TransferStates()
        states.grow(1, 8)
        states.begin_file(self._entry(8), 0.0)
        states.advance(6)

        states.rewind_file()

        self.assertEqual(states.bytes_done, 0)
        self.assertIsNone(states.active_entry)

    def test_discount_never_drops_below_done(self):
        states = self.transfer.TransferStates()
        states.grow(2, 10)
        states.begin_file(self._entry(4), 0.0)
        states.advance(4)
        states.finish_file()

        states.discount(self._entry(6))
        states.discount(self._entry(6))

        self.assertEqual(states.file_total, 1)
        self.assertEqual(states.bytes_total, 4)

    def test_bytes_per_second(self):
        states = self.transfer.TransferStates()
        states.grow(1, 100)
        states.begin_file(self._entry(100), 10.0)
        states.advance(50)

        self.assertEqual(states.bytes_per_second(12.0), 25.0)
        self.assertEqual(states.bytes_per_second(10.0), 0.0)


if __name__ == "__main__":
    unittest.main()
