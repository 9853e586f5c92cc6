import importlib.util
import io
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from _support import make_repo_tmpdir

QA_PATH = Path(__file__).resolve().parent.parent / "tools" / "qa.py"


def _load_qa():
    spec = importlib.util.spec_from_file_location("termxfer_qa_tool", QA_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class QaToolTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.qa = _load_qa()

    def setUp(self):
        tmp = make_repo_tmpdir()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        (self.root / "termxfer").mkdir()

    def _write(self, pyproject_version, init_version):
        (self.root / "pyproject.toml").write_text(
            f'[project]\nname = "termxfer"\nversion = "{pyproject_version}"\n', encoding="utf-8"
        )
        (self.root / "termxfer" / "__init__.py").write_text(
            f'"""termxfer."""\n__version__ = "{init_version}"\n', encoding="utf-8"
        )

    def _quiet(self, func, *args):
        out = io.StringIO()
        with redirect_stdout(out):
            code = func(*args)
        return code, out.getvalue()

    def test_version_sync_passes_when_aligned(self):
        self._write("1.2.0", "1.2.0")

        code, out = self._quiet(self.qa.check_version_sync, self.root)

        self.assertEqual(code, 0)
        self.assertIn("1.2.0", out)

    def test_version_sync_reports_mismatch(self):
        self._write("1.2.0", "1.1.9")

        code, out = self._quiet(self.qa.check_version_sync, self.root)

        self.assertEqual(code, 1)
        self.assertIn("mismatch", out)

    def test_version_sync_requires_files(self):
        code, _ = self._quiet(self.qa.check_version_sync, self.root)

        self.assertEqual(code, 1)

    def test_utf8_check_flags_bad_files(self):
        self._write("1.0.0", "1.0.0")
        (self.root / "termxfer" / "bad.py").write_bytes(b"x = '\xff'\n")

        code, out = self._quiet(self.qa.check_utf8, self.root, ["termxfer", "pyproject.toml"])

        self.assertEqual(code, 1)
        self.assertIn("bad.py", out)

    def test_repository_versions_are_aligned(self):
        code, _ = self._quiet(self.qa.check_version_sync, QA_PATH.parent.parent)

        self.assertEqual(code, 0)


if __name__ == "__main__":
    unittest.main()
