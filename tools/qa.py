#!/usr/bin/env python3
"""Run repository quality checks.

Checks included:
- UTF-8 validation on source/docs/config files
- Python bytecode compilation for the package, tests and tools
- Version consistency between pyproject.toml and termxfer.__version__
- Unit tests in tests/
"""

from __future__ import annotations

import argparse
import compileall
import re
import subprocess
import sys
from pathlib import Path

TEXT_EXTENSIONS = {".py", ".md", ".toml", ".txt", ".cfg"}

DEFAULT_SCAN_PATHS = [
    "termxfer",
    "tests",
    "tools",
    "DESIGN.md",
    "SPEC_FULL.md",
    "pyproject.toml",
]

COMPILE_PATHS = ["termxfer", "tests", "tools"]


def _iter_text_files(root: Path, paths: list[str]) -> list[Path]:
    files: set[Path] = set()
    for raw_path in paths:
        path = root / raw_path
        if path.is_file():
            if path.suffix.lower() in TEXT_EXTENSIONS:
                files.add(path)
            continue
        if path.is_dir():
            files.update(
                child for child in path.rglob("*")
                if child.is_file() and child.suffix.lower() in TEXT_EXTENSIONS
            )
    return sorted(files)


def check_utf8(root: Path, paths: list[str]) -> int:
    """Validate UTF-8 decoding for known text files."""
    bad_files: list[str] = []
    for file_path in _iter_text_files(root, paths):
        try:
            file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            bad_files.append(f"{file_path}: {exc}")

    if bad_files:
        print("[FAIL] UTF-8 validation failed:")
        for line in bad_files:
            print(f"  - {line}")
        return 1

    print("[OK] UTF-8 validation passed.")
    return 0


def check_compile(root: Path, paths: list[str]) -> int:
    """Compile Python files to bytecode to catch syntax errors."""
    success = True
    for path in paths:
        target = root / path
        if target.exists() and not compileall.compile_dir(str(target), quiet=1, force=False):
            success = False

    if success:
        print("[OK] compileall passed.")
        return 0

    print("[FAIL] compileall failed.")
    return 1


def check_version_sync(root: Path) -> int:
    """Verify pyproject.toml and termxfer/__init__.py declare the same version."""
    pyproject = root / "pyproject.toml"
    init_file = root / "termxfer" / "__init__.py"

    if not pyproject.exists() or not init_file.exists():
        print("[FAIL] version sync check: required files missing.")
        return 1

    project_match = re.search(
        r'^\s*version\s*=\s*"([^"]+)"', pyproject.read_text(encoding="utf-8"), flags=re.MULTILINE
    )
    init_match = re.search(
        r"^__version__\s*=\s*['\"]([^'\"]+)['\"]", init_file.read_text(encoding="utf-8"), flags=re.MULTILINE
    )
    if not project_match or not init_match:
        print("[FAIL] version sync check: unable to parse version fields.")
        return 1

    project_version = project_match.group(1)
    init_version = init_match.group(1)
    if project_version != init_version:
        print(
            "[FAIL] version sync mismatch: "
            f"pyproject.toml={project_version} vs termxfer/__init__.py={init_version}"
        )
        return 1

    print(f"[OK] version sync passed ({project_version}).")
    return 0


def check_tests(root: Path) -> int:
    """Run unit tests."""
    cmd = [sys.executable, "-m", "unittest", "discover", "-s", "tests", "-v"]
    result = subprocess.run(cmd, cwd=root, check=False)
    if result.returncode == 0:
        print("[OK] unit tests passed.")
        return 0

    print("[FAIL] unit tests failed.")
    return result.returncode


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run termxfer quality checks.")
    parser.add_argument("--root", default=str(Path(__file__).resolve().parent.parent),
                        help="Repository root (default: parent of tools/).")
    parser.add_argument("--skip-encoding", action="store_true", help="Skip UTF-8 validation.")
    parser.add_argument("--skip-compile", action="store_true", help="Skip compileall check.")
    parser.add_argument("--skip-version-sync", action="store_true", help="Skip version consistency check.")
    parser.add_argument("--skip-tests", action="store_true", help="Skip unit tests.")
    args = parser.parse_args(argv)
    root = Path(args.root)

    exit_code = 0
    if not args.skip_encoding:
        exit_code |= check_utf8(root, DEFAULT_SCAN_PATHS)
    if not args.skip_compile:
        exit_code |= check_compile(root, COMPILE_PATHS)
    if not args.skip_version_sync:
        exit_code |= check_version_sync(root)
    if not args.skip_tests:
        exit_code |= check_tests(root)

    if exit_code == 0:
        print("[OK] all quality checks passed.")
    else:
        print("[FAIL] one or more quality checks failed.")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
