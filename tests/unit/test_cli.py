"""
Unit tests for the pfind command line.
"""

import importlib
import os
import shutil
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import xxhash
from click.testing import CliRunner

from pfind.cli import main


class TestCli:
    """Test cases for the pfind command."""

    def setup_method(self):
        self.runner = CliRunner()
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir)
        (self.root / "sub" / ".git").mkdir(parents=True)
        (self.root / "tmp").mkdir()
        (self.root / "x.txt").write_text("xx")
        (self.root / "sub" / "y.TXT").write_text("yyy")
        (self.root / "sub" / ".git" / "z.txt").write_text("z")
        (self.root / "tmp" / "y_tmp.txt").write_text("t")

    def teardown_method(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _run(self, *args):
        return self.runner.invoke(main, ["--no-config", *args])

    def _lines(self, result):
        return set(result.output.splitlines())

    def test_search_prints_matching_paths(self):
        result = self._run(str(self.root), "--search", "y.txt")

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {os.path.join(str(self.root), "sub", "y.TXT")}

    def test_root_after_options(self):
        result = self._run("--search", "y.txt", str(self.root))

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {os.path.join(str(self.root), "sub", "y.TXT")}

    def test_size_column(self):
        result = self._run(str(self.root), "-s", "x.txt", "--size")

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {f"{os.path.join(str(self.root), 'x.txt')}\t2"}

    def test_xxhash_overrides_size(self):
        result = self._run(str(self.root), "-s", "x.txt", "--size", "--xxhash")

        digest = xxhash.xxh64(b"xx").intdigest()
        assert result.exit_code == 0, result.output
        assert self._lines(result) == {f"{os.path.join(str(self.root), 'x.txt')}\txxHash:{digest}"}

    def test_printdir_with_size_tags_directories(self):
        result = self._run(str(self.root), "-s", "sub", "--printdir", "--size")

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {f"{os.path.join(str(self.root), 'sub')}\tDIR"}

    def test_printdir_with_xxhash_prints_bare_directories(self):
        result = self._run(str(self.root), "-s", "sub", "--printdir", "--xxhash")

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {os.path.join(str(self.root), "sub")}

    def test_exclude_file(self):
        excludes = self.root / "excludes.txt"
        excludes.write_text("tmp\n\n")

        result = self._run(str(self.root), "-s", "y", "--exclude-file", str(excludes))

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {os.path.join(str(self.root), "sub", "y.TXT")}

    def test_exclude_option(self):
        result = self._run(str(self.root), "-s", "y", "--exclude", "tmp", "--exclude", "sub")

        assert result.exit_code == 0, result.output
        assert result.output == ""

    def test_missing_exclude_file_is_fatal(self):
        result = self._run(str(self.root), "--exclude-file", str(self.root / "missing.txt"))

        assert result.exit_code == 1
        assert "Cannot read exclusion file" in result.output

    def test_missing_root_is_usage_error(self):
        result = self._run(str(self.root / "nope"))

        assert result.exit_code == 2
        assert "does not exist" in result.output

    def test_file_root_is_usage_error(self):
        result = self._run(str(self.root / "x.txt"))

        assert result.exit_code == 2
        assert "not a directory" in result.output

    def test_missing_home_is_fatal(self):
        with patch('pfind.config.paths.Path.home', side_effect=RuntimeError("no home")):
            result = self._run("~/somewhere")

        assert result.exit_code == 1
        assert "failed to get user home directory" in result.output

    def test_tilde_root(self):
        with patch('pfind.config.paths.Path.home', return_value=self.root):
            result = self._run("~/sub", "-s", "y")

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {os.path.join(str(self.root), "sub", "y.TXT")}

    def test_config_file(self):
        settings = self.root / "settings.yaml"
        settings.write_text("exclude:\n  - tmp\nsize: true\n")

        result = self.runner.invoke(main, [str(self.root), "-s", "y", "--config", str(settings)])

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {f"{os.path.join(str(self.root), 'sub', 'y.TXT')}\t3"}

    def test_invalid_config_file(self):
        settings = self.root / "settings.yaml"
        settings.write_text("unknown_key: 1\n")

        result = self.runner.invoke(main, [str(self.root), "--config", str(settings)])

        assert result.exit_code == 1
        assert "Unknown configuration keys" in result.output

    def test_max_concurrent_must_be_positive(self):
        result = self._run(str(self.root), "--max-concurrent", "0")

        assert result.exit_code == 2

    def test_max_concurrent_one(self):
        result = self._run(str(self.root), "--max-concurrent", "1")

        assert result.exit_code == 0, result.output
        assert len(self._lines(result)) == 4

    def test_case_sensitive(self):
        result = self._run(str(self.root), "-s", "y.txt", "--case-sensitive")

        assert result.exit_code == 0, result.output
        assert result.output == ""

    def test_default_root_is_current_directory(self):
        with self.runner.isolated_filesystem(temp_dir=self.temp_dir):
            Path("found.txt").write_text("f")
            result = self._run("-s", "found")

        assert result.exit_code == 0, result.output
        assert self._lines(result) == {os.path.join(".", "found.txt")}

    def test_version(self):
        result = self.runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "pfind" in result.output

    def test_importing_module_entrypoint_does_not_run(self):
        sys.modules.pop("pfind.__main__", None)
        with patch("pfind.cli.main") as fake_main:
            importlib.import_module("pfind.__main__")

        fake_main.assert_not_called()
        sys.modules.pop("pfind.__main__", None)
