"""End-to-end tests for the run_optimizer command-line driver."""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import run_optimizer

FIXTURES = Path(__file__).parent / "fixtures"


class TestRunOptimizer(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir)

    def _run(self, *argv: str) -> None:
        with mock.patch("sys.argv", ["run_optimizer.py", *argv]):
            run_optimizer.main()

    def test_source_dest_with_report(self) -> None:
        """Test a source/dest run that writes a JSON run report."""
        dest = os.path.join(self.tmpdir, "dist")
        reports = os.path.join(self.tmpdir, "reports")
        with mock.patch.dict(os.environ, {}, clear=True):
            self._run(
                "--source", str(FIXTURES / "shapes.js"),
                "--dest", dest,
                "--report-dir", reports,
                "--log-level", "WARNING",
            )
        self.assertTrue(Path(dest, "shapes.js").is_file())
        [report] = list(Path(reports).glob("optimizer-*.json"))
        payload = json.loads(report.read_text(encoding="utf-8"))
        self.assertEqual(payload["status"], "success")
        self.assertEqual(payload["files_processed"], 1)
        self.assertEqual(payload["constructs_optimized"], 2)
        self.assertEqual(payload["config"]["closure"], False)

    def test_config_file(self) -> None:
        """Test that patterns and options are read from a YAML config."""
        dest = os.path.join(self.tmpdir, "dist")
        config = Path(self.tmpdir, "optimizer.yml")
        config.write_text(
            "closure: true\nfiles:\n  '%s': '%s'\n" % (FIXTURES / "shapes.js", dest),
            encoding="utf-8",
        )
        with mock.patch.dict(os.environ, {}, clear=True):
            self._run("--config", str(config), "--log-level", "WARNING")
        output = Path(dest, "shapes.js").read_text(encoding="utf-8")
        self.assertIn("Class.declare(Shape, function ($super, $parent) {", output)

    def test_unpaired_source_exits(self) -> None:
        """Test that --source without --dest exits with status 1."""
        with self.assertRaises(SystemExit) as ctx:
            self._run("--source", "src/*.js")
        self.assertEqual(ctx.exception.code, 1)

    def test_missing_files_exit(self) -> None:
        """Test that a pattern matching no files exits with status 1."""
        with self.assertRaises(SystemExit) as ctx:
            self._run(
                "--source", os.path.join(self.tmpdir, "*.js"),
                "--dest", os.path.join(self.tmpdir, "dist"),
            )
        self.assertEqual(ctx.exception.code, 1)

    def test_no_patterns_exit(self) -> None:
        """Test that running without patterns exits with status 1."""
        with self.assertRaises(SystemExit) as ctx:
            self._run()
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main()
