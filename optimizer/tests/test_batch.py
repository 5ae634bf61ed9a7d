"""
Integration tests for the batch driver.

Optimizes fixture files into temporary destination directories.
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path

from optimizer.batch import (
    BatchStats,
    discover_js_files,
    expand_pattern,
    optimize_file,
    optimize_files,
    relative_path,
)
from optimizer.models import OptimizeOptions

FIXTURES = Path(__file__).parent / "fixtures"


class TestRelativePath(unittest.TestCase):
    """Test mapping matched files below a pattern's fixed prefix."""

    def test_wildcard_prefix(self):
        """Test that files are placed relative to the text before the first wildcard."""
        self.assertEqual(relative_path("/a/b.js", "/a/*"), "b.js")

    def test_recursive_pattern(self):
        """Test that recursive patterns keep subdirectories below the prefix."""
        self.assertEqual(relative_path("src/sub/b.js", "src/**/*.js"), "sub/b.js")
        self.assertEqual(relative_path("src/a.js", "src/**/*.js"), "a.js")

    def test_exact_file(self):
        """Test that an exact file pattern maps to its base name."""
        self.assertEqual(relative_path("src/a.js", "src/a.js"), "a.js")


class TestExpandPattern(unittest.TestCase):
    """Test glob expansion."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        for name in ("a.js", "sub/b.js", "sub/deeper/c.mjs", "notes.txt"):
            path = Path(self.tmpdir, name)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("f();\n", encoding="utf-8")

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_recursive_glob_skips_directories(self):
        """Test that a recursive glob yields files only."""
        files = expand_pattern(os.path.join(self.tmpdir, "**"))
        names = sorted(os.path.relpath(f, self.tmpdir) for f in files)
        self.assertEqual(
            names,
            sorted(["a.js", os.path.join("sub", "b.js"), os.path.join("sub", "deeper", "c.mjs"), "notes.txt"]),
        )

    def test_directory_pattern(self):
        """Test that a directory pattern expands to its JavaScript files."""
        files = expand_pattern(self.tmpdir)
        self.assertEqual(len(files), 3)
        self.assertEqual(files, discover_js_files(self.tmpdir))

    def test_no_match_raises(self):
        """Test that a pattern matching nothing raises FileNotFoundError."""
        pattern = os.path.join(self.tmpdir, "*.coffee")
        with self.assertRaises(FileNotFoundError) as ctx:
            expand_pattern(pattern)
        self.assertIn("ENOENT, no such file", str(ctx.exception))


class TestOptimizeFiles(unittest.TestCase):
    """Test optimizing whole file sets."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.src = os.path.join(self.tmpdir, "src")
        shutil.copytree(FIXTURES, self.src)

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_optimize_file(self):
        """Test optimizing a single file and logging its classification errors."""
        with self.assertLogs("optimizer.batch", level="WARNING") as logs:
            report = optimize_file(os.path.join(self.src, "unclassified.js"))
        self.assertEqual(len(report.errors), 1)
        self.assertIn("Not enough metadata", logs.output[0])

    def test_optimize_into_destination(self):
        """Test optimizing a file set into one destination directory."""
        dest = os.path.join(self.tmpdir, "dist")
        stats = optimize_files({os.path.join(self.src, "*.js"): dest})

        self.assertIsInstance(stats, BatchStats)
        self.assertEqual(stats.files_processed, 3)
        self.assertEqual(stats.files_failed, 0)
        self.assertEqual(stats.constructs_optimized, 2)
        self.assertEqual(stats.classification_errors, 1)
        self.assertEqual(list(stats.file_errors), [os.path.join(self.src, "unclassified.js")])

        shapes = Path(dest, "shapes.js").read_text(encoding="utf-8")
        self.assertIn("Shape.prototype.initialize.call(this, 'square');", shapes)
        self.assertNotIn("$abstracts", shapes)
        self.assertNotIn("$name", shapes)
        self.assertEqual(shapes.count("}, true);"), 2)

        plain = Path(dest, "plain.js").read_text(encoding="utf-8")
        self.assertEqual(plain, (FIXTURES / "plain.js").read_text(encoding="utf-8"))

    def test_multiple_destinations_and_subdirectories(self):
        """Test that every destination receives the relative tree once."""
        nested = os.path.join(self.src, "lib")
        os.makedirs(nested)
        shutil.copy(os.path.join(self.src, "shapes.js"), os.path.join(nested, "more.js"))
        first = os.path.join(self.tmpdir, "out1")
        second = os.path.join(self.tmpdir, "out2")

        stats = optimize_files({os.path.join(self.src, "**", "*.js"): [first, second, first]})

        self.assertEqual(stats.files_processed, 4)
        for dest in (first, second):
            self.assertTrue(Path(dest, "lib", "more.js").is_file())
            self.assertTrue(Path(dest, "shapes.js").is_file())

    def test_closure_option(self):
        """Test that the closure flag selects the closure strategy."""
        dest = os.path.join(self.tmpdir, "dist")
        optimize_files({os.path.join(self.src, "shapes.js"): dest}, closure=True)
        shapes = Path(dest, "shapes.js").read_text(encoding="utf-8")
        self.assertIn("Class.declare(Shape, function ($super, $parent) {", shapes)
        self.assertIn("$super.initialize.call(this, 'square');", shapes)

    def test_options_override_closure(self):
        """Test that explicit options take precedence over the closure flag."""
        dest = os.path.join(self.tmpdir, "dist")
        optimize_files(
            {os.path.join(self.src, "shapes.js"): dest},
            closure=True,
            options=OptimizeOptions(closure=False),
        )
        shapes = Path(dest, "shapes.js").read_text(encoding="utf-8")
        self.assertIn("Shape.prototype.initialize.call(this, 'square');", shapes)

    def test_missing_pattern_raises(self):
        """Test that a missing source pattern aborts the batch."""
        with self.assertRaises(FileNotFoundError):
            optimize_files({os.path.join(self.src, "*.ts"): os.path.join(self.tmpdir, "dist")})

    def test_failed_file_is_counted(self):
        """Test that an unreadable file is counted and the batch continues."""
        dest = os.path.join(self.tmpdir, "dist")
        Path(self.src, "broken.js").write_bytes(b"\xff\xfe not utf-8")
        with self.assertLogs("optimizer.batch", level="ERROR"):
            stats = optimize_files({os.path.join(self.src, "*.js"): dest})
        self.assertEqual(stats.files_failed, 1)
        self.assertEqual(stats.files_processed, 3)
        self.assertIn(os.path.join(self.src, "broken.js"), stats.file_errors)

    def test_failed_file_reraised_when_not_continuing(self):
        """Test that continue_on_error=False re-raises the file error."""
        dest = os.path.join(self.tmpdir, "dist")
        Path(self.src, "broken.js").write_bytes(b"\xff\xfe not utf-8")
        with self.assertLogs("optimizer.batch", level="ERROR"):
            with self.assertRaises(UnicodeDecodeError):
                optimize_files(
                    {os.path.join(self.src, "broken.js"): dest},
                    continue_on_error=False,
                )

    def test_stats_to_dict(self):
        """Test BatchStats serialization and string form."""
        stats = BatchStats(files_processed=2, constructs_optimized=3)
        payload = stats.to_dict()
        self.assertEqual(payload["files_processed"], 2)
        self.assertEqual(payload["constructs_optimized"], 3)
        self.assertEqual(payload["file_errors"], {})
        self.assertIn("processed=2", str(stats))


if __name__ == "__main__":
    unittest.main()
