"""
Unit tests for rewriter.py

Tests the text-level symbolic reference rewrites and the metadata helpers
shared by both strategies.
"""

import unittest

from optimizer.classifier import iter_usages
from optimizer.models import RewriteContext
from optimizer.parser import parse_source
from optimizer.rewriter import (
    find_function,
    has_leftover_marker,
    has_unresolved_reference,
    is_simple_reference,
    replace_self_access,
    resolve_parent,
    rewrite_super_calls,
    strip_member_unwrap,
    strip_static_access,
    super_target_name,
)


class TestSuperCalls(unittest.TestCase):
    """Test rewriting receiver bound super calls."""

    def test_with_arguments(self):
        """Test rewriting a super call with arguments."""
        code = rewrite_super_calls("this.$super(a, b);", "Base", ".prototype.", "run")
        self.assertEqual(code, "Base.prototype.run.call(this, a, b);")

    def test_without_arguments(self):
        """Test that a super call without arguments drops the trailing comma."""
        code = rewrite_super_calls("return this.$super();", "Base", ".prototype.", "run")
        self.assertEqual(code, "return Base.prototype.run.call(this);")

    def test_receivers(self):
        """Test the _that and __self receiver aliases."""
        code = rewrite_super_calls("_that.$super(1); __self.$super();", "$super", ".", "go")
        self.assertEqual(code, "$super.go.call(_that, 1); $super.go.call(__self);")

    def test_whitespace_around_dot_is_kept(self):
        """Test that whitespace around the dot is preserved."""
        code = rewrite_super_calls("this .\n$super(x)", "A", ".", "m")
        self.assertEqual(code, "A .\nm.call(this, x)")

    def test_unrelated_calls_untouched(self):
        """Test that lookalike calls are not rewritten."""
        code = "other.$super(); this.superb();"
        self.assertEqual(rewrite_super_calls(code, "A", ".", "m"), code)

    def test_initializer_alias(self):
        """Test the initializer aliases in instance context."""
        self.assertEqual(super_target_name("_initialize", RewriteContext()), "initialize")
        self.assertEqual(super_target_name("__initialize", RewriteContext()), "initialize")
        self.assertEqual(super_target_name("initialize", RewriteContext()), "initialize")
        self.assertEqual(super_target_name("run", RewriteContext()), "run")

    def test_initializer_alias_not_in_static_context(self):
        """Test that static context keeps the authored name."""
        ctx = RewriteContext(is_static=True)
        self.assertEqual(super_target_name("_initialize", ctx), "_initialize")


class TestOtherReferences(unittest.TestCase):
    """Test $static, $member and $self rewrites."""

    def test_static_access_in_static_context(self):
        """Test that $static access collapses to the receiver."""
        ctx = RewriteContext(parent="A").for_statics()
        self.assertEqual(strip_static_access("this.$static.count", ctx), "this.count")
        self.assertEqual(strip_static_access("that.$static", ctx), "that")

    def test_static_access_outside_static_context(self):
        """Test that $static is left alone in instance context."""
        code = "this.$static.count"
        self.assertEqual(strip_static_access(code, RewriteContext()), code)

    def test_static_prefix_is_not_matched(self):
        """Test that $statics is not mistaken for $static."""
        ctx = RewriteContext(is_static=True)
        self.assertEqual(strip_static_access("this.$statics", ctx), "this.$statics")

    def test_member_unwrap(self):
        """Test that only a called $member is unwrapped."""
        self.assertEqual(strip_member_unwrap("this.foo.$member()"), "this.foo")
        self.assertEqual(strip_member_unwrap("this.foo.$member"), "this.foo.$member")

    def test_replace_self_access(self):
        """Test replacing self access and counting replacements."""
        code, count = replace_self_access("this.$self.create(); _that.$self", "$self")
        self.assertEqual(code, "$self.create(); $self")
        self.assertEqual(count, 2)

    def test_replace_self_access_none(self):
        """Test that $selfish is not a self reference."""
        code, count = replace_self_access("this.$selfish", "$self")
        self.assertEqual(code, "this.$selfish")
        self.assertEqual(count, 0)

    def test_unresolved(self):
        """Test detection of unresolved references."""
        self.assertTrue(has_unresolved_reference("this.$super()"))
        self.assertTrue(has_unresolved_reference("this.$self"))
        self.assertFalse(has_unresolved_reference("A.prototype.run.call(this)"))

    def test_leftover_markers(self):
        """Test detection of markers the rewrite missed."""
        self.assertTrue(has_leftover_marker("foo.$super", False))
        self.assertTrue(has_leftover_marker("foo.$self()", False))
        self.assertFalse(has_leftover_marker("foo.$static", False))
        self.assertTrue(has_leftover_marker("foo.$static", True))
        self.assertFalse(has_leftover_marker("$super.run.call(this)", False))


class TestParentResolution(unittest.TestCase):
    """Test parent reference resolution and checks."""

    def _construct(self, source):
        tree = parse_source(source)
        return tree, next(iter_usages(tree))

    def test_extends_marker(self):
        """Test resolving the parent from $extends."""
        tree, construct = self._construct("Class.declare({ $name: 'A', $extends: ns.Base });")
        self.assertEqual(resolve_parent(tree, construct), "ns.Base")

    def test_extend_callee(self):
        """Test that the extend callee wins over $extends."""
        tree, construct = self._construct("my.Base.extend({ $name: 'A', $extends: Other });")
        self.assertEqual(resolve_parent(tree, construct), "my.Base")

    def test_no_parent(self):
        """Test a construct without a parent."""
        tree, construct = self._construct("Class.declare({ $name: 'A' });")
        self.assertIsNone(resolve_parent(tree, construct))

    def test_simple_reference(self):
        """Test which parent references count as simple."""
        self.assertTrue(is_simple_reference("Base"))
        self.assertTrue(is_simple_reference("ns.sub.$Base_2"))
        self.assertFalse(is_simple_reference("getBase()"))
        self.assertFalse(is_simple_reference("ns['Base']"))
        self.assertFalse(is_simple_reference(""))


class TestFindFunction(unittest.TestCase):
    """Test locating the function literal of a member value."""

    def _value(self, value_source):
        tree = parse_source("x({ a: %s });" % value_source)
        pair = [n for n in tree.root.walk() if n.type == "pair"][0]
        return tree, pair.child_by_field_name("value")

    def test_plain_function(self):
        """Test a plain function value."""
        tree, value = self._value("function () {}")
        self.assertIs(find_function(value), value)

    def test_bound_wrapper(self):
        """Test finding the function inside a .$bound() wrapper."""
        tree, value = self._value("function () { return 1; }.$bound()")
        function = find_function(value)
        self.assertEqual(tree.text(function), "function () { return 1; }")

    def test_parenthesized(self):
        """Test finding a parenthesized function."""
        tree, value = self._value("(function () {})")
        self.assertEqual(tree.text(find_function(value)), "function () {}")

    def test_non_function(self):
        """Test that a computed value has no function."""
        tree, value = self._value("compute(1)")
        self.assertIsNone(find_function(value))


if __name__ == "__main__":
    unittest.main()
