"""
Utils module behavioral tests (sentinel, coalesce, rename, mirror, mglob).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from flagon.utils import Unset, UnsetType, coalesce, mglob, mirror, rename


class TestUnset(TestCase):
    """Behavioral tests for the Unset sentinel."""

    def testSingletonAndFalsey(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testCannotSubclass(self):
        with self.assertRaises(TypeError):
            type("Other", (UnsetType,), {})

    def testUnionWithTypes(self):
        self.assertIsInstance("x", str | Unset)
        self.assertIsInstance(Unset, str | Unset)

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertIsNone(coalesce(Unset))


class TestRename(TestCase):
    """Behavioral tests for rename()."""

    def testDecoratorSetsNames(self):
        @rename("h")
        def k():
            pass

        self.assertEqual(k.__name__, "h")
        self.assertEqual(k.__qualname__, "h")

    def testWrongArgumentsRaise(self):
        with self.assertRaises(TypeError):
            rename(42)
        with self.assertRaises(TypeError):
            rename("x")(42)


class TestMirror(TestCase):
    """Behavioral tests for mirror()."""

    def testReturnsCopiesSharingItems(self):
        item = object()

        class Owner:
            items = mirror("items")

            def __init__(self):
                self._items = [item]

        owner = Owner()
        copy = owner.items
        copy.append("other")
        self.assertEqual(owner.items, [item])
        self.assertIs(owner.items[0], item)
        with self.assertRaises(AttributeError):
            owner.items = []


class TestMglob(TestCase):
    """Behavioral tests for mglob()."""

    def testConcreteNameIsReturnedAsIs(self):
        self.assertEqual(mglob("flagon.cli"), ["flagon.cli"])

    def testWildcardExpandsSorted(self):
        modules = mglob("flagon.*")
        self.assertIn("flagon.cli", modules)
        self.assertIn("flagon.plugins", modules)
        self.assertEqual(modules, sorted(modules))

    def testSingleCharacterWildcard(self):
        self.assertEqual(mglob("flagon.cl?"), ["flagon.cli"])

    def testQuestionMarkStaysInsideSegment(self):
        self.assertEqual(mglob("flagon.?"), [])

    def testUnimportablePrefixYieldsNothing(self):
        self.assertEqual(mglob("flagon_missing_package_for_tests.*"), [])

    def testInvalidPatternsRaise(self):
        with self.assertRaises(TypeError):
            mglob(42)
        with self.assertRaises(ValueError):
            mglob("  ")
        with self.assertRaises(ValueError):
            mglob("*.plugins")


if __name__ == "__main__":
    unittest.main()
