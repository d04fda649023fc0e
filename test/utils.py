"""
Utilities behavioral tests (Unset, coalesce, rename, mirror).

Scope
- Validate the Unset sentinel contract.
- Validate that mirrored containers are copies.
- Validate that the typing stubs ship with the package.

Conventions
- Test method names follow CamelCase per project convention.
"""

import copy
import importlib.resources
import inspect
import unittest
from unittest import TestCase

from argot.utils import Unset, UnsetType, coalesce, mirror, rename


class TestUnset(TestCase):
    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testSealed(self):
        with self.assertRaises(TypeError):
            type("Other", (UnsetType,), {})

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)

    def testUnionAnnotation(self):
        self.assertEqual(Unset | str, str | UnsetType)
        self.assertEqual(str | Unset, str | UnsetType)

    def testDundersAreDocumented(self):
        for name in ("__new__", "__or__", "__ror__", "__bool__", "__repr__", "__copy__", "__deepcopy__", "__init_subclass__"):
            with self.subTest(name=name):
                self.assertTrue(inspect.getdoc(getattr(UnsetType, name)))


class TestHelpers(TestCase):
    def testRename(self):
        function = rename(lambda: None, "named")
        self.assertEqual(function.__name__, "named")

        @rename("decorated")
        def named():
            pass

        self.assertEqual(named.__qualname__, "decorated")

    def testMirrorCopiesContainers(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = [["a"]]

        holder = Holder()
        holder.items[0].append("b")
        self.assertEqual(holder._items, [["a"]])


class TestPackaging(TestCase):
    def testPublicModulesShipStubs(self):
        package = importlib.resources.files("argot")
        for module in ("__init__", "actions", "commands", "completion", "context", "parser", "targets", "tokenizer", "values"):
            with self.subTest(module=module):
                self.assertTrue(package.joinpath(module + ".pyi").is_file())
        self.assertTrue(package.joinpath("py.typed").is_file())


if __name__ == "__main__":
    unittest.main()
