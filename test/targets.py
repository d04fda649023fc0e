"""
Targets behavioral tests (names, sealing, children, arity inference).

Scope
- Validate name rules for commands, flags, args and expressions.
- Validate that target kinds are sealed.
- Validate duplicate detection per child kind.
- Validate counter inference from values and NArg.
- Validate path segments and child ordering.

Conventions
- Test method names follow CamelCase per project convention.
"""

import unittest
from unittest import TestCase

from argot.parser import EachRemaining, NoArgs, OneValue, TakeUntilNextFlag
from argot.targets import Arg, Command, Expr, Flag, Options, children, segment
from argot.values import Bool, List, Scalar


class TestNames(TestCase):
    def testDashesAndBracketsAreStripped(self):
        self.assertEqual(Flag("--verbose").name, "verbose")
        self.assertEqual(Arg("<file>").name, "file")
        self.assertEqual(Expr("-name").name, "name")

    def testInvalidNamesRejected(self):
        with self.assertRaises(ValueError):
            Flag("bad_name")
        with self.assertRaises(ValueError):
            Command("-x")
        with self.assertRaises(TypeError):
            Flag(3)

    def testOnlyTheRootMayBeUnnamed(self):
        self.assertEqual(Command().name, "")
        with self.assertRaises(ValueError):
            Command("app", subcommands=[Command()])

    def testOptionsMustBeOptions(self):
        with self.assertRaises(TypeError):
            Flag("v", options=1)


class TestSealed(TestCase):
    def testKindsCannotBeSubclassed(self):
        for kind in (Command, Flag, Arg, Expr):
            with self.subTest(kind=kind.__name__), self.assertRaises(TypeError):
                type("Custom", (kind,), {})


class TestChildren(TestCase):
    def testDuplicateSpellingRejected(self):
        with self.assertRaises(ValueError) as caught:
            Command("app", flags=[Flag("v"), Flag("verbose", aliases=["v"])])
        self.assertEqual(str(caught.exception), "command 'app' already has a flag named 'v'")

    def testKindsHaveSeparateNamespaces(self):
        app = Command("app", flags=[Flag("x")], args=[Arg("x")])
        self.assertEqual(len(app.flags), 1)
        self.assertEqual(len(app.args), 1)

    def testChildrenAreReadOnlyCopies(self):
        app = Command("app", flags=[Flag("v")])
        app.flags.append(Flag("w"))
        self.assertEqual([flag.name for flag in app.flags], ["v"])

    def testChildrenOrder(self):
        sub = Command("sub")
        expr = Expr("name")
        arg = Arg("file")
        flag = Flag("v")
        app = Command("app", subcommands=[sub], exprs=[expr], args=[arg], flags=[flag])
        self.assertEqual(children(app), [flag, arg, expr, sub])

    def testExpressionArgs(self):
        arg = Arg("pattern")
        self.assertEqual(children(Expr("name", args=[arg])), [arg])
        with self.assertRaises(TypeError):
            Expr("name", args=[Flag("v")])


class TestInference(TestCase):
    def testFlagCounters(self):
        self.assertIsInstance(Flag("v", value=bool).new_counter(), NoArgs)
        self.assertIsInstance(Flag("o").new_counter(), OneValue)
        self.assertIsInstance(Flag("files", value=list).new_counter(), TakeUntilNextFlag)
        self.assertIsInstance(Flag("rest", narg=-1).new_counter(), EachRemaining)

    def testFlagValues(self):
        self.assertIsInstance(Flag("v", value=bool).value, Bool)
        self.assertIsInstance(Flag("files", narg=-2).value, List)
        self.assertIsInstance(Flag("o").value, Scalar)

    def testBooleanArgTakesOneToken(self):
        self.assertIsInstance(Arg("x", value=bool).new_counter(), OneValue)

    def testListOptionsReachTheValue(self):
        flag = Flag("tags", value=list, options=Options.DISABLE_SPLITTING)
        self.assertFalse(flag.value.split)

    def testExpressionChainsItsArgs(self):
        counter = Expr("between", args=[Arg("low"), Arg("high")]).new_counter()
        self.assertTrue(counter.take("1", True))
        self.assertTrue(counter.take("2", True))
        self.assertFalse(counter.take("3", True))


class TestSegments(TestCase):
    def testSegments(self):
        self.assertEqual(segment(Command("app")), "app")
        self.assertEqual(segment(Flag("v")), "-v")
        self.assertEqual(segment(Flag("verbose")), "--verbose")
        self.assertEqual(segment(Arg("file")), "<file>")
        self.assertEqual(segment(Expr("name")), "<-name>")

    def testRepr(self):
        self.assertTrue(repr(Flag("v")).startswith("flag(name='v'"))


if __name__ == "__main__":
    unittest.main()
