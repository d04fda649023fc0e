"""
Values behavioral tests (booleans, scalars, lists, inference).

Scope
- Validate boolean spellings and the presence-only arity of Bool.
- Validate Negated mirrors for --no-name flags.
- Validate list splitting, merging and default replacement.
- Validate ensure_value() inference from types, literals and arity.

Conventions
- Test method names follow CamelCase per project convention.
"""

import unittest
from unittest import TestCase

from argot.parser import NoArgs, TakeUntilNextFlag
from argot.targets import Options
from argot.utils import Unset
from argot.values import Bool, List, Negated, Scalar, ensure_value, parse_bool


class TestBool(TestCase):
    def testSpellings(self):
        self.assertTrue(parse_bool(""))
        self.assertTrue(parse_bool("YES"))
        self.assertTrue(parse_bool("on"))
        self.assertFalse(parse_bool("off"))
        self.assertFalse(parse_bool("0"))

    def testUnknownSpellingRejected(self):
        with self.assertRaises(ValueError):
            parse_bool("maybe")

    def testPresenceSetsTrue(self):
        value = Bool()
        value.set("")
        self.assertTrue(value.get())
        self.assertEqual(str(value), "true")
        value.reset()
        self.assertFalse(value.get())

    def testTakesNoArguments(self):
        self.assertIsInstance(Bool().new_counter(), NoArgs)

    def testNegatedStoresTheInverse(self):
        value = Bool(True)
        negated = Negated(value)
        negated.set("")
        self.assertFalse(value.get())
        self.assertTrue(negated.get())

    def testNegatedNeedsBool(self):
        with self.assertRaises(TypeError):
            Negated(Scalar())


class TestScalar(TestCase):
    def testConversion(self):
        value = Scalar(int)
        value.set("3")
        self.assertEqual(value.get(), 3)

    def testConversionFailure(self):
        with self.assertRaises(ValueError):
            Scalar(int).set("three")

    def testLastSetWins(self):
        value = Scalar(str, "x")
        value.set("a")
        value.set("b")
        self.assertEqual(value.get(), "b")
        value.reset()
        self.assertEqual(value.get(), "x")

    def testUnsetRendersEmpty(self):
        self.assertEqual(str(Scalar()), "")


class TestList(TestCase):
    def testFirstSetReplacesDefault(self):
        value = List(str, ("a",))
        value.set("b,c")
        value.set("d")
        self.assertEqual(value.get(), ["b", "c", "d"])
        self.assertEqual(str(value), "b,c,d")

    def testMergeKeepsDefault(self):
        value = List(str, ("a",), merge=True)
        value.set("b")
        self.assertEqual(value.get(), ["a", "b"])

    def testSplittingCanBeDisabled(self):
        value = List(split=False)
        value.set("a,b")
        self.assertEqual(value.get(), ["a,b"])

    def testEscapedComma(self):
        value = List()
        value.set("a\\,b,c")
        self.assertEqual(value.get(), ["a,b", "c"])

    def testOptionsAreApplied(self):
        value = List()
        value.apply_options(Options.DISABLE_SPLITTING | Options.MERGE)
        self.assertFalse(value.split)
        self.assertTrue(value.merge)

    def testTakesUntilNextFlag(self):
        self.assertIsInstance(List().new_counter(), TakeUntilNextFlag)


class TestEnsureValue(TestCase):
    def testUnset(self):
        self.assertIsInstance(ensure_value(Unset), Scalar)
        self.assertIsInstance(ensure_value(Unset, -1), List)
        self.assertIsInstance(ensure_value(Unset, 0), List)
        self.assertIsInstance(ensure_value(Unset, 1), Scalar)

    def testTypes(self):
        self.assertIsInstance(ensure_value(bool), Bool)
        self.assertIsInstance(ensure_value(list), List)
        self.assertEqual(ensure_value(int).type, int)

    def testLiterals(self):
        self.assertTrue(ensure_value(True).get())
        self.assertEqual(ensure_value("x").get(), "x")
        self.assertEqual(ensure_value(["a", "b"]).get(), ["a", "b"])
        self.assertEqual(ensure_value(5, 2).get(), [5])

    def testExistingValueIsKept(self):
        value = Scalar()
        self.assertIs(ensure_value(value), value)

    def testRejectsOtherObjects(self):
        with self.assertRaises(TypeError):
            ensure_value(object())


if __name__ == "__main__":
    unittest.main()
