"""
Raw parser behavioral tests (counters, bindings, parse failures).

Scope
- Validate arity inference and the integer sentinels of arg_count().
- Validate long, short-cluster, run-in and "=" value forms.
- Validate positional dispatch, "--" and the lone "-".
- Validate the ParseError taxonomy, its messages and the partial bindings.
- Validate robust parsing and the expression tail parser.

Conventions
- Test method names follow CamelCase per project convention.
- Bindings are built directly; no scope tree is involved.
"""

import unittest
from unittest import TestCase

from argot.faults import (
    ArgsMustPrecedeExprsError,
    ExpectedArgumentError,
    FlagUsedAfterArgsError,
    InvalidArgumentError,
    UnexpectedArgumentError,
    UnknownExpressionError,
    UnknownOptionError,
)
from argot.parser import (
    Binding,
    EachRemaining,
    Exactly,
    NoArgs,
    OneValue,
    OptionalArg,
    ParseFlags,
    TakeUntilNextFlag,
    arg_count,
    multiple,
    parse_expressions,
    raw_parse,
    robust_parse,
)


class TestArgCount(TestCase):
    def testSentinels(self):
        self.assertIsInstance(arg_count(None), OneValue)
        self.assertIsInstance(arg_count(3), Exactly)
        self.assertIsInstance(arg_count(0), TakeUntilNextFlag)
        self.assertIsInstance(arg_count(-2), TakeUntilNextFlag)
        self.assertIsInstance(arg_count(-7), TakeUntilNextFlag)
        self.assertIsInstance(arg_count(-1), EachRemaining)
        self.assertNotIsInstance(arg_count(-1), TakeUntilNextFlag)

    def testFactoriesAreCalled(self):
        self.assertIsInstance(arg_count(NoArgs), NoArgs)

    def testBoolRejected(self):
        with self.assertRaises(TypeError):
            arg_count(True)

    def testMultipleFollowsNArg(self):
        self.assertFalse(multiple(None))
        self.assertFalse(multiple(1))
        self.assertTrue(multiple(0))
        self.assertTrue(multiple(2))
        self.assertTrue(multiple(-1))


class TestRawParse(TestCase):
    def testScalarFlagTakesExactlyOneToken(self):
        bindings = raw_parse(["-f", "X"], Binding().define_flag("f"))
        self.assertEqual(bindings["f"], [["-f", "X"]])
        self.assertEqual(bindings[""], [["-f", "X"]])

    def testArgWithArityTwoNeedsTwoTokens(self):
        with self.assertRaises(ExpectedArgumentError) as caught:
            raw_parse(["a"], Binding().define_arg("x", 2))
        self.assertIn("expected 2 arguments", str(caught.exception))

    def testArgWithArityOneRejectsExtraToken(self):
        with self.assertRaises(UnexpectedArgumentError) as caught:
            raw_parse(["a", "b"], Binding().define_arg("x", 1))
        self.assertEqual(str(caught.exception), 'unexpected argument "b"')
        self.assertEqual(caught.exception.value, "b")

    def testEachRemainingSwallowsFlags(self):
        binding = Binding().define_flag("f", counter=NoArgs).define_arg("x", -1)
        bindings = raw_parse(["one", "-f", "two", "-f"], binding)
        self.assertEqual(bindings.raw_occurrences("x"), ["one", "-f", "two", "-f"])
        self.assertNotIn("f", bindings)

    def testTakeUntilNextFlagStopsAtFlag(self):
        binding = Binding().define_flag("f", counter=NoArgs).define_arg("x", -2)
        bindings = raw_parse(["one", "two", "-f"], binding)
        self.assertEqual(bindings.raw_occurrences("x"), ["one", "two"])
        self.assertEqual(bindings["f"], [["-f", ""]])

    def testUnknownOptionStopsParsing(self):
        binding = Binding().define_flag("a")
        with self.assertRaises(UnknownOptionError) as caught:
            raw_parse(["-a", "x", "--nope", "y"], binding)
        fault = caught.exception
        self.assertEqual(fault.name, "--nope")
        self.assertEqual(fault.remaining, ("--nope", "y"))
        self.assertEqual(fault.bindings["a"], [["-a", "x"]])
        self.assertEqual(str(fault), "unknown option: --nope")

    def testShortClusterWithRunInValue(self):
        binding = Binding().define_flag("v", counter=NoArgs).define_flag("n")
        bindings = raw_parse(["-vn5"], binding)
        self.assertEqual(bindings["v"], [["-v", ""]])
        self.assertEqual(bindings["n"], [["-n", "5"]])

    def testInlineValueOnNoValueFlag(self):
        binding = Binding().define_flag("v", counter=NoArgs)
        with self.assertRaises(InvalidArgumentError) as caught:
            raw_parse(["-v=1"], binding)
        self.assertEqual(str(caught.exception), "option -v does not take a value")

    def testLongFlagWithEquals(self):
        bindings = raw_parse(["--name=x"], Binding().define_flag("name"))
        self.assertEqual(bindings["name"], [["--name", "x"]])
        self.assertEqual(bindings.raw("name"), ["--name", "x"])

    def testAliasesResolveToCanonicalName(self):
        binding = Binding().define_flag("verbose", aliases=["v", "loud"], counter=NoArgs)
        bindings = raw_parse(["-v", "--loud"], binding)
        self.assertEqual(bindings["verbose"], [["-v", ""], ["--loud", ""]])

    def testDoubleDashSwitchesToArgumentsOnly(self):
        binding = Binding().define_flag("f", counter=NoArgs).define_arg("x", -2)
        bindings = raw_parse(["--", "-f"], binding)
        self.assertEqual(bindings.raw_occurrences("x"), ["-f"])
        self.assertNotIn("f", bindings)

    def testLoneDashIsPositional(self):
        bindings = raw_parse(["-"], Binding().define_arg("x"))
        self.assertEqual(bindings["x"], [["<x>", "-"]])

    def testProgramNameIsSkipped(self):
        bindings = raw_parse(["app", "a"], Binding().define_arg("x"), ParseFlags.SKIP_PROGRAM_NAME)
        self.assertEqual(bindings.raw_occurrences("x"), ["a"])
        self.assertEqual(bindings.raw(""), ["app", "a"])
        self.assertEqual(bindings.raw_occurrences(""), ["a"])

    def testFlagsAfterArgsCanBeDisallowed(self):
        binding = Binding().define_flag("f", counter=NoArgs).define_arg("x", -2)
        with self.assertRaises(FlagUsedAfterArgsError):
            raw_parse(["a", "-f"], binding, ParseFlags.DISALLOW_FLAGS_AFTER_ARGS)

    def testUnknownFlagsAsArgs(self):
        bindings = raw_parse(["-z", "a"], Binding().define_arg("x", -1), ParseFlags.UNKNOWN_FLAGS_AS_ARGS)
        self.assertEqual(bindings.raw_occurrences("x"), ["-z", "a"])

    def testOptionalArgDeclinesFlags(self):
        binding = Binding().define_flag("color", counter=OptionalArg).define_flag("v", counter=NoArgs)
        bindings = raw_parse(["--color", "-v"], binding)
        self.assertEqual(bindings["color"], [["--color", ""]])
        self.assertEqual(bindings["v"], [["-v", ""]])

    def testUnreachedRequiredPositionalFails(self):
        binding = Binding().define_arg("a").define_arg("b", 1)
        with self.assertRaises(ExpectedArgumentError) as caught:
            raw_parse(["x"], binding)
        self.assertEqual(str(caught.exception), "expected argument for <b>")


class TestRobustParse(TestCase):
    def testErrorIsReturnedWithPartialBindings(self):
        binding = Binding().define_flag("v", counter=NoArgs).define_flag("out", counter=lambda: OneValue(True))
        bindings, error = robust_parse(["-v", "--out"], binding)
        self.assertIsInstance(error, ExpectedArgumentError)
        self.assertEqual(str(error), "expected argument for --out")
        self.assertEqual(bindings["v"], [["-v", ""]])

    def testNoError(self):
        result = robust_parse(["a"], Binding().define_arg("x"))
        self.assertIsNone(result.error)
        self.assertEqual(result.bindings.raw_occurrences("x"), ["a"])


class TestParseExpressions(TestCase):
    counters = {"name": lambda: Exactly(1), "print": NoArgs}

    def lookup(self, name):
        return self.counters[name]() if name in self.counters else None

    def testOrderedOccurrences(self):
        items = parse_expressions(["-name", "x", "-print"], self.lookup)
        self.assertEqual(items, [("name", ["-name", "x"]), ("print", ["-print"])])

    def testBareTokenRejected(self):
        with self.assertRaises(ArgsMustPrecedeExprsError):
            parse_expressions(["-print", "x"], self.lookup)

    def testUnknownExpression(self):
        with self.assertRaises(UnknownExpressionError):
            parse_expressions(["-bogus"], self.lookup)


if __name__ == "__main__":
    unittest.main()
