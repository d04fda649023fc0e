"""
Actions behavioral tests (adapters, pipelines, middleware, combinators).

Scope
- Validate action_of() adaptation of callables, sequences and actions.
- Validate pipeline flattening and middleware continuations.
- Validate phase pinning against a context that has not started.
- Validate conditional, suppressing and recovering combinators.

Conventions
- Test method names follow CamelCase per project convention.
- Actions run against a bare root Context; the scheduler is not involved.
"""

import unittest
from unittest import TestCase

from argot.actions import (
    Action,
    Pipeline,
    Timing,
    action_of,
    before,
    exit_with,
    if_match,
    middleware,
    recover,
    setup,
    suppress_error,
    timeout,
)
from argot.context import Context
from argot.faults import CommandExit, InternalError
from argot.targets import Command


def context():
    return Context(Command("app"))


class TestAdapters(TestCase):
    def testCallShapes(self):
        calls = []
        action_of(lambda: calls.append("bare")).execute(context())
        action_of(lambda context: calls.append(context.name)).execute(context())
        self.assertEqual(calls, ["bare", "app"])

    def testReturnedExceptionIsRaised(self):
        with self.assertRaises(ValueError):
            action_of(lambda: ValueError("returned")).execute(context())

    def testActionsAreKept(self):
        pipeline = Pipeline()
        self.assertIs(action_of(pipeline), pipeline)
        self.assertIsInstance(action_of(None), Pipeline)
        self.assertFalse(action_of(None))

    def testEqualWhenWrappingTheSameFunction(self):
        def function():
            pass

        self.assertEqual(action_of(function), action_of(function))
        self.assertEqual(len({action_of(function), action_of(function)}), 1)

    def testRejectsOtherObjects(self):
        with self.assertRaises(TypeError):
            action_of(3)


class TestPipeline(TestCase):
    def testFlattening(self):
        def noop():
            pass

        pipeline = Pipeline(noop, Pipeline(noop, [noop, noop]))
        self.assertEqual(len(pipeline), 4)
        self.assertTrue(all(isinstance(action, Action) for action in pipeline))

    def testOrder(self):
        calls = []
        pipeline = Pipeline(lambda: calls.append(1)).append(lambda: calls.append(2)).prepend(lambda: calls.append(0))
        pipeline.execute(context())
        self.assertEqual(calls, [0, 1, 2])

    def testMiddlewareReceivesTheRest(self):
        calls = []

        @middleware
        def around(context, next):
            calls.append("enter")
            next.execute(context)
            calls.append("leave")

        Pipeline(lambda: calls.append("first"), around, lambda: calls.append("inner")).execute(context())
        self.assertEqual(calls, ["first", "enter", "inner", "leave"])

    def testMiddlewareMayStopTheRest(self):
        calls = []
        stop = middleware(lambda context, next: calls.append("stop"))
        Pipeline(stop, lambda: calls.append("skipped")).execute(context())
        self.assertEqual(calls, ["stop"])


class TestTiming(TestCase):
    def testDescribe(self):
        self.assertEqual(Timing.IMPLICIT_VALUE.describe(), "implicit value timing")
        self.assertLess(Timing.VALIDATOR, Timing.BEFORE)
        self.assertLess(Timing.BEFORE, Timing.IMPLICIT_VALUE)

    def testPinnedActionsAreDeferred(self):
        calls = []
        root = context()
        before(lambda: calls.append("before")).execute(root)
        self.assertEqual(calls, [])
        self.assertEqual(len(root.deferred(Timing.BEFORE)), 1)

    def testSetupSplitsPhases(self):
        calls = []
        root = context()
        setup(uses=lambda: calls.append("now"), after=lambda: calls.append("later")).execute(root)
        self.assertEqual(calls, ["now"])
        root.deferred(Timing.AFTER).execute(root)
        self.assertEqual(calls, ["now", "later"])


class TestCombinators(TestCase):
    def testIfMatch(self):
        calls = []
        root = context()
        if_match("app", lambda: calls.append("pattern")).execute(root)
        if_match("other", lambda: calls.append("missed")).execute(root)
        if_match(lambda context: context.is_command, lambda: calls.append("predicate")).execute(root)
        self.assertEqual(calls, ["pattern", "predicate"])

    def testSuppressError(self):
        suppress_error(exit_with("ignored")).execute(context())
        with self.assertRaises(ZeroDivisionError):
            suppress_error(lambda: 1 / 0).execute(context())

    def testRecover(self):
        with self.assertRaises(InternalError) as caught:
            recover(lambda: 1 / 0).execute(context())
        self.assertIsInstance(caught.exception.cause, ZeroDivisionError)
        with self.assertRaises(CommandExit):
            recover(exit_with()).execute(context())

    def testExitWith(self):
        with self.assertRaises(CommandExit) as caught:
            exit_with(status=4).execute(context())
        self.assertEqual(caught.exception.exit_code, 4)

    def testTimeoutNeedsPositiveSeconds(self):
        with self.assertRaises(ValueError):
            timeout(0)


if __name__ == "__main__":
    unittest.main()
