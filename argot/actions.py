"""
argot actions: what runs, and when.

Overview
- Timing: the ordered phases every context moves through
  (INITIAL < VALIDATOR < BEFORE < IMPLICIT_VALUE < ACTION < AFTER < DONE).
- Action: capability execute(context); failure is signaled by raising.
- action_of(value): adapt f(), f(context), sequences and existing actions.
  A function that returns an exception instance has it raised.
- Pipeline: ordered actions; nested pipelines are flattened.
- Middleware: execute_with_next(context, next) receives the rest of the
  pipeline as an explicit continuation and decides whether to call it.
- Combinators: phase pinning (at, initializer, validator, before, after),
  implicit values, hooks and customizations, tree growth helpers,
  error recovery, cancellation (timeout, handle_signal) and exit_with.

Quick example
    >>> from argot.actions import before, hook_before
    >>> verbose = Flag("verbose", value=bool, uses=before(lambda: print("ready")))
    >>> app = Command("app", flags=[verbose], uses=hook_before("-", lambda ctx: print(ctx.path)))
"""
import enum
import inspect
import logging
import signal
import threading
from abc import ABC, abstractmethod

from .faults import CommandException, CommandExit, InternalError
from .utils import Unset, rename

logger = logging.getLogger(__name__)


class Timing(enum.IntEnum):
    INITIAL = 0
    VALIDATOR = 1
    BEFORE = 2
    IMPLICIT_VALUE = 3
    ACTION = 4
    AFTER = 5
    DONE = 6

    def describe(self):
        """"before timing", "implicit value timing", ..."""
        return "%s timing" % self.name.lower().replace("_", " ")


class Action(ABC):
    @abstractmethod
    def execute(self, context, /):
        ...


class Middleware(Action):
    """an action that wraps whatever follows it in the pipeline."""

    @abstractmethod
    def execute_with_next(self, context, next, /):
        ...

    def execute(self, context, /):
        self.execute_with_next(context, Pipeline())


class _Function(Action):
    """adapter for f() and f(context); equal when wrapping the same callable."""

    def __init__(self, function, /):
        self._function = function
        self._wants_context = _accepts_argument(function)

    def execute(self, context, /):
        result = self._function(context) if self._wants_context else self._function()
        if isinstance(result, BaseException):
            raise result

    def __eq__(self, other):
        if not isinstance(other, _Function):
            return NotImplemented
        return self._function == other._function

    def __hash__(self):
        return hash(self._function)

    def __repr__(self):
        return "action(%s)" % getattr(self._function, "__qualname__", repr(self._function))


class _MiddlewareFunction(Middleware):
    def __init__(self, function, /):
        self._function = function

    def execute_with_next(self, context, next, /):
        result = self._function(context, next)
        if isinstance(result, BaseException):
            raise result

    def __repr__(self):
        return "middleware(%s)" % getattr(self._function, "__qualname__", repr(self._function))


def _accepts_argument(function):
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return True
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            return True
    return False


def middleware(function, /):
    """decorate f(context, next) into a Middleware."""
    if not callable(function):
        raise TypeError("@middleware must be applied to a callable")
    return _MiddlewareFunction(function)


class Pipeline(Action):
    """
    ordered actions, flattened on construction.

    a Middleware in the pipeline receives the remaining actions as `next`;
    the remaining actions only run if it executes them.
    """

    def __init__(self, *actions):
        flattened = []
        for action in map(action_of, actions):
            if isinstance(action, Pipeline):
                flattened.extend(action._actions)
            else:
                flattened.append(action)
        self._actions = tuple(flattened)

    def append(self, *actions):
        return Pipeline(self, *actions)

    def prepend(self, *actions):
        return Pipeline(*actions, self)

    def execute(self, context, /):
        for index, action in enumerate(self._actions):
            if isinstance(action, Middleware):
                action.execute_with_next(context, Pipeline(*self._actions[index + 1:]))
                return
            action.execute(context)

    def __iter__(self):
        return iter(self._actions)

    def __len__(self):
        return len(self._actions)

    def __bool__(self):
        return bool(self._actions)

    def __repr__(self):
        return "Pipeline(%s)" % ", ".join(map(repr, self._actions))


def action_of(value, /):
    match value:
        case None:
            return Pipeline()
        case Action():
            return value
        case list() | tuple():
            return Pipeline(*value)
        case _ if callable(value):
            return _Function(value)
    raise TypeError("action must be an Action, a callable or a sequence of them")


def pipeline(*actions):
    return Pipeline(*actions)


class _Timed(Action):
    def __init__(self, timing, action, /):
        self.timing = Timing(timing)
        self.action = action_of(action)

    def execute(self, context, /):
        context.at(self.timing, self.action)

    def __eq__(self, other):
        if not isinstance(other, _Timed):
            return NotImplemented
        return (self.timing, self.action) == (other.timing, other.action)

    def __hash__(self):
        return hash((self.timing, self.action))

    def __repr__(self):
        return "at(%s, %r)" % (self.timing.name, self.action)


def at(timing, action, /):
    """pin action to timing: deferred if not reached, immediate if current, an error if elapsed."""
    return _Timed(timing, action)


def initializer(action, /):
    return at(Timing.INITIAL, action)


def validator(action, /):
    return at(Timing.VALIDATOR, action)


def before(action, /):
    return at(Timing.BEFORE, action)


def after(action, /):
    return at(Timing.AFTER, action)


class _Hook(Action):
    def __init__(self, timing, pattern, action, /):
        if not isinstance(pattern, str):
            raise TypeError("hook pattern must be a string")
        self.timing = timing
        self.pattern = pattern
        self.action = action_of(action)

    def execute(self, context, /):
        context.hook(self.timing, self.pattern, self.action)


def hook_before(pattern, action, /):
    """run action before every descendant matching pattern ("" means this context)."""
    return _Hook(Timing.BEFORE, pattern, action)


def hook_after(pattern, action, /):
    return _Hook(Timing.AFTER, pattern, action)


def customize(pattern, action, /):
    """run action in the Initial phase of every descendant matching pattern."""
    return _Hook(Timing.INITIAL, pattern, action)


class _IfMatch(Action):
    def __init__(self, condition, action, /):
        self.condition = condition
        self.action = action_of(action)

    def execute(self, context, /):
        if isinstance(self.condition, str):
            matched = context.matches(self.condition)
        else:
            matched = self.condition(context)
        if matched:
            self.action.execute(context)


def if_match(condition, action, /):
    """run action only when the context matches a pattern string or predicate."""
    if not isinstance(condition, str) and not callable(condition):
        raise TypeError("if_match() condition must be a pattern or a predicate")
    return _IfMatch(condition, action)


def implicit_value(function, /):
    """
    compute a value for a flag or arg that was not given on the command line.

    function(context) returns the text to set, or None to leave the value alone.
    """
    if not callable(function):
        raise TypeError("implicit_value() argument must be callable")

    @rename("implicit_value")
    def apply(context):
        if (text := function(context)) is not None:
            context.set_implicit(text)

    return at(Timing.IMPLICIT_VALUE, apply)


def implicitly(text, /):
    return implicit_value(lambda context: text)


def implies(name, text, /):
    """when this option is seen, give the option called name an implicit value."""

    @rename("implies")
    def setup(context):
        source = context
        if (implied := context.lookup(name)) is None:
            raise InternalError(path=context.path, timing=context.timing, cause="no option named %r" % name)
        implied.at(
            Timing.IMPLICIT_VALUE,
            lambda context: context.set_implicit(text) if source.seen("") else None,
        )

    return initializer(setup)


class _Recover(Action):
    def __init__(self, action, /):
        self.action = action_of(action)

    def execute(self, context, /):
        try:
            self.action.execute(context)
        except CommandException:
            raise
        except Exception as error:
            raise InternalError(path=context.path, timing=context.timing, cause=error) from error


def recover(action, /):
    """convert abnormal exceptions raised by action into InternalError."""
    return _Recover(action)


class _SuppressError(Action):
    def __init__(self, action, /):
        self.action = action_of(action)

    def execute(self, context, /):
        try:
            self.action.execute(context)
        except CommandException as error:
            logger.debug("%s: suppressed %s", context.path, error)


def suppress_error(action, /):
    return _SuppressError(action)


def add_flag(flag, /):
    return rename(lambda context: context.add_flag(flag), "add_flag")


def add_arg(arg, /):
    return rename(lambda context: context.add_arg(arg), "add_arg")


def add_command(command, /):
    return rename(lambda context: context.add_command(command), "add_command")


def data(name, value, /):
    return rename(lambda context: context.set_data(name, value), "data")


def alias(*names):
    return rename(lambda context: context.add_alias(*names), "alias")


def setup(*, uses=None, before=None, action=None, after=None):
    """bundle per-phase actions into one Initial-time action."""
    timed = ((Timing.BEFORE, before), (Timing.ACTION, action), (Timing.AFTER, after))
    return Pipeline(uses, *(at(timing, value) for timing, value in timed if value is not None))


class _Timeout(Middleware):
    def __init__(self, seconds, /):
        if seconds <= 0:
            raise ValueError("timeout() seconds must be positive")
        self.seconds = seconds

    def execute_with_next(self, context, next, /):
        timer = threading.Timer(self.seconds, context.cancel)
        timer.daemon = True
        timer.start()
        try:
            next.execute(context)
        finally:
            timer.cancel()


def timeout(seconds, action=None, /):
    """set the cancellation event after seconds while action (or the rest of the pipeline) runs."""
    if action is None:
        return _Timeout(seconds)
    return Pipeline(_Timeout(seconds), action)


class _HandleSignal(Middleware):
    def __init__(self, signum, /):
        self.signum = signal.Signals(signum)

    def execute_with_next(self, context, next, /):
        def handler(signum, frame):
            logger.debug("%s: received %s", context.path, signal.Signals(signum).name)
            context.cancel()

        previous = signal.signal(self.signum, handler)
        try:
            next.execute(context)
        finally:
            signal.signal(self.signum, previous)


def handle_signal(signum, action=None, /):
    """set the cancellation event when signum arrives (main thread only)."""
    if action is None:
        return _HandleSignal(signum)
    return Pipeline(_HandleSignal(signum), action)


def exit_with(message=Unset, /, status=1):
    @rename("exit_with")
    def stop():
        raise CommandExit(message, status=status)

    return action_of(stop)


__all__ = (
    "Timing",
    "Action",
    "Middleware",
    "Pipeline",
    "action_of",
    "middleware",
    "pipeline",
    "at",
    "initializer",
    "validator",
    "before",
    "after",
    "hook_before",
    "hook_after",
    "customize",
    "if_match",
    "implicit_value",
    "implicitly",
    "implies",
    "recover",
    "suppress_error",
    "add_flag",
    "add_arg",
    "add_command",
    "data",
    "alias",
    "setup",
    "timeout",
    "handle_signal",
    "exit_with",
)
