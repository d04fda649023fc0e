"""
argot faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain to keep copy consistent and make logs/searches predictable.
- CommandException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased way.
- ParseError family: raised by the raw parser (and by dispatch) with the code,
  decorated name, attempted value and the tokens that were never consumed.
- InternalError: raised by the scheduler, wraps a cause with the path and the
  timing where it happened.
- CommandExit: an explicit request to stop with a status.
- trigger(): central entry point to surface any fault (raise or render+exit).
- configure_logging(): opt-in rich log handler for the "argot" logger tree.

Integration
- Library code raises faults; run() surfaces them via trigger(fault, shell=True).
- In non-shell mode, exceptions are raised; in shell mode, they are rendered via rich
  and the process exits with the fault's exit code.
"""
import copy
import logging
import os
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)

logging.getLogger(__package__).addHandler(logging.NullHandler())


class FaultCode(IntEnum):
    """
    canonical fault codes used across the engine (stable identifiers).

    grouping (by high-level domain)
    - parse (21xxx)
      • UNEXPECTED_ARGUMENT, COMMAND_NOT_FOUND, UNKNOWN_OPTION, INVALID_ARGUMENT,
        EXPECTED_ARGUMENT, FLAG_USED_AFTER_ARGS, EXPECTED_REQUIRED_OPTION,
        UNKNOWN_EXPRESSION, ARGS_MUST_PRECEDE_EXPRS
    - internal (31xxx)
      • INTERNAL_ERROR, TIMING_TOO_LATE, IMPLICIT_VALUE_ALREADY_SET
    - exits (41xxx)
      • EXIT

    codes are discoverable (searchable in logs and docs) and normalized to a string
    via normalize() so hosts can remap them if desired.
    """
    # --- parse errors (21xxx) ---
    UNEXPECTED_ARGUMENT         = 21101
    COMMAND_NOT_FOUND           = 21102
    UNKNOWN_OPTION              = 21111
    INVALID_ARGUMENT            = 21113
    EXPECTED_ARGUMENT           = 21114
    FLAG_USED_AFTER_ARGS        = 21115
    EXPECTED_REQUIRED_OPTION    = 21116
    UNKNOWN_EXPRESSION          = 21121
    ARGS_MUST_PRECEDE_EXPRS     = 21122

    # --- internal errors (31xxx) ---
    INTERNAL_ERROR              = 31101
    TIMING_TOO_LATE             = 31102
    IMPLICIT_VALUE_ALREADY_SET  = 31103

    # --- exits (41xxx) ---
    EXIT                        = 41101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))

    def describe(self):
        """short phrase used when a fault carries no explicit message."""
        return _PHRASES[self]


_PHRASES = {
    FaultCode.UNEXPECTED_ARGUMENT: "unexpected argument",
    FaultCode.COMMAND_NOT_FOUND: "is not a command",
    FaultCode.UNKNOWN_OPTION: "unknown option",
    FaultCode.INVALID_ARGUMENT: "parameter not valid",
    FaultCode.EXPECTED_ARGUMENT: "expected argument",
    FaultCode.FLAG_USED_AFTER_ARGS: "flag used after arguments",
    FaultCode.EXPECTED_REQUIRED_OPTION: "is required and must be specified",
    FaultCode.UNKNOWN_EXPRESSION: "unknown expression",
    FaultCode.ARGS_MUST_PRECEDE_EXPRS: "arguments must precede expressions",
    FaultCode.INTERNAL_ERROR: "internal error",
    FaultCode.TIMING_TOO_LATE: "too late for requested action",
    FaultCode.IMPLICIT_VALUE_ALREADY_SET: "value already set implicitly",
    FaultCode.EXIT: "exited",
}


class CommandException(Exception):
    """
    base fault: an optional explicit message plus read-only options.

    when no message is given, str() is produced by describe(), which subclasses
    override to format their options (name, value, count, ...).
    """
    __fault__ = FaultCode.INTERNAL_ERROR

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__fault__)

    @property
    def exit_code(self):
        return 1

    def describe(self):
        return self.code.describe()

    def __str__(self):
        return coalesce(self.message, self.describe())

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        prog = text(getattr(main, "__prog__", self.options.get("prog", "")), "prog-name")

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.code.normalize(), "code"),
            " | ",
            text(self.options.get("title", self.code.describe()).title(), "error-title"),
            " ]"
        )
        message = text(str(self), "error-message")
        body = [message]
        if hint := self.options.get("hint"):
            body.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*body), title=header, title_align="left")

        return Group(header, *body)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self
        console.print(self)
        sys.exit(self.exit_code)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        fault = type(self)(self.message, **{**self.options, **overrides})
        fault.__cause__ = self.__cause__
        return fault


class ParseError(CommandException):
    """
    parse failure raised by the raw parser and by command dispatch.

    options
    - name: decorated name of the flag, arg, command or expression involved.
    - value: the attempted value, if any.
    - remaining: tokens that were not consumed when parsing stopped.
    - bindings: the partial binding map collected before the failure.
    """
    __fault__ = FaultCode.INVALID_ARGUMENT

    @property
    def exit_code(self):
        return 2

    @property
    def name(self):
        return self.options.get("name", "")

    @property
    def value(self):
        return self.options.get("value", "")

    @property
    def remaining(self):
        return tuple(self.options.get("remaining", ()))

    @property
    def bindings(self):
        return self.options.get("bindings")


class UnexpectedArgumentError(ParseError):
    __fault__ = FaultCode.UNEXPECTED_ARGUMENT

    def describe(self):
        return 'unexpected argument "%s"' % self.value


class CommandNotFoundError(ParseError):
    __fault__ = FaultCode.COMMAND_NOT_FOUND

    def describe(self):
        return '"%s" is not a command' % self.name


class UnknownOptionError(ParseError):
    __fault__ = FaultCode.UNKNOWN_OPTION

    def describe(self):
        return "unknown option: %s" % self.name


class InvalidArgumentError(ParseError):
    __fault__ = FaultCode.INVALID_ARGUMENT

    def describe(self):
        if not self.name:
            return self.code.describe()
        message = 'invalid value "%s" for %s' % (self.value, self.name)
        if reason := self.options.get("reason"):
            message += ": %s" % reason
        return message


class ExpectedArgumentError(ParseError):
    __fault__ = FaultCode.EXPECTED_ARGUMENT

    def describe(self):
        count = self.options.get("count", 1)
        message = "expected argument" if count <= 1 else "expected %d arguments" % count
        if self.name:
            message += " for %s" % self.name
        return message


class FlagUsedAfterArgsError(ParseError):
    __fault__ = FaultCode.FLAG_USED_AFTER_ARGS

    def describe(self):
        return "can't use %s after arguments" % self.name


class ExpectedRequiredOptionError(ParseError):
    __fault__ = FaultCode.EXPECTED_REQUIRED_OPTION

    def describe(self):
        return "%s %s" % (self.name, self.code.describe())


class UnknownExpressionError(ParseError):
    __fault__ = FaultCode.UNKNOWN_EXPRESSION

    def describe(self):
        return "unknown expression: %s" % self.name


class ArgsMustPrecedeExprsError(ParseError):
    __fault__ = FaultCode.ARGS_MUST_PRECEDE_EXPRS

    def describe(self):
        return '%s: "%s"' % (self.code.describe(), self.value)


class InternalError(CommandException):
    """
    failure raised while running the timing pipelines of one context.

    options
    - path: the ContextPath of the context that failed.
    - timing: the Timing that was executing.
    - cause: the underlying fault or exception.
    """
    __fault__ = FaultCode.INTERNAL_ERROR

    @property
    def path(self):
        return self.options.get("path", ())

    @property
    def timing(self):
        return self.options.get("timing")

    @property
    def cause(self):
        return self.options.get("cause")

    def describe(self):
        timing = self.timing.describe() if self.timing is not None else "unknown timing"
        return 'internal error, at "%s" (%s): %s' % (" ".join(self.path), timing, self.cause)


class TimingTooLateError(CommandException):
    __fault__ = FaultCode.TIMING_TOO_LATE


class ImplicitValueAlreadySetError(CommandException):
    __fault__ = FaultCode.IMPLICIT_VALUE_ALREADY_SET


class CommandExit(CommandException):
    """explicit request to stop the run with the given status (default 1)."""
    __fault__ = FaultCode.EXIT

    @property
    def status(self):
        return self.options.get("status", 1)

    @property
    def exit_code(self):
        return self.status

    def describe(self):
        return "exited with status %d" % self.status


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode, rendering happens via rich console; otherwise, the fault is raised.

    typical options
    - shell, fancy, colorful, prog, title, hint.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code from __main__.__docs__.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be an fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


def configure_logging(level=None, /):
    """
    attach a rich handler to the "argot" logger tree.

    level defaults to the ARGOT_LOG environment variable (e.g. "DEBUG"), then WARNING.
    calling it twice replaces the handler instead of stacking a second one.
    """
    level = coalesce(level, None) or os.environ.get("ARGOT_LOG", "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError("configure_logging() unknown level name")

    logger = logging.getLogger(__package__)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=console, show_path=False, rich_tracebacks=True))
    logger.setLevel(level)
    return logger


__all__ = (
    "FaultCode",
    "CommandException",
    "ParseError",
    "UnexpectedArgumentError",
    "CommandNotFoundError",
    "UnknownOptionError",
    "InvalidArgumentError",
    "ExpectedArgumentError",
    "FlagUsedAfterArgsError",
    "ExpectedRequiredOptionError",
    "UnknownExpressionError",
    "ArgsMustPrecedeExprsError",
    "InternalError",
    "TimingTooLateError",
    "ImplicitValueAlreadySetError",
    "CommandExit",
    "trigger",
    "getdoc",
    "configure_logging",
)
