"""
argot raw parser: tokens in, named bindings out.

Overview
- Counters decide how many tokens a flag, arg or expression consumes:
  • Exactly(n): exactly n tokens; fails "expected n arguments" otherwise.
  • OneValue: one token regardless of its shape (after "=", run-in values, scalars).
  • TakeUntilNextFlag: any number of tokens, stopping at a flag-shaped one.
  • EachRemaining: everything that is left, flags included.
  • NoArgs: nothing (booleans).
  • OptionalArg(predicate): at most one token accepted by the predicate.
  • Chain(counters): feeds tokens to several counters in turn.
- arg_count(narg): maps the integer sentinels (0, n > 0, -1, <= -2) to counters.
- Binding: the name/alias/arity table raw_parse consults; it never sees the scope tree.
- BindingMap: name -> ordered occurrences; an occurrence is [spelling, *tokens].
  The "" key always holds the full argument list.
- raw_parse / robust_parse: the POSIX-like scan. robust_parse never raises a ParseError.
- parse_expressions: the "-name x -print" tail used by commands that declare expressions.

Conventions
- Counter.take(token, possibly_flag) -> bool: False means the counter is satisfied
  and the token belongs to whatever comes next (a soft stop, not an error).
- Counter.done(): raises ExpectedArgumentError when too few tokens were taken.
- Failures are ParseError subclasses carrying name, value, remaining and bindings.
"""
import copy
import enum
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import NamedTuple

from .faults import (
    ArgsMustPrecedeExprsError,
    ExpectedArgumentError,
    FlagUsedAfterArgsError,
    InvalidArgumentError,
    ParseError,
    UnexpectedArgumentError,
    UnknownExpressionError,
    UnknownOptionError,
)

logger = logging.getLogger(__name__)

TAKE_UNLIMITED = 0
TAKE_REMAINING = -1
TAKE_UNTIL_NEXT_FLAG = -2


class ParseFlags(enum.IntFlag):
    NONE = 0
    SKIP_PROGRAM_NAME = enum.auto()
    DISALLOW_FLAGS_AFTER_ARGS = enum.auto()
    UNKNOWN_FLAGS_AS_ARGS = enum.auto()
    ARGS_ONLY = enum.auto()


def looks_like_flag(token, possibly_flag=True, /):
    """a lone "-" is a positional (conventionally stdin), never a flag."""
    return possibly_flag and len(token) > 1 and token.startswith("-")


def option_name(name, /):
    """decorate a bare flag name: "v" -> "-v", "verbose" -> "--verbose"."""
    if name.startswith("-"):
        return name
    return ("-" if len(name) == 1 else "--") + name


class Counter(ABC):
    """per-use consumption policy; a fresh instance is needed for every occurrence."""

    @abstractmethod
    def take(self, token, possibly_flag, /):
        ...

    def done(self):
        pass

    @property
    def multiple(self):
        """whether the counter can take more than one token (drives value inference)."""
        return False


class Exactly(Counter):
    def __init__(self, count, /):
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise ValueError("Exactly() count must be a non-negative integer")
        self._total = count
        self._count = count

    def take(self, token, possibly_flag, /):
        if self._count == 0:
            return False
        self._count -= 1
        return True

    def done(self):
        if self._count > 0:
            raise ExpectedArgumentError(count=self._total)

    @property
    def multiple(self):
        return self._total > 1

    def __repr__(self):
        return "Exactly(%d)" % self._total


class NoArgs(Exactly):
    def __init__(self):
        super().__init__(0)

    def __repr__(self):
        return "NoArgs()"


class OneValue(Counter):
    def __init__(self, required=False, /):
        self._required = required
        self._seen = False

    def take(self, token, possibly_flag, /):
        if self._seen:
            return False
        self._seen = True
        return True

    def done(self):
        if self._required and not self._seen:
            raise ExpectedArgumentError(count=1)

    def __repr__(self):
        return "OneValue(required=%r)" % self._required


class EachRemaining(Counter):
    def take(self, token, possibly_flag, /):
        return True

    @property
    def multiple(self):
        return True

    def __repr__(self):
        return "%s()" % type(self).__name__


class TakeUntilNextFlag(EachRemaining):
    def take(self, token, possibly_flag, /):
        return not looks_like_flag(token, possibly_flag)


class OptionalArg(Counter):
    def __init__(self, predicate=None, /):
        if predicate is not None and not callable(predicate):
            raise TypeError("OptionalArg() predicate must be callable")
        self._predicate = predicate or (lambda token: not looks_like_flag(token))
        self._count = 0

    def take(self, token, possibly_flag, /):
        if self._count > 0:
            return False
        self._count += 1
        return bool(self._predicate(token))


class Chain(Counter):
    def __init__(self, counters, /):
        self._counters = list(counters)
        self._index = 0

    def take(self, token, possibly_flag, /):
        while self._index < len(self._counters):
            if self._counters[self._index].take(token, possibly_flag):
                return True
            self._index += 1
        return False

    def done(self):
        for counter in self._counters[self._index:]:
            counter.done()

    @property
    def multiple(self):
        return len(self._counters) > 1 or any(counter.multiple for counter in self._counters)


def arg_count(narg=None, /):
    """
    Map an NArg sentinel (or counter, or counter factory) to a fresh Counter.

    - None: OneValue
    - n > 0: Exactly(n)
    - 0 or n <= -2: TakeUntilNextFlag
    - -1: EachRemaining
    - Counter: a shallow copy, so declared instances can be reused
    - callable: called with no arguments, must return a Counter
    """
    match narg:
        case None:
            return OneValue()
        case Counter():
            return copy.copy(narg)
        case bool():
            raise TypeError("arg_count() argument must be an integer, a counter or a counter factory")
        case int() if narg > 0:
            return Exactly(narg)
        case -1:
            return EachRemaining()
        case int():
            return TakeUntilNextFlag()
        case _ if callable(narg):
            if not isinstance(counter := narg(), Counter):
                raise TypeError("arg_count() factory must return a counter")
            return counter
    raise TypeError("arg_count() argument must be an integer, a counter or a counter factory")


def multiple(narg, /):
    """whether an NArg implies a list value: 0, |n| >= 2 and n < 0 do; None and 1 don't."""
    match narg:
        case None:
            return False
        case Counter():
            return narg.multiple
        case bool():
            return False
        case int():
            return narg != 1
        case _ if callable(narg):
            return arg_count(narg).multiple
    return False


class Binding:
    """
    Lookup table consulted by raw_parse.

    Flags are registered with their aliases (single characters are short
    spellings, anything longer is a long spelling); positionals are kept in
    declaration order. Counters are stored as declared and built fresh on lookup.
    """

    def __init__(self):
        self._counters = {}
        self._flags = set()
        self._short = {}
        self._long = {}
        self._positionals = []
        self._optional = set()

    def define_flag(self, name, /, aliases=(), counter=None, *, optional=False):
        self._counters[name] = counter
        self._flags.add(name)
        for alias in aliases:
            (self._short if len(alias) == 1 else self._long).setdefault(alias, name)
        if optional:
            self._optional.add(name)
        return self

    def define_arg(self, name, /, counter=None):
        self._counters[name] = counter
        self._positionals.append(name)
        return self

    def lookup(self, name, /):
        try:
            declared = self._counters[name]
        except KeyError:
            return None
        return arg_count(declared)

    def resolve_alias(self, spelling, /):
        if spelling in self._flags:
            return spelling
        if len(spelling) == 1:
            return self._short.get(spelling)
        return self._long.get(spelling)

    def positional_names(self):
        return tuple(self._positionals)

    def is_optional_value(self, name, /):
        return name in self._optional

    def __repr__(self):
        return "Binding(flags=%r, positionals=%r)" % (sorted(self._flags), self._positionals)


class BindingMap(dict):
    """name -> [occurrence, ...] where each occurrence is [spelling, *tokens]."""

    def append(self, name, occurrence, /):
        self.setdefault(name, []).append(list(occurrence))

    def raw(self, name, /):
        return [token for occurrence in self.get(name, ()) for token in occurrence]

    def raw_occurrences(self, name, /):
        return [token for occurrence in self.get(name, ()) for token in occurrence[1:]]

    def bindings(self, name, /):
        return [list(occurrence) for occurrence in self.get(name, ())]

    def names(self):
        return [name for name in self if name]


class RobustParseResult(NamedTuple):
    bindings: BindingMap
    error: ParseError | None


class _State(enum.Enum):
    FLAGS_OR_ARGS = enum.auto()
    ARGS_ONLY = enum.auto()
    PUSHED_BACK = enum.auto()


class _Positionals:
    """cursor over the declared positionals and their counters."""

    def __init__(self, binding):
        self.names = list(binding.positional_names())
        self.counters = [binding.lookup(name) for name in self.names]
        self.index = 0

    @property
    def current(self):
        return self.counters[self.index] if self.index < len(self.counters) else None

    @property
    def name(self):
        return self.names[self.index]

    @property
    def display(self):
        return "<%s>" % self.name

    def advance(self):
        self.index += 1

    def done(self):
        if (counter := self.current) is None:
            return
        try:
            counter.done()
        except ParseError as error:
            raise copy.replace(error, name=self.display) from None

    def take(self, token, possibly_flag, remaining, /):
        while (counter := self.current) is not None:
            if counter.take(token, possibly_flag):
                return
            self.done()
            self.advance()
        raise UnexpectedArgumentError(value=token, remaining=[token, *remaining])

    def finish(self):
        while self.current is not None:
            self.done()
            self.advance()


class _RawParser:
    def __init__(self, arguments, binding, flags, /):
        self.arguments = list(arguments)
        self.binding = binding
        self.flags = ParseFlags(flags)
        self.tokens = deque(self.arguments)
        self.bindings = BindingMap({"": [list(self.arguments)]})
        self.positionals = _Positionals(binding)
        self.state = _State.ARGS_ONLY if self.flags & ParseFlags.ARGS_ONLY else _State.FLAGS_OR_ARGS
        self.any_args = False

    def parse(self):
        if self.tokens and self.flags & ParseFlags.SKIP_PROGRAM_NAME:
            self.tokens.popleft()

        while self.tokens:
            token = self.tokens.popleft()
            if self.state is not _State.FLAGS_OR_ARGS or not looks_like_flag(token):
                if (token := self._parse_positionals(token)) is None:
                    continue

            if token == "--":
                self.state = _State.ARGS_ONLY
            elif token.startswith("--"):
                self._parse_long(token)
            else:
                self._parse_short(token)

        self.positionals.finish()
        return self.bindings

    def _parse_positionals(self, token):
        """consume positionals; hand back a flag-shaped token nobody wanted."""
        while True:
            if token == "--" and self.state is not _State.ARGS_ONLY:
                self.state = _State.ARGS_ONLY
                if self.any_args:
                    self.positionals.done()
                    self.positionals.advance()
                return None

            try:
                self.positionals.take(token, self.state is _State.FLAGS_OR_ARGS, self.tokens)
            except UnexpectedArgumentError:
                if self.state is _State.FLAGS_OR_ARGS and looks_like_flag(token):
                    return token
                raise

            self.bindings.append(self.positionals.name, [self.positionals.display, token])
            self.any_args = True
            if self.state is _State.PUSHED_BACK:
                self.state = _State.FLAGS_OR_ARGS
            if not self.tokens:
                return None
            token = self.tokens.popleft()

    def _check_flags_allowed(self, spelling, token):
        if self.flags & ParseFlags.DISALLOW_FLAGS_AFTER_ARGS and self.any_args:
            raise FlagUsedAfterArgsError(name=spelling, remaining=[token, *self.tokens])

    def _push_back(self, token):
        self.state = _State.PUSHED_BACK
        self.tokens.appendleft(token)

    def _take(self, counter, name, remaining):
        values = []
        while self.tokens and counter.take(self.tokens[0], True):
            values.append(self.tokens.popleft())
        try:
            counter.done()
        except ParseError as error:
            raise copy.replace(error, name=name, remaining=remaining) from None
        return values or [""]

    def _parse_long(self, token):
        spelling, assigned, value = token.partition("=")
        flag = self.binding.resolve_alias(spelling[2:])
        if flag is None:
            if self.flags & ParseFlags.UNKNOWN_FLAGS_AS_ARGS:
                return self._push_back(token)
            raise UnknownOptionError(name=spelling, remaining=[token, *self.tokens])

        self._check_flags_allowed(spelling, token)
        if assigned:
            self.bindings.append(flag, [spelling, value])
            return

        counter = self.binding.lookup(flag)
        values = self._take(counter, spelling, [token, *self.tokens])
        self.bindings.append(flag, [spelling, *values])

    def _parse_short(self, token):
        cluster = token[1:]
        self._check_flags_allowed("-" + cluster[0], token)

        for index, char in enumerate(cluster):
            short = "-" + char
            flag = self.binding.resolve_alias(char)
            if flag is None:
                if index == 0 and self.flags & ParseFlags.UNKNOWN_FLAGS_AS_ARGS:
                    return self._push_back(token)
                raise UnknownOptionError(name=short, remaining=["-" + cluster[index:], *self.tokens])

            counter = self.binding.lookup(flag)
            if value := cluster[index + 1:]:
                if counter.take(value, False):
                    try:
                        counter.done()
                    except ParseError as error:
                        raise copy.replace(error, name=short, remaining=[token, *self.tokens]) from None
                    self.bindings.append(flag, [short, value])
                    return
                if value.startswith("="):
                    raise InvalidArgumentError(
                        "option %s does not take a value" % short,
                        name=short,
                        value=value[1:],
                        remaining=[short + value, *self.tokens],
                    )
                self.bindings.append(flag, [short, ""])
                continue

            if self.binding.is_optional_value(flag):
                self.bindings.append(flag, [short, ""])
                continue

            values = self._take(counter, short, [short, *self.tokens])
            self.bindings.append(flag, [short, *values])


def raw_parse(arguments, binding, flags=ParseFlags.NONE, /):
    """
    Bind tokens to names, raising the first ParseError encountered.

    The raised error carries the partial BindingMap under `bindings`.
    """
    parser = _RawParser(arguments, binding, flags)
    try:
        bindings = parser.parse()
    except ParseError as error:
        raise copy.replace(error, bindings=parser.bindings) from error.__cause__
    logger.debug("parsed %r into %r", parser.arguments, dict(bindings))
    return bindings


def robust_parse(arguments, binding, flags=ParseFlags.NONE, /):
    """like raw_parse, but hands back the partial bindings with the error instead of raising."""
    parser = _RawParser(arguments, binding, flags)
    try:
        return RobustParseResult(parser.parse(), None)
    except ParseError as error:
        logger.debug("robust parse of %r stopped: %s", parser.arguments, error)
        return RobustParseResult(parser.bindings, copy.replace(error, bindings=parser.bindings))


def parse_expressions(tokens, lookup, /):
    """
    Split an expression tail into ordered (name, occurrence) pairs.

    lookup(name) returns a fresh Counter for a known expression, or None.
    Every expression must be flag-shaped; a bare token where an expression
    is expected raises ArgsMustPrecedeExprsError.
    """
    items = []
    tokens = deque(tokens)
    while tokens:
        token = tokens.popleft()
        if not looks_like_flag(token):
            raise ArgsMustPrecedeExprsError(value=token, remaining=[token, *tokens])

        name = token.lstrip("-")
        if (counter := lookup(name)) is None:
            raise UnknownExpressionError(name=token, remaining=[token, *tokens])

        values = []
        while tokens and counter.take(tokens[0], True):
            values.append(tokens.popleft())
        try:
            counter.done()
        except ParseError as error:
            raise copy.replace(error, name=token, remaining=[token, *values, *tokens]) from None
        items.append((name, [token, *values]))
    return items


__all__ = (
    "TAKE_UNLIMITED",
    "TAKE_REMAINING",
    "TAKE_UNTIL_NEXT_FLAG",
    "ParseFlags",
    "looks_like_flag",
    "option_name",
    "Counter",
    "Exactly",
    "NoArgs",
    "OneValue",
    "EachRemaining",
    "TakeUntilNextFlag",
    "OptionalArg",
    "Chain",
    "arg_count",
    "multiple",
    "Binding",
    "BindingMap",
    "RobustParseResult",
    "raw_parse",
    "robust_parse",
    "parse_expressions",
)
