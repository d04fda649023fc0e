r"""
argot targets: the declared shape of a command line.

Overview
- Target kinds (a closed set; each is @final and sealed against subclassing)
  • Command: a named command owning flags, args, expressions and subcommands.
    The root is simply the outermost Command.
  • Flag: a named option (-v/--verbose) bound to a Value.
  • Arg: a positional argument bound to a Value.
  • Expr: a find(1)-style expression (-name x) with its own positional args.

- Shared fields
  • name and ordered aliases
  • options: an Options bit-set
  • per-phase pipelines: uses (Initial), before, action, after
  • data: free-form string -> any mapping
  • help_text and completion

- Introspection & representation
  • TargetType metaclass provides stable __repr__/__rich_repr__ and exposes
    the fields listed in __introspectable__ as read-only properties (mirror()).

Name rules
- Flag names and aliases: r"[^\W_](-?[^\W_]+)*" once leading dashes are stripped.
- Arg names: the same, optionally written "<name>".
- Command names: non-empty, no whitespace, not starting with "-" or "<".
  Only a root may be declared without a name (it takes the program name).

Quick example
    >>> app = Command(
    ...     "app",
    ...     flags=[Flag("verbose", aliases=["v"], value=bool)],
    ...     args=[Arg("files", narg=-2)],
    ... )
"""
import enum
import functools
import operator
import re
from typing import final

from .actions import Pipeline, Timing, action_of
from .parser import Chain, NoArgs, OneValue, arg_count, option_name
from .utils import Unset, coalesce, mirror, rename
from .values import Bool, ensure_value


class Options(enum.IntFlag):
    NONE = 0
    HIDDEN = enum.auto()
    REQUIRED = enum.auto()
    EXITS = enum.auto()
    SKIP_FLAG_PARSING = enum.auto()
    DISALLOW_FLAGS_AFTER_ARGS = enum.auto()
    OPTIONAL = enum.auto()
    NO = enum.auto()
    NON_PERSISTENT = enum.auto()
    DISABLE_SPLITTING = enum.auto()
    MERGE = enum.auto()
    PREVENT_SETUP = enum.auto()
    EACH_OCCURRENCE = enum.auto()
    TRIGGER = enum.auto()


_NAME = re.compile(r"[^\W_](-?[^\W_]+)*")
_COMMAND_NAME = re.compile(r"[^\s<-]\S*")


class TargetType(type):
    """
    Metaclass for the target kinds.

    Responsibilities
    - Derive __typename__ from the class name ("Command" -> "command").
    - Expose __introspectable__ names as read-only properties via mirror().
    - Provide stable __repr__/__rich_repr__ for diagnostics.
    - Seal classes declared with `sealed=True` against subclassing.
    """

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__())),
            )
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__displayable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        if options.get("sealed", False):
            @rename("__init_subclass__")
            def __init_subclass__(cls, **options):  # NOQA: F-841
                raise TypeError(f"type {self.__name__!r} is not an acceptable base type")
            self.__init_subclass__ = classmethod(__init_subclass__)

        return self


def _sanitize_name(cls, name, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} name must be a string")
    match cls.__typename__:
        case "command":
            if name and not _COMMAND_NAME.fullmatch(name):
                raise ValueError(f"{cls.__typename__} name {name!r} is not valid")
            return name
        case "arg":
            if name.startswith("<") and name.endswith(">"):
                name = name[1:-1]
        case _:
            name = name.lstrip("-")
    if not _NAME.fullmatch(name):
        raise ValueError(f"{cls.__typename__} name {name!r} is not valid")
    return name


def _sanitize_aliases(cls, aliases, /):
    if isinstance(aliases, str):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
    return [_sanitize_name(cls, alias) for alias in aliases]


class Target(metaclass=TargetType):
    """
    Fields shared by every target kind.

    Targets are plain declarations; everything that happens to them during an
    invocation is tracked by the Context bound to them: resolved values,
    occurrences, and whatever the Initial phase adds (children, aliases, data,
    options). A declared tree can therefore be executed or completed any
    number of times.
    """
    __introspectable__ = ("name", "aliases", "options", "data", "help_text")
    __displayable__ = ("name", "aliases", "options")

    def __init__(
        self,
        name,
        /,
        *,
        aliases=(),
        options=Options.NONE,
        data=None,
        uses=None,
        before=None,
        action=None,
        after=None,
        help_text="",
        completion=None,
    ):
        if not isinstance(options, Options):
            raise TypeError(f"{type(self).__typename__} 'options' must be an Options")
        if not isinstance(help_text, str):
            raise TypeError(f"{type(self).__typename__} 'help_text' must be a string")
        self._name = _sanitize_name(type(self), name)
        self._aliases = _sanitize_aliases(type(self), aliases)
        self._options = options
        self._data = dict(coalesce(data, None) or {})
        self._pipelines = {
            Timing.INITIAL: action_of(uses),
            Timing.BEFORE: action_of(before),
            Timing.ACTION: action_of(action),
            Timing.AFTER: action_of(after),
        }
        self._help_text = help_text.strip()
        self._completion = completion

    @property
    def completion(self):
        return self._completion

    def pipeline(self, timing, /):
        """the declared pipeline for timing (empty for phases without one)."""
        return self._pipelines.get(timing, Pipeline())

    def spellings(self):
        """every name this target answers to, canonical name first."""
        return [self._name, *self._aliases]

    @classmethod
    def sanitize_name(cls, name, /):
        """name with decorations stripped ("--v" -> "v", "<x>" -> "x"); ValueError when invalid."""
        return _sanitize_name(cls, name)

    @classmethod
    def sanitize_aliases(cls, aliases, /):
        return _sanitize_aliases(cls, aliases)


def _kind(child):
    match child:
        case Flag():
            return "flag"
        case Arg():
            return "arg"
        case Expr():
            return "expression"
        case Command():
            if not child.name:
                raise ValueError("subcommands must have a name")
            return "subcommand"
    raise TypeError("command children must be flags, args, expressions or commands")


def check_unique(owner, siblings, child, /):
    """
    Raise ValueError when child shares a spelling with a sibling of its kind.

    owner is the command name used in the message; siblings may hold targets
    of every kind, only those of child's kind are compared.
    """
    kind = _kind(child)
    taken = {
        spelling
        for sibling in siblings
        if type(sibling) is type(child)
        for spelling in sibling.spellings()
    }
    if clash := taken.intersection(child.spellings()):
        raise ValueError(f"command {owner!r} already has a {kind} named {clash.pop()!r}")


class _Valued(Target):
    """Flag and Arg: a Value plus an arity."""

    def __init__(self, name, /, *, value=Unset, narg=None, **options):
        super().__init__(name, **options)
        self._declared = value
        self._narg = narg
        self._value = Unset

    @property
    def narg(self):
        return self._narg

    @property
    def value(self):
        """
        The declared Value, inferred on first access.

        It only drives arity inference and introspection; parsed tokens go to
        the Value each invocation obtains from new_value().
        """
        if self._value is Unset:
            self._value = ensure_value(self._declared, self._narg)
            self._value.apply_options(self._options)
        return self._value

    def new_value(self, options=None, /):
        """
        A Value for one invocation, at its default.

        Inferred values are built fresh. A Value instance given at declaration
        belongs to the caller and is reset instead.
        """
        value = ensure_value(self._declared, self._narg)
        if value is self._declared:
            value.reset()
        value.apply_options(self._options if options is None else options)
        return value


@final
class Command(Target, sealed=True):
    __introspectable__ = Target.__introspectable__ + ("flags", "args", "exprs", "subcommands", "version")
    __displayable__ = ("name", "aliases", "options", "flags", "args", "exprs", "subcommands")

    def __init__(self, name="", /, *, flags=(), args=(), exprs=(), subcommands=(), version=None, **options):
        super().__init__(name, **options)
        self._flags = []
        self._args = []
        self._exprs = []
        self._subcommands = []
        self._version = version
        for child in (*flags, *args, *exprs, *subcommands):
            self.append(child)

    def append(self, child, /):
        """add a child of any kind at declaration time; names must be unique per kind."""
        check_unique(self._name, children(self), child)
        match child:
            case Flag():
                self._flags.append(child)
            case Arg():
                self._args.append(child)
            case Expr():
                self._exprs.append(child)
            case Command():
                self._subcommands.append(child)
        return child


@final
class Flag(_Valued, sealed=True):
    __introspectable__ = Target.__introspectable__ + ("narg",)

    def option_names(self):
        """decorated spellings: ["--verbose", "-v"]."""
        return [option_name(spelling) for spelling in self.spellings()]

    def new_counter(self, options=None, /):
        if self._narg is not None:
            return arg_count(self._narg)
        if (counter := self.value.new_counter()) is not None:
            return counter
        options = self._options if options is None else options
        return OneValue(Options.OPTIONAL not in options)


@final
class Arg(_Valued, sealed=True):
    __introspectable__ = Target.__introspectable__ + ("narg",)

    def new_counter(self, options=None, /):
        if self._narg is not None:
            return arg_count(self._narg)
        counter = self.value.new_counter()
        if counter is None or isinstance(counter, NoArgs) or isinstance(self.value, Bool):
            options = self._options if options is None else options
            return OneValue(Options.REQUIRED in options)
        return counter


@final
class Expr(Target, sealed=True):
    __introspectable__ = Target.__introspectable__ + ("args",)

    def __init__(self, name, /, *, args=(), **options):
        super().__init__(name, **options)
        self._args = []
        for arg in args:
            if not isinstance(arg, Arg):
                raise TypeError("expression args must be Arg instances")
            self._args.append(arg)

    def new_counter(self):
        return Chain(arg.new_counter() for arg in self._args)


def segment(target, /):
    """the path segment of a target: "app", "--verbose", "-v", "<file>", "<-name>"."""
    match target:
        case Command():
            return target.name
        case Flag():
            return option_name(target.name)
        case Arg():
            return "<%s>" % target.name
        case Expr():
            return "<-%s>" % target.name
    raise TypeError("segment() argument must be a target")


def children(target, /):
    """the ordered child targets of any target kind."""
    match target:
        case Command():
            return [*target.flags, *target.args, *target.exprs, *target.subcommands]
        case Expr():
            return target.args
        case Flag() | Arg():
            return list(getattr(target.value, "args", ()))
    raise TypeError("children() argument must be a target")


__all__ = (
    "Options",
    "Target",
    "Command",
    "Flag",
    "Arg",
    "Expr",
    "segment",
    "children",
)
