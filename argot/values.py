"""
argot values: the small Value capability that flags and args bind into.

Overview
- Value: set(text) / get() / reset() / str(); optionally new_counter() to choose arity.
- Bool: presence-only value (NoArgs); "" means true, common true/false spellings are accepted.
- Scalar: a single converted value (type=str by default); the last set wins.
- List: a container of converted values; splits on commas unless splitting is disabled,
  replaces its default on the first set unless merging is enabled.
- Negated: mirror view over a Bool that stores the inverse (used by --no-name flags).
- ensure_value(value, narg): infer a Value from a type, a literal default or Unset.

Conversion errors are raised as ValueError/TypeError; the scheduler turns them into
InvalidArgumentError with the offending token and the flag or arg name.
"""
import builtins
from abc import ABC, abstractmethod

from .parser import NoArgs, TakeUntilNextFlag, multiple
from .tokenizer import split_list
from .utils import Unset


class Value(ABC):
    """capability consumed by the scheduler when applying parsed occurrences."""

    @abstractmethod
    def set(self, text, /):
        ...

    @abstractmethod
    def get(self):
        ...

    def reset(self):
        """restore the declared default (between EACH_OCCURRENCE firings and for each new invocation)."""

    def new_counter(self):
        """return a Counter to override arity inference, or None."""
        return None

    def apply_options(self, options, /):
        """receive the owning target's Options before the first set."""

    def __str__(self):
        return str(self.get())

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self.get())


_TRUTHY = frozenset(("", "1", "t", "true", "y", "yes", "on"))
_FALSY = frozenset(("0", "f", "false", "n", "no", "off"))


def parse_bool(text, /):
    lowered = text.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError("not a valid boolean: %r" % text)


class Bool(Value):
    def __init__(self, default=False, /):
        self._default = builtins.bool(default)
        self._value = self._default

    def set(self, text, /):
        self._value = parse_bool(text)

    def get(self):
        return self._value

    def reset(self):
        self._value = self._default

    def new_counter(self):
        return NoArgs()

    def __str__(self):
        return "true" if self._value else "false"


class Negated(Value):
    """stores the inverse of what it is given into another Bool."""

    def __init__(self, value, /):
        if not isinstance(value, Bool):
            raise TypeError("Negated() argument must be a Bool value")
        self._value = value

    def set(self, text, /):
        self._value.set("false" if parse_bool(text) else "true")

    def get(self):
        return not self._value.get()

    def new_counter(self):
        return NoArgs()


class Scalar(Value):
    def __init__(self, type=str, default=None, /):
        if not callable(type):
            raise TypeError("Scalar() 'type' must be callable")
        self._type = type
        self._default = default
        self._value = default

    @property
    def type(self):
        return self._type

    def set(self, text, /):
        self._value = self._type(text)

    def get(self):
        return self._value

    def reset(self):
        self._value = self._default

    def __str__(self):
        return "" if self._value is None else str(self._value)


class List(Value):
    def __init__(self, type=str, default=(), /, *, split=True, merge=False):
        if not callable(type):
            raise TypeError("List() 'type' must be callable")
        self._type = type
        self._default = tuple(default)
        self._items = list(self._default)
        self._touched = False
        self.split = split
        self.merge = merge

    def apply_options(self, options, /):
        from .targets import Options

        self.split = Options.DISABLE_SPLITTING not in options
        self.merge = Options.MERGE in options

    def set(self, text, /):
        if not self._touched and not self.merge:
            self._items.clear()
        self._touched = True
        parts = split_list(text) if self.split else [text]
        self._items.extend(map(self._type, parts))

    def get(self):
        return list(self._items)

    def reset(self):
        self._items = list(self._default)
        self._touched = False

    def new_counter(self):
        return TakeUntilNextFlag()

    def __str__(self):
        return ",".join(map(str, self._items))


def ensure_value(value=Unset, narg=None, /):
    """
    Infer a Value for a flag or arg.

    Rules
    - an existing Value is returned as-is.
    - bool (the type) or a bool literal -> Bool.
    - list (the type) -> List of str; a list/tuple literal -> List with that default.
    - a str/int/float literal -> Scalar of that type with that default.
    - any other callable -> Scalar (or List when narg implies several values) using it as converter.
    - Unset -> Scalar of str, or List of str when narg implies several values.
    """
    many = multiple(narg)
    match value:
        case Value():
            return value
        case _ if value is Unset:
            return List() if many else Scalar()
        case _ if value is builtins.bool:
            return Bool()
        case _ if value is builtins.list:
            return List()
        case builtins.bool():
            return Bool(value)
        case builtins.list() | builtins.tuple():
            return List(str, value)
        case builtins.str() | builtins.int() | builtins.float():
            return List(type(value), (value,)) if many else Scalar(type(value), value)
        case _ if callable(value):
            return List(value) if many else Scalar(value)
    raise TypeError("value must be a Value, a type, a converter or a literal default")


__all__ = (
    "Value",
    "Bool",
    "Negated",
    "Scalar",
    "List",
    "parse_bool",
    "ensure_value",
)
