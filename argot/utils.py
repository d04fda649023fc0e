"""
argot utilities shared by the parser, the scope tree and the scheduler.

Overview
- Unset: "not provided", distinct from None (a legitimate value for defaults).
- coalesce(value, default): Unset -> default, anything else unchanged.
- rename(callable, name) / @rename(name): stable names for generated wrappers,
  so actions and properties read well in reprs and tracebacks.
- mirror(name): read-only property over self._<name>; containers come back as
  copies, so declared targets only grow through their own methods.
"""
import builtins
import functools
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Singleton type of the Unset marker.

    Notes
    - Sealed: subclassing raises TypeError.
    - UnsetType() always returns the same instance, and so do copy.copy and
      copy.deepcopy.
    - The instance is falsy and prints as "Unset".
    """

    def __or__(self, other, /):
        """Build a union annotation with the type: `Unset | str` gives `str | UnsetType`."""
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        """Right-hand form of __or__, for `str | Unset`."""
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        """
        Return the unique instance (per process).

        functools.cache on __new__ memoizes the single call without a module
        level guard.
        """
        return super().__new__(cls)

    def __bool__(self):
        """Unset is falsy: `value or default` treats it like a missing value."""
        return False

    def __repr__(self):
        """Stable form used in reprs and error messages."""
        return "Unset"

    def __copy__(self):
        """Copies keep identity, so `is Unset` checks survive copy.copy."""
        return self

    def __deepcopy__(self, memo, /):
        """Deep copies keep identity as well, including inside copied containers."""
        return self

    def __init_subclass__(cls, **options):
        """Refuse subclasses; there is exactly one Unset."""
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return default when object is Unset, object otherwise.

    None, 0, "" and empty containers are values, not "missing":
    coalesce(None, "x") is None.
    """
    return default if object is Unset else object


def rename(*parameters):
    """
    rename(callable, name) -> callable, or rename(name) -> decorator.

    Sets both __name__ and __qualname__. Callables that refuse the update
    (most builtins) raise TypeError.
    """
    match parameters:
        case (target, str() as name):
            if not builtins.callable(target):
                raise TypeError("rename() first argument must be callable")
            try:
                target.__qualname__ = name
                target.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return target
        case (str() as name,):
            def decorator(target):
                if not builtins.callable(target):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(target, name)

            return rename(decorator, "rename")
        case (_,) | (_, _):
            raise TypeError("rename() name must be a string")
    raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _copied(object):
    match object:
        # strings are sequences too
        case str():
            return object
        case Sequence():
            return [_copied(item) for item in object]
        case Mapping():
            return {key: _copied(value) for key, value in object.items()}
        case Set():
            return {_copied(item) for item in object}
    return object


def mirror(name, /):
    """
    Read-only property named name over self._<name>.

    Lists, dicts and sets come back as copies (recursively), so callers cannot
    grow the underlying state behind its owner.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _copied(getattr(self, "_" + name))

    return property(getter)


__all__ = (
    "Unset",
    "UnsetType",
    "coalesce",
    "rename",
    "mirror",
)
