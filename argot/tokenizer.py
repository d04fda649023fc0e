"""
argot tokenizer: shell-like splitting of command lines and list values.

Overview
- split(text): POSIX-shell-like splitting (single/double quotes, backslash escapes).
- join(tokens): inverse of split, quoting only where needed.
- quote(value): quote a single value for display or re-splitting.
- split_list(text, sep=",", limit=-1): split list values on a separator while
  honoring backslash-escaped separators ("a\\,b,c" -> ["a,b", "c"]).
- argv(arguments): normalize Unset, a command line string or an iterable into argv.
"""
import shlex
import sys
from collections.abc import Iterable

from .utils import Unset


def split(text, /):
    """
    Split a command line into argv-style tokens.

    Raises
    - TypeError: when text is not a string.
    - ValueError: when a quotation is left open.
    """
    if not isinstance(text, str):
        raise TypeError("split() argument must be a string")
    try:
        return shlex.split(text, posix=True)
    except ValueError as error:
        raise ValueError("split() %s in %r" % (str(error).lower(), text)) from None


def quote(value, /):
    if value is None:
        return ""
    return shlex.quote(str(value))


def join(tokens, /):
    return " ".join(map(quote, tokens))


def argv(arguments=Unset, /):
    """
    Normalize arguments into an argv-style list (program name first).

    - Unset: a copy of sys.argv.
    - str: split with split().
    - Iterable[str]: the items as-is; empty strings are kept.
    """
    if arguments is Unset:
        return list(sys.argv)
    if isinstance(arguments, str):
        return split(arguments)
    if not isinstance(arguments, Iterable):
        raise TypeError("argv() argument must be a string or an iterable of strings")
    tokens = list(arguments)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("argv() argument must be a string or an iterable of strings")
    return tokens


def split_list(text, sep=",", limit=-1, /):
    """
    Split text on sep, treating a backslash before sep (or before a backslash) as an escape.

    limit behaves like str.split maxsplit: -1 means no limit; a non-negative
    limit caps the number of splits and leaves the tail intact.
    """
    if not sep:
        raise ValueError("split_list() separator cannot be empty")

    items = []
    current = []
    index = 0
    while index < len(text):
        if text[index] == "\\" and index + 1 < len(text):
            following = text[index + 1]
            if text.startswith(sep, index + 1) or following == "\\":
                current.append(sep if following != "\\" else "\\")
                index += 1 + (len(sep) if following != "\\" else 1)
                continue
        if text.startswith(sep, index) and (limit < 0 or len(items) < limit):
            items.append("".join(current))
            current.clear()
            index += len(sep)
            continue
        current.append(text[index])
        index += 1
    items.append("".join(current))
    return items


__all__ = (
    "split",
    "join",
    "quote",
    "split_list",
    "argv",
)
