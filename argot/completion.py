"""
argot completion: what could come next on a partial command line.

Overview
- complete(command, arguments, incomplete): initialize the tree, parse the
  complete tokens robustly down the lineage (no phase runs), then offer items:
  • a flag still waiting for its value offers that flag's completion;
  • an incomplete token starting with "-" offers the visible flag spellings
    of the command and its persistent flags;
  • anything else offers subcommand names plus the current positional's completion.
- A target's completion may be a callable taking a CompletionContext, a
  sequence of strings, or FILE_COMPLETION / DIRECTORY_COMPLETION.

Script generation for particular shells is left to the host.
"""
import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .context import Context, registered
from .faults import ExpectedArgumentError, ParseError
from .parser import BindingMap
from .scheduler import initialize, name_root, parse
from .targets import Command
from .tokenizer import argv
from .utils import Unset

logger = logging.getLogger(__name__)


class CompletionType(enum.IntEnum):
    TOKEN = 0
    FILE = 1
    DIRECTORY = 2


@dataclass(frozen=True)
class CompletionItem:
    value: str
    type: CompletionType = CompletionType.TOKEN
    help_text: str = ""


@dataclass
class CompletionContext:
    context: Context
    args: list[str]
    incomplete: str
    bindings: BindingMap
    error: ParseError | None


class StandardCompletion(enum.Enum):
    FILE = CompletionType.FILE
    DIRECTORY = CompletionType.DIRECTORY

    def __call__(self, completion, /):
        return [CompletionItem(completion.incomplete, self.value)]


FILE_COMPLETION = StandardCompletion.FILE
DIRECTORY_COMPLETION = StandardCompletion.DIRECTORY


def _items(completion, provided, /):
    match provided:
        case None:
            return []
        case str():
            provided = [provided]
        case _ if callable(provided):
            provided = provided(completion)
    if not isinstance(provided, Iterable):
        raise TypeError("completion must produce an iterable of strings or completion items")
    items = []
    for item in provided:
        if isinstance(item, str):
            item = CompletionItem(item)
        if item.type is CompletionType.TOKEN and not item.value.startswith(completion.incomplete):
            continue
        items.append(item)
    return items


def _flag_items(completion, context):
    items = []
    for flag in context.flags():
        if flag.hidden:
            continue
        for spelling in flag.option_names():
            if spelling.startswith(completion.incomplete):
                items.append(CompletionItem(spelling, help_text=flag.help_text))
    return items


def _current_arg(context):
    args = context.local_args()
    for arg in args:
        if not arg.seen(""):
            return arg
    if args and args[-1].new_counter().multiple:
        return args[-1]
    return None


def _complete(root, arguments, incomplete):
    initialize(root)
    leaf = parse(root, arguments, robust=True)[-1]
    completion = CompletionContext(leaf, list(arguments), incomplete, leaf._bindings, leaf.error)

    if isinstance(leaf.error, ExpectedArgumentError) and leaf.error.name.startswith("-"):
        if (flag := leaf.lookup(leaf.error.name)) is not None:
            completion.context = flag
            return _items(completion, flag.target.completion)

    if incomplete.startswith("-"):
        return _flag_items(completion, leaf)

    items = [
        CompletionItem(spelling, help_text=command.help_text)
        for command in leaf.subcommands()
        if not command.hidden
        for spelling in command.names()
        if spelling.startswith(incomplete)
    ]
    if (arg := _current_arg(leaf)) is not None:
        completion.context = arg
        items.extend(_items(completion, arg.target.completion))
    return items


def complete(command, arguments=Unset, incomplete="", /, *, register=False):
    """
    return the CompletionItems for a partial command line.

    arguments are the complete tokens typed so far (program name first);
    incomplete is the token under the cursor.
    """
    root = command if isinstance(command, Context) else Context(command)
    if not isinstance(root.target, Command):
        raise TypeError("complete() argument must be a command or its context")
    arguments = [root.name] if arguments is Unset else argv(arguments)
    name_root(root, arguments)
    if register:
        with registered(root):
            items = _complete(root, arguments, incomplete)
    else:
        items = _complete(root, arguments, incomplete)
    logger.debug("%s: %d completion item(s) for %r", root.path, len(items), incomplete)
    return items


__all__ = (
    "CompletionType",
    "CompletionItem",
    "CompletionContext",
    "StandardCompletion",
    "FILE_COMPLETION",
    "DIRECTORY_COMPLETION",
    "complete",
)
