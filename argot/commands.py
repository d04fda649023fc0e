"""
argot runner: the entry points that take a declared tree and a command line.

What this module provides
- execute(command, arguments=Unset): bind a fresh root context, name an
  unnamed root after the program, run every phase and return the root context.
  Faults are raised.
- run(command, arguments=Unset, **options): like execute(), but faults are
  surfaced through faults.trigger(..., shell=True): rendered on the stderr
  console, then the process exits with the fault's exit code (2 for parse
  errors, the status for CommandExit, 1 otherwise).

Arguments
- Unset: sys.argv.
- str: a shell-like command line split with tokenizer.split().
- Iterable[str]: pre-tokenized argv.
The first token is always the program name.

Quick start
    from argot import Arg, Command, Flag, run

    def greet(context):
        print("hello,", context.value("name"), "!" * context.value("loud"))

    app = Command(
        "greet",
        flags=[Flag("loud", aliases=["l"], value=bool)],
        args=[Arg("name", value="world")],
        action=greet,
        version="1.0.0",
    )

    if __name__ == "__main__":
        run(app)
"""
import contextlib
import logging

from .context import Context, registered
from .faults import CommandException, trigger
from .scheduler import execute as _execute
from .scheduler import name_root, program_name
from .targets import Command
from .tokenizer import argv
from .utils import Unset

logger = logging.getLogger(__name__)


def execute(command, arguments=Unset, /, *, register=False, cancellation=None):
    """
    Run command against arguments and return its root context.

    Parameters
    - register: expose the root through context.current() while running.
    - cancellation: a threading.Event shared with the caller; set it to ask
      handlers to stop cooperatively.

    Raises
    - ParseError: the command line does not fit the declared tree.
    - CommandExit: a handler (or an EXITS flag such as --help) asked to stop.
    - InternalError: a handler failed; path and timing say where.
    """
    if not isinstance(command, Command):
        raise TypeError("execute() first argument must be a command")
    tokens = argv(arguments)
    root = Context(command, cancellation=cancellation)
    name_root(root, tokens)
    with registered(root) if register else contextlib.nullcontext():
        _execute(root, tokens)
    return root


def run(command, arguments=Unset, /, **options):
    """
    Execute command as a program: faults are rendered and turn into exit codes.

    options are forwarded to faults.trigger (fancy, colorful, hint, ...).
    A CommandExit with status 0 exits quietly.
    """
    tokens = argv(arguments)
    try:
        return execute(command, tokens, register=options.pop("register", False))
    except CommandException as fault:
        logger.debug("run() stopped: %r", fault)
        if getattr(fault, "exit_code", 1) == 0:
            raise SystemExit(0) from None
        trigger(fault, shell=True, prog=program_name(command, tokens), **options)


__all__ = (
    "execute",
    "run",
)
