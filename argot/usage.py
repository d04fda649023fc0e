"""
argot usage: the compact help and version views behind --help and --version.

Overview
- render_help(context): usage line, description, then a table per section
  (commands, flags, arguments) of every visible child.
- render_version(context): "<name> — <version>".
- synthesize(context): run in the root's Initial phase; adds --help (and
  --version when the root declares a version) unless PREVENT_SETUP is set
  or the names are already taken. Both are EXITS flags.

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- Define __prog__ in __main__ to override the program name shown in usage.
"""
import logging
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from .targets import Arg, Flag, Options

logger = logging.getLogger(__name__)


def _styles():
    return defaultdict(str, {
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "description-section": "italic #A3A3A3",
        "section-title": "bold #FFFFFF",
        "table": "#4B5563",
        "command-name": "bold #36C5F0",
        "flag-name": "bold #22C55E",
        "arg-name": "bold #FFD600",
        "help": "#9CA3AF",
        "program-version": "bold #00E6FF",
    } | getattr(__import__("__main__"), "__styles__", {}))


def _metavar(arg):
    metavar = "<%s>" % arg.name
    if arg.new_counter().multiple:
        metavar += "..."
    if Options.REQUIRED not in arg.options:
        metavar = "[%s]" % metavar
    return metavar


def render_help(context, /):
    """usage line, description and one table per non-empty section of context's command."""
    command = context.command
    styles = _styles()
    prog = getattr(__import__("__main__"), "__prog__", " ".join(command.path))

    usage = Text.assemble(
        ("usage", styles["usage-label"]),
        ": ",
        (prog, styles["program-name"]),
    )
    if command.flags():
        usage.append(" [flags]")
    for arg in command.local_args():
        if not arg.hidden:
            usage.append(" " + _metavar(arg))
    if command.subcommands():
        usage.append(" <command> [args]")
    renders = [usage]

    if command.help_text:
        renders.append(Text(command.help_text, styles["description-section"]))

    sections = (
        ("commands", command.subcommands(), "command-name"),
        ("flags", command.flags(), "flag-name"),
        ("arguments", command.local_args(), "arg-name"),
    )
    for title, children, style in sections:
        if not (visible := [child for child in children if not child.hidden]):
            continue
        table = Table(
            "name", "help",
            title=Text(title, styles["section-title"]),
            title_justify="left",
            box=ROUNDED,
            style=styles["table"],
            show_header=False,
        )
        for child in visible:
            match child.target:
                case Flag():
                    name = ", ".join(sorted(child.option_names(), key=len))
                case Arg():
                    name = _metavar(child)
                case _:
                    name = ", ".join(child.names())
            table.add_row(Text(name, styles[style]), Text(child.help_text, styles["help"]))
        renders.append(table)

    return Group(*renders)


def render_version(context, /):
    root = context.root
    styles = _styles()
    return Text(" — ").join((
        Text(root.name, styles["program-name"]),
        Text(str(root.target.version), styles["program-version"]),
    ))


def _show_help(context):
    Console().print(render_help(context.leaf or context.command))


def _show_version(context):
    Console().print(render_version(context))


def synthesize(context, /):
    """add --help and --version to the root command."""
    target = context.target
    if Options.PREVENT_SETUP in context.options:
        return
    taken = {name for flag in context.local_flags() for name in flag.names()}

    if "help" not in taken:
        aliases = [] if "h" in taken else ["h"]
        context.add_flag(Flag(
            "help",
            aliases=aliases,
            value=bool,
            options=Options.EXITS,
            action=_show_help,
            help_text="show this help and exit",
        ))
        logger.debug("%s: synthesized --help", context.path)

    if target.version is not None and "version" not in taken:
        context.add_flag(Flag(
            "version",
            value=bool,
            options=Options.EXITS,
            action=_show_version,
            help_text="show the version and exit",
        ))
        logger.debug("%s: synthesized --version", context.path)


__all__ = (
    "render_help",
    "render_version",
    "synthesize",
)
