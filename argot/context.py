"""
argot context: the per-invocation scope tree.

Overview
- Context binds one Target into the tree for one invocation. It records the
  parsed occurrences, the resolved Value, the current Timing, the deferred
  per-phase queues and the hooks registered at its scope.
- ContextPath: the immutable name chain from the root ("app sub --flag <file>").
- Pattern language (whitespace-separated segments match a suffix of the path)
  • literal: a command by name or alias
  • -name / --name: a flag by any spelling; <name>: an arg; <-name>: an expression
  • *: any command; -: any flag; <>: any arg; <->: any expression
- Lookups (value, raw, raw_occurrences, bindings, seen, occurrences, lookup_data)
  search the node itself and then its ancestors; the nearer scope shadows.
- Tree growth during Initial: add_flag, add_arg, add_command, add_expr,
  add_alias, set_data, set_option. New nodes are picked up by the scheduler's
  re-scan.

Invocation state
- Everything an invocation learns or adds lives on its contexts, never on the
  declared targets: each option context owns its Value (built by
  Target.new_value() on first use), and targets added during Initial, extra
  aliases, data and options are recorded on the context that received them.
  Running the same declared tree twice starts from the same defaults.
- A command context's children are its target's declared children followed,
  per kind, by those added during this invocation.

Hooks
- A hook registered on a command applies to the matching contexts below it.
- A persistent flag is declared above the command where it is parsed; hooks
  of every selected command below its declaring command apply to it too, so
  hook_before("-g", ...) on "sub" reaches the root's -g when "sub" runs.

Conventions
- Option contexts (flags, args, expressions) answer to the name "" for themselves.
- Children contexts are created lazily, in target order, and never dropped.
- current() is an opt-in registry; nothing is registered unless asked.
"""
import contextlib
import contextvars
import logging
import threading
from collections import defaultdict

from .actions import Middleware, Pipeline, Timing, action_of
from .faults import ImplicitValueAlreadySetError, InternalError, TimingTooLateError
from .parser import BindingMap, option_name
from .targets import Arg, Command, Expr, Flag, Options, check_unique, children, segment

logger = logging.getLogger(__name__)


class _SkipCommand:
    def __repr__(self):
        return "SKIP_COMMAND"


SKIP_COMMAND = _SkipCommand()


def _is_command(field):
    return bool(field) and not field.startswith(("-", "<"))


def _is_flag(field):
    return field.startswith("-")


def _is_arg(field):
    return field.startswith("<") and not field.startswith("<-")


def _is_expr(field):
    return field.startswith("<-")


def _match_field(pattern, field, spellings=()):
    match pattern:
        case "":
            return True
        case "*":
            return _is_command(field)
        case "-" | "--":
            return _is_flag(field)
        case "<>":
            return _is_arg(field)
        case "<->":
            return _is_expr(field)
    if pattern == field or pattern in spellings:
        return True
    # a long flag may be written with a single dash
    return _is_flag(field) and pattern.startswith("-") and not pattern.startswith("--") and "-" + pattern == field


class ContextPath(tuple):
    """the ordered segments from the root to a context."""

    def __str__(self):
        return " ".join(self)

    @property
    def last(self):
        """the final segment, "" for an empty path."""
        return self[-1] if self else ""

    def is_command(self):
        """a bare word, or the root segment whatever it is."""
        return _is_command(self.last) or len(self) == 1

    def is_flag(self):
        return len(self) > 1 and _is_flag(self.last)

    def is_arg(self):
        return len(self) > 1 and _is_arg(self.last)

    def is_expr(self):
        """expressions are spelled <-name>."""
        return len(self) > 1 and _is_expr(self.last)

    def match(self, pattern, /):
        """whether pattern matches a suffix of this path (literal segments compare exactly)."""
        parts = pattern.split()
        if len(parts) > len(self):
            return False
        return all(map(_match_field, parts, self[len(self) - len(parts):]))


_current = contextvars.ContextVar("argot.current", default=None)


def current():
    """the context registered by execute(..., register=True), or None."""
    return _current.get()


@contextlib.contextmanager
def registered(context, /):
    """expose context through current() for the duration of the block."""
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


class Context:
    """
    One Target bound into the tree for one invocation.

    Construction
    - Context(command) binds a root; the cancellation event defaults to a new
      threading.Event and is shared with every descendant.
    - Children are never built by hand: they appear through `children` (and
      the navigation helpers built on it) in target order.

    State
    - occurrences: the raw token groups parsed for an option, name first.
    - value: the option's own Value; parsed tokens and implicit values are
      applied to it, the declared target is left untouched.
    - timing: the last phase reached; anything scheduled for an elapsed phase
      raises InternalError(TimingTooLateError).
    """

    def __init__(self, target, parent=None, /, *, cancellation=None):
        if not isinstance(target, Command | Flag | Arg | Expr):
            raise TypeError("Context() argument must be a target")
        if parent is None and not isinstance(target, Command):
            raise TypeError("the root context must be bound to a command")
        self._target = target
        self._parent = parent
        self._cancellation = parent._cancellation if parent is not None else _event(cancellation)
        self._path = None
        self._name = None
        self._aliases = []
        self._options = Options.NONE
        self._data = {}
        self._added = []
        self._value = None
        self._timing = Timing.INITIAL
        self._initialized = False
        self._fired = set()
        self._deferred = defaultdict(list)
        self._hooks = []
        self._children = {}
        self._occurrences = []
        self._implicit = False
        self._occurrence = None
        self._bindings = BindingMap()
        self._expressions = []
        self._error = None
        self._leaf = None

    def __repr__(self):
        return "Context(%r, timing=%s)" % (str(self.path), self._timing.name)

    # -- navigation --------------------------------------------------------

    @property
    def target(self):
        """the declared Target this context binds."""
        return self._target

    @property
    def parent(self):
        """the enclosing context, None at the root."""
        return self._parent

    @property
    def root(self):
        context = self
        while context._parent is not None:
            context = context._parent
        return context

    @property
    def lineage(self):
        """self, then every ancestor up to the root."""
        contexts = []
        context = self
        while context is not None:
            contexts.append(context)
            context = context._parent
        return contexts

    @property
    def path(self):
        """the ContextPath from the root; fixed on first access."""
        if self._path is None:
            prefix = self._parent.path if self._parent is not None else ()
            self._path = ContextPath((*prefix, self.name if self.is_command else segment(self._target)))
        return self._path

    @property
    def timing(self):
        """the phase this context is in; advanced by the scheduler."""
        return self._timing

    @property
    def is_command(self):
        return isinstance(self._target, Command)

    @property
    def is_option(self):
        return not self.is_command

    @property
    def command(self):
        """the nearest command context (self for commands)."""
        context = self
        while not context.is_command:
            context = context._parent
        return context

    @property
    def leaf(self):
        """the deepest command selected by the last parse, or None before parsing."""
        return self.root._leaf

    @property
    def error(self):
        """the parse error recorded by a robust parse, if any."""
        return self._error

    @property
    def occurrence(self):
        """index of the occurrence being acted upon under EACH_OCCURRENCE, else None."""
        return self._occurrence

    def _child_targets(self):
        # declared targets and the ones added during this invocation, grouped by kind
        match self._target:
            case Command():
                declared = children(self._target)
                return [
                    child
                    for kind in (Flag, Arg, Expr, Command)
                    for child in (*declared, *self._added)
                    if isinstance(child, kind)
                ]
            case Flag() | Arg():
                return list(getattr(self.bound_value, "args", ()))
        return children(self._target)

    @property
    def children(self):
        """child contexts in target order: flags, args, expressions, subcommands."""
        contexts = []
        for target in self._child_targets():
            try:
                context = self._children[target]
            except KeyError:
                context = self._children[target] = Context(target, self)
            contexts.append(context)
        return contexts

    # -- invocation view of the target -------------------------------------

    @property
    def name(self):
        """the canonical name; an unnamed root takes the program name."""
        return self._name or self._target.name

    @property
    def aliases(self):
        """declared aliases, then those added during this invocation."""
        return [*self._target.aliases, *self._aliases]

    def names(self):
        """every name this context answers to, canonical name first."""
        return [self.name, *self.aliases]

    def option_names(self):
        """decorated spellings of a flag: ["--verbose", "-v"]."""
        return [option_name(name) for name in self.names()]

    @property
    def options(self):
        """the declared Options plus those set during this invocation."""
        return self._target.options | self._options

    @property
    def data(self):
        """declared data merged with set_data() calls; the latter win."""
        return self._target.data | self._data

    @property
    def help_text(self):
        return self._target.help_text

    @property
    def hidden(self):
        """left out of help and completion."""
        return Options.HIDDEN in self.options

    @property
    def optional(self):
        return Options.OPTIONAL in self.options

    @property
    def bound_value(self):
        """the Value this option resolves into for this invocation."""
        if not isinstance(self._target, Flag | Arg):
            return None
        if self._value is None:
            self._value = self._target.new_value(self.options)
        return self._value

    def new_counter(self):
        """a fresh arity counter, honoring options set during this invocation."""
        match self._target:
            case Flag() | Arg():
                return self._target.new_counter(self.options)
            case Expr():
                return self._target.new_counter()
        raise TypeError("commands do not take values")

    # -- cancellation ------------------------------------------------------

    @property
    def cancellation(self):
        """the threading.Event shared by every context of this invocation."""
        return self._cancellation

    @property
    def cancelled(self):
        return self._cancellation.is_set()

    def cancel(self):
        """ask every handler of this invocation to stop cooperatively."""
        self._cancellation.set()

    # -- pattern matching --------------------------------------------------

    def spellings(self):
        """every path segment this context answers to."""
        match self._target:
            case Flag():
                names = self.names()
                return {option_name(name) for name in names} | {"-" + name for name in names}
            case Arg():
                return {"<%s>" % self.name}
            case Expr():
                return {"<-%s>" % name for name in self.names()}
            case Command():
                return set(self.names())

    def matches(self, pattern, /):
        """alias-aware suffix match of pattern against this context's lineage."""
        parts = pattern.split()
        lineage = self.lineage[::-1]
        if len(parts) > len(lineage):
            return False
        return all(
            _match_field(part, context.path.last, context.spellings())
            for part, context in zip(parts, lineage[len(lineage) - len(parts):])
        )

    def descendants(self):
        """pre-order over every context below this one (children created on the way)."""
        for child in self.children:
            yield child
            yield from child.descendants()

    def find_targets(self, pattern, /):
        """pre-order over self and descendants matching pattern; "" means self only."""
        if not pattern.strip():
            yield self
            return
        if self.matches(pattern):
            yield self
        for context in self.descendants():
            if context.matches(pattern):
                yield context

    def find_target(self, pattern, /):
        return next(self.find_targets(pattern), None)

    def walk(self, function, /):
        """pre-order over commands; returning SKIP_COMMAND skips that subtree."""
        if function(self) is SKIP_COMMAND:
            return
        for child in self.children:
            if child.is_command:
                child.walk(function)

    # -- scoped lookups ----------------------------------------------------

    def _answers(self, name):
        # name may be the declared target itself, or a name with or without its decoration
        if isinstance(name, Command | Flag | Arg | Expr):
            return name is self._target
        match self._target:
            case Flag():
                return name.lstrip("-") in self.names()
            case Arg():
                return name.removeprefix("<").removesuffix(">") == self.name
            case Expr():
                return name.removeprefix("<").removesuffix(">").lstrip("-") in self.names()
        return False

    def lookup(self, name, /):
        """the option context called name, searching this scope and then its ancestors."""
        if name == "" and self.is_option:
            return self
        if self.is_option:
            if self._answers(name):
                return self
            for child in self.children:
                if child._answers(name):
                    return child
        scope = self.command
        while scope is not None:
            for child in scope.children:
                if child.is_option and child._answers(name):
                    return child
            scope = scope._parent
        return None

    def value(self, name="", /):
        """
        The resolved value of the option called name (this option for "").

        Expressions resolve to their argument tokens: those of the occurrence
        being acted upon, or of every occurrence outside their Action.
        """
        if (context := self.lookup(name)) is None:
            return None
        match context._target:
            case Expr():
                if context._occurrence is not None:
                    return list(context._occurrences[context._occurrence][1:])
                return [token for occurrence in context._occurrences for token in occurrence[1:]]
        return context.bound_value.get()

    def raw(self, name="", /):
        """every raw token of name's occurrences, flag spellings included."""
        if name == "" and self.is_command:
            return self._bindings.raw("")
        if (context := self.lookup(name)) is None:
            return []
        return [token for occurrence in context._occurrences for token in occurrence]

    def raw_occurrences(self, name="", /):
        """the value tokens of name's occurrences, flag spellings dropped."""
        if name == "" and self.is_command:
            return self._bindings.raw_occurrences("")
        if (context := self.lookup(name)) is None:
            return []
        return [token for occurrence in context._occurrences for token in occurrence[1:]]

    def bindings(self, name="", /):
        """name's occurrences as token lists, one list per occurrence."""
        if name == "" and self.is_command:
            return self._bindings.bindings("")
        if (context := self.lookup(name)) is None:
            return []
        return [list(occurrence) for occurrence in context._occurrences]

    def occurrences(self, name="", /):
        """how many times name was bound (0 when it is not in scope)."""
        if (context := self.lookup(name)) is None:
            return 0
        return len(context._occurrences)

    def seen(self, name="", /):
        return self.occurrences(name) > 0

    @property
    def implicitly_set(self):
        """whether the value came from set_implicit() rather than the command line."""
        return self._implicit

    def lookup_data(self, name, default=None, /):
        """name from the nearest data mapping in the lineage, else default."""
        for context in self.lineage:
            if name in (data := context.data):
                return data[name]
        return default

    # -- flags, args and commands in scope --------------------------------

    def local_flags(self):
        return [child for child in self.command.children if isinstance(child._target, Flag)]

    def local_args(self):
        return [child for child in self.command.children if isinstance(child._target, Arg)]

    def local_exprs(self):
        return [child for child in self.command.children if isinstance(child._target, Expr)]

    def subcommands(self):
        return [child for child in self.command.children if child.is_command]

    def persistent_flags(self):
        """flags declared by every strict ancestor command, nearest first, minus NON_PERSISTENT ones."""
        flags = []
        taken = {name for flag in self.local_flags() for name in flag.names()}
        scope = self.command._parent
        while scope is not None:
            for flag in scope.local_flags():
                if Options.NON_PERSISTENT in flag.options:
                    continue
                if taken.intersection(flag.names()):
                    continue
                taken.update(flag.names())
                flags.append(flag)
            scope = scope._parent
        return flags

    def flags(self):
        """local flags, then the persistent ones they do not shadow."""
        return [*self.local_flags(), *self.persistent_flags()]

    def lookup_flag(self, name, /):
        """the flag context in scope answering to name (local flags shadow persistent ones)."""
        return next((flag for flag in self.flags() if flag._answers(name)), None)

    def lookup_arg(self, name, /):
        return next((arg for arg in self.local_args() if arg._answers(name)), None)

    def lookup_command(self, name, /):
        """the direct subcommand called name or one of its aliases."""
        return next((command for command in self.subcommands() if name in command.names()), None)

    def expressions(self):
        """(expression context, occurrence) pairs in command-line order."""
        return list(self.command._expressions)

    # -- tree growth -------------------------------------------------------

    def add_flag(self, flag, /):
        """
        Add flag to the nearest command for this invocation only.

        The declared Command is left alone; a name already taken in that
        command raises ValueError.
        """
        return self._append(flag, Flag)

    def add_arg(self, arg, /):
        return self._append(arg, Arg)

    def add_command(self, command, /):
        return self._append(command, Command)

    def add_expr(self, expr, /):
        return self._append(expr, Expr)

    def _append(self, target, kind):
        if not isinstance(target, kind):
            raise TypeError("expected a %s" % kind.__typename__)
        scope = self.command
        check_unique(scope.name, scope._child_targets(), target)
        scope._added.append(target)
        logger.debug("%s: added %s", scope.path, segment(target))
        return target

    def add_alias(self, *aliases):
        """extra names for this invocation; names already answered to are skipped."""
        for alias in type(self._target).sanitize_aliases(aliases):
            if alias not in self.names():
                self._aliases.append(alias)

    def set_data(self, name, value, /):
        self._data[name] = value

    def set_option(self, option, /):
        """add option for this invocation; an existing value picks it up at once."""
        self._options |= Options(option)
        if self._value is not None:
            self._value.apply_options(self.options)

    def set_name(self, name, /):
        """name an unnamed root; the path is fixed once it has been read."""
        if self._parent is not None or self._target.name:
            raise ValueError("only an unnamed root can be named")
        if self._path is not None:
            raise ValueError("the path of %r is already fixed" % str(self._path))
        self._name = Command.sanitize_name(name)

    def set_implicit(self, text, /):
        """give an unparsed option its implicit value (once)."""
        if self._implicit:
            raise ImplicitValueAlreadySetError()
        if self._occurrences:
            return
        self.bound_value.set(text)
        self._implicit = True

    # -- timing ------------------------------------------------------------

    def _elapsed(self, timing):
        if timing is Timing.INITIAL:
            return self._initialized
        return self._timing >= timing

    def _too_late(self, timing):
        return InternalError(path=self.path, timing=self._timing, cause=TimingTooLateError(
            "too late for requested action (%s)" % timing.describe()
        ))

    def at(self, timing, action, /):
        """defer action to timing, run it now if that is the current timing, fail if it has elapsed."""
        timing = Timing(timing)
        action = action_of(action)
        if self._timing < timing:
            queue = self._deferred[timing]
            if timing is Timing.ACTION and isinstance(action, Middleware):
                queue.insert(0, action)
            else:
                queue.append(action)
            return
        if self._timing == timing:
            action.execute(self)
            return
        raise self._too_late(timing)

    def uses(self, action, /):
        """at(Timing.INITIAL, action)."""
        self.at(Timing.INITIAL, action)

    def before(self, action, /):
        self.at(Timing.BEFORE, action)

    def action(self, action, /):
        self.at(Timing.ACTION, action)

    def after(self, action, /):
        self.at(Timing.AFTER, action)

    def hook(self, timing, pattern, action, /):
        """run action adjacent to timing for every matching descendant ("" means self)."""
        timing = Timing(timing)
        if not pattern.strip():
            return self.at(timing, action)
        if self._timing > timing:
            raise self._too_late(timing)
        for context in self.descendants():
            if context.matches(pattern) and context._elapsed(timing):
                raise context._too_late(timing)
        self._hooks.append((timing, pattern, action_of(action)))
        logger.debug("%s: hook at %s for %r", self.path, timing.describe(), pattern)

    def _scopes(self):
        # ancestors, root first; persistent flags also see the selected commands below their parent
        scopes = self.lineage[:0:-1]
        leaf = self.root._leaf
        if not isinstance(self._target, Flag) or leaf is None or Options.NON_PERSISTENT in self.options:
            return scopes
        below = []
        context = leaf
        while context is not None and context is not self._parent:
            below.append(context)
            context = context._parent
        if context is None:
            return scopes
        return [*scopes, *reversed(below)]

    def hooks(self, timing, /):
        """
        Hooks from enclosing scopes that match this context, outer scopes first.

        For a persistent flag the scopes continue down the selected path to
        the leaf command.
        """
        return [
            action
            for scope in self._scopes()
            for hook_timing, pattern, action in scope._hooks
            if hook_timing == timing and self.matches(pattern)
        ]

    def deferred(self, timing, /):
        """drain the actions deferred to timing."""
        return Pipeline(*self._deferred.pop(timing, ()))


def _event(event, /):
    return threading.Event() if event is None else event


__all__ = (
    "SKIP_COMMAND",
    "ContextPath",
    "Context",
    "current",
    "registered",
)
