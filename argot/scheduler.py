"""
argot scheduler: drives a context tree through its phases.

Overview
- initialize(context): pre-order, fixed-point Initial pass. The first context
  that has not been initialized is found by re-scanning from the top, so
  targets appended while the tree is being built are picked up in the same pass.
- parse(context, arguments, robust=False): parse down the lineage. A command
  with subcommands binds two implicit positionals (the subcommand name and the
  rest of the line); the rest is parsed again by the selected subcommand with
  every ancestor's persistent flags in its binding.
- execute(context, arguments): initialize, parse, check REQUIRED options, then
  sweep VALIDATOR, BEFORE, IMPLICIT_VALUE and ACTION root to leaf, and AFTER
  leaf to root.

Phase order per command
- VALIDATOR: the command, then the options that received a value.
- BEFORE: the command, then all its options; matching hooks from enclosing
  scopes run first (outer scopes first, registration order), so the innermost,
  latest hook runs last. Identical before actions run once.
- IMPLICIT_VALUE: options without a parsed value.
- ACTION: options that were set, implicitly set or marked TRIGGER (once per
  occurrence under EACH_OCCURRENCE, once per occurrence for expressions), then
  the leaf command.
- AFTER: the command, then its options, then matching after hooks.

Failures
- ParseError, CommandExit and InternalError propagate unchanged.
- Other CommandException faults become InternalError(path, timing, cause).
- Any other exception propagates as-is unless wrapped with actions.recover().
- AFTER does not run once a failure has halted the run.
"""
import logging
import os.path
from collections import deque

from .actions import Pipeline, Timing
from .faults import (
    CommandException,
    CommandExit,
    CommandNotFoundError,
    ExpectedRequiredOptionError,
    InternalError,
    InvalidArgumentError,
    ParseError,
)
from .parser import (
    Binding,
    EachRemaining,
    OneValue,
    ParseFlags,
    looks_like_flag,
    parse_expressions,
    raw_parse,
    robust_parse,
)
from .targets import Arg, Command, Expr, Flag, Options, segment
from .usage import synthesize
from .values import Bool, Negated

logger = logging.getLogger(__name__)

_COMMAND = "(command)"
_ARGS = "(args)"


def program_name(command, arguments, /):
    """the declared name of command, else the base name of the first token."""
    if command.name or not arguments:
        return command.name
    return os.path.basename(arguments[0])


def name_root(context, arguments, /):
    """an unnamed root takes the program name for this invocation."""
    if context.target.name or not arguments or context._path is not None:
        return
    try:
        context.set_name(program_name(context.target, arguments))
    except ValueError:
        logger.debug("program name %r is not a valid command name", arguments[0])


def initialize(context, /):
    """run the Initial phase of every context reachable from context."""
    while (pending := next(_uninitialized(context), None)) is not None:
        _initialize(pending)


def _uninitialized(context):
    if not context._initialized:
        yield context
        return
    for child in context.children:
        yield from _uninitialized(child)


def _negation(context):
    """add the hidden --no-name mirror of a NO flag."""
    if Options.NO not in context.options or not isinstance(context.bound_value, Bool):
        return
    name = "no-" + context.name
    if context.lookup_flag(name) is not None:
        return
    context.add_flag(Flag(
        name,
        value=Negated(context.bound_value),
        options=Options.HIDDEN | (context.options & Options.NON_PERSISTENT),
        help_text="disable --%s" % context.name,
    ))


def _defaults(context):
    match context.target:
        case Command() if context.parent is None:
            return [synthesize]
        case Flag():
            return [_negation]
    return []


def _initialize(context):
    context._initialized = True
    logger.debug("%s: initializing", context.path)
    _run(context, Timing.INITIAL, Pipeline(
        context.deferred(Timing.INITIAL),
        *_defaults(context),
        context.target.pipeline(Timing.INITIAL),
    ))
    _run(context, Timing.INITIAL, Pipeline(*context.hooks(Timing.INITIAL)))


def _run(context, timing, action):
    if isinstance(action, Pipeline) and not action:
        return
    logger.debug("%s: firing %s", context.path, timing.describe())
    try:
        action.execute(context)
    except (ParseError, CommandExit, InternalError):
        raise
    except CommandException as error:
        raise InternalError(path=context.path, timing=timing, cause=error) from error


# -- parsing -----------------------------------------------------------------


def _split_expressions(context, tokens):
    """cut tokens where the first known expression starts."""
    if not (exprs := context.local_exprs()):
        return tokens, []
    names = {name for expr in exprs for name in expr.names()}
    flags = {name for flag in context.flags() for name in flag.names()}
    for index, token in enumerate(tokens[1:], 1):
        if token == "--":
            break
        if looks_like_flag(token) and (name := token.lstrip("-")) in names and name not in flags:
            return tokens[:index], tokens[index:]
    return tokens, []


def _assign(option, occurrence):
    value = option.bound_value
    for token in occurrence[1:]:
        try:
            value.set(token)
        except (ValueError, TypeError) as error:
            raise InvalidArgumentError(
                name=occurrence[0],
                value=token,
                reason=str(error),
                remaining=[],
            ) from error


def _record(option, occurrence):
    option._occurrences.append(list(occurrence))
    _assign(option, occurrence)


def _bind(context, tokens, robust):
    binding = Binding()
    keys = {}
    flags = ParseFlags.SKIP_PROGRAM_NAME

    for flag in context.flags():
        keys[key := segment(flag.target)] = flag
        binding.define_flag(key, flag.names(), flag.new_counter, optional=flag.optional)
    for arg in context.local_args():
        keys[arg.name] = arg
        binding.define_arg(arg.name, arg.new_counter)
    if context.subcommands():
        binding.define_arg(_COMMAND, OneValue)
        binding.define_arg(_ARGS, EachRemaining)
        flags |= ParseFlags.DISALLOW_FLAGS_AFTER_ARGS
    if Options.DISALLOW_FLAGS_AFTER_ARGS in context.options:
        flags |= ParseFlags.DISALLOW_FLAGS_AFTER_ARGS
    if Options.SKIP_FLAG_PARSING in context.options:
        flags |= ParseFlags.ARGS_ONLY

    head, tail = _split_expressions(context, tokens)
    if robust:
        bindings, error = robust_parse(head, binding, flags)
    else:
        bindings, error = raw_parse(head, binding, flags), None

    context._bindings = bindings
    for key in bindings.names():
        if (option := keys.get(key)) is None:
            continue
        for occurrence in bindings.bindings(key):
            _record(option, occurrence)
    if error is not None:
        raise error

    if tail:
        exprs = {name: expr for expr in context.local_exprs() for name in expr.names()}
        for name, occurrence in parse_expressions(tail, lambda name: _expression_counter(exprs, name)):
            exprs[name]._occurrences.append(occurrence)
            context._expressions.append((exprs[name], occurrence))
    return bindings


def _expression_counter(exprs, name):
    if (expr := exprs.get(name)) is None:
        return None
    return expr.new_counter()


def parse(context, arguments, /, *, robust=False):
    """
    bind arguments (program name first) down the lineage; return the lineage.

    in robust mode, the first ParseError is recorded on the deepest context
    reached (context.error) instead of being raised.
    """
    lineage = []
    tokens = list(arguments)
    while context is not None:
        lineage.append(context)
        context.root._leaf = context
        try:
            bindings = _bind(context, tokens, robust)
            name = bindings.raw_occurrences(_COMMAND)
            if not name:
                break
            if (subcommand := context.lookup_command(name[0])) is None:
                raise CommandNotFoundError(name=name[0], remaining=[*name, *bindings.raw_occurrences(_ARGS)])
        except ParseError as error:
            if not robust:
                raise
            context._error = error
            break
        logger.debug("%s: selected subcommand %s", context.path, subcommand.name)
        tokens = [name[0], *bindings.raw_occurrences(_ARGS)]
        context = subcommand
    return lineage


def _exiting(lineage):
    """whether an EXITS flag (such as --help) was given anywhere in the lineage."""
    return any(
        Options.EXITS in flag.options and flag._occurrences
        for command in lineage
        for flag in command.local_flags()
    )


def _check_required(lineage):
    for command in lineage:
        for option in (*command.local_flags(), *command.local_args()):
            if Options.REQUIRED in option.options and not option._occurrences:
                raise ExpectedRequiredOptionError(name=option.path.last)


# -- phases ------------------------------------------------------------------


def _options(command):
    """option contexts owned by command, including nested args, in tree order."""
    stack = deque(child for child in command.children if child.is_option)
    while stack:
        option = stack.popleft()
        yield option
        stack.extendleft(reversed(option.children))


def _reach(context, timing):
    if not context._initialized:
        initialize(context)
    if context._timing < timing:
        context._timing = timing


def _fire(context, timing):
    _reach(context, timing)
    if timing in context._fired:
        return
    context._fired.add(timing)
    pipeline = Pipeline(context.deferred(timing), context.target.pipeline(timing))
    match timing:
        case Timing.BEFORE:
            pipeline = Pipeline(*context.hooks(timing), *dict.fromkeys(pipeline))
        case Timing.AFTER:
            pipeline = Pipeline(pipeline, *context.hooks(timing))
    _run(context, timing, pipeline)


def _fire_each(option, assign):
    """run the ACTION pipeline once per occurrence, assigning each one first."""
    _reach(option, Timing.ACTION)
    option._fired.add(Timing.ACTION)
    pipeline = Pipeline(option.deferred(Timing.ACTION), option.target.pipeline(Timing.ACTION))
    try:
        for index, occurrence in enumerate(option._occurrences):
            assign(option, occurrence)
            option._occurrence = index
            _run(option, Timing.ACTION, pipeline)
    finally:
        option._occurrence = None


def _reassign(option, occurrence):
    option.bound_value.reset()
    _assign(option, occurrence)


def _distribute(expr, occurrence):
    """hand one expression occurrence's tokens to the expression's args."""
    tokens = deque(occurrence[1:])
    for arg in expr.children:
        if not isinstance(arg.target, Arg):
            continue
        arg.bound_value.reset()
        arg._occurrences.clear()
        counter = arg.new_counter()
        while tokens and counter.take(tokens[0], True):
            _record(arg, [arg.path.last, tokens.popleft()])


def _act(option):
    options = option.options
    if not (option._occurrences or option._implicit or Options.TRIGGER in options):
        return _reach(option, Timing.ACTION)
    if isinstance(option.target, Expr):
        _fire_each(option, _distribute)
    elif Options.EACH_OCCURRENCE in options and option._occurrences:
        _fire_each(option, _reassign)
    else:
        _fire(option, Timing.ACTION)
    if Options.EXITS in options:
        raise CommandExit(status=0)


def _sweep(command, timing, leaf):
    match timing:
        case Timing.VALIDATOR:
            _fire(command, timing)
            for option in list(_options(command)):
                if option._occurrences:
                    _fire(option, timing)
                else:
                    _reach(option, timing)
        case Timing.BEFORE | Timing.AFTER:
            _fire(command, timing)
            for option in list(_options(command)):
                _fire(option, timing)
        case Timing.IMPLICIT_VALUE:
            _reach(command, timing)
            for option in list(_options(command)):
                if option._occurrences:
                    _reach(option, timing)
                else:
                    _fire(option, timing)
        case Timing.ACTION:
            for option in list(_options(command)):
                _act(option)
            if command is leaf:
                _fire(command, timing)
            else:
                _reach(command, timing)


def execute(context, arguments, /):
    """initialize, parse and run every phase; return the lineage, root first."""
    initialize(context)
    lineage = parse(context, arguments, robust=True)
    leaf = lineage[-1]
    if not _exiting(lineage):
        if leaf.error is not None:
            raise leaf.error
        _check_required(lineage)
    for timing in (Timing.VALIDATOR, Timing.BEFORE, Timing.IMPLICIT_VALUE, Timing.ACTION):
        for command in lineage:
            _sweep(command, timing, leaf)
    for command in reversed(lineage):
        _sweep(command, Timing.AFTER, leaf)
    for command in lineage:
        command._timing = Timing.DONE
        for option in _options(command):
            option._timing = Timing.DONE
    return lineage


__all__ = (
    "program_name",
    "name_root",
    "initialize",
    "parse",
    "execute",
)
