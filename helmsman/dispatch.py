"""
Helmsman dispatch facade: the single entry point a console host talks to.

Pipelines
- execute(): TOKENIZE -> RESOLVE -> AUTHORIZE -> BIND -> INVOKE
- complete(): TOKENIZE -> RESOLVE (partial) -> SCAN (partial) -> SUGGEST

Feedback
- Everything the caller sees goes through the sink, one line at a time.
- Resolution and binding faults: the message, then "usage: <usage line>",
  then the description of the argument in fault or the permitted subcommands
  of a branch.
- Permission faults: a dedicated message, never the usage.
- Handler and permission evaluator faults: logged with traceback on this
  module's logger; the caller only gets a generic internal-error line.

Logging
- logger "helmsman.dispatch"; no handler is installed by the library.
  ERROR: handler faults. WARNING: failing completions. DEBUG: faults reported
  to callers.

Example
    dispatcher = Dispatcher(Warps(), sink=lambda principal, line: principal.send(line))
    dispatcher.execute(player, 'warp set "home base" -g')
    dispatcher.complete(player, "warp se")  # -> ["set"]
"""
import copy
import functools
import logging
from collections.abc import Iterable, Mapping

from rich.text import Text

from .chains import InvocationChain, resolve
from .commands import Group
from .completers import Completers
from .faults import *
from .faults import _styles
from .parsing import scan, bind
from .tokens import tokenize, isolate, quote
from .utils import *

logger = logging.getLogger(__name__)


def _has_permission(principal, permission, /):
    return principal.has_permission(permission)


def _described(name, descr, styles):
    line = Text.assemble(("  " + name, styles["usage"]))
    if descr is not None:
        line.append(": ")
        line.append(descr if isinstance(descr, Text) else Text(descr, styles["descr"]))
    return line


class Dispatcher:
    """
    Dispatch facade over a handler tree.

    Parameters
    - handlers: handler objects, decorated callables, Commands or Groups making
      up the root of the tree (more can be added with include()).
    - sink: callable sink(principal, line) receiving every outgoing line.
    - permits: callable permits(principal, permission) -> bool; defaults to
      principal.has_permission(permission).
    - completers: mapping tag -> completer merged over the built-in registry.
    - quoted: tokenize with quotes and escapes; plain whitespace split otherwise.
    - prefix: prepended to usage lines (e.g., "/" for chat consoles).
    - colorful: style outgoing fault lines with ANSI sequences.
    - width: wrapping width of rendered fault lines.
    - styles: overrides of the fault palette (error-message, permission-message,
      internal-message, usage-label, usage, descr).
    """

    def __init__(
            self,
            *handlers,
            sink,
            permits=Unset,
            completers=Unset,
            quoted=True,
            prefix="",
            colorful=False,
            width=80,
            styles=Unset,
    ):
        if not callable(sink):
            raise TypeError("dispatcher 'sink' must be callable")
        if not callable(permits := coalesce(permits, _has_permission)):
            raise TypeError("dispatcher 'permits' must be callable")
        if not isinstance(prefix, str):
            raise TypeError("dispatcher 'prefix' must be a string")
        if not isinstance(width, int) or width < 1:
            raise ValueError("dispatcher 'width' must be a positive integer")
        if not isinstance(styles := coalesce(styles, {}), Mapping):
            raise TypeError("dispatcher 'styles' must be a mapping")
        if unknown := set(styles) - set(_styles):
            raise ValueError(f"dispatcher 'styles' unknown keys: {", ".join(sorted(unknown))}")

        self._root = Group(*handlers)
        self._sink = sink
        self._permits = permits
        self._completers = Completers(completers)
        self._quoted = bool(quoted)
        self._prefix = prefix
        self._colorful = bool(colorful)
        self._width = width
        self._styles = dict(styles)

    @property
    def root(self):
        return self._root

    @property
    def completers(self):
        return self._completers

    def include(self, handler, /):
        """register more handlers under the root (startup only)."""
        self._root.include(handler)

    def _arguments(self, line):
        if not isinstance(line, Iterable):
            raise TypeError("dispatcher line must be a string or an iterable of strings")
        arguments = list(line)
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError("dispatcher line must be a string or an iterable of strings")
        return arguments

    def _split(self, line):
        if isinstance(line, str):
            return tokenize(line) if self._quoted else line.split()
        arguments = self._arguments(line)
        return tokenize(" ".join(arguments)) if self._quoted else arguments

    def _emit(self, principal, object):
        """send a string (split on newlines), an iterable of those, or a rich renderable."""
        match object:
            case str():
                for line in object.splitlines():
                    self._sink(principal, line)
            case Text():
                self._render(principal, object)
            case Iterable():
                for item in object:
                    self._emit(principal, item)
            case _:
                self._render(principal, object)

    def _render(self, principal, renderable):
        for line in render(renderable, colorful=self._colorful, width=self._width):
            self._sink(principal, line)

    def _report(self, principal, fault, chain):
        match fault.code:
            case FaultCode.PERMISSION_DENIED | FaultCode.HANDLER_FAULT:
                usage = False
            case (
                FaultCode.UNKNOWN_COMMAND
                | FaultCode.UNKNOWN_SUBCOMMAND
                | FaultCode.MISSING_VALUE
                | FaultCode.INVALID_VALUE
                | FaultCode.UNEXPECTED_CARDINAL
            ):
                usage = len(chain) > 0
            case _:
                raise RuntimeError("unreachable")

        logger.debug("reporting %s (%d) to %r: %s", fault.code.name, fault.code, principal, fault)
        self._render(principal, copy.replace(fault, styles=self._styles))
        if usage:
            styles = _styles | self._styles
            self._render(principal, Text.assemble(
                ("usage: ", styles["usage-label"]),
                (chain.usage(self._prefix), styles["usage"]),
            ))
            for line in self._details(principal, fault, chain, styles):
                self._render(principal, line)

    def _details(self, principal, fault, chain, styles):
        """
        describe what the caller can type instead: the argument in fault, or
        the permitted subcommands of the branch reached.
        """
        match fault.code:
            case FaultCode.MISSING_VALUE | FaultCode.INVALID_VALUE if fault.argument.descr is not None:
                yield _described(fault.label, fault.argument.descr, styles)
            case FaultCode.UNKNOWN_SUBCOMMAND:
                for child in chain[-1].command.children.commands:
                    if chain.copy().append(child.name, child).permitted(principal, self._permits):
                        yield _described(", ".join(child.labels), child.descr, styles)

    def execute(self, principal, line, /):
        """
        Run one command line for a principal.

        Parameters
        - line: raw console line, or host-split arguments; the first token is
          the command name.

        Returns
        - True when the handler ran to completion, False otherwise (empty line,
          reported fault).

        MemoryError and BaseExceptions that are not Exceptions propagate.
        """
        if not (tokens := self._split(line)):
            return False
        name, *tokens = tokens
        chain = InvocationChain()

        try:
            command, tokens = resolve(self._root, name, tokens, chain, principal, self._permits)
            values = bind(command, tokens)
        except CommandException as fault:
            self._report(principal, fault, chain)
            return False
        except MemoryError:
            raise
        except Exception:
            # permission evaluator failure
            logger.exception("dispatch of %r failed for %r (line %r)", name, principal, line)
            self._report(principal, HandlerFaultError(chain=chain), chain)
            return False

        try:
            result = command.invoke(
                values,
                principal=principal,
                label=chain[-1].label,
                sink=functools.partial(self._emit, principal),
                chain=chain,
            )
        except MemoryError:
            raise
        except Exception:
            logger.exception("command %r failed for %r (line %r)", chain.route, principal, line)
            self._report(principal, HandlerFaultError(chain=chain), chain)
            return False

        if result is not None:
            self._emit(principal, result)
        return True

    def _prepare(self, line, query):
        if isinstance(line, str):
            split = tokenize if self._quoted else str.split
            tokens = split(line)
            # a trailing separator means the cursor starts a new token
            if query and len(split(line + "_")) == len(tokens):
                return tokens[:-1], tokens[-1]
            return tokens, ""
        arguments = self._arguments(line)
        if not query:
            return (tokenize(" ".join(arguments)) if self._quoted else arguments), ""
        if self._quoted:
            tokens, partial = isolate(arguments)
            # an opening quote is not part of the query
            return tokens, (tokenize(partial) or [""])[-1]
        return arguments[:-1], arguments[-1] if arguments else ""

    def _unused(self, command, state):
        for name, argument in command.options.items():
            if name not in state.options:
                yield from argument.names

    def _suggest(self, principal, command, state, partial, chain):
        if state.awaiting is not None:
            return self._completers.complete(state.awaiting.completer, partial, principal, state.awaiting, chain)
        for name, cardinal in command.cardinals.items():
            if cardinal.rest and name in state.positionals:
                return self._completers.complete(cardinal.completer, partial, principal, cardinal, chain)
        if partial.startswith("-"):
            return list(self._unused(command, state))
        if state.pending:
            _, cardinal = state.pending[0]
            return self._completers.complete(cardinal.completer, partial, principal, cardinal, chain)
        return list(self._unused(command, state))

    def _candidates(self, principal, tokens, partial):
        if not tokens:
            return [
                label for label, command in self._root.items()
                if InvocationChain().append(label, command).permitted(principal, self._permits)
            ]

        name, *tokens = tokens
        chain = InvocationChain()
        command, tokens = resolve(self._root, name, tokens, chain, principal, self._permits, partial=True)

        if command.children is not None:
            return [
                label for label, child in command.children.items()
                if chain.copy().append(label, child).permitted(principal, self._permits)
            ]

        if (state := scan(command, tokens)).extra:
            return []
        return self._suggest(principal, command, state, partial, chain)

    def complete(self, principal, line, /, *, query=True):
        """
        Suggest completions for a partially typed line.

        Parameters
        - line: raw console line, or host-split arguments.
        - query: the last token is the text being typed; without it the line
          is taken as complete and an empty query is appended (cursor after a space).

        Returns
        - sorted, deduplicated candidates starting (case-insensitively) with the
          query, quoted when needed. Never raises: every fault yields [] (except
          MemoryError).
        """
        try:
            tokens, partial = self._prepare(line, query)
            candidates = self._candidates(principal, tokens, partial)
            folded = partial.casefold()
            candidates = sorted({
                candidate for candidate in candidates
                if candidate.casefold().startswith(folded)
            })
        except MemoryError:
            raise
        except CommandException as fault:
            logger.debug("completion stopped for %r: %s", principal, fault)
            return []
        except Exception:
            logger.warning("completion failed for %r (line %r)", principal, line, exc_info=True)
            return []
        return [quote(candidate) for candidate in candidates] if self._quoted else candidates


__all__ = (
    "Dispatcher",
)
