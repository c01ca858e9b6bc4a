"""
Helmsman invocation chains and command resolution.

Scope
- Invocation: one resolved level, the label typed and the command it selected.
- InvocationChain: the ordered levels of one dispatch (root first). Knows how
  to check permissions level by level and how to render the usage line.
- resolve(): walk the handler tree, consuming leading subcommand labels.

Permissions
- A permission evaluator is any callable permits(principal, permission) -> bool.
- A level passes when all (require_all) or any of its permissions pass; a
  level without permissions always passes.
- The chain is checked root first and stops at the first refusing level;
  deeper levels are never evaluated.

Usage lines
    >>> chain.usage("/")
    '/warp set [-r <radius>] [-g] <name> [<note>...]'
"""
from collections import namedtuple

from .arguments import Flag
from .faults import UnknownCommandError, UnknownSubcommandError, PermissionDeniedError
from .utils import *

Invocation = namedtuple("Invocation", ("label", "command"))


def authorize(invocation, principal, permits, /):
    """
    check one level; raise PermissionDeniedError attributed to it when refused.
    """
    command = invocation.command
    if not command.permissions:
        return
    combinator = all if command.require_all else any
    if not combinator(permits(principal, permission) for permission in command.permissions):
        raise PermissionDeniedError(invocation=invocation)


def _synopsis(command):
    for argument in command.options.values():
        if isinstance(argument, Flag):
            yield "[%s]" % argument.name
        else:
            yield "[%s <%s>]" % (argument.name, argument.metavar)
    for name, cardinal in command.cardinals.items():
        metavar = cardinal.metavar or name
        if cardinal.rest:
            yield "[<%s>...]" % metavar
        elif cardinal.optional:
            yield "[<%s>]" % metavar
        else:
            yield "<%s>" % metavar


class InvocationChain(metaclass=IntrospectableType):
    """
    Ordered levels resolved for one dispatch.

    Mutable while resolving (append), owned by a single dispatch. copy() gives
    an independent chain sharing the command metadata, used to try candidate
    levels without touching the original.
    """

    __introspectable__ = (
        "levels",
    )

    def __init__(self, levels=(), /):
        self._levels = [Invocation(*level) for level in levels]

    @property
    def labels(self):
        return tuple(invocation.label for invocation in self._levels)

    @property
    def route(self):
        """labels joined by spaces, e.g. 'warp set'."""
        return " ".join(self.labels)

    def append(self, label, command, /):
        self._levels.append(Invocation(label, command))
        return self

    def copy(self):
        return type(self)(self._levels)

    def authorize(self, principal, permits, /):
        for invocation in self._levels:
            authorize(invocation, principal, permits)

    def permitted(self, principal, permits, /):
        try:
            self.authorize(principal, permits)
        except PermissionDeniedError:
            return False
        return True

    def usage(self, prefix=""):
        """
        render the usage line: every label, then the synopsis of the last level
        when it is a leaf (flags in declaration order, then positionals).
        """
        parts = list(self.labels)
        if self._levels and (command := self._levels[-1].command).children is None:
            parts.extend(_synopsis(command))
        return prefix + " ".join(parts)

    def __len__(self):
        return len(self._levels)

    def __getitem__(self, index):
        return self._levels[index]

    def __iter__(self):
        return iter(self._levels)


def resolve(root, name, tokens, chain, principal, permits, /, *, partial=False):
    """
    Resolve the command selected by name and the leading tokens.

    Behavior
    - name is looked up in root; each selected level is appended to chain and
      authorized before going deeper.
    - while the selected command is a branch, the next token is consumed as the
      subcommand label.
    - with partial, a branch reached with no tokens left is returned as is
      (completion); otherwise it is a missing subcommand.

    Returns
    - (command, tokens): the selected command and the tokens left for binding.

    Raises
    - UnknownCommandError / UnknownSubcommandError / PermissionDeniedError.
    """
    tokens = list(tokens)
    if (command := root.get(name)) is None:
        raise UnknownCommandError("unknown command: %s" % name, input=name, chain=chain)
    chain.append(name, command)
    authorize(chain[-1], principal, permits)

    while command.children is not None:
        if not tokens:
            if partial:
                break
            raise UnknownSubcommandError("missing subcommand", chain=chain)
        label = tokens.pop(0)
        if (command := command.children.get(label)) is None:
            raise UnknownSubcommandError("unknown subcommand: %s" % label, input=label, chain=chain)
        chain.append(label, command)
        authorize(chain[-1], principal, permits)

    return command, tokens


__all__ = (
    "Invocation",
    "InvocationChain",
    "authorize",
    "resolve",
)
