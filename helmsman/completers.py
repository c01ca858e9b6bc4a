"""
Helmsman type completers: suggest values for the argument being typed.

Contract
- A completer is any object with complete(partial, context) -> Iterable[str].
- partial is the text typed so far (possibly empty).
- context is a CompletionContext(principal, argument, parameter, chain):
  • principal: the caller asking for completion,
  • argument: the spec being completed (Cardinal | Option),
  • parameter: the text after ":" in the spec's completer reference, or None,
  • chain: the InvocationChain resolved so far.

References
- Specs name their completer by tag: completer="player", or with a parameter:
  completer="constant:red,green,blue".
- Completers maps tags to completers; "constant" is always registered.

The dispatcher filters, deduplicates, sorts and quotes whatever a completer
returns, so completers may be lenient.
"""
from collections import namedtuple
from collections.abc import Mapping

from .utils import *

CompletionContext = namedtuple("CompletionContext", ("principal", "argument", "parameter", "chain"))


class ConstantCompleter:
    """completes from the comma-separated parameter ("constant:a,b,c")."""

    def complete(self, partial, context, /):
        choices = (choice.strip() for choice in (context.parameter or "").split(","))
        return [choice for choice in choices if choice and choice.startswith(partial)]


class NamesCompleter:
    """
    completes from the names returned by source(principal), case-insensitively.

    typical sources: online players, loaded worlds, known warps.
    """

    def __init__(self, source, /):
        if not callable(source):
            raise TypeError("NamesCompleter() argument must be callable")
        self._source = source

    def complete(self, partial, context, /):
        folded = partial.casefold()
        return [name for name in self._source(context.principal) if name.casefold().startswith(folded)]


class Completers(Mapping):
    """
    Registry tag -> completer.

    Built-ins are registered first, so completers given at construction (a
    mapping or another registry) override them.
    """

    def __init__(self, completers=Unset, /):
        self._completers = {"constant": ConstantCompleter()}
        for tag, completer in dict(coalesce(completers, {})).items():
            self.register(tag, completer)

    def register(self, tag, completer, /):
        """register (or replace) a completer; returns the registry."""
        if not isinstance(tag, str) or not tag or ":" in tag:
            raise ValueError("completer tag must be a non-empty string without ':'")
        if not callable(getattr(completer, "complete", None)):
            raise TypeError("completer must provide a complete(partial, context) method")
        self._completers[tag] = completer
        return self

    def complete(self, reference, partial, /, principal=None, argument=None, chain=None):
        """
        run the completer named by a reference ("tag" or "tag:parameter").

        an empty reference completes nothing; an unknown tag raises LookupError.
        """
        if not reference:
            return []
        tag, separator, parameter = reference.partition(":")
        if (completer := self._completers.get(tag)) is None:
            raise LookupError("unknown completer tag: %r" % tag)
        context = CompletionContext(principal, argument, parameter if separator else None, chain)
        return list(completer.complete(partial, context))

    def __getitem__(self, tag):
        return self._completers[tag]

    def __iter__(self):
        return iter(self._completers)

    def __len__(self):
        return len(self._completers)

    def __repr__(self):
        return f"completers({", ".join(map(repr, self._completers))})"


__all__ = (
    "CompletionContext",
    "ConstantCompleter",
    "NamesCompleter",
    "Completers",
)
