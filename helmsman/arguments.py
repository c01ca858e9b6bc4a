r"""
Helmsman argument specifications.

Overview
- Specs
  • Cardinal: positional, value-bearing argument (required, optional "?" or rest "...").
  • Option: named argument carrying one value, with one or more aliases (e.g., -n/--times).
  • Flag: named, presence-only switch (no payload), e.g., -s/--silent.
  • Context: not parsed; asks the dispatcher to inject invocation context
    (principal, label, sink or chain) into the handler.

- Declaration
  Specs are used as parameter defaults of a handler; the parameter kind tells
  the command builder how the spec is bound:
  • positional-only  -> Cardinal
  • standard         -> Option
  • keyword-only     -> Flag | Context

- Introspection & representation
  • IntrospectableType metaclass provides stable __repr__/__rich_repr__ and exposes
    every field declared in __introspectable__ via a read-only property.

Metadata (sanitized on construction)
- Shared (Cardinal/Option/Flag)
  • descr: Unset | str | Text (short help), non-empty when provided.
- Cardinal/Option only (value-bearing)
  • metavar: Unset | str (usage placeholder).
  • type: Callable (converter applied to the raw string).
  • default: Any (value bound when the argument is absent).
  • completer: Unset | str, a completer reference "tag" or "tag:argument".
- Cardinal only
  • nargs: Unset (required) | "?" (optional) | Ellipsis or "..." (rest).
- Named (Option/Flag)
  • names: one or more shell-style names; duplicates rejected; order kept, the
    first one is the canonical name.

Quick example:
    >>> from helmsman import command, Cardinal, Option, Flag, Context
    >>> @command("greet", "hi")
    ... def greet(
    ...         target=Cardinal("player", completer="player"),
    ...         /,
    ...         times=Option("-n", "--times", type=int, default=1),
    ...         *,
    ...         loud=Flag("-l", "--loud"),
    ...         sender=Context("principal"),
    ... ):
    ...     ...
"""
import re
from types import EllipsisType

from rich.text import Text

from .utils import *

_NAME = r"--?[^\W\d_](-?[^\W_]+)*"
_COMPLETER = r"[^\W\d][\w.-]*(:.*)?"


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the 'descr' field shared by every spec.

    - descr: optional short description. If omitted (Unset), it becomes None.
      If provided, it must be a non-empty string after trimming.

    Raises
    - TypeError: if 'descr' is not a string, a Text or Unset.
    - ValueError: if 'descr' is a string but empty after trimming.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate names of named specs (Option, Flag).

    Each name must be a non-empty string matching r"--?[^\W\d_](-?[^\W_]+)*":
    "-x", "-long", "-long-name", "--long", "--long-name". Unicode letters are
    allowed. Duplicates are rejected. Declaration order is kept, names[0] is the
    canonical name used in usage lines.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(_NAME, name):
            raise ValueError(f"{cls.__typename__} names must be valid shell-style option names (unicodes are allowed)")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(names)


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate and normalize metadata for value-bearing arguments.

    Scope
    - Cardinal and Option, where an argument carries a typed value.

    Responsibilities
    - metavar: Unset or a non-empty string after trimming.
    - type: must be callable (converter). No further contract enforced.
    - completer: Unset or a reference "tag" / "tag:argument".

    The default is not validated; it may be any value, including None.
    """
    if not isinstance(metavar := metadata["metavar"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif isinstance(metavar, str) and not (metavar := metavar.strip()):
        raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
    metadata["metavar"] = metavar

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if not isinstance(completer := metadata["completer"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'completer' must be a string")
    elif isinstance(completer, str) and not re.fullmatch(_COMPLETER, completer):
        raise ValueError(f"{cls.__typename__} 'completer' must be a reference like 'tag' or 'tag:argument'")
    metadata["completer"] = coalesce(completer)


class Cardinal(metaclass=IntrospectableType):
    """
    Positional, value-bearing argument specification.

    Arity
    - Unset: required, exactly one token.
    - "?": optional, one token; the default is bound when absent.
    - Ellipsis or "...": rest, takes every remaining token as a list (flag-like
      tokens included). Implicitly optional; binds [] when absent. The converter
      applies to each element.

    When no metavar is given, usage lines show the bound parameter name.
    """

    __introspectable__ = (
        "metavar",
        "type",
        "nargs",
        "default",
        "completer",
        "descr",
    )

    @property
    def optional(self):
        """whether the command can be run without this positional."""
        return self._nargs is not None

    @property
    def rest(self):
        """whether this positional takes every remaining token."""
        return self._nargs is Ellipsis

    def __new__(
            cls,
            metavar=Unset,
            /,
            type=str,
            nargs=Unset,
            default=None,
            completer=Unset,
            descr=Unset,
    ):
        metadata = {
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "default": default,
            "completer": completer,
            "descr": descr,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        if not isinstance(nargs := metadata["nargs"], str | EllipsisType | Unset):
            raise TypeError(f"{cls.__typename__} 'nargs' must be a string or ellipsis")
        if isinstance(nargs, str) and nargs not in ("?", "..."):
            raise ValueError(f"{cls.__typename__} 'nargs' must be one of '?' or '...'")
        metadata["nargs"] = Ellipsis if nargs == "..." else coalesce(nargs)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._metavar = coalesce(self._metavar)
        return self


class Option(metaclass=IntrospectableType):
    """
    Named argument carrying exactly one value (e.g., "-n 3").

    The value is the token right after any of the names, even when it looks
    like a flag. Absent options bind their default; repeated ones keep the last
    value. The metavar defaults to "value".
    """

    __introspectable__ = (
        "names",
        "metavar",
        "type",
        "default",
        "completer",
        "descr",
    )

    @property
    def name(self):
        return self._names[0]

    def __new__(
            cls,
            *names,
            metavar=Unset,
            type=str,
            default=None,
            completer=Unset,
            descr=Unset,
    ):
        metadata = {
            "names": names,
            "metavar": metavar,
            "type": type,
            "default": default,
            "completer": completer,
            "descr": descr,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)
        metadata["metavar"] = coalesce(metadata["metavar"], "value")

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


class Flag(metaclass=IntrospectableType):
    """
    Named, presence-only switch: binds True when any of its names is typed,
    False otherwise.
    """

    __introspectable__ = (
        "names",
        "descr",
    )

    @property
    def name(self):
        return self._names[0]

    def __new__(cls, *names, descr=Unset):
        metadata = {
            "names": names,
            "descr": descr,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


class Context(metaclass=IntrospectableType):
    """
    Injection marker: the parameter receives invocation context, never user input.

    Kinds
    - "principal": the caller given to Dispatcher.execute().
    - "label": the label the command was typed with (an alias or its name).
    - "sink": a callable sending a string or renderable back to the caller.
    - "chain": the resolved InvocationChain.
    """

    __introspectable__ = (
        "kind",
    )

    kinds = ("principal", "label", "sink", "chain")

    def __new__(cls, kind, /):
        if not isinstance(kind, str):
            raise TypeError(f"{cls.__typename__} 'kind' must be a string")
        elif kind not in cls.kinds:
            raise ValueError(f"{cls.__typename__} 'kind' must be one of {", ".join(map(repr, cls.kinds))}")

        self = super().__new__(cls)
        self._kind = kind
        return self


__all__ = (
    "Cardinal",
    "Option",
    "Flag",
    "Context",
)
