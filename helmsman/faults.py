"""
Helmsman faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing
  failure. The code is the discriminant the dispatcher matches on.
- CommandException: base type carrying a message + read-only options; knows how
  to render itself through the rich protocol.
- One subclass per code (UnknownCommandError, MissingValueError, ...), each
  exposing its payload through properties.
- render(): turn any rich renderable into plain (or ANSI styled) sink lines.

Options carried by faults (all optional unless noted)
- input: the offending token or label.
- chain: the InvocationChain resolved so far.
- argument: the spec (Cardinal | Option) involved in a binding failure.
- label: how that argument is named in messages (flag name or metavar).
- flag: the flag alias typed by the user (missing flag values).
- parsed: count of positionals already bound when the failure happened.
- values: flag values bound so far (parameter name -> raw value).
- leftover: tokens past the last positional.
- invocation: the chain level refusing a principal (permission failures).
- styles: style overrides used by __rich__.

Tone
- Short, lowercased, one sentence. The dispatcher adds the usage line itself.
"""
from collections import defaultdict
from enum import IntEnum
from io import StringIO
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from .utils import Unset, coalesce


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x): UNKNOWN_COMMAND, UNKNOWN_SUBCOMMAND
    - binding (1111x/1112x): MISSING_VALUE, UNEXPECTED_CARDINAL, INVALID_VALUE
    - delegated (1113x): HANDLER_FAULT
    - authorization (1115x): PERMISSION_DENIED

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND             = 11101
    UNKNOWN_SUBCOMMAND          = 11102

    # --- binding errors (11xxx) ---
    MISSING_VALUE               = 11117
    UNEXPECTED_CARDINAL         = 11121
    INVALID_VALUE               = 11124

    # --- delegated errors (11xxx) ---
    HANDLER_FAULT               = 11131

    # --- authorization errors (11xxx) ---
    PERMISSION_DENIED           = 11151


_styles = {
    "error-message": "bold red",
    "permission-message": "red",
    "internal-message": "red",
    "usage-label": "dim",
    "usage": "yellow",
    "descr": "italic",
}


class CommandException(Exception):
    """
    base class of every failure the dispatcher reports to a caller.

    contract
    - code: class-level FaultCode (the discriminant).
    - message: human-readable, may be Unset (nothing shown besides the usage).
    - options: read-only mapping of kind-specific payload.
    - copy.replace(fault, **options) returns the same fault with merged options.
    """
    code = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        styles = defaultdict(str, _styles | self.options.get("styles", {}))
        return Text(coalesce(self.message, ""), styles["error-message"])

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownCommandError(CommandException):
    code = FaultCode.UNKNOWN_COMMAND

    @property
    def input(self):
        return self.options.get("input")


class UnknownSubcommandError(CommandException):
    code = FaultCode.UNKNOWN_SUBCOMMAND

    @property
    def input(self):
        """the unmatched label, or None when the subcommand is missing entirely."""
        return self.options.get("input")


class MissingValueError(CommandException):
    """
    a positional or a flag value is missing.

    besides being a failure, this carries the partial parse (argument, parsed,
    values) so completion can continue from where binding stopped.
    """
    code = FaultCode.MISSING_VALUE

    @property
    def argument(self):
        return self.options["argument"]

    @property
    def label(self):
        return self.options.get("label")

    @property
    def flag(self):
        return self.options.get("flag")

    @property
    def parsed(self):
        return self.options.get("parsed", 0)

    @property
    def values(self):
        return self.options.get("values", MappingProxyType({}))


class UnexpectedCardinalError(CommandException):
    code = FaultCode.UNEXPECTED_CARDINAL

    @property
    def leftover(self):
        return self.options.get("leftover", ())


class InvalidValueError(CommandException):
    code = FaultCode.INVALID_VALUE

    @property
    def argument(self):
        return self.options["argument"]

    @property
    def label(self):
        return self.options.get("label")

    @property
    def input(self):
        return self.options.get("input")


class PermissionDeniedError(CommandException):
    """
    a chain level refused the principal.

    rendered with a dedicated message listing what the refusing level requires;
    the command usage is never shown alongside it.
    """
    code = FaultCode.PERMISSION_DENIED

    @property
    def invocation(self):
        return self.options["invocation"]

    def __rich__(self):
        styles = defaultdict(str, _styles | self.options.get("styles", {}))
        command = self.invocation.command
        if len(command.permissions) > 1:
            quantifier = "all" if command.require_all else "one"
            message = "you need %s of the following permissions to do that: %s" % (
                quantifier, ", ".join(command.permissions)
            )
        else:
            message = "you need the following permission to do that: %s" % ", ".join(command.permissions)
        return Text(message, styles["permission-message"])


class HandlerFaultError(CommandException):
    """
    the invoked handler raised; details stay in the server log.
    """
    code = FaultCode.HANDLER_FAULT

    def __rich__(self):
        styles = defaultdict(str, _styles | self.options.get("styles", {}))
        return Text(coalesce(self.message, "internal error; see server log"), styles["internal-message"])


def render(renderable, /, *, colorful=False, width=80):
    """
    render a rich renderable (or plain string) into a list of lines.

    - colorful: emit ANSI styles; otherwise lines are plain text.
    - width: wrapping width of the virtual console.

    trailing blanks are dropped; strings are not parsed as markup.
    """
    console = Console(
        file=StringIO(),
        width=width,
        color_system="truecolor" if colorful else None,
        force_terminal=colorful,
        highlight=False,
        markup=False,
        emoji=False,
    )
    console.print(renderable)
    lines = [line.rstrip() for line in console.file.getvalue().splitlines()]
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


__all__ = (
    "FaultCode",
    "CommandException",
    "UnknownCommandError",
    "UnknownSubcommandError",
    "MissingValueError",
    "UnexpectedCardinalError",
    "InvalidValueError",
    "PermissionDeniedError",
    "HandlerFaultError",
    "render",
)
