"""
Helmsman argument binder: match tokens against a command's specs.

Two entry points share one left-to-right scan:

- scan(command, tokens): partial mode. Never fails; records how far the tokens
  got (ParseState). Used by completion to find out what the user is typing.
- bind(command, tokens): strict mode. Turns a complete ParseState into the
  parameter name -> value mapping given to Command.invoke(), or raises the
  fault describing the first problem.

Scan rules
- a token equal to one of the command's flag names is a flag; an Option also
  consumes the next token as its value (whatever it looks like),
- any other token fills the next positional,
- a rest positional takes the current token and every remaining one, flag-like
  tokens included,
- tokens past the last positional are left over ("extra") and end the scan,
- a repeated flag overwrites the earlier value.
"""
from collections import deque
from types import MappingProxyType

from .arguments import Flag
from .faults import MissingValueError, UnexpectedCardinalError, InvalidValueError
from .utils import *


class ParseState(metaclass=IntrospectableType):
    """
    continuation data of one scan.

    - options: flag parameter name -> raw value (True for Flags).
    - positionals: positional parameter name -> raw token (list for rest).
    - parsed: number of positionals consumed.
    - awaiting: the Option whose value is missing, else None; flag is the alias typed.
    - extra: tokens left after every positional was filled.
    - pending: unfilled (name, Cardinal) pairs, in declaration order.
    """

    __displayable__ = (
        "options",
        "positionals",
        "parsed",
        "awaiting",
        "flag",
        "extra",
        "pending",
    )

    def __init__(self):
        self.options = {}
        self.positionals = {}
        self.parsed = 0
        self.awaiting = None
        self.flag = None
        self.extra = []
        self.pending = []


def scan(command, tokens, /):
    state = ParseState()
    pending = deque(command.cardinals.items())
    tokens = deque(tokens)

    while tokens:
        token = tokens.popleft()
        if (name := command.switches.get(token)) is not None:
            argument = command.options[name]
            if isinstance(argument, Flag):
                state.options[name] = True
            elif tokens:
                state.options[name] = tokens.popleft()
            else:
                state.awaiting, state.flag = argument, token
                break
        elif not pending:
            state.extra = [token, *tokens]
            break
        elif pending[0][1].rest:
            name, _ = pending.popleft()
            state.positionals[name] = [token, *tokens]
            state.parsed += 1
            break
        else:
            name, _ = pending.popleft()
            state.positionals[name] = token
            state.parsed += 1

    state.pending = list(pending)
    return state


def _metavar(name, cardinal):
    return cardinal.metavar or name


def _convert(argument, label, raw):
    try:
        return argument.type(raw)
    except MemoryError:
        raise
    except Exception as exception:
        raise InvalidValueError(
            "invalid value for %s: %r" % (label, raw),
            argument=argument,
            label=label,
            input=raw,
        ) from exception


def bind(command, tokens, /):
    """
    bind tokens to the command parameters.

    returns
    - dict: parameter name -> converted value, for every Cardinal, Option and Flag.

    raises
    - UnexpectedCardinalError: tokens left over after the last positional.
    - MissingValueError: an Option typed last without its value, or a required
      positional never filled.
    - InvalidValueError: a converter raised (chained as __cause__).
    """
    state = scan(command, tokens)

    if state.extra:
        raise UnexpectedCardinalError(
            "too many arguments: %s" % " ".join(state.extra),
            leftover=tuple(state.extra),
        )

    if state.awaiting is not None:
        raise MissingValueError(
            "missing value for flag: %s" % state.flag,
            argument=state.awaiting,
            label=state.awaiting.name,
            flag=state.flag,
            parsed=state.parsed,
            values=MappingProxyType(dict(state.options)),
        )

    for name, cardinal in state.pending:
        if not cardinal.optional:
            raise MissingValueError(
                "missing argument: %s" % _metavar(name, cardinal),
                argument=cardinal,
                label=_metavar(name, cardinal),
                parsed=state.parsed,
                values=MappingProxyType(dict(state.options)),
            )

    values = {}
    for name, argument in command.options.items():
        if isinstance(argument, Flag):
            values[name] = name in state.options
        elif name in state.options:
            values[name] = _convert(argument, argument.name, state.options[name])
        else:
            values[name] = argument.default

    for name, cardinal in command.cardinals.items():
        if name not in state.positionals:
            values[name] = [] if cardinal.rest else cardinal.default
        elif cardinal.rest:
            values[name] = [_convert(cardinal, _metavar(name, cardinal), raw) for raw in state.positionals[name]]
        else:
            values[name] = _convert(cardinal, _metavar(name, cardinal), state.positionals[name])

    return values


__all__ = (
    "ParseState",
    "scan",
    "bind",
)
