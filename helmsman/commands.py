"""
Helmsman command layer: build commands and compose them into handler trees.

What this module provides
- Command: read-only metadata of one command, built once at registration time:
  • Argument discovery from the callable's defaults (Cardinal, Option, Flag, Context),
    or from an explicit name -> spec mapping.
  • Permissions with an all/any combinator.
  • Children (a Group) for branch commands, None for leaves.
  • invoke(values, **context): call the callback with bound values.

- Group: an ordered mapping label -> Command (names and aliases), built from
  handler objects, decorated callables, commands or other groups.

- Factories:
  • @command(*labels, ...): mark a function (or method) as a command.
  • branch(name, *handlers, ...): a command whose children are the given handlers.

Handler example
    class Warps:
        @command("warp", permissions="warps.use")
        def warp(self, target=Cardinal(completer="warp"), /, *, who=Context("principal")):
            ...

        admin = branch("warpadmin", WarpAdmin(), permissions="warps.admin")

    root = Group(Warps())

Declaration rules (checked when the command is built)
- every parameter has a spec default,
- Cardinal parameters are positional-only, Options standard, Flags and Contexts keyword-only,
- required cardinals come before optional ones; a rest cardinal is the last one,
- flag names are unique within the command.
"""
import inspect
import re
from collections.abc import Iterable, Mapping
from inspect import Parameter
from types import MappingProxyType

from .arguments import Cardinal, Option, Flag, Context, _sanitize_metadata
from .utils import *

_LABEL = r"[^\s\"\\]+"


def _process_arguments(cls, metadata, arguments, /):
    """
    Materialize argument specs into the command metadata.

    Parameters
    - arguments: iterable of (name, kind, spec) triples; kind is the Parameter kind
      of the callback parameter, or None for explicitly declared arguments (no
      placement rule applies then, every value is passed by keyword).

    Builds, mutating metadata in place:
    - cardinals: name -> Cardinal, in declaration order
    - options: name -> Option | Flag, in declaration order
    - switches: flag alias -> parameter name (aliases fan out to the same name)
    - contexts: name -> Context
    - kinds: name -> Parameter kind used by invoke()
    """
    cardinals = metadata["cardinals"] = {}
    options = metadata["options"] = {}
    switches = metadata["switches"] = {}
    contexts = metadata["contexts"] = {}
    kinds = metadata["kinds"] = {}

    optional = None
    rest = None

    for name, kind, argument in arguments:
        match argument:
            case Cardinal():
                if kind not in (Parameter.POSITIONAL_ONLY, None):
                    raise TypeError(f"{cls.__typename__} cardinal at parameter {name!r}, parameter must be positional-only")
                if rest:
                    raise TypeError(f"{cls.__typename__} rest cardinal at parameter {rest!r}, must be the last cardinal")
                if optional and not argument.optional:
                    raise TypeError(f"{cls.__typename__} required cardinal at parameter {name!r}, cannot follow optional {optional!r}")
                optional = name if argument.optional else optional
                rest = name if argument.rest else None
                cardinals[name] = argument
            case Option() | Flag():
                if isinstance(argument, Option) and kind not in (Parameter.POSITIONAL_OR_KEYWORD, None):
                    raise TypeError(f"{cls.__typename__} option at parameter {name!r}, parameter must be standard")
                if isinstance(argument, Flag) and kind not in (Parameter.KEYWORD_ONLY, None):
                    raise TypeError(f"{cls.__typename__} flag at parameter {name!r}, parameter must be keyword-only")
                for alias in argument.names:
                    if alias in switches:
                        raise TypeError(f"{cls.__typename__} name {alias!r} is already in use")
                    switches[alias] = name
                options[name] = argument
            case Context():
                if kind not in (Parameter.KEYWORD_ONLY, None):
                    raise TypeError(f"{cls.__typename__} context at parameter {name!r}, parameter must be keyword-only")
                contexts[name] = argument
            case _:
                raise TypeError(f"{cls.__typename__} parameter {name!r} default must be an argument spec")
        kinds[name] = Parameter.POSITIONAL_OR_KEYWORD if kind is None else kind


def _process_source(cls, metadata, /):
    """
    Introspect the callback signature and yield (name, kind, spec) triples.
    """
    try:
        signature = inspect.signature(metadata["callback"])
    except TypeError:
        raise TypeError(f"{cls.__typename__} 'callback' must be callable") from None
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'callback' must be an inspectable callable") from None

    for name, parameter in signature.parameters.items():
        if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            raise TypeError(f"{cls.__typename__} 'callback' parameter {name!r} cannot be variadic")
        if parameter.default is Parameter.empty:
            raise TypeError(f"{cls.__typename__} 'callback' parameter {name!r} must have a default")
        yield name, parameter.kind, parameter.default


def _process_labels(cls, metadata, /):
    """
    Validate name and aliases: non-empty strings without whitespace, quotes or
    backslashes, no duplicates.
    """
    labels = []
    for label in (metadata["name"], *metadata["aliases"]):
        if not isinstance(label, str):
            raise TypeError(f"{cls.__typename__} labels must be strings")
        elif not re.fullmatch(_LABEL, label):
            raise ValueError(f"{cls.__typename__} label {label!r} must be a non-empty word")
        elif label in labels:
            raise ValueError(f"{cls.__typename__} labels cannot contain duplicates")
        labels.append(label)
    metadata["aliases"] = tuple(labels[1:])


def _process_permissions(cls, metadata, /):
    if isinstance(permissions := metadata["permissions"], str):
        permissions = (permissions,)
    if not isinstance(permissions, Iterable):
        raise TypeError(f"{cls.__typename__} 'permissions' must be an iterable of strings")
    sanitized = []
    for permission in permissions:
        if not isinstance(permission, str):
            raise TypeError(f"{cls.__typename__} 'permissions' must be an iterable of strings")
        elif not (permission := permission.strip()):
            raise ValueError(f"{cls.__typename__} 'permissions' cannot contain empty strings")
        elif permission not in sanitized:
            sanitized.append(permission)
    metadata["permissions"] = tuple(sanitized)
    metadata["require_all"] = bool(metadata["require_all"])


def _summary(callback):
    # first docstring line
    if callback is None or not (docstring := inspect.getdoc(callback)):
        return Unset
    return docstring.strip().splitlines()[0]


class Command(metaclass=IntrospectableType):
    """
    Read-only metadata of one command.

    Invocation modes
    - Callback mode (common)
      callback is a callable. Its signature is inspected and every parameter
      default resolved into a spec (see the module docstring for the rules).
    - Explicit mode
      callback is a callable and 'arguments' maps parameter names to specs, in
      order. No signature rule applies; invoke() passes every value by keyword.
    - Branch mode
      callback is None and 'children' is a Group; branches are never invoked,
      resolution always continues into their children.

    Parameters
    - name: str | Unset. Defaults to the callback __name__.
    - aliases: Iterable[str], extra labels the command is registered under.
    - permissions: str | Iterable[str], checked before invocation.
    - require_all: bool, True when every permission is required, False when any one is enough.
    - descr: str | Text | Unset, defaults to the callback docstring.
    - handler: the object owning the callback (informational).
    """

    __introspectable__ = (
        "name",
        "aliases",
        "handler",
        "callback",
        "cardinals",
        "options",
        "switches",
        "contexts",
        "permissions",
        "require_all",
        "children",
        "descr",
    )

    __displayable__ = (
        "name",
        "aliases",
        "cardinals",
        "options",
        "permissions",
        "require_all",
        "children",
        "descr",
    )

    @property
    def labels(self):
        """name first, then aliases."""
        return (self._name, *self._aliases)

    def __new__(
            cls,
            callback,
            /,
            name=Unset,
            aliases=(),
            permissions=(),
            require_all=True,
            descr=Unset,
            *,
            handler=None,
            arguments=Unset,
            children=None,
    ):
        if callback is None:
            if not isinstance(children, Group):
                raise TypeError(f"{cls.__typename__} without callback must have a 'children' group")
            if arguments is not Unset:
                raise TypeError(f"{cls.__typename__} without callback cannot declare 'arguments'")
            if name is Unset:
                raise TypeError(f"{cls.__typename__} without callback must have a 'name'")
        elif not callable(callback):
            raise TypeError(f"{cls.__typename__} 'callback' must be callable")
        elif children is not None:
            raise TypeError(f"{cls.__typename__} with a callback cannot have 'children'")

        if isinstance(aliases, str):
            aliases = (aliases,)

        metadata = {
            "callback": callback,
            "name": coalesce(name, getattr(callback, "__name__", Unset)),
            "aliases": tuple(aliases),
            "handler": handler,
            "permissions": permissions,
            "require_all": require_all,
            "children": children,
            "descr": coalesce(descr, _summary(callback)),
        }

        if callback is None:
            _process_arguments(cls, metadata, ())
        elif arguments is Unset:
            _process_arguments(cls, metadata, _process_source(cls, metadata))
        elif isinstance(arguments, Mapping):
            _process_arguments(cls, metadata, ((name, None, argument) for name, argument in arguments.items()))
        else:
            raise TypeError(f"{cls.__typename__} 'arguments' must be a mapping")

        _process_labels(cls, metadata)
        _process_permissions(cls, metadata)
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        self._kinds = metadata.pop("kinds")
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def invoke(self, values, /, **context):
        """
        Call the callback with bound values.

        - values: parameter name -> bound value (as returned by parsing.bind()).
        - context: Context kind -> object ("principal", "label", "sink", "chain");
          missing kinds inject None.

        Positional-only parameters are passed positionally, every other one by
        keyword. Whatever the callback raises propagates.
        """
        if self._callback is None:
            raise TypeError(f"{type(self).__typename__} {self._name!r} is a branch and cannot be invoked")

        args = []
        kwargs = {}
        for name, kind in self._kinds.items():
            if name in self._contexts:
                object = context.get(self._contexts[name].kind)
            else:
                object = values[name]
            if kind is Parameter.POSITIONAL_ONLY:
                args.append(object)
            else:
                kwargs[name] = object
        return self._callback(*args, **kwargs)


class Group(Mapping):
    """
    Ordered, read-only mapping label -> Command, extended only through include().

    Accepted handlers
    - Command: registered under its name and aliases.
    - Group: every command of the group is registered.
    - a callable decorated with @command: built into a Command.
    - any other object: its attributes (class attributes first, in definition
      order, then instance attributes) are scanned; decorated methods become
      commands bound to the object, Command attributes are registered as they are.

    Raises ValueError when a label is already in use.
    """

    def __init__(self, *handlers):
        self._labels = {}
        self._commands = []
        for handler in handlers:
            self.include(handler)

    @property
    def commands(self):
        """unique commands, in registration order."""
        return tuple(self._commands)

    def include(self, handler, /):
        match handler:
            case Command():
                self._register(handler)
            case Group():
                for command in handler.commands:
                    self._register(command)
            case _ if callable(handler) and hasattr(handler, "__helmsman__"):
                self._register(_build(handler, None))
            case _:
                found = False
                for name in _members(handler):
                    # static lookup, properties are never evaluated
                    member = inspect.getattr_static(handler, name)
                    if isinstance(member, Command):
                        self._register(member)
                    elif hasattr(getattr(member, "__func__", member), "__helmsman__"):
                        self._register(_build(getattr(handler, name), handler))
                    else:
                        continue
                    found = True
                if not found:
                    raise TypeError(f"group handler {handler!r} does not declare any command")

    def _register(self, command):
        for label in command.labels:
            if label in self._labels:
                raise ValueError(f"command label {label!r} is already in use")
        for label in command.labels:
            self._labels[label] = command
        self._commands.append(command)

    def __getitem__(self, label):
        return self._labels[label]

    def __iter__(self):
        return iter(self._labels)

    def __len__(self):
        return len(self._labels)

    def __repr__(self):
        return f"group({", ".join(map(repr, self._labels))})"


def _members(handler):
    names = {}
    for klass in reversed(type(handler).__mro__):
        if klass is not object:
            names |= dict.fromkeys(name for name in vars(klass) if not name.startswith("__"))
    names |= dict.fromkeys(name for name in getattr(handler, "__dict__", {}) if not name.startswith("__"))
    return names


def _build(callback, handler):
    return Command(callback, **callback.__helmsman__, handler=handler)


def command(*labels, permissions=(), require_all=True, descr=Unset):
    """
    Mark a function or method as a command; built when its handler is registered.

    - labels: name first, then aliases. The function name when omitted.
    - permissions, require_all, descr: forwarded to Command.

    The decorated function is returned unchanged (besides the marker), so
    it stays callable and testable on its own.
    """
    if labels and callable(labels[0]):
        raise TypeError("@command() must be called, use @command() instead of @command")

    @rename("command")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@command() must be applied to a callable")
        if hasattr(callback, "__helmsman__"):
            raise TypeError("@command() must be applied only once")
        callback.__helmsman__ = MappingProxyType({
            "name": labels[0] if labels else Unset,
            "aliases": labels[1:],
            "permissions": permissions,
            "require_all": require_all,
            "descr": descr,
        })
        return callback

    return wrapper


def branch(name, /, *handlers, aliases=(), permissions=(), require_all=True, descr=Unset):
    """
    Build a branch command: typing its label selects among the children, built
    as Group(*handlers).
    """
    return Command(
        None,
        name,
        aliases,
        permissions,
        require_all,
        descr,
        children=Group(*handlers),
    )


__all__ = (
    "Command",
    "Group",
    "command",
    "branch",
)
