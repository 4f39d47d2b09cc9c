"""
Flagon command layer: the command tree.

What this module provides
- Command: one node of the dispatch tree.
  • Identity: name (unique among siblings, aliases included), aliases, hidden.
  • Help metadata: descr (defaults to the handler docstring) and summary.
  • Interface: ordered positional Args and an optional flag-declaration callable
    that receives the invocation's FlagSet.
  • Behavior: optional handler(ctx), before/after hook lists, middleware list.
  • Hierarchy: ordered children, parent/root/path navigation.
- command(...): build a Command from a handler function, directly or as a decorator.

Tree rules
- A child is owned by exactly one parent; attaching it twice raises.
- Sibling names and aliases never overlap (case-sensitive, exact match); the
  check covers hidden siblings too.
- Token resolution (child()) only sees visible children, matching name or alias.
- The tree is mutated only during registration, before the first dispatch.

Quick start
    from flagon import Arg, command

    @command(args=[Arg("target", "what to build")])
    def build(ctx):
        "Build a target."
        ctx.app.logger.info("building %s", ctx.args[0])

    @build.command(summary="remove build outputs")
    def clean(ctx):
        ...
"""
import functools
import inspect
import operator
import re
from collections.abc import Iterable

from .arguments import Arg
from .faults import InvalidCommandError, NameCollisionError
from .utils import *


class CommandType(type):
    """
    Metaclass giving commands stable introspection.

    Responsibilities
    - __typename__ derived from the class name (camel-case split with hyphens).
    - read-only properties, via mirror(), for every name in __introspectable__.
    - compact __repr__/__rich_repr__ over __displayable__ (or __introspectable__).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _process_name(cls, name, /):
    if name is None or name is Unset:
        raise InvalidCommandError(f"{cls.__typename__} 'name' is required", hint="give the command a non-empty name")
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    if not name.strip():
        raise InvalidCommandError(f"{cls.__typename__} 'name' cannot be empty", hint="give the command a non-empty name")
    return name


def _process_strings(cls, metadata, /):
    """
    Normalize optional text fields (descr, summary): trimmed strings or None.
    """
    for name in ("descr", "summary"):
        if not isinstance(object := metadata[name], str | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str):
            object = object.strip() or Unset
        metadata[name] = coalesce(object)


def _process_aliases(cls, metadata, /):
    """
    Validate aliases: non-empty strings, no repeats of the name or of each other.
    """
    if isinstance(aliases := metadata["aliases"], str) or not isinstance(aliases, Iterable):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
    seen = {metadata["name"]}
    normalized = []
    for alias in aliases:
        if not isinstance(alias, str):
            raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
        if not alias.strip():
            raise InvalidCommandError(f"{cls.__typename__} {metadata['name']!r} has an empty alias")
        if alias in seen:
            raise NameCollisionError(f"{cls.__typename__} {metadata['name']!r} repeats the name {alias!r}")
        seen.add(alias)
        normalized.append(alias)
    metadata["aliases"] = normalized


def _process_args(cls, metadata, /):
    if isinstance(args := metadata["args"], str) or not isinstance(args, Iterable):
        raise TypeError(f"{cls.__typename__} 'args' must be an iterable of args")
    args = list(args)
    for arg in args:
        if not isinstance(arg, Arg):
            raise TypeError(f"{cls.__typename__} 'args' must be an iterable of args")
    metadata["args"] = args


def _process_callables(cls, metadata, /):
    """
    Check handler/flags callables and the hook/middleware lists (None entries are kept, they are skipped at run time).
    """
    for name in ("handler", "flags"):
        if metadata[name] is not None and not callable(metadata[name]):
            raise TypeError(f"{cls.__typename__} {name!r} must be callable")
    for name in ("before", "after", "middleware"):
        if not isinstance(items := metadata[name], Iterable):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of callables")
        items = list(items)
        if any(item is not None and not callable(item) for item in items):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of callables")
        metadata[name] = items


class Command(metaclass=CommandType):
    """
    Named, optionally executable node of the dispatch tree.

    Construction
    - Command(name, handler=None, *, descr, summary, hidden, aliases, args,
      flags, children, before, after, middleware)
    - children given at construction are attached in order, with the same
      collision checks as attach().

    Raises
    - InvalidCommandError for a missing/blank name or alias, or a child that
      already belongs to another command.
    - NameCollisionError when two siblings share a name or alias.
    - TypeError for values of the wrong shape.
    """
    __introspectable__ = (
        "name",
        "descr",
        "summary",
        "hidden",
        "aliases",
        "args",
        "flags",
        "handler",
        "children",
        "before",
        "after",
        "middleware",
        "parent",
    )

    __displayable__ = (
        "name",
        "summary",
        "hidden",
        "aliases",
        "args",
        "children",
    )

    def __init__(
            self,
            name,
            /,
            handler=None,
            *,
            descr=Unset,
            summary=Unset,
            hidden=False,
            aliases=(),
            args=(),
            flags=None,
            children=(),
            before=(),
            after=(),
            middleware=(),
    ):
        cls = type(self)
        metadata = {
            "name": _process_name(cls, name),
            "descr": coalesce(descr, inspect.getdoc(handler) if inspect.isfunction(handler) or inspect.ismethod(handler) else Unset),
            "summary": summary,
            "hidden": bool(hidden),
            "aliases": aliases,
            "args": args,
            "flags": flags,
            "handler": handler,
            "before": before,
            "after": after,
            "middleware": middleware,
        }
        if metadata["descr"] is None:
            metadata["descr"] = Unset
        _process_strings(cls, metadata)
        _process_aliases(cls, metadata)
        _process_args(cls, metadata)
        _process_callables(cls, metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._parent = None
        self._children = []

        if isinstance(children, Command) or not isinstance(children, Iterable):
            raise TypeError(f"{cls.__typename__} 'children' must be an iterable of commands")
        for child in children:
            self.attach(child)

    @property
    def names(self):
        """
        Name followed by aliases; every spelling that resolves to this command.
        """
        return (self._name, *self._aliases)

    @property
    def root(self):
        command = self
        while command._parent is not None:
            command = command._parent
        return command

    @property
    def path(self):
        """
        Ancestry from the root to this command, both included.
        """
        path = [command := self]
        while command._parent is not None:
            path.append(command := command._parent)
        return tuple(reversed(path))

    @property
    def ancestors(self):
        return self.path[:-1]

    def matches(self, token, /):
        return token == self._name or token in self._aliases

    def child(self, token, /):
        """
        Resolve a token to a visible child by name or alias; None when nothing matches.
        """
        for child in self._children:
            if not child._hidden and child.matches(token):
                return child
        return None

    def collides(self, name, /):
        """
        True when any child (hidden ones included) already uses name as name or alias.
        """
        return any(child.matches(name) for child in self._children)

    def attach(self, command, /):
        """
        Append command to this command's children.

        Raises
        - InvalidCommandError when command is not a Command or already has a parent.
        - NameCollisionError when its name or an alias is taken among the children.
        """
        if not isinstance(command, Command):
            raise InvalidCommandError(f"{type(self).__typename__} child must be a command, not {command!r}")
        if command is self or command in self.path:
            raise InvalidCommandError(f"{type(self).__typename__} {command.name!r} cannot be its own descendant")
        if command._parent is not None:
            raise InvalidCommandError(
                f"{type(self).__typename__} {command.name!r} is already attached to {command._parent.name!r}"
            )
        for name in command.names:
            if self.collides(name):
                typeof = "alias" if name != command.name else "name"
                raise NameCollisionError(
                    f"{type(self).__typename__} {typeof} {name!r} is already in use under {self._name!r}",
                    hint="pick a different name or alias",
                )
        command._parent = self
        self._children.append(command)
        return command

    def command(self, source=Unset, /, **kwargs):
        """
        Build a child from a handler function and attach it here.

        Forms
        - self.command(handler, name=..., ...) -> Command
        - @self.command(name=..., ...) decorator
        - @self.command decorator
        """
        @rename("command")
        def wrapper(source, /):
            return self.attach(command(source, **kwargs))

        return wrapper(source) if source is not Unset else wrapper

    def add_before(self, hook, /):
        if hook is not None and not callable(hook):
            raise TypeError(f"{type(self).__typename__} before hook must be callable")
        self._before.append(hook)
        return hook

    def add_after(self, hook, /):
        if hook is not None and not callable(hook):
            raise TypeError(f"{type(self).__typename__} after hook must be callable")
        self._after.append(hook)
        return hook

    def use(self, middleware, /):
        if middleware is not None and not callable(middleware):
            raise TypeError(f"{type(self).__typename__} middleware must be callable")
        self._middleware.append(middleware)
        return middleware


def command(source=Unset, /, **kwargs):
    """
    Create a Command from a handler function, or return a decorator doing so.

    The command name defaults to the function name with underscores turned into
    hyphens; the description defaults to the function docstring.

        @command(summary="say hello", args=[Arg("who")])
        def hello(ctx):
            print("hello", ctx.args[0])
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        options = dict(kwargs)
        if (name := options.pop("name", Unset)) is Unset:
            name = getattr(source, "__name__", Unset)
            name = name.strip("_").replace("_", "-") if isinstance(name, str) else name
        return Command(name, source, **options)

    return wrapper(source) if source is not Unset else wrapper


__all__ = (
    "Command",
    "command",
)

del CommandType
