"""
Flagon positional argument declarations.

Overview
- Arg: a leaf value type describing one positional slot of a command
  (name, descr, optional, variadic).
- required_count(args) / accepts(args, count): the arity rules the dispatcher
  uses to validate the positional remainder left by the flag parser.

Arity rules
- A command that declares no args does not validate its positional values at all.
- The required count is the number of args that are neither optional nor variadic.
- Without a variadic arg, at most len(args) values are accepted.
- With a variadic arg, any number of trailing values is accepted.

Quick example:
    >>> from flagon.arguments import Arg
    >>> args = (Arg("source"), Arg("rest", optional=True, variadic=True))
    >>> required_count(args)
    1
"""
import functools
import operator

from .utils import *


class Arg:
    """
    Positional argument specification (immutable once built).

    Fields
    - name: non-empty string shown in usage as <name> or [name].
    - descr: optional description for the Arguments help section.
    - optional: the slot may be left empty.
    - variadic: the slot absorbs every remaining positional value.
    """
    __slots__ = ("_name", "_descr", "_optional", "_variadic")

    name = mirror("name")
    descr = mirror("descr")
    optional = mirror("optional")
    variadic = mirror("variadic")

    def __init__(self, name, /, descr=Unset, *, optional=False, variadic=False):
        if not isinstance(name, str):
            raise TypeError("arg 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError("arg 'name' cannot be empty")
        if not isinstance(descr, str | Unset):
            raise TypeError("arg 'descr' must be a string")

        self._name = name
        self._descr = coalesce(descr, "").strip()
        self._optional = bool(optional)
        self._variadic = bool(variadic)

    @property
    def required(self):
        return not (self._optional or self._variadic)

    def __eq__(self, other):
        if not isinstance(other, Arg):
            return NotImplemented
        return tuple(self.__rich_repr__()) == tuple(other.__rich_repr__())

    def __hash__(self):
        return hash(tuple(self.__rich_repr__()))

    def __rich_repr__(self):
        yield "name", self._name
        yield "descr", self._descr
        yield "optional", self._optional
        yield "variadic", self._variadic

    def __repr__(self):
        return f"arg({", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))})"


def required_count(args, /):
    """
    Return how many positional values the given args demand.
    """
    return sum(1 for arg in args if arg.required)


def accepts(args, count, /):
    """
    Classify a positional value count against declared args.

    Returns
    - "missing" when fewer values than required were given.
    - "excess" when no variadic arg is declared and more values than args were given.
    - None when the count fits, or when no args are declared.
    """
    if not args:
        return None
    if count < required_count(args):
        return "missing"
    if not any(arg.variadic for arg in args) and count > len(args):
        return "excess"
    return None


__all__ = (
    "Arg",
    "required_count",
    "accepts",
)
