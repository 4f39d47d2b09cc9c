"""
Flagon flag adapter: per-invocation flag sets backed by argparse.

Why an adapter
- The dispatch engine never parses flag syntax itself. Each invocation builds a
  FlagSet scoped to the resolved command, lets the command declare its flags on
  it, and delegates the token parsing to argparse.
- Parsed values come back as tagged FlagValue(kind, value) pairs, so callers
  never need to probe what a stored value can do.

Flag syntax (as configured on argparse)
- single-character names are spelled "-x", longer names "--name".
- boolean flags also accept the negated long form "--no-name".
- valued flags accept "--name value" and "--name=value".
- non-flag tokens, anywhere in the sequence, are collected as positionals;
  everything after "--" is positional.
- prefix abbreviations are disabled: "--verb" never matches "--verbose".

Built-in help flags
- help_flags=True registers "-h" and "--help" (both store into the "help" flag);
  they are marked builtin so help rendering can leave them out.

Example
    >>> flagset = FlagSet("build")
    >>> flagset.integer("jobs", 1, "parallel jobs")
    >>> flagset.parse(["--jobs", "4", "src"])
    >>> flagset.values()["jobs"]
    FlagValue(kind=<FlagKind.INT: 'int'>, value=4)
    >>> flagset.args
    ('src',)
"""
import argparse
import re
from enum import Enum
from types import MappingProxyType
from typing import NamedTuple

from .faults import FlagParseError

_POSITIONALS = "__positionals__"


class FlagKind(Enum):
    """
    Value kinds the adapter knows how to parse and print.
    """
    BOOL = "bool"
    STRING = "string"
    INT = "int"
    FLOAT = "float"

    @property
    def convert(self):
        return {
            FlagKind.BOOL: bool,
            FlagKind.STRING: str,
            FlagKind.INT: int,
            FlagKind.FLOAT: float,
        }[self]

    def admits(self, value, /):
        """
        True when value is a valid default for this kind (bools are not numbers here).
        """
        if self is FlagKind.BOOL:
            return isinstance(value, bool)
        if self is FlagKind.STRING:
            return isinstance(value, str)
        return isinstance(value, int | float if self is FlagKind.FLOAT else int) and not isinstance(value, bool)


class FlagValue(NamedTuple):
    """
    Tagged flag value produced at parse time: the kind plus its typed payload.
    """
    kind: FlagKind
    value: object

    def __str__(self):
        return str(self.value)


class FlagSpec(NamedTuple):
    """
    Declaration of one flag in a FlagSet.
    """
    name: str
    kind: FlagKind
    default: object
    usage: str
    builtin: bool = False

    @property
    def spellings(self):
        return ("-" + self.name,) if len(self.name) == 1 else ("--" + self.name,)

    @property
    def display(self):
        return self.spellings[0]


class _FlagParser(argparse.ArgumentParser):
    """Argument parser that reports failures instead of exiting the process."""

    def error(self, message):
        raise FlagParseError(message, command=self.prog, hint=f"run '{self.prog} --help' for usage")

    def exit(self, status=0, message=None):
        raise FlagParseError((message or "flag parsing stopped").strip(), command=self.prog)


class FlagSet:
    """
    Flags of one command for one invocation.

    Lifecycle
    - declare flags with boolean()/string()/integer()/real() (the command's
      flag-declaration callable receives the set for this purpose);
    - parse(tokens) once;
    - read values()/snapshot()/args and is_set().

    Raises
    - ValueError when a flag name is malformed or declared twice.
    - TypeError when a default does not match the flag kind.
    - FlagParseError when parse() meets an unknown flag, a missing value, or a
      value that cannot be converted to the declared kind.
    """

    def __init__(self, name, /, *, help_flags=True):
        if not isinstance(name, str):
            raise TypeError("flag-set 'name' must be a string")
        self._name = name
        self._parser = _FlagParser(prog=name, add_help=False, allow_abbrev=False, exit_on_error=False)
        self._parser.add_argument(_POSITIONALS, nargs="*")
        self._specs = {}
        self._namespace = None
        self._trailing = ()
        if help_flags:
            spec = FlagSpec("help", FlagKind.BOOL, False, "show help", builtin=True)
            self._specs["help"] = spec
            self._parser.add_argument("-h", "--help", dest="help", action="store_true", default=False)

    @property
    def name(self):
        return self._name

    @property
    def parsed(self):
        return self._namespace is not None

    def _declare(self, name, kind, default, usage):
        if not isinstance(name, str) or not re.fullmatch(r"[^\W\d_][\w-]*", name):
            raise ValueError(f"flag name {name!r} must start with a letter and contain only letters, digits, '-' or '_'")
        if name in self._specs or (name == "h" and "help" in self._specs):
            raise ValueError(f"flag {name!r} is already defined on {self._name!r}")
        if not isinstance(usage, str):
            raise TypeError("flag 'usage' must be a string")
        if not kind.admits(default):
            raise TypeError(f"flag {name!r} default must be of kind {kind.value!r}, not {default!r}")
        if self.parsed:
            raise RuntimeError(f"flag-set {self._name!r} was already parsed")

        spec = FlagSpec(name, kind, kind.convert(default), usage)
        options = {"dest": name, "default": spec.default, "help": usage}
        try:
            if kind is FlagKind.BOOL:
                self._parser.add_argument(*spec.spellings, action=argparse.BooleanOptionalAction, **options)
            else:
                self._parser.add_argument(*spec.spellings, type=kind.convert, metavar=kind.value, **options)
        except argparse.ArgumentError as error:
            # e.g. "no-verbose" clashing with the negated spelling of "verbose"
            raise ValueError(f"flag {name!r} conflicts with another flag on {self._name!r}") from error
        self._specs[name] = spec
        return spec

    def boolean(self, name, default=False, usage=""):
        return self._declare(name, FlagKind.BOOL, default, usage)

    def string(self, name, default="", usage=""):
        return self._declare(name, FlagKind.STRING, default, usage)

    def integer(self, name, default=0, usage=""):
        return self._declare(name, FlagKind.INT, default, usage)

    def real(self, name, default=0.0, usage=""):
        return self._declare(name, FlagKind.FLOAT, default, usage)

    def lookup(self, name, /):
        return self._specs.get(name)

    def __iter__(self):
        # Lexicographic order, the same order help rendering lists them in.
        return iter(sorted(self._specs.values(), key=lambda spec: spec.name))

    def __contains__(self, name):
        return name in self._specs

    def parse(self, tokens, /):
        """
        Parse tokens with argparse; positional values end up in .args.

        Tokens after the first "--" never reach argparse: they are appended to
        .args unchanged.
        """
        if self.parsed:
            raise RuntimeError(f"flag-set {self._name!r} was already parsed")
        tokens = list(tokens)
        if "--" in tokens:
            index = tokens.index("--")
            tokens, self._trailing = tokens[:index], tuple(tokens[index + 1:])
        try:
            self._namespace = self._parser.parse_intermixed_args(tokens)
        except argparse.ArgumentError as error:
            raise FlagParseError(str(error), command=self._name, hint=f"run '{self._name} --help' for usage") from error

    def _require_parsed(self):
        if not self.parsed:
            raise RuntimeError(f"flag-set {self._name!r} has not been parsed")
        return self._namespace

    @property
    def args(self):
        return tuple(getattr(self._require_parsed(), _POSITIONALS) or ()) + self._trailing

    def is_set(self, name, /):
        """
        True when a boolean flag ended up true after parsing.
        """
        return getattr(self._require_parsed(), name, False) is True

    def values(self, *, builtin=False):
        """
        Return {name: FlagValue} for every declared flag (built-ins only on request).
        """
        namespace = self._require_parsed()
        return {
            spec.name: FlagValue(spec.kind, getattr(namespace, spec.name))
            for spec in self
            if builtin or not spec.builtin
        }

    def snapshot(self):
        """
        Read-only {name: typed value} mapping handed to the invocation context.
        """
        return MappingProxyType({name: flag.value for name, flag in self.values().items()})

    def __repr__(self):
        return f"flag-set(name={self._name!r}, flags={[spec.name for spec in self]!r}, parsed={self.parsed!r})"


__all__ = (
    "FlagKind",
    "FlagValue",
    "FlagSpec",
    "FlagSet",
)
