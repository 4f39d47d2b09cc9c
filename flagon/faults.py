"""
Flagon faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault the core reports.
  Codes are grouped by stage so logs and searches stay predictable.
- FlagonError: base type carrying message + options; knows how to render itself
  through rich in a short, actionable form (header, message, hint).
- The taxonomy mirrors the dispatch stages:
  • construction (registration time): InvalidCommandError, CommandNotFoundError, NameCollisionError
  • flag parsing: FlagParseError
  • positional validation: MissingArgumentsError, TooManyArgumentsError
  • routing: UnknownCommandError (help command asked about an unknown path)
  • cooperation: CancelledError (caller-supplied cancellation observed by user code)

Hook and handler exceptions are never wrapped: they propagate verbatim, with the
stage they came from attached as an exception note (see flagon.hooks).

Integration
- The core only raises; presentation is left to the caller. CLI.main() prints a
  fault with a rich Console and turns it into an exit status.
"""
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text


class FaultCode(IntEnum):
    """
    canonical fault codes used by the dispatch engine (stable identifiers).

    grouping
    - construction (1100x): INVALID_COMMAND, COMMAND_NOT_FOUND, NAME_COLLISION
    - routing (1110x): UNKNOWN_COMMAND
    - flags (1111x): FLAG_PARSE
    - positionals (1112x): MISSING_ARGUMENTS, TOO_MANY_ARGUMENTS
    - cooperation (1113x): CANCELLED

    normalize() lets the host remap codes to custom labels through a __codes__
    mapping in __main__ while keeping the numeric values stable.
    """
    # --- construction errors (1100x) ---
    INVALID_COMMAND     = 11001
    COMMAND_NOT_FOUND   = 11002
    NAME_COLLISION      = 11003

    # --- routing errors (1110x) ---
    UNKNOWN_COMMAND     = 11101

    # --- flag errors (1111x) ---
    FLAG_PARSE          = 11111

    # --- positional errors (1112x) ---
    MISSING_ARGUMENTS   = 11121
    TOO_MANY_ARGUMENTS  = 11122

    # --- cooperation (1113x) ---
    CANCELLED           = 11131

    def normalize(self):
        """
        return a host-normalized string for this code.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class FlagonError(Exception):
    """
    Base class of every fault raised by the engine.

    Class attributes
    - code: FaultCode of the fault family.
    - title: short lowercase headline used when rendering.
    - status: exit status suggested to hosts (CLI.main uses it).

    Instance attributes
    - message: one-sentence body.
    - options: read-only mapping of context (command, path, hint, counts, ...).
    """
    code = None
    title = "error"
    status = 1

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def hint(self):
        return self.options.get("hint")

    def replace(self, **overrides):
        """
        Return a copy of this fault with merged options (used to add rendering context).
        """
        fault = type(self)(self.message, **{**self.options, **overrides})
        fault.__cause__ = self.__cause__
        return fault

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {})

        def text(fragment, style):
            return Text(str(fragment), styles.get(style, "") if colorful else "")

        prog = getattr(main, "__prog__", self.options.get("prog", "flagon"))
        header = Text.assemble(
            "[ ",
            text(prog, "prog-name"),
            " — ",
            text(self.code.normalize() if self.code else "-", "code"),
            " | ",
            text(self.title, "error-title"),
            " ]",
        )
        renders = [text(self.message, "error-message")]
        if self.hint:
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(self.hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)


class ConstructionError(FlagonError, ValueError):
    """Raised while building or registering the command tree."""
    title = "invalid construction"


class InvalidCommandError(ConstructionError):
    code = FaultCode.INVALID_COMMAND
    title = "invalid command"


class CommandNotFoundError(ConstructionError):
    code = FaultCode.COMMAND_NOT_FOUND
    title = "parent not found"


class NameCollisionError(ConstructionError):
    code = FaultCode.NAME_COLLISION
    title = "name collision"


class UnknownCommandError(FlagonError):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"
    status = 2


class FlagParseError(FlagonError):
    code = FaultCode.FLAG_PARSE
    title = "invalid flags"
    status = 2


class ArgumentCountError(FlagonError):
    """Positional values do not fit the command's declared args."""
    title = "wrong argument count"
    status = 2


class MissingArgumentsError(ArgumentCountError):
    code = FaultCode.MISSING_ARGUMENTS
    title = "missing arguments"


class TooManyArgumentsError(ArgumentCountError):
    code = FaultCode.TOO_MANY_ARGUMENTS
    title = "too many arguments"


class CancelledError(FlagonError):
    code = FaultCode.CANCELLED
    title = "cancelled"
    status = 130


__all__ = (
    "FaultCode",
    "FlagonError",
    "ConstructionError",
    "InvalidCommandError",
    "CommandNotFoundError",
    "NameCollisionError",
    "UnknownCommandError",
    "FlagParseError",
    "ArgumentCountError",
    "MissingArgumentsError",
    "TooManyArgumentsError",
    "CancelledError",
)
