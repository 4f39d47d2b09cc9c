"""
Help rendering.

render_help(command, file) is a pure formatter: it reads a command node (and
builds a throw-away FlagSet to learn its flags) and writes the help text to the
given sink through a rich Console. Nothing in the tree is mutated.

Layout (sections separated by one blank line)
- title: "name" or "name - summary"
- description (when present)
- "Usage:" then "  name <required> [optional] <variadic...>"
- "Arguments:" column-aligned name, description and (optional)/(variadic) marks
- "Flags:" sorted by flag name, usage text and quoted default; built-in help
  flags are left out
- "Commands:" visible children sorted by name; summary, else the first
  description line, else "-"

Styling
- colorful=False (default) produces plain text, stable enough for golden files.
- colorful=True applies the palette below; a host may override entries with a
  __styles__ mapping in __main__.
- fancy=True wraps the whole help in a rounded panel titled "<NAME> HELP".

The only failure mode is a write failure on the sink, which propagates.
"""
import sys

from rich.box import ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .flags import FlagSet
from .utils import *

_PALETTE = {
    "title": "bold #FF4D94",
    "summary": "#E5E7EB",
    "description": "italic #A3A3A3",
    "section": "bold #FFFFFF",
    "program-name": "bold #36C5F0",
    "metavar": "bold #FFD600",
    "variadic-metavar": "bold italic #FFD600",
    "argument": "bold #FFD600",
    "flag-name": "bold #22C55E",
    "command-name": "bold #36C5F0",
    "help": "#9CA3AF",
    "default": "#737373",
    "panel-title": "bold #FF4D94",
}


class _Styler:
    """Palette lookup that collapses to no style at all when not colorful; Text passes through."""

    def __init__(self, colorful):
        self.colorful = colorful
        self.styles = _PALETTE | getattr(__import__("__main__"), "__styles__", {})

    def __call__(self, fragment, style=""):
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), self.styles.get(style, "") if self.colorful else "")


def usage_tokens(command, /):
    """
    Yield the usage spelling of every declared arg: <name>, [name], <name...>, [name...].
    """
    for arg in command.args:
        token = arg.name + ("..." if arg.variadic else "")
        yield f"[{token}]" if arg.optional else f"<{token}>"


def _table(rows, text, /):
    """
    Render (name, help, name-style, help-style) rows with the help column aligned.
    """
    width = max(len(name) for name, *_ in rows)
    lines = []
    for name, help, name_style, help_style in rows:
        line = Text.assemble("  ", text(name.ljust(width), name_style), "  ", text(help, help_style))
        line.rstrip()
        lines.append(line)
    return lines


def _declared_flags(command, /):
    flagset = FlagSet(command.name)
    if command.flags is not None:
        command.flags(flagset)
    return [spec for spec in flagset if not spec.builtin]


def _headline(command, /):
    if command.summary:
        return command.summary
    if command.descr:
        return command.descr.splitlines()[0]
    return "-"


def help_sections(command, /, *, colorful=False):
    """
    Build the help sections of command as a list of rich Text blocks.
    """
    text = _Styler(colorful)
    sections = []

    title = text(command.name, "title")
    if command.summary:
        title.append_text(Text.assemble(" - ", text(command.summary, "summary")))
    sections.append(title)

    if command.descr:
        sections.append(text(command.descr, "description"))

    usage = Text.assemble(text("Usage:", "section"), "\n  ", text(command.name, "program-name"))
    for arg, token in zip(command.args, usage_tokens(command)):
        usage.append(" ").append_text(text(token, "variadic-metavar" if arg.variadic else "metavar"))
    sections.append(usage)

    if command.args:
        rows = []
        for arg in command.args:
            marks = "".join((" (optional)" if arg.optional else "", " (variadic)" if arg.variadic else ""))
            rows.append((arg.name, (arg.descr + marks).strip(), "argument", "help"))
        sections.append(Text("\n").join([text("Arguments:", "section"), *_table(rows, text)]))

    if specs := _declared_flags(command):
        rows = []
        for spec in specs:
            help = Text.assemble(text(spec.usage, "help"), " " if spec.usage else "", text(f'(default "{spec.default}")', "default"))
            rows.append((spec.display, help, "flag-name", ""))
        sections.append(Text("\n").join([text("Flags:", "section"), *_table(rows, text)]))

    children = sorted((child for child in command.children if not child.hidden), key=lambda child: child.name)
    if children:
        rows = [(child.name, _headline(child), "command-name", "help") for child in children]
        sections.append(Text("\n").join([text("Commands:", "section"), *_table(rows, text)]))

    return sections


def render_help(command, file=Unset, /, *, colorful=False, fancy=False, width=Unset):
    """
    Write the help of command to file (defaults to the current sys.stdout).

    Parameters
    - colorful: apply the palette (only visible on terminals).
    - fancy: wrap the output in a rounded panel.
    - width: console width; defaults to rich's detection.
    """
    console = Console(
        file=coalesce(file, sys.stdout),
        width=coalesce(width, None),
        color_system="auto" if colorful else None,
        highlight=False,
        soft_wrap=not fancy,
    )
    renderable = Text("\n\n").join(help_sections(command, colorful=colorful))

    if fancy:
        renderable = Panel(
            renderable,
            box=ROUNDED,
            title=_Styler(colorful)(f"{command.name} HELP".upper(), "panel-title"),
            title_align="left",
        )

    console.print(renderable)


__all__ = (
    "help_sections",
    "render_help",
    "usage_tokens",
)
