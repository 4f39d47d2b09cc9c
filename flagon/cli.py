"""
Flagon dispatcher: the CLI instance and its run loop.

What this module provides
- CLI: owns the root command, the hook registry (keyed by Phase), the global
  middleware list, the output sinks and the help-command name. It implements
  the plugin registrar contract (register_command, register_middleware,
  register_hook, find_command) and the dispatch algorithm (run).
- invoke(object, prompt): convenience runner for anything exposing __invoke__.

Dispatch, in order
1. walk the tree: while the next token names a visible child (name or alias),
   descend and remember the ancestor;
2. build the command's FlagSet (help flags -h/--help plus its own declarations)
   and parse the remaining tokens; a parse failure stops everything;
3. --help renders the command's help and succeeds;
4. validate positional values against the declared args;
5. build the Context (app, command, args, flags, caller's cancellation);
6. fail-fast: before-command hooks, ancestors' before hooks root-to-leaf, the
   command's before hooks;
7. no handler: render the command's help and succeed;
8. wrap the handler: own middleware innermost, then ancestors' (nearest first),
   then the global middleware outermost; call it;
9. best-effort: own after hooks, ancestors' after hooks leaf-to-root,
   after-command hooks; a hook fault never replaces an earlier fault;
10. raise the fault, or return the handler's result.

run() surrounds a dispatch with before-run hooks (fail-fast; a fault there is
raised right away) and after-run hooks (best-effort). Empty tokens render the
root help. The engine never exits the process: faults are raised to the caller;
main() is the thin helper that turns them into an exit status.

Registration happens before the first run(); mutating the tree while a run is
in flight is a precondition violation and is not guarded.
"""
import logging
import shlex
import sys
from collections.abc import Iterable, Sequence

from rich.console import Console
from rich.text import Text

from .arguments import Arg, accepts, required_count
from .commands import Command
from .context import App, Context
from .faults import *
from .flags import FlagSet
from .hooks import Phase, annotate, run_best_effort, run_fail_fast
from .middleware import assemble
from .rendering import render_help
from .utils import *

logger = logging.getLogger(__name__)


def _tokenize(prompt, /):
    """
    Normalize a prompt into a token list.

    - Unset: sys.argv[1:]
    - str: shell-like splitting with shlex
    - Iterable[str]: used as-is (items are not trimmed)
    """
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("run() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("run() argument must be a string or an iterable of strings")


class CLI:
    """
    One command-line application: a command tree plus its cross-cutting behavior.

    Options (keyword-only)
    - stdout / stderr: sinks for help and reported faults; default to the
      sys.stdout / sys.stderr current at write time.
    - logger: logging.Logger handed to application code through ctx.app.logger
      (defaults to a logger named after the root command).
    - data: initial dict for ctx.app.data.
    - help_command: name of the built-in help command ("help"; blank keeps it).
    - colorful / fancy: styling of rendered help and reported faults.
    """
    hooks = mirror("hooks")
    middleware = mirror("middleware")

    def __init__(
            self,
            root=None,
            /,
            *,
            stdout=Unset,
            stderr=Unset,
            logger=Unset,
            data=Unset,
            help_command="help",
            colorful=False,
            fancy=False,
    ):
        if root is None:
            root = Command("app")
        elif not isinstance(root, Command):
            raise TypeError("cli 'root' must be a command")
        if not isinstance(help_command, str):
            raise TypeError("cli 'help_command' must be a string")

        self._root = root
        self._app = App(coalesce(logger, logging.getLogger(root.name)), data)
        self._stdout = stdout
        self._stderr = stderr
        self._hooks = {phase: [] for phase in Phase}
        self._middleware = []
        self._help_command = help_command.strip() or "help"
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._install_help_command()

    @property
    def root(self):
        return self._root

    @property
    def app(self):
        return self._app

    @property
    def help_command(self):
        return self._help_command

    @property
    def stdout(self):
        return coalesce(self._stdout, sys.stdout)

    @property
    def stderr(self):
        return coalesce(self._stderr, sys.stderr)

    def __repr__(self):
        return f"cli(root={self._root.name!r}, help_command={self._help_command!r})"

    # ── Registrar contract ──────────────────────────────────────────────────

    def find_command(self, *path):
        """
        Resolve a command by path with the dispatch rule; the empty path is the root.

        Returns None when a segment does not resolve.
        """
        command = self._root
        for segment in path:
            if (command := command.child(segment)) is None:
                return None
        return command

    def register_command(self, parent_path, command, /):
        """
        Attach command under the command found at parent_path (None or () is the root).

        Raises
        - InvalidCommandError when command is missing or not a Command.
        - CommandNotFoundError when parent_path does not resolve.
        - NameCollisionError when the name or an alias is taken by a sibling.
        """
        if not isinstance(command, Command):
            raise InvalidCommandError(
                f"cannot register {command!r}: a command is required",
                hint="pass a flagon.Command instance",
            )
        if parent_path is None:
            parent_path = ()
        elif isinstance(parent_path, str) or not isinstance(parent_path, Sequence):
            raise TypeError("register_command() 'parent_path' must be a sequence of names")

        if (parent := self.find_command(*parent_path)) is None:
            raise CommandNotFoundError(
                f"parent command not found: {" ".join(parent_path)!r}",
                hint="register the parent first",
                path=tuple(parent_path),
            )
        parent.attach(command)
        logger.debug("registered command %r under %r", command.name, " ".join(step.name for step in parent.path))
        return command

    def register_middleware(self, middleware, /):
        """
        Append a global (outermost) middleware; None is ignored. Usable as a decorator.
        """
        if middleware is None:
            return None
        if not callable(middleware):
            raise TypeError("register_middleware() argument must be callable")
        self._middleware.append(middleware)
        return middleware

    def register_hook(self, phase, hook=Unset, /):
        """
        Register a hook for a CLI-level phase; None is ignored.

        Forms
        - cli.register_hook(Phase.BEFORE_RUN, hook)
        - @cli.register_hook("after-command")
        """
        phase = Phase.coerce(phase)

        @rename("register_hook")
        def wrapper(hook, /):
            if hook is None:
                return None
            if not callable(hook):
                raise TypeError("register_hook() hook must be callable")
            self._hooks[phase].append(hook)
            return hook

        return wrapper(hook) if hook is not Unset else wrapper

    # ── Rendering ───────────────────────────────────────────────────────────

    def render_help(self, command=Unset, /):
        """
        Render help for command (the root by default) to the CLI's stdout.
        """
        render_help(coalesce(command, self._root), self.stdout, colorful=self._colorful, fancy=self._fancy)

    def _install_help_command(self):
        name = self._help_command
        if self._root.name == name or self._root.collides(name):
            return

        @rename("help")
        def handler(context):
            if not context.args:
                return self.render_help(self._root)
            if (target := self.find_command(*context.args)) is None:
                raise UnknownCommandError(
                    f"unknown command: {" ".join(context.args)}",
                    hint=f"run '{self._root.name} {name}' to list the available commands",
                    path=context.args,
                )
            return self.render_help(target)

        self._root.attach(Command(
            name,
            handler,
            descr="Show help for a command",
            summary="Show help",
            args=[Arg("path", "Command path, e.g. project build", optional=True, variadic=True)],
        ))

    # ── Dispatch ────────────────────────────────────────────────────────────

    def _resolve(self, tokens, /):
        command, ancestors, index = self._root, [], 0
        while index < len(tokens) and (child := command.child(tokens[index])) is not None:
            ancestors.append(command)
            command = child
            index += 1
        return command, ancestors, tokens[index:]

    def _dispatch(self, tokens, cancellation, /):
        command, ancestors, rest = self._resolve(tokens)
        route = " ".join(step.name for step in (*ancestors, command))
        logger.debug("resolved %r to %r with %d remaining token(s)", tokens, route, len(rest))

        flagset = FlagSet(command.name)
        if command.flags is not None:
            command.flags(flagset)
        flagset.parse(rest)

        if flagset.is_set("help"):
            self.render_help(command)
            return None

        args = flagset.args
        match accepts(command.args, len(args)):
            case "missing":
                need = required_count(command.args)
                raise MissingArgumentsError(
                    f"{route} needs {need} argument{"s" if need != 1 else ""}, got {len(args)}",
                    hint=f"run '{route} --help' for usage",
                    command=command,
                    required=need,
                    given=len(args),
                )
            case "excess":
                raise TooManyArgumentsError(
                    f"{route} takes at most {len(command.args)} argument{"s" if len(command.args) != 1 else ""}, got {len(args)}",
                    hint=f"run '{route} --help' for usage",
                    command=command,
                    accepted=len(command.args),
                    given=len(args),
                )

        context = Context(self._app, command, args, flagset.snapshot(), cancellation)

        run_fail_fast(self._hooks[Phase.BEFORE_COMMAND], context, stage="before-command hooks")
        for ancestor in ancestors:
            run_fail_fast(ancestor.before, context, stage=f"before hooks of {ancestor.name!r}")
        run_fail_fast(command.before, context, stage=f"before hooks of {command.name!r}")

        if command.handler is None:
            self.render_help(command)
            return None

        handler = assemble(
            command.handler,
            command.middleware,
            [ancestor.middleware for ancestor in ancestors],
            self._middleware,
        )

        result, fault = None, None
        try:
            result = handler(context)
        except Exception as error:
            fault = annotate(error, f"handler of {command.name!r}")

        fault = run_best_effort(command.after, context, fault, stage=f"after hooks of {command.name!r}")
        for ancestor in reversed(ancestors):
            fault = run_best_effort(ancestor.after, context, fault, stage=f"after hooks of {ancestor.name!r}")
        fault = run_best_effort(self._hooks[Phase.AFTER_COMMAND], context, fault, stage="after-command hooks")

        if fault is not None:
            raise fault
        return result

    def run(self, prompt=Unset, /, *, cancellation=None):
        """
        Run one invocation.

        Parameters
        - prompt: tokens without the program name (Iterable[str]), a shell-like
          string, or Unset for sys.argv[1:].
        - cancellation: optional threading.Event; passed unchanged to every hook,
          middleware and handler through ctx.cancellation.

        Returns
        - the handler's return value (None when help was rendered).

        Raises
        - FlagParseError, MissingArgumentsError, TooManyArgumentsError, or any
          exception raised by a hook, middleware or handler.
        """
        tokens = _tokenize(prompt)
        context = Context(self._app, self._root, cancellation=cancellation)

        run_fail_fast(self._hooks[Phase.BEFORE_RUN], context, stage="before-run hooks")

        result, fault = None, None
        try:
            if not tokens:
                self.render_help(self._root)
            else:
                result = self._dispatch(tokens, cancellation)
        except Exception as error:
            fault = error

        fault = run_best_effort(self._hooks[Phase.AFTER_RUN], context, fault, stage="after-run hooks")
        if fault is not None:
            raise fault
        return result

    __invoke__ = run

    def main(self, prompt=Unset, /, *, cancellation=None):
        """
        Run and report: faults are printed to stderr and mapped to an exit status.

        Returns 0 on success, the fault's status for engine faults (2 for usage
        faults), 1 for any other exception. Never calls sys.exit().
        """
        console = Console(file=self.stderr, highlight=False, color_system="auto" if self._colorful else None)
        try:
            self.run(prompt, cancellation=cancellation)
        except FlagonError as fault:
            logger.debug("run failed", exc_info=True)
            console.print(fault.replace(prog=self._root.name, colorful=self._colorful, fancy=self._fancy))
            return fault.status
        except Exception as error:
            logger.debug("run failed", exc_info=True)
            console.print(Text(f"{self._root.name}: {type(error).__name__}: {error}"))
            return 1
        return 0


def invoke(object, prompt=Unset, /, **options):
    """
    Convenience runner: invoke(cli, "build --jobs 4 src").

    Raises TypeError when object does not implement __invoke__.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt, **options)
    raise TypeError("invoke() first argument must implement __invoke__ method")


__all__ = (
    "CLI",
    "invoke",
)
