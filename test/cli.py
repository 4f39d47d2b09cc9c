"""
CLI module behavioral tests (registration, dispatch, hooks, middleware, help).

Scope
- Validate the registrar contract: register_command, find_command,
  register_middleware, register_hook.
- Validate dispatch: resolution, flags, positional validation, help, results.
- Validate middleware layering and hook ordering with fail-fast/best-effort rules.
- Validate the built-in help command, main() statuses and invoke().

Conventions
- Test method names follow CamelCase per project convention.
- Output sinks are StringIO objects; nothing is printed to the real terminal.
"""

from __future__ import annotations

import io
import logging
import threading
import unittest
from unittest import TestCase

from flagon import CLI, Arg, Command, Phase, around, command, invoke
from flagon.faults import (
    CancelledError,
    CommandNotFoundError,
    FlagParseError,
    InvalidCommandError,
    MissingArgumentsError,
    NameCollisionError,
    TooManyArgumentsError,
    UnknownCommandError,
)


def application(**options):
    options.setdefault("stdout", io.StringIO())
    options.setdefault("stderr", io.StringIO())
    return CLI(**options)


class TestRegistration(TestCase):
    """Behavioral tests for the registrar contract."""

    def setUp(self) -> None:
        self.cli = application()

    def testDefaultRoot(self):
        self.assertEqual(self.cli.root.name, "app")
        self.assertIs(self.cli.find_command(), self.cli.root)
        self.assertEqual(self.cli.app.logger.name, "app")

    def testCustomRootAndOptions(self):
        logger, data = logging.getLogger("tests.cli"), {"answer": 42}
        cli = CLI(Command("tool"), logger=logger, data=data)
        self.assertEqual(cli.root.name, "tool")
        self.assertIs(cli.app.logger, logger)
        self.assertIs(cli.app.data, data)

    def testRootMustBeCommand(self):
        with self.assertRaises(TypeError):
            CLI("tool")

    def testRegisterUnderRootAndNested(self):
        project = self.cli.register_command([], Command("project"))
        build = self.cli.register_command(["project"], Command("build", aliases=["b"]))
        self.assertIs(self.cli.find_command("project"), project)
        self.assertIs(self.cli.find_command("project", "build"), build)
        self.assertIs(self.cli.find_command("project", "b"), build)
        self.assertIs(build.parent, project)

    def testRegisterWithNonePath(self):
        child = self.cli.register_command(None, Command("child"))
        self.assertIs(child.parent, self.cli.root)

    def testRegisterInvalidCommandRaises(self):
        with self.assertRaises(InvalidCommandError):
            self.cli.register_command([], None)
        with self.assertRaises(InvalidCommandError):
            self.cli.register_command([], "child")

    def testRegisterUnderMissingParentRaises(self):
        with self.assertRaises(CommandNotFoundError):
            self.cli.register_command(["missing"], Command("child"))

    def testRegisterCollisionRaises(self):
        self.cli.register_command([], Command("list", aliases=["ls"]))
        with self.assertRaises(NameCollisionError):
            self.cli.register_command([], Command("ls"))
        with self.assertRaises(NameCollisionError):
            self.cli.register_command([], Command("help"))

    def testRegisterPathMustBeSequence(self):
        with self.assertRaises(TypeError):
            self.cli.register_command("project", Command("child"))

    def testFindCommandUnresolved(self):
        self.cli.register_command([], Command("secret", hidden=True))
        self.assertIsNone(self.cli.find_command("missing"))
        self.assertIsNone(self.cli.find_command("secret"))

    def testFindCommandIsStable(self):
        self.cli.register_command([], Command("a"))
        self.assertIs(self.cli.find_command("a"), self.cli.find_command("a"))

    def testRegisterMiddlewareAndHooks(self):
        middleware = lambda next: next
        self.assertIs(self.cli.register_middleware(middleware), middleware)
        self.assertIsNone(self.cli.register_middleware(None))
        self.assertEqual(self.cli.middleware, [middleware])

        @self.cli.register_hook("before-run")
        def hook(ctx):
            pass

        self.assertIsNone(self.cli.register_hook(Phase.AFTER_RUN, None))
        self.assertEqual(self.cli.hooks[Phase.BEFORE_RUN], [hook])
        self.assertEqual(self.cli.hooks[Phase.AFTER_RUN], [])
        with self.assertRaises(ValueError):
            self.cli.register_hook("sometime", hook)
        with self.assertRaises(TypeError):
            self.cli.register_middleware("not callable")


class TestDispatch(TestCase):
    """Behavioral tests for CLI.run()."""

    def setUp(self) -> None:
        self.stdout = io.StringIO()
        self.cli = application(stdout=self.stdout)
        self.seen = []
        self.cli.register_command([], Command("foo", self.seen.append, args=[Arg("bar")]))

    def testScenarioFooBaz(self):
        self.cli.run(["foo", "baz"])
        self.assertEqual(len(self.seen), 1)
        self.assertEqual(self.seen[0].args, ("baz",))
        self.assertIs(self.seen[0].command, self.cli.find_command("foo"))
        self.assertIs(self.seen[0].app, self.cli.app)

    def testScenarioMissingArgument(self):
        with self.assertRaises(MissingArgumentsError):
            self.cli.run(["foo"])
        self.assertEqual(self.seen, [])

    def testScenarioUnknownTokenRendersRootHelp(self):
        self.assertIsNone(self.cli.run(["nonexistent"]))
        output = self.stdout.getvalue()
        self.assertTrue(output.startswith("app\n"))
        self.assertIn("Commands:", output)
        self.assertIn("  foo", output)

    def testEmptyTokensRenderRootHelp(self):
        self.cli.run([])
        self.assertIn("Usage:\n  app", self.stdout.getvalue())
        self.assertEqual(self.seen, [])

    def testTooManyArguments(self):
        with self.assertRaises(TooManyArgumentsError) as caught:
            self.cli.run(["foo", "a", "b"])
        self.assertEqual(caught.exception.options["given"], 2)

    def testVariadicDeliversAllTrailingValues(self):
        self.cli.register_command([], Command("cat", self.seen.append, args=[Arg("first"), Arg("rest", variadic=True)]))
        self.cli.run(["cat", "a", "b", "c"])
        self.assertEqual(self.seen[-1].args, ("a", "b", "c"))
        with self.assertRaises(MissingArgumentsError):
            self.cli.run(["cat"])

    def testStringPromptIsShellSplit(self):
        self.cli.run('foo "hello world"')
        self.assertEqual(self.seen[-1].args, ("hello world",))

    def testNonStringTokensRaise(self):
        with self.assertRaises(TypeError):
            self.cli.run(["foo", 1])

    def testAliasResolution(self):
        self.cli.register_command([], Command("list", self.seen.append, aliases=["ls"]))
        self.cli.run(["ls"])
        self.assertEqual(self.seen[-1].command.name, "list")

    def testHiddenCommandIsNotDispatched(self):
        self.cli.register_command([], Command("secret", self.seen.append, hidden=True))
        self.cli.run(["secret"])
        self.assertEqual(self.seen, [])
        self.assertNotIn("secret", self.stdout.getvalue())

    def testFlagsReachTheContext(self):
        def flags(flagset):
            flagset.integer("jobs", 1, "parallel jobs")
            flagset.boolean("v", False, "verbose")

        self.cli.register_command([], Command("build", self.seen.append, flags=flags, args=[Arg("target")]))
        self.cli.run(["build", "--jobs", "4", "src", "-v"])
        context = self.seen[-1]
        self.assertEqual(dict(context.flags), {"jobs": 4, "v": True})
        self.assertEqual(context.args, ("src",))
        self.assertEqual(context.flag("jobs"), 4)

    def testFlagParseFailureStopsEverything(self):
        trace = []
        self.cli.register_hook(Phase.BEFORE_COMMAND, lambda ctx: trace.append("before"))
        self.cli.register_command([], Command("build", self.seen.append, flags=lambda flagset: flagset.integer("jobs")))
        with self.assertRaises(FlagParseError):
            self.cli.run(["build", "--jobs", "many"])
        with self.assertRaises(FlagParseError):
            self.cli.run(["build", "--unknown"])
        self.assertEqual(trace, [])
        self.assertEqual(self.seen, [])

    def testHelpFlagRendersCommandHelp(self):
        for token in ("--help", "-h"):
            self.stdout.seek(0)
            self.stdout.truncate()
            self.assertIsNone(self.cli.run(["foo", token]))
            self.assertIn("Usage:\n  foo <bar>", self.stdout.getvalue())
        self.assertEqual(self.seen, [])

    def testTerminatorPassesFlagLikeValues(self):
        self.cli.register_command([], Command(
            "exec",
            self.seen.append,
            flags=lambda flagset: flagset.integer("count"),
            args=[Arg("argv", variadic=True)],
        ))
        self.assertIsNone(self.cli.run(["exec", "--", "-h", "x"]))
        self.assertEqual(self.seen[-1].args, ("-h", "x"))
        self.cli.run(["exec", "a", "--", "--count"])
        self.assertEqual(self.seen[-1].args, ("a", "--count"))
        self.assertEqual(self.seen[-1].flags["count"], 0)
        self.assertNotIn("Usage:", self.stdout.getvalue())

    def testCommandWithoutHandlerRendersHelp(self):
        self.cli.register_command([], Command("group", summary="a group"))
        self.cli.run(["group"])
        self.assertTrue(self.stdout.getvalue().startswith("group - a group"))

    def testHandlerResultIsReturned(self):
        self.cli.register_command([], Command("answer", lambda ctx: 42))
        self.assertEqual(self.cli.run(["answer"]), 42)

    def testHandlerFaultPropagatesVerbatim(self):
        fault = RuntimeError("boom")

        def explode(ctx):
            raise fault

        self.cli.register_command([], Command("explode", explode))
        with self.assertRaises(RuntimeError) as caught:
            self.cli.run(["explode"])
        self.assertIs(caught.exception, fault)
        self.assertIn("raised during handler of 'explode'", fault.__notes__)

    def testRunsAreIndependent(self):
        self.cli.run(["foo", "one"])
        self.cli.run(["foo", "two"])
        self.assertEqual([context.args for context in self.seen], [("one",), ("two",)])

    def testCancellationIsPassedThrough(self):
        event = threading.Event()
        event.set()

        def handler(ctx):
            self.seen.append(ctx)
            ctx.raise_if_cancelled()

        self.cli.register_command([], Command("work", handler))
        with self.assertRaises(CancelledError):
            self.cli.run(["work"], cancellation=event)
        self.assertIs(self.seen[-1].cancellation, event)

    def testSharedAppData(self):
        def store(ctx):
            ctx.app.data["count"] = ctx.app.data.get("count", 0) + 1

        self.cli.register_command([], Command("store", store))
        self.cli.run(["store"])
        self.cli.run(["store"])
        self.assertEqual(self.cli.app.data["count"], 2)


class TestMiddleware(TestCase):
    """Behavioral tests for middleware layering during dispatch."""

    def testGlobalAncestorLeafOrder(self):
        trace = []

        def layer(label):
            @around
            def middleware(ctx, next):
                trace.append(f"{label}>")
                result = next(ctx)
                trace.append(f"<{label}")
                return result
            return middleware

        cli = application()
        cli.register_middleware(layer("G"))
        cli.root.use(layer("R"))
        cli.register_command([], Command("a", middleware=[layer("A")]))
        cli.register_command(["a"], Command("l", lambda ctx: trace.append("handler"), middleware=[None, layer("L")]))
        cli.run(["a", "l"])
        self.assertEqual(trace, ["G>", "R>", "A>", "L>", "handler", "<L", "<A", "<R", "<G"])

    def testMiddlewareCanShortCircuit(self):
        cli = application()
        cli.register_middleware(lambda next: lambda ctx: "intercepted")
        cli.register_command([], Command("x", lambda ctx: "handled"))
        self.assertEqual(cli.run(["x"]), "intercepted")


class TestHooks(TestCase):
    """Behavioral tests for hook ordering and failure semantics."""

    def setUp(self) -> None:
        self.cli = application()
        self.trace = []
        for phase in Phase:
            self.cli.register_hook(phase, self.recorder(phase.value))
        self.parent = self.cli.register_command([], Command(
            "parent",
            before=[self.recorder("parent-before")],
            after=[self.recorder("parent-after")],
        ))
        self.leaf = self.cli.register_command(["parent"], Command(
            "leaf",
            self.recorder("handler"),
            before=[None, self.recorder("leaf-before")],
            after=[self.recorder("leaf-after"), None],
        ))

    def recorder(self, label, fault=None):
        def hook(ctx):
            self.trace.append(label)
            if fault is not None:
                raise fault
        return hook

    def testOrder(self):
        self.cli.run(["parent", "leaf"])
        self.assertEqual(self.trace, [
            "before-run",
            "before-command",
            "parent-before",
            "leaf-before",
            "handler",
            "leaf-after",
            "parent-after",
            "after-command",
            "after-run",
        ])

    def testRunHooksSeeTheRoot(self):
        contexts = []
        self.cli.register_hook(Phase.BEFORE_RUN, contexts.append)
        self.cli.run(["parent", "leaf"])
        self.assertIs(contexts[0].command, self.cli.root)
        self.assertEqual(contexts[0].args, ())

    def testBeforeHookFailureIsFailFast(self):
        fault = PermissionError("denied")
        self.parent.add_before(self.recorder("parent-denied", fault))
        with self.assertRaises(PermissionError) as caught:
            self.cli.run(["parent", "leaf"])
        self.assertIs(caught.exception, fault)
        self.assertEqual(self.trace, ["before-run", "before-command", "parent-before", "parent-denied", "after-run"])

    def testBeforeRunFailureSkipsEverything(self):
        self.cli.register_hook(Phase.BEFORE_RUN, self.recorder("refuse", RuntimeError("no")))
        with self.assertRaises(RuntimeError):
            self.cli.run(["parent", "leaf"])
        self.assertEqual(self.trace, ["before-run", "refuse"])

    def testAfterHooksNeverMaskHandlerFault(self):
        cli = application()
        fault = ValueError("handler")
        trace = []

        def explode(ctx):
            raise fault

        def after(label):
            def hook(ctx):
                trace.append(label)
                raise RuntimeError(label)
            return hook

        cli.register_hook(Phase.AFTER_COMMAND, after("after-command"))
        cli.register_hook(Phase.AFTER_RUN, after("after-run"))
        cli.register_command([], Command("x", explode, after=[after("own")]))
        with self.assertLogs("flagon.hooks", level="WARNING"):
            with self.assertRaises(ValueError) as caught:
                cli.run(["x"])
        self.assertIs(caught.exception, fault)
        self.assertEqual(trace, ["own", "after-command", "after-run"])

    def testAfterHookFaultBecomesResultWithoutEarlierFault(self):
        self.leaf.add_after(self.recorder("leaf-failed", OSError("disk")))
        with self.assertRaises(OSError):
            self.cli.run(["parent", "leaf"])
        self.assertEqual(self.trace[-4:], ["leaf-failed", "parent-after", "after-command", "after-run"])


class TestHelpCommand(TestCase):
    """Behavioral tests for the built-in help command."""

    def setUp(self) -> None:
        self.stdout = io.StringIO()
        self.cli = application(stdout=self.stdout)
        self.cli.register_command([], Command("project", summary="manage projects"))
        self.cli.register_command(["project"], Command("build", lambda ctx: None, summary="build it", args=[Arg("target")]))

    def testHelpIsInstalled(self):
        self.assertIsNotNone(self.cli.find_command("help"))
        self.cli.run(["help"])
        self.assertIn("  help     Show help", self.stdout.getvalue())

    def testHelpForNestedPath(self):
        self.cli.run(["help", "project", "build"])
        self.assertTrue(self.stdout.getvalue().startswith("build - build it"))
        self.assertIn("  build <target>", self.stdout.getvalue())

    def testHelpForUnknownPathRaises(self):
        with self.assertRaises(UnknownCommandError):
            self.cli.run(["help", "missing"])

    def testCustomHelpCommandName(self):
        cli = application(help_command="assist")
        self.assertIsNotNone(cli.find_command("assist"))
        self.assertIsNone(cli.find_command("help"))

    def testBlankHelpCommandNameKeepsDefault(self):
        self.assertEqual(application(help_command="  ").help_command, "help")

    def testNotInstalledWhenRootHasTheName(self):
        self.assertIsNone(CLI(Command("help")).find_command("help"))

    def testNotInstalledWhenAChildHasTheName(self):
        own = Command("help", lambda ctx: "mine")
        cli = CLI(Command("tool", children=[own]))
        self.assertIs(cli.find_command("help"), own)
        self.assertEqual(cli.run(["help"]), "mine")


class TestMain(TestCase):
    """Behavioral tests for CLI.main() and invoke()."""

    def setUp(self) -> None:
        self.stderr = io.StringIO()
        self.cli = application(stderr=self.stderr)

        @command(args=[Arg("who")])
        def greet(ctx):
            return f"hello {ctx.args[0]}"

        @command
        def crash(ctx):
            raise RuntimeError("broken")

        self.cli.register_command([], greet)
        self.cli.register_command([], crash)

    def testSuccessIsZero(self):
        self.assertEqual(self.cli.main(["greet", "you"]), 0)
        self.assertEqual(self.stderr.getvalue(), "")

    def testUsageFaultIsTwo(self):
        self.assertEqual(self.cli.main(["greet"]), 2)
        self.assertIn("missing arguments", self.stderr.getvalue())
        self.assertIn("app", self.stderr.getvalue())

    def testOtherFaultIsOne(self):
        self.assertEqual(self.cli.main(["crash"]), 1)
        self.assertIn("RuntimeError: broken", self.stderr.getvalue())

    def testInvoke(self):
        self.assertEqual(invoke(self.cli, "greet world"), "hello world")
        with self.assertRaises(TypeError):
            invoke(object(), "greet world")


if __name__ == "__main__":
    unittest.main()
