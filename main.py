import logging
import sys
import time

from flagon import *


def jobs(flagset):
    flagset.integer("jobs", 1, "parallel jobs")
    flagset.boolean("v", False, "verbose")


project = Command("project", summary="Manage projects")


@project.command(summary="Build a target", flags=jobs, args=[Arg("target", "what to build"), Arg("extra", optional=True, variadic=True)])
def build(ctx):
    """Compile a target and any extra targets given after it."""
    for target in ctx.args:
        ctx.raise_if_cancelled()
        ctx.app.logger.info("building %s with %d job(s)", target, ctx.flag("jobs"))


@build.add_before
def check(ctx):
    if ctx.flag("jobs") < 1:
        raise ValueError("--jobs must be at least 1")


@around
def timing(ctx, next):
    started = time.monotonic()
    try:
        return next(ctx)
    finally:
        ctx.app.logger.debug("%s took %.3fs", ctx.command.name, time.monotonic() - started)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    cli = CLI(Command("demo", summary="flagon demo"), colorful=True)
    cli.register_command([], project)
    cli.register_middleware(timing)
    sys.exit(cli.main())
