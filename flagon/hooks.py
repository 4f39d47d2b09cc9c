"""
Hook phases and hook sequencing.

Phases
- CLI-level: BEFORE_RUN, AFTER_RUN, BEFORE_COMMAND, AFTER_COMMAND.
- Command-level: every Command carries its own before/after lists.

Sequencing semantics
- before-phase lists are fail-fast: the first exception stops the chain and is
  raised to the caller; nothing after it runs.
- after-phase lists are best-effort: every hook runs; an exception only becomes
  the outcome when no earlier fault exists, so a handler fault is never masked.
- None entries are skipped silently in both modes.

Faults coming out of hooks keep their identity; the stage they were raised in is
attached with add_note() so tracebacks tell which list they came from.
"""
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Phase(Enum):
    BEFORE_RUN = "before-run"
    AFTER_RUN = "after-run"
    BEFORE_COMMAND = "before-command"
    AFTER_COMMAND = "after-command"

    @classmethod
    def coerce(cls, value, /):
        """
        Accept a Phase or its string value ("before-run", ...).
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown hook phase {value!r}") from None


def annotate(fault, stage, /):
    """
    Attach the stage name to an exception without wrapping it.
    """
    note = f"raised during {stage}"
    if note not in getattr(fault, "__notes__", ()):
        fault.add_note(note)
    return fault


def run_fail_fast(hooks, context, /, *, stage):
    """
    Run hooks in order, stopping at (and re-raising) the first exception.
    """
    for hook in hooks:
        if hook is None:
            continue
        try:
            hook(context)
        except Exception as fault:
            annotate(fault, stage)
            raise


def run_best_effort(hooks, context, fault=None, /, *, stage):
    """
    Run every hook; return the outcome fault.

    The given fault (from the handler or an earlier stage) wins; otherwise the
    first hook exception becomes the outcome. Later hook exceptions are logged.
    """
    for hook in hooks:
        if hook is None:
            continue
        try:
            hook(context)
        except Exception as error:
            annotate(error, stage)
            if fault is None:
                fault = error
            else:
                logger.warning("%s hook %r failed after an earlier fault: %s", stage, hook, error)
    return fault


__all__ = (
    "Phase",
    "annotate",
    "run_fail_fast",
    "run_best_effort",
)
