"""
Plugin registration contract and module discovery.

A plugin is any object (usually a module) exposing a register(registrar)
callable. It receives a PluginRegistrar, never the CLI internals, and extends the
application through four operations only:

- register_command(parent_path, command): attach a command under an existing path
  (the empty path is the root);
- register_middleware(middleware): add a global middleware;
- register_hook(phase, hook): add a CLI-level hook;
- find_command(*path): resolve an existing command, or None.

Plugins run during setup, before the first dispatch. CLI implements the contract.

Discovery
    include(cli, "myapp.plugins.*")

imports every module matching the glob (see flagon.utils.mglob) and calls its
register(cli) in sorted module order.
"""
import importlib
import logging
from typing import Protocol, runtime_checkable

from .utils import *

logger = logging.getLogger(__name__)


@runtime_checkable
class PluginRegistrar(Protocol):
    """
    The narrow capability set handed to plugins.
    """

    def register_command(self, parent_path, command, /): ...

    def register_middleware(self, middleware, /): ...

    def register_hook(self, phase, hook=Unset, /): ...

    def find_command(self, *path): ...


def include(registrar, source, /, *, entry="register"):
    """
    Discover plugin modules by glob and let each one register itself.

    Parameters
    - registrar: the PluginRegistrar (normally a CLI) handed to every plugin.
    - source: module glob pattern, e.g. "myapp.plugins.*".
    - entry: name of the module-level callable to invoke (default "register").

    Returns
    - the list of module names that were registered, in call order.

    Raises
    - TypeError: when registrar does not implement the contract, source is not a
      string, a module cannot be imported, or a module has no callable entry.
    - anything the plugin's entry raises (e.g. NameCollisionError) propagates.
    """
    if not isinstance(registrar, PluginRegistrar):
        raise TypeError("include() first argument must implement the plugin registrar contract")
    if not isinstance(source, str):
        raise TypeError("include() argument must be a string")

    def imp(module):
        try:
            return importlib.import_module(module)
        except ImportError:
            raise TypeError(f"unable to import module {module!r}")

    included = []
    for name in mglob(source):
        module = imp(name)
        if not callable(register := getattr(module, entry, None)):
            raise TypeError(f"module {name!r} does not define a callable {entry}()")
        logger.debug("registering plugin %r", name)
        register(registrar)
        included.append(name)
    return included


__all__ = (
    "PluginRegistrar",
    "include",
)
