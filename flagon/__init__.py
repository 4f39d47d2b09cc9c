__title__ = 'flagon'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .arguments import *
from .cli import *
from .commands import *
from .context import *
from .faults import *
from .flags import *
from .hooks import Phase
from .middleware import around
from .plugins import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__license__",
    "__version__",
    "version_info",
    "Phase",
    "around",
)

# Load the exposed API of the arguments
__all__ += arguments.__all__  # type: ignore[attr-defined]
# Load the exposed API of the cli
__all__ += cli.__all__  # type: ignore[attr-defined]
# Load the exposed API of the commands
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the context
__all__ += context.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the flags
__all__ += flags.__all__  # type: ignore[attr-defined]
# Load the exposed API of the plugins
__all__ += plugins.__all__  # type: ignore[attr-defined]
