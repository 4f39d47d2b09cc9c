"""
Flagon utilities shared by the command, flag, rendering and plugin layers.

- Unset: "value not provided" sentinel, distinct from None; usable in unions
  (isinstance(value, str | Unset)).
- coalesce(value, default=None): resolve Unset to a default; None, 0 and "" are kept.
- @rename("name"): readable names for generated wrappers in tracebacks.
- mirror("attr"): read-only property returning a copy of the private self._attr container.
- mglob("pkg.plugins.*"): module names matching a dotted glob (plugin discovery).

    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
"""
import importlib
import pkgutil
import re
from collections.abc import Sequence, Mapping, Set


class UnsetType:
    """
    Type of the Unset sentinel: falsey, printed as "Unset", one instance only.
    """
    _instance = None

    def __new__(cls):
        if UnsetType._instance is None:
            UnsetType._instance = super().__new__(cls)
        return UnsetType._instance

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")

    def __or__(self, other, /):
        return UnsetType | other if isinstance(other, type) else NotImplemented

    def __ror__(self, other, /):
        return other | UnsetType if isinstance(other, type) else NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    Return object, or default when object is Unset.
    """
    return default if object is Unset else object


def rename(name, /):
    """
    Decorator setting __name__ and __qualname__ of the decorated callable.
    """
    if not isinstance(name, str):
        raise TypeError("@rename() argument must be a string")

    def decorator(function):
        if not callable(function):
            raise TypeError("@rename() must be applied to a callable")
        function.__name__ = function.__qualname__ = name
        return function

    return decorator


def _snapshot(object):
    # Containers are copied one level at a time; their items (commands, callables) are shared.
    if isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_snapshot, object))
    elif isinstance(object, Mapping):
        return {key: _snapshot(value) for key, value in object.items()}
    elif isinstance(object, Set):
        return set(map(_snapshot, object))
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private field "_{name}".

    Container values are returned as fresh copies so callers cannot mutate the
    owner's state through the public attribute; contained objects keep their identity.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _snapshot(getattr(self, "_" + name))

    return property(getter)


def mglob(source, /):
    """
    Expand a dotted module glob into sorted, fully-qualified module names.

    Wildcards stay inside one segment: "*" matches any run of characters but
    ".", "?" matches one. The leading segments up to the first wildcard name
    the package that is searched; when it cannot be imported the result is [].
    A pattern without wildcards is returned as-is.

        mglob("myapp.plugins.*")  ->  ["myapp.plugins.alpha", "myapp.plugins.beta"]
    """
    if not isinstance(source, str):
        raise TypeError("mglob() argument must be a string")
    if not (source := source.strip()):
        raise ValueError("mglob() argument must be a non-empty string")

    segments = source.split(".")
    if not any("*" in segment or "?" in segment for segment in segments):
        return [source]

    concrete = []
    for segment in segments:
        if not segment.isidentifier():
            break
        concrete.append(segment)
    if not concrete:
        raise ValueError("mglob() pattern must start with a concrete package segment")

    try:
        package = importlib.import_module(prefix := ".".join(concrete))
    except ImportError:
        return []
    if not hasattr(package, "__path__"):
        return []

    pattern = re.compile(re.escape(source).replace(r"\*", "[^.]*").replace(r"\?", "[^.]"))
    return sorted(
        module.name
        for module in pkgutil.walk_packages(package.__path__, prefix + ".")
        if pattern.fullmatch(module.name)
    )


Unset = UnsetType()
"""
Internal sentinel for "not provided"; see UnsetType.
"""


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "mglob",
    "UnsetType",
    "Unset",
)
