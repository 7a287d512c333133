"""
Optscan utilities: the sentinel and the small helpers every layer shares.

- Unset: "argument not given", distinct from None (a valid option value).
- coalesce(): swap Unset for a default.
- rename(): give generated functions readable names for tracebacks and reprs.
- freeze() / mirror(): read-only views served by the spec and result types.
- ordinal(): "first", "second", ..., "11th", for position-aware messages.

    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
    >>> ordinal(3)
    'third'
"""
import builtins
import functools
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Type of the Unset sentinel.

    Optional parameters of optscan default to Unset so that None stays a
    legitimate, storable value (an OPTIONAL_ARGUMENT option matched without
    a value yields None). There is exactly one instance per process; it is
    falsey, prints as "Unset", survives copy and pickle as itself, and
    supports `str | Unset` in isinstance() checks.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return 'object', or 'default' when it is Unset. Other falsey values
    (None, 0, "") are kept.
    """
    return default if object is Unset else object


def rename(*parameters):
    """
    rename(function, name) renames in place and returns the function;
    rename(name) returns a decorator doing the same.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() argument must be a string")
        return rename(functools.partial(_renamed, name=name), "rename")
    if len(parameters) != 2:
        raise TypeError("rename() takes 1 or 2 arguments but %d were given" % len(parameters))

    function, name = parameters
    if not builtins.callable(function):
        raise TypeError("rename() first argument must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() second argument must be a string")
    try:
        function.__name__ = function.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() cannot rename %r" % (function,)) from None
    return function


def _renamed(function, /, *, name):
    if not builtins.callable(function):
        raise TypeError("@rename() must be applied to a callable")
    return rename(function, name)


def freeze(object, /):
    """
    Shallow read-only copy of a container: lists become tuples, mappings a
    MappingProxyType, sets a frozenset. Strings, tuples (named tuples such as
    Match and Diagnostic included) and non-containers come back unchanged.
    """
    match object:
        case str() | bytes() | bytearray() | tuple():
            return object
        case Sequence():
            return tuple(object)
        case Mapping():
            return MappingProxyType(dict(object))
        case Set():
            return frozenset(object)
    return object


def mirror(name, /):
    """
    Read-only property named 'name' serving freeze(self._<name>).
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return freeze(getattr(self, "_" + name))

    return property(getter)


_WORDS = ("first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth")


def ordinal(number, /):
    """
    English ordinal of a 1-based position: words up to ten, then "11th",
    "21st", "22nd", "23rd", "111th"...
    """
    if 1 <= number <= len(_WORDS):
        return _WORDS[number - 1]
    if number % 100 in (11, 12, 13):
        return "%dth" % number
    return "%d%s" % (number, {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th"))


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "freeze",
    "mirror",
    "ordinal",

    # Sentinel (internal to optscan, not re-exported by the package)
    "UnsetType",
    "Unset",
)
