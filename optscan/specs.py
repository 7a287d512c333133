r"""
Optscan option specifications and decorators.

Overview
- Specs
  • OptionSpec: one declared option, short ("-x"), long ("--name") or both, with an
    argument policy and at most one binding.
  • ArgPolicy: NO_ARGUMENT, REQUIRED_ARGUMENT, OPTIONAL_ARGUMENT (the C has_arg values).
  • FlagBinding(name, value): route a match into a named slot (see optscan.bindings).
  • Callback(handle): route a match into a callable.

- Decorators
  • @option(...): build an OptionSpec bound to the decorated handler.

- Option strings
  • compile_options(optstring, longopts): turn a getopt option string ("ab:c::") and an
    optional long-option table into a tuple of OptionSpec plus scanning modes.

- Introspection & representation
  • SpecType metaclass provides stable __repr__/__rich_repr__ and exposes selected
    fields via read-only properties declared in __introspectable__.

Validation highlights (fail fast, TypeError/ValueError)
- short: one printable character, not '-', '?' or ':'.
- long: non-empty, no '=', no leading '-'.
- at least one of short/long.
- a FlagBinding constant on a REQUIRED_ARGUMENT option is rejected (it could never be stored).

Quick example:
    >>> from optscan.specs import OptionSpec, ArgPolicy, option
    >>> OptionSpec("o", "output", ArgPolicy.REQUIRED_ARGUMENT)
    option-spec(short='o', long='output', policy=<ArgPolicy.REQUIRED_ARGUMENT: 1>, binding=None)
    >>> @option("v", "verbose")
    ... def on_verbose(): ...
    ...
"""
import functools
import keyword
import operator
import re
from collections.abc import Iterable, Mapping
from enum import IntEnum
from typing import NamedTuple

from .faults import FaultCode, DuplicateOptionWarning, trigger
from .utils import *


class ArgPolicy(IntEnum):
    NO_ARGUMENT = 0
    REQUIRED_ARGUMENT = 1
    OPTIONAL_ARGUMENT = 2


class SpecType(type):
    """
    Metaclass that turns plain classes into sealed, introspectable value types.

    Responsibilities
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__ (backed by "_<name>" attributes).
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and rich.pretty output.
    - Seal classes declared with final=True against subclassing.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages and reprs.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option-spec(short='v', long='verbose', policy=..., binding=None)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        if "__repr__" not in namespace:
            self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        if options.get("final", False):
            @rename("__init_subclass__")
            def __init_subclass__(cls, **options):  # NOQA: F-841
                raise TypeError(f"type {self.__name__!r} is not an acceptable base type")
            self.__init_subclass__ = classmethod(__init_subclass__)

        return self


class FlagBinding(metaclass=SpecType, final=True):
    """
    Route a matched option into a named slot.

    The slot is looked up at bind time through an explicit scope chain (see
    optscan.bindings.Environment): the innermost scope defining the name wins,
    otherwise the process-wide namespace is used.

    Parameters
    - name: str, a Python identifier (not a keyword).
    - value: constant stored when the option matched without a value
      (True when Unset, the analogue of C's 'val').
    """
    __introspectable__ = ("name", "value")

    def __new__(cls, name, /, value=Unset):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not name.isidentifier() or keyword.iskeyword(name):
            raise ValueError(f"{cls.__typename__} 'name' must be a valid identifier")
        self = super().__new__(cls)
        self._name = name
        self._value = value
        return self

    @property
    def constant(self):
        return coalesce(self._value, True)

    def __eq__(self, other):
        if not isinstance(other, FlagBinding):
            return NotImplemented
        return (self._name, self._value) == (other._name, other._value)

    def __hash__(self):
        return hash((FlagBinding, self._name))


class Callback(metaclass=SpecType, final=True):
    """
    Route a matched option into a callable.

    The handle is invoked after parsing (never mid-scan): handle() for options
    without an argument, handle(value) otherwise.
    """
    __introspectable__ = ("handle",)

    def __new__(cls, handle, /):
        if not callable(handle):
            raise TypeError(f"{cls.__typename__} 'handle' must be callable")
        self = super().__new__(cls)
        self._handle = handle
        return self

    def __eq__(self, other):
        if not isinstance(other, Callback):
            return NotImplemented
        return self._handle == other._handle

    def __hash__(self):
        return hash((Callback, self._handle))


def _sanitize_names(cls, metadata, /):
    """
    Internal: validate the short/long names of an option spec.

    - short: Unset or a single printable character other than '-', '?', ':'
      (those three are reserved by the getopt option-string grammar and by the
      '?'/':' sentinels of the C library).
    - long: Unset or a non-empty string without '=' (the inline-value separator)
      and without leading '-' (dashes belong to the token, not to the name).
    - at least one must be given.

    Raises
    - TypeError: when a name has the wrong type or both are missing.
    - ValueError: when a name is malformed.
    """
    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    elif isinstance(short, str):
        if len(short) != 1:
            raise ValueError(f"{cls.__typename__} 'short' must be a single character")
        elif not short.isprintable():
            raise ValueError(f"{cls.__typename__} 'short' must be a printable character")
        elif short in "-?:":
            raise ValueError(f"{cls.__typename__} 'short' cannot be {short!r}")

    if not isinstance(long := metadata["long"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'long' must be a string")
    elif isinstance(long, str):
        if not long:
            raise ValueError(f"{cls.__typename__} 'long' cannot be empty")
        elif "=" in long:
            raise ValueError(f"{cls.__typename__} 'long' cannot contain '='")
        elif long.startswith("-"):
            raise ValueError(f"{cls.__typename__} 'long' must be given without leading dashes")
        elif not long.isprintable() or any(char.isspace() for char in long):
            raise ValueError(f"{cls.__typename__} 'long' must be printable and contain no whitespace")

    if short is Unset and long is Unset:
        raise TypeError(f"{cls.__typename__} must specify at least a short or a long name")


def _sanitize_policy(cls, metadata, /):
    """
    Internal: normalize the argument policy and check it against the binding.

    - policy: ArgPolicy or one of its integer values (0, 1, 2).
    - binding: Unset, FlagBinding or Callback.
    - a FlagBinding with an explicit constant cannot sit on a REQUIRED_ARGUMENT
      option: the consumed value always takes its place.
    """
    if isinstance(policy := metadata["policy"], bool) or not isinstance(policy, int):
        raise ValueError(f"{cls.__typename__} 'policy' must be an ArgPolicy")
    try:
        metadata["policy"] = ArgPolicy(policy)
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'policy' must be an ArgPolicy") from None

    if not isinstance(binding := metadata["binding"], FlagBinding | Callback | Unset):
        raise TypeError(f"{cls.__typename__} 'binding' must be a flag-binding or a callback")

    if (
            isinstance(binding, FlagBinding) and
            binding.value is not Unset and
            metadata["policy"] is ArgPolicy.REQUIRED_ARGUMENT
    ):
        raise ValueError(f"{cls.__typename__} bound to {binding.name!r} cannot store a constant and require an argument")


class OptionSpec(metaclass=SpecType, final=True):
    """
    One declared option.

    Properties
    - short: str | None, the short option character ("x" for "-x").
    - long: str | None, the long option name ("name" for "--name").
    - policy: ArgPolicy.
    - binding: FlagBinding | Callback | None.
    - key: the short character when declared, else the long name; used as the
      collector key and in handler diagnostics.

    Specs are immutable and compare equal when all four fields are equal.
    """
    __introspectable__ = ("short", "long", "policy", "binding")

    def __new__(cls, short=Unset, long=Unset, policy=ArgPolicy.NO_ARGUMENT, binding=Unset):
        metadata = {
            "short": short,
            "long": long,
            "policy": policy,
            "binding": binding,
        }
        _sanitize_names(cls, metadata)
        _sanitize_policy(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        return self

    @property
    def key(self):
        return self._short if self._short is not None else self._long

    @property
    def takes_argument(self):
        return self._policy is not ArgPolicy.NO_ARGUMENT

    def __eq__(self, other):
        if not isinstance(other, OptionSpec):
            return NotImplemented
        return tuple(self.__rich_repr__()) == tuple(other.__rich_repr__())

    def __hash__(self):
        return hash((self._short, self._long, self._policy))

    def __replace__(self, **overrides):
        # unset fields are stored as None; the constructor only takes Unset for them
        return type(self)(**{
            name: Unset if (value := getattr(self, name)) is None else value
            for name in type(self).__introspectable__
        } | overrides)


def option(short=Unset, long=Unset, policy=ArgPolicy.NO_ARGUMENT):
    """
    Decorator for defining an option handler.

    Usage
        @option("o", "output", ArgPolicy.REQUIRED_ARGUMENT)
        def on_output(value): ...

        @option("v", "verbose")
        def on_verbose(): ...

    Behavior
    - Validates the names and the policy right away (like OptionSpec).
    - Binds the decorated function as Callback(handler) and returns the OptionSpec.
    - The decorator may be applied only once.
    """
    spec = OptionSpec(short, long, policy)

    @rename("option")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@option() must be applied to a callable")
        if spec._binding is not None:
            raise TypeError("@option() must be applied only once")
        spec._binding = Callback(callback)
        return spec

    return wrapper


class Compiled(NamedTuple):
    """
    Outcome of compile_options(): declared specs plus the scanning modes spelled in the
    option string ('+' → posix=True, '-' → posix=False, otherwise Unset; a
    following ':' → silent=True).
    """
    specs: tuple
    posix: object = Unset
    silent: bool = False


def _long_entry(name, entry, /):
    """
    Internal: translate one long-option table entry into OptionSpec arguments.

    Accepted entries
    - ArgPolicy or int: the policy alone.
    - Mapping with the keys 'has_arg', 'short', 'flag' (+ 'value') and 'callback'.
    """
    if isinstance(entry, int) and not isinstance(entry, bool):
        return {"long": name, "policy": entry}
    if not isinstance(entry, Mapping):
        raise TypeError(f"long option {name!r} must map to a policy or a mapping")

    if unknown := set(entry) - {"has_arg", "short", "flag", "value", "callback"}:
        raise TypeError(f"long option {name!r} has unknown keys: {", ".join(sorted(map(str, unknown)))}")
    if "flag" in entry and "callback" in entry:
        raise TypeError(f"long option {name!r} cannot have both a 'flag' and a 'callback'")
    if "value" in entry and "flag" not in entry:
        raise TypeError(f"long option {name!r} has a 'value' but no 'flag'")

    binding = Unset
    if "flag" in entry:
        binding = FlagBinding(entry["flag"], entry.get("value", Unset))
    elif "callback" in entry:
        binding = Callback(entry["callback"])

    return {
        "short": entry.get("short", Unset),
        "long": name,
        "policy": entry.get("has_arg", ArgPolicy.NO_ARGUMENT),
        "binding": binding,
    }


def compile_options(optstring, longopts=Unset, /):
    """
    Compile a getopt option string (and an optional long-option table).

    Option string grammar
    - optional leading '+' (stop at the first operand) or '-' (operands kept in
      order, scanning never stops at them; GNU's RETURN_IN_ORDER reports the same
      operands, just interleaved with the options instead of separately);
    - optional ':' right after (silent: diagnostics are not reported on stderr);
    - then one character per short option, followed by ':' (required argument)
      or '::' (optional argument).

    Long options
    - an iterable of OptionSpec, or
    - a mapping name → ArgPolicy | int | mapping (see _long_entry()).
    A long entry whose 'short' names a character already declared in the
    option string is merged into that spec; the policies must agree.

    Returns
    - Compiled(specs, posix, silent)

    Raises
    - TypeError/ValueError on malformed input (nothing is parsed).
    """
    if not isinstance(optstring, str):
        raise TypeError("compile_options() first argument must be a string")

    posix = Unset
    if optstring[:1] == "+":
        posix, optstring = True, optstring[1:]
    elif optstring[:1] == "-":
        posix, optstring = False, optstring[1:]

    silent = optstring[:1] == ":"
    if silent:
        optstring = optstring[1:]

    specs = []
    index = 0
    while index < len(optstring):
        short = optstring[index]
        index += 1
        policy = ArgPolicy.NO_ARGUMENT
        if optstring[index:index + 2] == "::":
            policy = ArgPolicy.OPTIONAL_ARGUMENT
            index += 2
        elif optstring[index:index + 1] == ":":
            policy = ArgPolicy.REQUIRED_ARGUMENT
            index += 1
        specs.append(OptionSpec(short, policy=policy))

    if longopts is not Unset:
        if isinstance(longopts, Mapping):
            entries = [_long_entry(name, entry) for name, entry in longopts.items()]
        elif isinstance(longopts, Iterable) and not isinstance(longopts, str):
            entries = []
            for spec in longopts:
                if not isinstance(spec, OptionSpec):
                    raise TypeError("compile_options() long options must be option-specs")
                entries.append(spec)
        else:
            raise TypeError("compile_options() second argument must be a mapping or an iterable of option-specs")

        for entry in entries:
            if isinstance(entry, Mapping):
                if not isinstance(entry["long"], str):
                    raise TypeError("long option names must be strings")
                entry = OptionSpec(**entry)
            for position, spec in enumerate(specs):
                if entry.short is None or spec.short != entry.short or spec.long is not None:
                    continue
                if spec.policy is not entry.policy:
                    raise ValueError(
                        f"long option {entry.long!r} and short option {entry.short!r} disagree on their policy"
                    )
                specs[position] = entry
                break
            else:
                specs.append(entry)

    return Compiled(tuple(specs), posix, silent)


def tables(specs, /):
    """
    Build the short and long lookup tables (character/name → spec index).

    The first declaration wins; later duplicates emit a DuplicateOptionWarning
    and are shadowed.
    """
    shorts, longs = {}, {}
    for index, spec in enumerate(specs):
        for table, name, label in ((shorts, spec.short, "-%s"), (longs, spec.long, "--%s")):
            if name is None:
                continue
            if name in table:
                trigger(DuplicateOptionWarning(
                    "option %r is declared more than once" % (label % name),
                    title="duplicate option",
                    code=FaultCode.DUPLICATE_OPTION,
                    hint="only the first declaration is used",
                ))
                continue
            table[name] = index
    return shorts, longs


__all__ = (
    # Public API surface for consumers of optscan.specs.
    # These names are re-exported from the package __init__.

    # Enumerations and specifications
    "ArgPolicy",
    "FlagBinding",
    "Callback",
    "OptionSpec",
    "Compiled",

    # Decorators and builders
    "option",
    "compile_options",
    "tables",
)

