"""
Optscan parsing layer: a stateless getopt/getopt_long/getopt_long_only.

What this module provides
- ParseRequest: validated, immutable input (specs, arguments, long_only, posix).
- ParseResult: immutable output (matches, residual operands, diagnostics).
- Match: one recognized option occurrence (spec index + consumed value).
- parse(...): the option parser itself.

Core ideas
- Pure function: no optind/optarg/optopt cursor survives a call, nothing is
  shared between calls, and caller frames are never inspected.
- Diagnostics accumulate: one bad token never stops the scan, so a single
  pass reports every problem. ParseResult.ok is the original boolean.
- Binding a match to a collector, a flag slot or a callback happens later,
  in optscan.bindings.

Scanning rules (GNU getopt)
- "--" ends option scanning; everything after it is an operand.
- A token without a leading '-' (or exactly "-") is an operand. In POSIX mode
  it ends scanning; otherwise scanning goes on and operands keep their order.
- "--name[=value]" is a long option; long-only mode also accepts "-name[=value]"
  unless the token is exactly a declared short option. Names match exactly
  first, then by unique prefix.
- Anything else is a cluster of short options ("-abc", "-ofile").

Quick start
    from optscan import parse

    result = parse("vo:", ["-v", "-o", "out.txt", "input.txt"])
    result.values()     # {'v': True, 'o': 'out.txt'}
    result.operands     # ('input.txt',)
    result.ok           # True
"""
import difflib
import os
import shlex
import sys
from collections.abc import Iterable
from typing import NamedTuple

from .faults import Diagnostic, DiagnosticKind, ParseExit, trigger
from .specs import ArgPolicy, OptionSpec, SpecType, compile_options, tables
from .utils import *


class Match(NamedTuple):
    """
    One recognized option: index of its spec in the request, and the value it
    consumed (None for options without a value).
    """
    index: int
    value: str | None = None


class ParseRequest(metaclass=SpecType, final=True):
    """
    Validated parser input.

    Parameters
    - specs: Iterable[OptionSpec], in declaration order (the first declaration of
      a short character or long name wins).
    - arguments: Iterable[str]; position 0 is the first real argument (there is
      no program-name slot).
    - long_only: accept "-name" as a long option (getopt_long_only).
    - posix: stop at the first operand. Unset means "is POSIXLY_CORRECT set?".

    Raises
    - TypeError on anything that is not an OptionSpec or a string.
    """
    __introspectable__ = ("specs", "arguments", "long_only", "posix")

    def __new__(cls, specs, arguments, long_only=False, posix=Unset):
        if not isinstance(specs, Iterable) or isinstance(specs, str):
            raise TypeError(f"{cls.__typename__} 'specs' must be an iterable of option-specs")
        specs = tuple(specs)
        if not all(isinstance(spec, OptionSpec) for spec in specs):
            raise TypeError(f"{cls.__typename__} 'specs' must be an iterable of option-specs")

        if not isinstance(arguments, Iterable) or isinstance(arguments, str):
            raise TypeError(f"{cls.__typename__} 'arguments' must be an iterable of strings")
        arguments = tuple(arguments)
        if not all(isinstance(argument, str) for argument in arguments):
            raise TypeError(f"{cls.__typename__} 'arguments' must be an iterable of strings")

        if not isinstance(posix, bool | Unset):
            raise TypeError(f"{cls.__typename__} 'posix' must be a boolean")

        self = super().__new__(cls)
        self._specs = specs
        self._arguments = arguments
        self._long_only = bool(long_only)
        self._posix = coalesce(posix, "POSIXLY_CORRECT" in os.environ)
        self._shorts, self._longs = tables(specs)
        return self


class ParseResult(metaclass=SpecType, final=True):
    """
    Immutable parser output.

    Properties
    - specs: the specs the matches refer to.
    - matches: tuple[Match, ...] in discovery order.
    - operands: tuple[str, ...], residual operands in their original relative order.
    - diagnostics: tuple[Diagnostic, ...] in discovery order.
    - ok: True iff there are no diagnostics.

    Results compare equal when all four tuples are equal, and support
    copy.replace(result, diagnostics=...).
    """
    __introspectable__ = ("specs", "matches", "operands", "diagnostics")

    def __new__(cls, specs, matches=(), operands=(), diagnostics=()):
        self = super().__new__(cls)
        self._specs = tuple(specs)
        self._matches = tuple(matches)
        self._operands = tuple(operands)
        self._diagnostics = tuple(diagnostics)
        return self

    @property
    def ok(self):
        return not self._diagnostics

    def named(self):
        """
        Yield (spec, value) for every match, in discovery order.
        """
        for match in self._matches:
            yield self._specs[match.index], match.value

    def values(self):
        """
        Collector view: spec key → consumed value (True when none); the last
        occurrence of an option wins.
        """
        return {spec.key: value if value is not None else True for spec, value in self.named()}

    def check(self, /, **options):
        """
        Surface every diagnostic as one ParseExit (raised outside shell mode,
        printed on stderr in shell mode). Does nothing when ok.
        """
        if self.ok:
            return self
        trigger(ParseExit([diagnostic.fault() for diagnostic in self._diagnostics]), **options)
        return self

    def __eq__(self, other):
        if not isinstance(other, ParseResult):
            return NotImplemented
        return tuple(self.__rich_repr__()) == tuple(other.__rich_repr__())

    __hash__ = None

    def __replace__(self, **overrides):
        return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | overrides)


class _Scanner:
    """
    One scan over one request. Instances live for a single parse() call.
    """

    def __init__(self, request):
        self._request = request
        self._arguments = request.arguments
        self._shorts = request._shorts
        self._longs = request._longs
        self._index = 0
        self._matches = []
        self._operands = []
        self._diagnostics = []

    def _fault(self, kind, token, position, candidates=()):
        self._diagnostics.append(Diagnostic(kind, token, position, tuple(candidates)))

    def _next(self):
        # take the next whole argument as a value, if any
        if self._index >= len(self._arguments):
            return None
        self._index += 1
        return self._arguments[self._index - 1]

    def _long(self, token, position, body, *, fallback=False):
        r"""
        handle one long-option token ("--name[=value]", or "-name[=value]" in long-only mode).

        matching
        - an exact name wins immediately.
        - otherwise the declared names starting with 'name' are the candidates:
          one candidate matches, several are ambiguous, none is unknown.
        - long-only fallback: an unknown single-dash token whose first character
          is a declared short option is rescanned as a short cluster.

        values
        - REQUIRED_ARGUMENT: inline value, else the next argument, else MISSING_ARGUMENT.
        - NO_ARGUMENT: an inline value is an UNKNOWN_OPTION with the literal token.
        - OPTIONAL_ARGUMENT: inline value only.
        """
        name, separator, value = body.partition("=")
        inline = value if separator else None
        label = token[:len(token) - len(body)] + name

        if not name:
            return self._fault(DiagnosticKind.UNKNOWN_OPTION, token, position)

        try:
            index = self._longs[name]
        except KeyError:
            candidates = [long for long in self._longs if long.startswith(name)]
            match len(candidates):
                case 1:
                    index = self._longs[candidates[0]]
                case 0:
                    if fallback and name[0] in self._shorts:
                        return self._short(token, position, body)
                    suggestions = difflib.get_close_matches(name, self._longs.keys(), 3)
                    return self._fault(DiagnosticKind.UNKNOWN_OPTION, label, position, suggestions)
                case _:
                    return self._fault(DiagnosticKind.AMBIGUOUS_LONG_OPTION, label, position, candidates)

        spec = self._request.specs[index]
        match spec.policy:
            case ArgPolicy.NO_ARGUMENT if inline is not None:
                return self._fault(DiagnosticKind.UNKNOWN_OPTION, token, position)
            case ArgPolicy.REQUIRED_ARGUMENT if inline is None:
                if (inline := self._next()) is None:
                    return self._fault(DiagnosticKind.MISSING_ARGUMENT, label, position)
        self._matches.append(Match(index, inline))

    def _short(self, token, position, cluster):
        """
        handle one cluster of short options ("-a", "-abc", "-ofile").

        - unknown character: UNKNOWN_OPTION with that character; the rest of the cluster is dropped.
        - NO_ARGUMENT: record and continue with the next character.
        - REQUIRED_ARGUMENT: the rest of the cluster, else the next argument, else MISSING_ARGUMENT.
        - OPTIONAL_ARGUMENT: the rest of the cluster, if any.
        an argument-taking option always ends the cluster.
        """
        for offset, char in enumerate(cluster):
            try:
                index = self._shorts[char]
            except KeyError:
                return self._fault(DiagnosticKind.UNKNOWN_OPTION, char, position)

            rest = cluster[offset + 1:] or None
            match self._request.specs[index].policy:
                case ArgPolicy.NO_ARGUMENT:
                    self._matches.append(Match(index))
                    continue
                case ArgPolicy.REQUIRED_ARGUMENT if rest is None:
                    if (rest := self._next()) is None:
                        return self._fault(DiagnosticKind.MISSING_ARGUMENT, char, position)
            self._matches.append(Match(index, rest))
            return

    def scan(self):
        request = self._request
        while self._index < len(self._arguments):
            position = self._index
            token = self._arguments[position]
            self._index += 1

            if token == "--":
                self._operands.extend(self._arguments[self._index:])
                break

            if not token.startswith("-") or token == "-":
                if request.posix:
                    self._operands.extend(self._arguments[position:])
                    break
                self._operands.append(token)
                continue

            if token.startswith("--"):
                self._long(token, position, token[2:])
            elif request.long_only and not (len(token) == 2 and token[1] in self._shorts):
                self._long(token, position, token[1:], fallback=True)
            else:
                self._short(token, position, token[1:])

        return ParseResult(request.specs, self._matches, self._operands, self._diagnostics)


def _tokenize(arguments, /):
    """
    Materialize the argument list.

    - Unset: read sys.argv[1:].
    - str: split with shlex.split.
    - Iterable[str]: used as-is (validated by ParseRequest).
    """
    if arguments is Unset:
        return sys.argv[1:]
    if isinstance(arguments, str):
        return shlex.split(arguments)
    return arguments


def parse(source, arguments=Unset, /, *, longopts=Unset, long_only=False, posix=Unset):
    """
    Parse arguments against declared options.

    Parameters
    - source: ParseRequest | str | Iterable[OptionSpec]
      • ParseRequest: parsed as-is (no other argument is accepted).
      • str: a getopt option string ("ab:c::"); its '+'/'-' prefix selects the
        scanning mode unless 'posix' is given explicitly.
      • Iterable[OptionSpec]: declared options, in precedence order.
    - arguments: Unset (sys.argv[1:]) | str (shlex-split) | Iterable[str].
    - longopts: long-option table, only with an option string (see compile_options()).
    - long_only: getopt_long_only behavior.
    - posix: stop at the first operand (Unset: POSIXLY_CORRECT decides).

    Returns
    - ParseResult

    Raises
    - TypeError/ValueError for malformed specifications (nothing is parsed).
    """
    if isinstance(source, ParseRequest):
        if arguments is not Unset or longopts is not Unset or long_only or posix is not Unset:
            raise TypeError("parse() takes no other arguments along with a parse-request")
        return _Scanner(source).scan()

    if isinstance(source, str):
        compiled = compile_options(source, longopts)
        specs, posix = compiled.specs, coalesce(posix, compiled.posix)
    elif longopts is not Unset:
        raise TypeError("parse() accepts 'longopts' only along with an option string")
    else:
        specs = source

    return _Scanner(ParseRequest(specs, _tokenize(arguments), long_only, posix)).scan()


__all__ = (
    # Public API surface for consumers of optscan.parsing.
    # These names are re-exported from the package __init__.
    "Match",
    "ParseRequest",
    "ParseResult",
    "parse",
)
