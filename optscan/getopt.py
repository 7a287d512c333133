"""
Optscan getopt front-end: the classic "fill a table, return a boolean" surface.

    results = {}
    if not std("vo:", results, ["-v", "-o", "out.txt"]):
        ...  # diagnostics were printed on stderr
    results  # {'v': True, 'o': 'out.txt'}

Functions
- std(optstring, results, arguments)                 → getopt()
- long(optstring, longopts, results, arguments)      → getopt_long()
- long_only(optstring, longopts, results, arguments) → getopt_long_only()

Each call parses, binds the matches (results table, flag slots, callbacks),
reports diagnostics on stderr like libc does, and returns True when nothing
went wrong. Reporting is skipped when the option string starts with ':'
(after an optional '+' or '-') or when report=False.

There is no optind/optarg/optopt/opterr: every call is independent. Use
optscan.parse() directly to get operands and structured diagnostics.
"""
from collections.abc import MutableMapping

from .bindings import Environment, bind
from .faults import report as _report
from .parsing import ParseRequest, _tokenize, parse
from .specs import compile_options
from .utils import *


def _run(optstring, longopts, results, arguments, /, *, long_only, environment, report, **options):
    if not isinstance(optstring, str):
        raise TypeError("getopt first argument must be an option string")
    if not isinstance(results, MutableMapping):
        raise TypeError("getopt results must be a mutable mapping")

    compiled = compile_options(optstring, longopts)
    request = ParseRequest(
        compiled.specs,
        _tokenize(arguments),
        long_only,
        coalesce(options.pop("posix", Unset), compiled.posix),
    )
    result = bind(parse(request), results, environment=coalesce(environment, Environment()))

    if report and not compiled.silent:
        _report(result, **options)
    return result.ok


def std(optstring, results, arguments=Unset, /, *, environment=Unset, report=True, **options):
    """
    getopt(): short options only.

    Parameters
    - optstring: getopt option string ("ab:c::", optional '+'/'-'/':' prefix).
    - results: MutableMapping filled with key → value (True for options without value).
    - arguments: Unset (sys.argv[1:]) | str (shlex-split) | Iterable[str].
    - environment: Environment for flag bindings.
    - report: print diagnostics on stderr.
    - **options: posix, and render options for the report (prog, colorful, fancy).

    Returns
    - bool: True when no diagnostic was produced.
    """
    return _run(optstring, Unset, results, arguments, long_only=False, environment=environment, report=report, **options)


def long(optstring, longopts, results, arguments=Unset, /, *, environment=Unset, report=True, **options):
    """
    getopt_long(): short options plus "--name" long options.

    'longopts' is an iterable of OptionSpec or a mapping name → ArgPolicy | mapping
    with the keys 'has_arg', 'short', 'flag' (+ 'value') and 'callback'.
    Other parameters and the return value are those of std().
    """
    return _run(optstring, longopts, results, arguments, long_only=False, environment=environment, report=report, **options)


def long_only(optstring, longopts, results, arguments=Unset, /, *, environment=Unset, report=True, **options):
    """
    getopt_long_only(): like long(), but "-name" is tried as a long option first.
    """
    return _run(optstring, longopts, results, arguments, long_only=True, environment=environment, report=report, **options)


__all__ = (
    "std",
    "long",
    "long_only",
)
