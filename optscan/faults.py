"""
Optscan faults (diagnostics, errors and warnings) and rendering.

Scope
- DiagnosticKind / Diagnostic: the per-token problems a parse accumulates
  (unknown option, missing argument, ambiguous long option, failing handler).
  A diagnostic is plain data; fault() turns it into a renderable exception.
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
- OptionFault / OptionWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, getopt-like way.
- ParseExit: exception group bundling every fault of one parse.
- trigger(): the one way to surface a fault, a warning or a group (shell, deferred, fancy, colorful).
- report(): print every diagnostic of a parse on stderr without exiting (libc's opterr).

Integration
- The parser never raises for per-token problems; it records Diagnostic values.
- Callers decide: inspect ParseResult.diagnostics, call ParseResult.check(), or report().
- Outside shell mode errors are raised; in shell mode rich prints them on stderr.

Host hooks (looked up on __main__)
- __prog__: program name shown in headers.
- __styles__: palette overrides.
- __codes__: FaultCode -> label remapping.
"""
import copy
import os.path
import sys
import warnings
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import NamedTuple

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, ordinal

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - options (1111x)
      • UNKNOWN_OPTION, AMBIGUOUS_OPTION, MISSING_ARGUMENT, UNEXPECTED_ARGUMENT
    - delegated errors (1113x)
      • HANDLER_FAILURE
    - warnings (121xx)
      • DUPLICATE_OPTION

    normalize() lets the host remap codes to its own labels through __main__.__codes__.
    """
    # --- option errors (111xx) ---
    UNKNOWN_OPTION              = 11112
    AMBIGUOUS_OPTION            = 11113
    MISSING_ARGUMENT            = 11117
    UNEXPECTED_ARGUMENT         = 11118

    # --- delegated errors (111xx) ---
    HANDLER_FAILURE             = 11131

    # --- warnings (12xxx) ---
    DUPLICATE_OPTION            = 12115

    def normalize(self):
        """
        return a host-normalized string for this code.

        when __main__ has no __codes__ mapping, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class DiagnosticKind(Enum):
    UNKNOWN_OPTION = "unknown-option"
    MISSING_ARGUMENT = "missing-argument"
    AMBIGUOUS_LONG_OPTION = "ambiguous-long-option"
    HANDLER_FAILURE = "handler-failure"


class Diagnostic(NamedTuple):
    """
    One per-token problem found while parsing or binding.

    Fields
    - kind: DiagnosticKind
    - token: the offending token. A short option reports its character ("z"),
      a long option reports its name as written ("--foo"), a long option that
      does not take a value reports the literal token ("--verbose=1"), and a
      failing handler reports the option key.
    - position: 0-based index of the argument holding the token (None if unknown).
    - candidates: declared long names the token could refer to (ambiguity), or
      near misses for an unknown long option.
    - error: the exception raised by a handler (HANDLER_FAILURE only).
    """
    kind: DiagnosticKind
    token: str
    position: int | None = None
    candidates: tuple = ()
    error: BaseException | None = None

    def fault(self):
        """
        Build the exception describing this diagnostic (not raised).
        """
        where = "" if self.position is None else " at %s position" % ordinal(self.position + 1)

        match self.kind:
            case DiagnosticKind.UNKNOWN_OPTION if len(self.token) == 1:
                return UnknownOptionError(
                    "invalid option -- %r%s" % (self.token, where),
                    title="unknown option",
                    code=FaultCode.UNKNOWN_OPTION,
                    hint="remove '-%s' or declare it as a short option" % self.token,
                    diagnostic=self,
                )
            # "--=x" has no name: it falls through to "unrecognized option"
            case DiagnosticKind.UNKNOWN_OPTION if "=" in self.token and self.token.partition("=")[0].strip("-"):
                name = self.token.partition("=")[0]
                return UnknownOptionError(
                    "option %r doesn't allow an argument%s" % (name, where),
                    title="option takes no value",
                    code=FaultCode.UNEXPECTED_ARGUMENT,
                    hint="remove everything from '=' (for example: %s)" % name,
                    diagnostic=self,
                )
            case DiagnosticKind.UNKNOWN_OPTION:
                dashes = self.token[:len(self.token) - len(self.token.lstrip("-"))]
                try:
                    hint = "did you mean %r?" % (dashes + self.candidates[0])
                except IndexError:
                    hint = "remove %r or declare it as a long option" % self.token
                return UnknownOptionError(
                    "unrecognized option %r%s" % (self.token, where),
                    title="unknown option",
                    code=FaultCode.UNKNOWN_OPTION,
                    hint=hint,
                    diagnostic=self,
                )
            case DiagnosticKind.MISSING_ARGUMENT if len(self.token) == 1:
                return MissingArgumentError(
                    "option requires an argument -- %r%s" % (self.token, where),
                    title="missing argument",
                    code=FaultCode.MISSING_ARGUMENT,
                    hint="pass a value right after it (for example: -%sVALUE or -%s VALUE)" % (self.token, self.token),
                    diagnostic=self,
                )
            case DiagnosticKind.MISSING_ARGUMENT:
                return MissingArgumentError(
                    "option %r requires an argument%s" % (self.token, where),
                    title="missing argument",
                    code=FaultCode.MISSING_ARGUMENT,
                    hint="pass a value (for example: %s=VALUE or %s VALUE)" % (self.token, self.token),
                    diagnostic=self,
                )
            case DiagnosticKind.AMBIGUOUS_LONG_OPTION:
                dashes = self.token[:len(self.token) - len(self.token.lstrip("-"))]
                possibilities = " ".join(repr(dashes + name) for name in self.candidates)
                return AmbiguousOptionError(
                    "option %r is ambiguous; possibilities: %s%s" % (self.token, possibilities, where),
                    title="ambiguous option",
                    code=FaultCode.AMBIGUOUS_OPTION,
                    hint="spell out more of the name to pick exactly one option",
                    diagnostic=self,
                )
            case DiagnosticKind.HANDLER_FAILURE:
                return HandlerFailureError(
                    "handler for option %r raised %s: %s" % (self.token, type(self.error).__name__, self.error),
                    title="handler failed",
                    code=FaultCode.HANDLER_FAILURE,
                    hint="check the value given to %r" % self.token,
                    diagnostic=self,
                )
        raise TypeError("Diagnostic.fault() got an unknown kind %r" % (self.kind,))


# Default palette; __main__.__styles__ overrides entries one by one.
PALETTE = {
    "prog-name": "bold #E6E6F0",
    "error-code": "bold #00E5FF",
    "error-title": "bold #FF4DA6",
    "error-message": "#C8C8D0",
    "warning-code": "bold #FFB400",
    "warning-title": "bold #FFC2E0",
    "warning-message": "#D6D6DE",
    "hint-arrow": "dim #9CE19C",
    "hint": "italic #9CE19C",
}


def _prog(options):
    prog = options.get("prog") or os.path.basename(sys.argv[0]) or "optscan"
    return getattr(__import__("__main__"), "__prog__", prog)


class _Rendered:
    """
    Shared machinery of faults, warnings and fault groups.

    Instances carry a payload (a message, or the grouped faults) and a
    read-only bag of options. Rendering produces

        [ prog — 11112 | Unknown Option ]
        invalid option -- 'z' at first position
         → remove '-z' or declare it as a short option

    or the same inside a panel when 'fancy' is set. 'colorful' (default True)
    toggles the palette.
    """
    __severity__ = "error"

    def _payload(self):
        return self.message

    def _piece(self, fragment, style=""):
        if not self.options.get("colorful", True):
            return Text(str(fragment or ""))
        palette = PALETTE | getattr(__import__("__main__"), "__styles__", {})
        return Text(str(fragment or ""), palette.get(style, ""))

    def _header(self, *fields):
        return Text.assemble(
            "[ ",
            self._piece(_prog(self.options), "prog-name"),
            " — ",
            Text(" | ").join(self._piece(fragment, style) for fragment, style in fields),
            " ]",
        )

    def __rich__(self):
        severity = self.__severity__
        header = self._header(
            (self.options["code"].normalize(), severity + "-code"),
            (self.options["title"].title(), severity + "-title"),
        )
        body = Group(
            self._piece(self.message, severity + "-message"),
            Text.assemble(self._piece(" → ", "hint-arrow"), self._piece(self.options.get("hint"), "hint")),
        )
        if not self.options.get("fancy", False):
            return Group(header, body)

        width = None
        if "ratio" in self.options:
            width = int((console.width - 4) * self.options["ratio"])
        return Panel(body, title=header, title_align="left", width=width)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if not self.options.get("deferred", False):
            sys.exit(1)

    def __replace__(self, /, **overrides):
        return type(self)(self._payload(), **self.options | overrides)


class OptionFault(_Rendered, Exception):
    """
    Base of every renderable error: message plus options (title, code, hint,
    diagnostic, and render options such as shell/fancy/colorful/deferred).
    """

    def __init__(self, message=Unset, /, **options):
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def diagnostic(self):
        return self.options.get("diagnostic")


class UnknownOptionError(OptionFault): ...
class MissingArgumentError(OptionFault): ...
class AmbiguousOptionError(OptionFault): ...
class HandlerFailureError(OptionFault): ...


class OptionWarning(_Rendered, Warning):
    """
    Base of every renderable warning. Outside shell mode it goes through the
    warnings module; in shell mode it is printed on stderr and never exits.
    """
    __severity__ = "warning"

    def __init__(self, message=Unset, /, **options):
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __trigger__(self):
        if self.options.get("shell", False):
            console.print(self)
        else:
            warnings.warn(self, stacklevel=3)


class DuplicateOptionWarning(OptionWarning): ...


class ParseExit(_Rendered, ExceptionGroup[OptionFault]):
    """
    Every fault of one parse, raised (or printed) at once.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad options", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("bad options", tuple(exceptions))
        self.options = MappingProxyType(options)

    def _payload(self):
        return self.exceptions

    def __rich__(self):
        header = self._header((self.message.title(), "error-title"))
        # nested faults inherit the look of the group, not its shell behavior
        look = {key: value for key, value in self.options.items() if key in ("prog", "fancy", "colorful")}
        faults = [copy.replace(exception, ratio=2 / 3, **look) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*faults), title=header, title_align="left")
        return Group(header, *faults)


def trigger(fault, /, **options):
    """
    Surface a fault, a warning or a ParseExit with 'options' merged into it.

    Outside shell mode errors are raised and warnings go through the warnings
    module. In shell mode both are printed on stderr, and errors then exit
    with status 1 unless 'deferred' is set.

    Raises
    - TypeError: when 'fault' is none of the renderable types of this module.
    """
    if not isinstance(fault, _Rendered):
        raise TypeError("trigger() argument must be an option fault, warning or parse-exit")
    copy.replace(fault, **options).__trigger__()


def report(diagnostics, /, **options):
    """
    Print every diagnostic on stderr, one fault each, without exiting (the
    libc 'opterr' behavior). Output is colorless unless asked otherwise.

    Accepts an iterable of Diagnostic or anything exposing 'diagnostics' (a
    ParseResult). Returns the number of reported diagnostics.
    """
    diagnostics = getattr(diagnostics, "diagnostics", diagnostics)
    count = 0
    for diagnostic in diagnostics:
        if not isinstance(diagnostic, Diagnostic):
            raise TypeError("report() argument must be an iterable of diagnostics")
        trigger(diagnostic.fault(), **{"colorful": False} | options | {"shell": True, "deferred": True})
        count += 1
    return count


__all__ = (
    "FaultCode",
    "DiagnosticKind",
    "Diagnostic",
    "OptionFault",
    "UnknownOptionError",
    "MissingArgumentError",
    "AmbiguousOptionError",
    "HandlerFailureError",
    "OptionWarning",
    "DuplicateOptionWarning",
    "ParseExit",
    "trigger",
    "report",
)
