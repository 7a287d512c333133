"""
Optscan binding layer: route parsed matches into collectors, flag slots and callbacks.

Parsing and binding are separate steps. parse() only says which option matched
and which value it consumed; bind() decides where each match goes:

- no binding          → the collector mapping: collector[spec.key] = value (True when none)
- FlagBinding(name)   → the slot 'name', found through an explicit Environment
- Callback(handle)    → handle() / handle(value), after the scan, one match at a time

Scope search
- Environment(*scopes, globals=...) is the only place where names are resolved.
  Scopes are given innermost first; the first scope that defines a name owns
  it, and names defined nowhere go to the process-wide namespace ('slots' by
  default). Nothing here walks interpreter frames: callers pass their scopes
  explicitly (e.g. Environment(locals_dict, module_dict)).

Handler failures
- An exception raised by a handler does not abort the pass: it is recorded as
  a HANDLER_FAILURE diagnostic on the returned result and binding goes on.
"""
import copy
from collections.abc import MutableMapping

from .faults import Diagnostic, DiagnosticKind
from .parsing import ParseResult
from .specs import ArgPolicy, Callback, FlagBinding
from .utils import *

# Process-wide fallback namespace for flag bindings (see Environment).
slots = {}


class Environment:
    """
    An explicit scope chain for flag bindings.

    Parameters
    - *scopes: MutableMapping[str, Any], innermost first.
    - globals: MutableMapping[str, Any] used when no scope defines a name
      (defaults to the module-level 'slots' dict).

    Lookup order (resolve)
    1. each scope in order, innermost first; the first one containing the name wins;
    2. the globals namespace.
    """

    def __init__(self, *scopes, globals=Unset):
        for scope in (*scopes, coalesce(globals, slots)):
            if not isinstance(scope, MutableMapping):
                raise TypeError("Environment() scopes must be mutable mappings")
        self._scopes = scopes
        self._globals = coalesce(globals, slots)

    @property
    def scopes(self):
        return self._scopes

    @property
    def globals(self):
        return self._globals

    def resolve(self, name, /):
        """
        Return the mapping that owns 'name': the innermost scope defining it,
        else the globals namespace.
        """
        if not isinstance(name, str):
            raise TypeError("resolve() argument must be a string")
        for scope in self._scopes:
            if name in scope:
                return scope
        return self._globals

    def lookup(self, name, default=None, /):
        return self.resolve(name).get(name, default)

    def assign(self, name, value, /):
        self.resolve(name)[name] = value

    def __repr__(self):
        return f"environment(scopes={len(self._scopes)}, globals={'slots' if self._globals is slots else 'custom'})"


def bind(result, collector=Unset, /, *, environment=Unset):
    """
    Route every match of a parse result to its target.

    Parameters
    - result: ParseResult from parse().
    - collector: MutableMapping receiving unbound options (a fresh dict when Unset).
    - environment: Environment resolving FlagBinding names (Environment() when Unset,
      i.e. straight into 'slots').

    Behavior
    - unbound option: collector[spec.key] = value, or True for options without value.
    - FlagBinding: environment.assign(name, value), or the binding's constant.
    - Callback: handle() for NO_ARGUMENT options, handle(value) otherwise.
      Exceptions are recorded as HANDLER_FAILURE diagnostics (token = spec.key).

    Returns
    - ParseResult with the handler diagnostics appended (the input is unchanged).
    """
    if not isinstance(result, ParseResult):
        raise TypeError("bind() first argument must be a parse-result")
    collector = coalesce(collector, {})
    if not isinstance(collector, MutableMapping):
        raise TypeError("bind() second argument must be a mutable mapping")
    environment = coalesce(environment, Environment())
    if not isinstance(environment, Environment):
        raise TypeError("bind() 'environment' must be an environment")

    failures = []
    for spec, value in result.named():
        match spec.binding:
            case None:
                collector[spec.key] = value if value is not None else True
            case FlagBinding():
                environment.assign(spec.binding.name, value if value is not None else spec.binding.constant)
            case Callback():
                try:
                    if spec.policy is ArgPolicy.NO_ARGUMENT:
                        spec.binding.handle()
                    else:
                        spec.binding.handle(value)
                except Exception as exception:
                    failures.append(Diagnostic(DiagnosticKind.HANDLER_FAILURE, spec.key, error=exception))

    if not failures:
        return result
    return copy.replace(result, diagnostics=(*result.diagnostics, *failures))


__all__ = (
    "slots",
    "Environment",
    "bind",
)
