"""Detecting existing copy methods and emitting calls to them."""

from __future__ import annotations

from dataclasses import dataclass

from deepcopygen.render import CodeWriter
from deepcopygen.types import NamedType, identical, strip_pointer


@dataclass(frozen=True)
class CopyMethod:
    """A callable copy method: its name and whether it returns a pointer."""

    name: str
    returns_pointer: bool


def find_copy_method(named: NamedType, method_name: str) -> CopyMethod | None:
    """Find a usable ``method_name`` in the method set of ``named``.

    The method must take no arguments and return exactly one value whose
    type, ignoring one level of pointer, is ``named`` itself.
    """
    for method in named.method_set():
        if method.name != method_name:
            continue
        sig = method.signature
        if sig.params or len(sig.results) != 1:
            continue
        result, is_pointer = strip_pointer(sig.results[0])
        receiver, _ = strip_pointer(method.receiver) if method.receiver else (named, False)
        if identical(result, receiver):
            return CopyMethod(name=method.name, returns_pointer=is_pointer)
    return None


def emit_copy_call(
    method: CopyMethod,
    source: str,
    sink: str,
    out: CodeWriter,
    *,
    sink_is_pointer: bool,
    nil_guard: bool = False,
) -> None:
    """Emit an assignment of ``source.Method()`` to ``sink``.

    The result is adapted to the sink: a value result is addressed through a
    temporary for a pointer sink, and a pointer result is dereferenced for a
    value sink.
    """
    call = f"{source}.{method.name}()"
    if nil_guard:
        with out.block(f"if {source} != nil"):
            emit_copy_call(method, source, sink, out, sink_is_pointer=sink_is_pointer)
        return
    if sink_is_pointer and not method.returns_pointer:
        out.line(f"retV := {call}")
        out.line(f"{sink} = &retV")
    elif not sink_is_pointer and method.returns_pointer:
        out.line(f"{sink} = *{call}")
    else:
        out.line(f"{sink} = {call}")
