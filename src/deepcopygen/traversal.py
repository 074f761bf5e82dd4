"""Walking a type graph and emitting the statements that deep-copy it.

Every walk step receives a source expression, a sink expression and the
selector path of the value relative to the receiver. The sink always holds a
shallow copy of the source before a step runs, so a step only has to replace
the parts that would otherwise be shared.
"""

from __future__ import annotations

import logging

from deepcopygen.render import CodeWriter, TypeRenderer
from deepcopygen.reuse import CopyMethod, emit_copy_call, find_copy_method
from deepcopygen.skips import SkipSet, join_path
from deepcopygen.types import (
    ArrayType,
    ChanType,
    GoType,
    InstanceType,
    InterfaceType,
    MapType,
    NamedType,
    PointerType,
    SliceType,
    StructType,
)

logger = logging.getLogger(__name__)


def loop_var(name: str, depth: int) -> str:
    """Name a loop variable so that nested loops never shadow each other."""
    return name if depth == 0 else f"{name}{depth}"


class CopyTraversal:
    """Emits deep-copy statements for one generated method.

    ``generated`` maps each type a method is generated for in this run to
    whether that method uses a pointer receiver. A named type reached again
    while it is still being expanded is copied through its copy method: a
    declared one if it has it, else the generated one, else it stays shallow.
    """

    def __init__(
        self,
        renderer: TypeRenderer,
        skips: SkipSet,
        *,
        method_name: str = "DeepCopy",
        generated: dict[NamedType, bool] | None = None,
    ) -> None:
        self.renderer = renderer
        self.skips = skips
        self.method_name = method_name
        self.generated = generated or {}
        self._expanding: list[NamedType] = []

    def walk(
        self,
        source: str,
        sink: str,
        path: str,
        typ: GoType,
        out: CodeWriter,
        *,
        initial: bool = False,
        depth: int = 0,
    ) -> None:
        # Ranging over an array never spells its type
        if not isinstance(typ, ArrayType) and not self.renderer.nameable(typ):
            logger.debug("%s: type cannot be named here; copied shallow", path or source)
            return
        self._dispatch(source, sink, path, typ, out, initial=initial, depth=depth)

    def _dispatch(
        self,
        source: str,
        sink: str,
        path: str,
        typ: GoType,
        out: CodeWriter,
        *,
        initial: bool,
        depth: int,
    ) -> None:
        if isinstance(typ, NamedType):
            self._walk_named(source, sink, path, typ, out, initial=initial, depth=depth)
        elif isinstance(typ, StructType):
            self._walk_struct(source, sink, path, typ, out, depth)
        elif isinstance(typ, SliceType):
            self._walk_slice(source, sink, path, typ, out, depth)
        elif isinstance(typ, ArrayType):
            self._walk_array(source, sink, path, typ, out, depth)
        elif isinstance(typ, PointerType):
            self._walk_pointer(source, sink, path, typ, out, initial=initial, depth=depth)
        elif isinstance(typ, ChanType):
            self._walk_chan(source, sink, typ, out)
        elif isinstance(typ, MapType):
            self._walk_map(source, sink, path, typ, out, depth)
        elif isinstance(typ, InstanceType):
            logger.debug("%s: generic instance %s copied shallow", path or source, typ)
        # Basic types, interfaces, functions: the shallow copy is enough

    def _copy_method(self, named: NamedType, *, through_pointer: bool = False) -> CopyMethod | None:
        method = find_copy_method(named, self.method_name)
        if method is not None:
            if through_pointer and isinstance(named.underlying, InterfaceType):
                return None
            return method
        if named in self._expanding and named in self.generated:
            return CopyMethod(name=self.method_name, returns_pointer=self.generated[named])
        return None

    def _walk_named(
        self,
        source: str,
        sink: str,
        path: str,
        named: NamedType,
        out: CodeWriter,
        *,
        initial: bool,
        depth: int,
    ) -> None:
        underlying = named.underlying
        if not initial:
            method = self._copy_method(named)
            if method is not None:
                emit_copy_call(
                    method,
                    source,
                    sink,
                    out,
                    sink_is_pointer=False,
                    nil_guard=isinstance(underlying, InterfaceType),
                )
                return
            if named in self._expanding:
                logger.warning(
                    "%s: %s refers back to itself and has no %s method; copied shallow",
                    path or source,
                    named.qualified_name,
                    self.method_name,
                )
                return
        if named.is_generic or underlying is None:
            return

        # Spelled through its name; only the fields are checked from here
        self._expanding.append(named)
        try:
            self._dispatch(source, sink, path, underlying, out, initial=initial, depth=depth)
        finally:
            self._expanding.pop()

    def _walk_struct(
        self, source: str, sink: str, path: str, struct: StructType, out: CodeWriter, depth: int
    ) -> None:
        foreign = not self.renderer.is_local(struct.package)
        for f in struct.fields:
            if f.name == "_" or (foreign and not f.exported):
                continue
            field_path = join_path(path, f.name)
            if field_path in self.skips:
                continue
            self.walk(
                f"{source}.{f.name}",
                f"{sink}.{f.name}",
                field_path,
                f.type,
                out,
                depth=depth,
            )

    def _walk_slice(
        self, source: str, sink: str, path: str, slice_: SliceType, out: CodeWriter, depth: int
    ) -> None:
        elem = self.renderer.render(slice_.elem)
        elem_path = join_path(path, "[i]")
        index = loop_var("i", depth)
        with out.block(f"if {source} != nil"):
            out.line(f"{sink} = make([]{elem}, len({source}))")
            body = out.nested()
            if elem_path not in self.skips:
                self.walk(
                    f"{source}[{index}]",
                    f"{sink}[{index}]",
                    elem_path,
                    slice_.elem,
                    body,
                    depth=depth + 1,
                )
            if body:
                with out.block(f"for {index} := range {source}"):
                    out.extend(body)
            else:
                out.line(f"copy({sink}, {source})")

    def _walk_array(
        self, source: str, sink: str, path: str, array: ArrayType, out: CodeWriter, depth: int
    ) -> None:
        elem_path = join_path(path, "[i]")
        if elem_path in self.skips:
            return
        index = loop_var("i", depth)
        body = out.nested()
        self.walk(
            f"{source}[{index}]",
            f"{sink}[{index}]",
            elem_path,
            array.elem,
            body,
            depth=depth + 1,
        )
        if body:
            with out.block(f"for {index} := range {source}"):
                out.extend(body)

    def _walk_pointer(
        self,
        source: str,
        sink: str,
        path: str,
        pointer: PointerType,
        out: CodeWriter,
        *,
        initial: bool,
        depth: int,
    ) -> None:
        elem = pointer.elem
        method = None
        if not initial and isinstance(elem, NamedType):
            # Methods of an interface are not in the method set of a pointer to it
            method = self._copy_method(elem, through_pointer=True)
            if method is None and elem in self._expanding:
                logger.warning(
                    "%s: %s refers back to itself and has no %s method; pointer shared",
                    path or source,
                    elem.qualified_name,
                    self.method_name,
                )
                return

        with out.block(f"if {source} != nil"):
            if method is not None:
                emit_copy_call(method, source, sink, out, sink_is_pointer=True)
                return
            out.line(f"{sink} = new({self.renderer.render(elem)})")
            out.line(f"*{sink} = *{source}")
            if not isinstance(elem.underlying, StructType):
                source, sink = f"(*{source})", f"(*{sink})"
            self.walk(source, sink, path, elem, out, depth=depth)

    def _walk_chan(self, source: str, sink: str, chan: ChanType, out: CodeWriter) -> None:
        with out.block(f"if {source} != nil"):
            out.line(f"{sink} = make({self.renderer.render(chan)}, cap({source}))")

    def _walk_map(
        self, source: str, sink: str, path: str, map_: MapType, out: CodeWriter, depth: int
    ) -> None:
        map_text = self.renderer.render(map_)
        content_path = join_path(path, "[k]")
        key, value = loop_var("k", depth), loop_var("v", depth)
        with out.block(f"if {source} != nil"):
            out.line(f"{sink} = make({map_text}, len({source}))")
            key_sink, value_sink = key, value
            key_body = out.nested().nested()
            value_body = out.nested().nested()
            if content_path not in self.skips:
                key_sink, value_sink = loop_var("cpk", depth), loop_var("cpv", depth)
                self.walk(key, key_sink, content_path, map_.key, key_body, depth=depth + 1)
                self.walk(value, value_sink, content_path, map_.elem, value_body, depth=depth + 1)
                if not key_body:
                    key_sink = key
                if not value_body:
                    value_sink = value
            with out.block(f"for {key}, {value} := range {source}"):
                if key_body:
                    out.line(f"{key_sink} := {key}")
                    out.extend(key_body)
                if value_body:
                    out.line(f"{value_sink} := {value}")
                    out.extend(value_body)
                out.line(f"{sink}[{key_sink}] = {value_sink}")
