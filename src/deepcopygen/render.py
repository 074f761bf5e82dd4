"""Rendering type descriptions as Go type syntax, and emitting code lines."""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager

from deepcopygen.imports import ImportTable
from deepcopygen.types import (
    ArrayType,
    BasicType,
    ChanDir,
    ChanType,
    GoType,
    InstanceType,
    InterfaceType,
    MapType,
    NamedType,
    Package,
    PointerType,
    SignatureType,
    SliceType,
    StructType,
    TypeParamType,
    is_exported,
)

_IDENTIFIER = re.compile(r"[^\W\d]\w*")

# A name followed by a selector, as in ``unsafe.Sizeof``
_SELECTOR = re.compile(r"\b[^\W\d]\w*\s*\.")


class TypeRenderer:
    """Writes types as they must be spelled inside the target package.

    Foreign names are qualified through the import table, which records an
    import each time one is written.
    """

    def __init__(self, package: Package, imports: ImportTable) -> None:
        self.package = package
        self.imports = imports

    def is_local(self, package: Package | None) -> bool:
        return package is None or package is self.package or package.path == self.package.path

    def render(self, typ: GoType) -> str:
        if isinstance(typ, NamedType):
            if self.is_local(typ.package):
                return typ.name
            alias = self.imports.qualify(typ.package)  # type: ignore[arg-type]
            return f"{alias}.{typ.name}" if alias else typ.name
        if isinstance(typ, BasicType):
            return typ.name
        if isinstance(typ, PointerType):
            return "*" + self.render(typ.elem)
        if isinstance(typ, SliceType):
            return "[]" + self.render(typ.elem)
        if isinstance(typ, ArrayType):
            length = typ.length
            foreign = typ.length_package is not None and not self.is_local(typ.length_package)
            if foreign and _IDENTIFIER.fullmatch(length):
                alias = self.imports.qualify(typ.length_package)  # type: ignore[arg-type]
                if alias:
                    length = f"{alias}.{length}"
            return f"[{length}]{self.render(typ.elem)}"
        if isinstance(typ, MapType):
            return f"map[{self.render(typ.key)}]{self.render(typ.elem)}"
        if isinstance(typ, ChanType):
            elem = self.render(typ.elem)
            if (
                typ.direction is ChanDir.BOTH
                and isinstance(typ.elem, ChanType)
                and typ.elem.direction is ChanDir.RECV
            ):
                elem = f"({elem})"
            return f"{typ.direction.value} {elem}"
        if isinstance(typ, StructType):
            if not typ.fields:
                return "struct{}"
            parts = []
            for f in typ.fields:
                text = self.render(f.type) if f.embedded else f"{f.name} {self.render(f.type)}"
                if f.tag:
                    text = f"{text} {f.tag}"
                parts.append(text)
            return "struct { " + "; ".join(parts) + " }"
        if isinstance(typ, InterfaceType):
            parts = [f"{m.name}{self._signature(m.signature)}" for m in typ.methods]
            parts.extend(self.render(e) for e in typ.embeds)
            if not parts:
                return "interface{}"
            return "interface { " + "; ".join(parts) + " }"
        if isinstance(typ, SignatureType):
            return "func" + self._signature(typ)
        if isinstance(typ, TypeParamType):
            return typ.name
        if isinstance(typ, InstanceType):
            args = ", ".join(self.render(a) for a in typ.args)
            return f"{self.render(typ.generic)}[{args}]"
        raise TypeError(f"cannot render {typ!r}")

    def _signature(self, sig: SignatureType) -> str:
        params = [self.render(p) for p in sig.params]
        if sig.variadic and params:
            params[-1] = "..." + self.render(sig.params[-1])
        text = f"({', '.join(params)})"
        if len(sig.results) == 1:
            text += " " + self.render(sig.results[0])
        elif sig.results:
            text += f" ({', '.join(self.render(r) for r in sig.results)})"
        return text

    def nameable(self, typ: GoType) -> bool:
        """Report whether ``typ`` can be spelled in the target package.

        Unexported names of other packages cannot, nor can anonymous structs
        of other packages that have unexported fields. Array lengths written
        as expressions in another package cannot be spelled either.
        """
        if isinstance(typ, NamedType):
            return self.is_local(typ.package) or typ.exported
        if isinstance(typ, (BasicType, TypeParamType)):
            return True
        if isinstance(typ, ArrayType):
            return self._length_nameable(typ) and self.nameable(typ.elem)
        if isinstance(typ, (PointerType, SliceType, ChanType)):
            return self.nameable(typ.elem)
        if isinstance(typ, MapType):
            return self.nameable(typ.key) and self.nameable(typ.elem)
        if isinstance(typ, StructType):
            foreign = not self.is_local(typ.package)
            return all(
                not (foreign and not f.exported) and self.nameable(f.type)
                for f in typ.fields
            )
        if isinstance(typ, InterfaceType):
            return all(self.nameable(m.signature) for m in typ.methods) and all(
                self.nameable(e) for e in typ.embeds
            )
        if isinstance(typ, SignatureType):
            return all(self.nameable(t) for t in (*typ.params, *typ.results))
        if isinstance(typ, InstanceType):
            return self.nameable(typ.generic) and all(self.nameable(a) for a in typ.args)
        return False

    def _length_nameable(self, array: ArrayType) -> bool:
        length = array.length
        if array.length_package is None:
            return True
        if self.is_local(array.length_package):
            # Selectors would need imports of their own
            return not _SELECTOR.search(length)
        if _IDENTIFIER.fullmatch(length):
            return is_exported(length)
        return not re.search(r"\b[^\W\d]", length)


class CodeWriter:
    """Collects tab-indented lines of Go code."""

    def __init__(self, indent: int = 0) -> None:
        self.indent = indent
        self.lines: list[str] = []

    def __bool__(self) -> bool:
        return bool(self.lines)

    def line(self, text: str) -> None:
        self.lines.append("\t" * self.indent + text)

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        """Write ``header {``, indent the body, then close the brace."""
        self.line(header + " {")
        self.indent += 1
        try:
            yield
        finally:
            self.indent -= 1
            self.line("}")

    def nested(self) -> CodeWriter:
        """Return an empty writer one level deeper than this one."""
        return CodeWriter(self.indent + 1)

    def extend(self, other: CodeWriter) -> None:
        self.lines.extend(other.lines)

    def getvalue(self) -> str:
        return "".join(line + "\n" for line in self.lines)
