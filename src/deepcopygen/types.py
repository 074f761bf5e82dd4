"""Type descriptions for a loaded Go package."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Kind(Enum):
    """Kinds of type description."""

    NAMED = "named"
    STRUCT = "struct"
    SLICE = "slice"
    ARRAY = "array"
    POINTER = "pointer"
    MAP = "map"
    CHANNEL = "channel"
    INTERFACE = "interface"
    BASIC = "basic"
    SIGNATURE = "signature"
    TYPE_PARAM = "type_param"
    INSTANCE = "instance"


class ChanDir(Enum):
    """Channel direction, valued by its Go spelling."""

    BOTH = "chan"
    SEND = "chan<-"
    RECV = "<-chan"


BASIC_TYPE_NAMES: frozenset[str] = frozenset({
    "bool",
    "string",
    "int",
    "int8",
    "int16",
    "int32",
    "int64",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "uintptr",
    "float32",
    "float64",
    "complex64",
    "complex128",
})

# Predeclared aliases
BASIC_ALIASES: dict[str, str] = {"byte": "uint8", "rune": "int32"}


def is_exported(name: str) -> bool:
    """Return whether a Go identifier is exported."""
    return name[:1].isupper()


@dataclass(eq=False)
class Package:
    """A Go package.

    A package with no directory is opaque: it was imported but could not be
    located on disk, so its named types are created on first reference and
    carry no definition.
    """

    name: str
    path: str
    directory: Path | None = None
    types: dict[str, NamedType] = field(default_factory=dict)
    aliases: dict[str, GoType] = field(default_factory=dict)
    imports: dict[str, Package] = field(default_factory=dict)

    @property
    def opaque(self) -> bool:
        return self.directory is None

    def lookup(self, name: str) -> GoType | None:
        """Look up a top-level type or type alias by name."""
        found = self.types.get(name)
        if found is not None:
            return found
        alias = self.aliases.get(name)
        if alias is not None:
            return alias
        if self.opaque:
            named = NamedType(name=name, package=self)
            self.types[name] = named
            return named
        return None

    def __repr__(self) -> str:
        return f"Package({self.path!r})"


@dataclass(eq=False)
class GoType:
    """Base class for all type descriptions."""

    @property
    def kind(self) -> Kind:
        raise NotImplementedError

    @property
    def underlying(self) -> GoType | None:
        """Return the underlying type; None for an opaque named type."""
        return self


@dataclass(eq=False)
class BasicType(GoType):
    """A predeclared boolean, numeric or string type."""

    name: str

    @property
    def kind(self) -> Kind:
        return Kind.BASIC


@dataclass(eq=False, repr=False)
class NamedType(GoType):
    """A defined type: ``type Name <definition>``.

    ``definition`` is the type expression on the right-hand side, which may
    itself be another named type. None means the definition is unknown.
    """

    name: str
    package: Package | None = None
    definition: GoType | None = None
    methods: list[Method] = field(default_factory=list)
    type_params: list[str] = field(default_factory=list)
    position: int = 0

    @property
    def kind(self) -> Kind:
        return Kind.NAMED

    @property
    def underlying(self) -> GoType | None:
        seen: set[int] = set()
        current: GoType | None = self
        while isinstance(current, NamedType):
            if id(current) in seen:
                return None
            seen.add(id(current))
            current = current.definition
        return current

    @property
    def exported(self) -> bool:
        return is_exported(self.name)

    @property
    def is_generic(self) -> bool:
        return bool(self.type_params)

    @property
    def qualified_name(self) -> str:
        if self.package is None:
            return self.name
        return f"{self.package.name}.{self.name}"

    def method_set(self) -> list[Method]:
        """Return declared methods, plus the methods of an interface definition."""
        methods = list(self.methods)
        underlying = self.underlying
        if isinstance(underlying, InterfaceType):
            for method in underlying.all_methods():
                methods.append(Method(
                    name=method.name,
                    signature=method.signature,
                    pointer_receiver=False,
                    receiver=self,
                ))
        return methods

    def __repr__(self) -> str:
        return f"NamedType({self.qualified_name})"


@dataclass(eq=False)
class Field:
    """A struct field, in declaration order."""

    name: str
    type: GoType
    embedded: bool = False
    tag: str | None = None
    position: int = 0

    @property
    def exported(self) -> bool:
        return is_exported(self.name)


@dataclass(eq=False)
class StructType(GoType):
    """A struct type literal, remembering the package that declared it."""

    fields: list[Field] = field(default_factory=list)
    package: Package | None = None

    @property
    def kind(self) -> Kind:
        return Kind.STRUCT


@dataclass(eq=False)
class SliceType(GoType):
    elem: GoType

    @property
    def kind(self) -> Kind:
        return Kind.SLICE


@dataclass(eq=False)
class ArrayType(GoType):
    """A fixed-length array.

    ``length`` is kept as written in the source. Any length other than a literal carries the package it was
    written in as ``length_package``.
    """

    length: str
    elem: GoType
    length_package: Package | None = None

    @property
    def kind(self) -> Kind:
        return Kind.ARRAY


@dataclass(eq=False)
class PointerType(GoType):
    elem: GoType

    @property
    def kind(self) -> Kind:
        return Kind.POINTER


@dataclass(eq=False)
class MapType(GoType):
    key: GoType
    elem: GoType

    @property
    def kind(self) -> Kind:
        return Kind.MAP


@dataclass(eq=False)
class ChanType(GoType):
    elem: GoType
    direction: ChanDir = ChanDir.BOTH

    @property
    def kind(self) -> Kind:
        return Kind.CHANNEL


@dataclass(eq=False)
class SignatureType(GoType):
    """A function signature; a variadic last parameter holds its element type."""

    params: list[GoType] = field(default_factory=list)
    results: list[GoType] = field(default_factory=list)
    variadic: bool = False

    @property
    def kind(self) -> Kind:
        return Kind.SIGNATURE


@dataclass(eq=False)
class Method:
    """A method, either declared on a named type or listed in an interface."""

    name: str
    signature: SignatureType
    pointer_receiver: bool = False
    receiver: GoType | None = None


@dataclass(eq=False)
class InterfaceType(GoType):
    """An interface type literal.

    ``constraint`` marks interfaces holding union or approximation terms,
    which only appear as type-parameter constraints.
    """

    methods: list[Method] = field(default_factory=list)
    embeds: list[GoType] = field(default_factory=list)
    constraint: bool = False

    @property
    def kind(self) -> Kind:
        return Kind.INTERFACE

    def all_methods(self) -> list[Method]:
        """Return own methods followed by those of embedded interfaces."""
        methods = list(self.methods)
        names = {m.name for m in methods}
        for embed in self.embeds:
            underlying = embed.underlying
            if isinstance(underlying, InterfaceType) and underlying is not self:
                for method in underlying.all_methods():
                    if method.name not in names:
                        names.add(method.name)
                        methods.append(method)
        return methods


@dataclass(eq=False)
class TypeParamType(GoType):
    """A reference to a type parameter of a generic declaration."""

    name: str

    @property
    def kind(self) -> Kind:
        return Kind.TYPE_PARAM


@dataclass(eq=False)
class InstanceType(GoType):
    """An instantiation of a generic named type, e.g. ``List[int]``."""

    generic: GoType
    args: list[GoType] = field(default_factory=list)

    @property
    def kind(self) -> Kind:
        return Kind.INSTANCE


def strip_pointer(typ: GoType) -> tuple[GoType, bool]:
    """Remove one level of pointer, reporting whether there was one."""
    if isinstance(typ, PointerType):
        return typ.elem, True
    return typ, False


def identical(a: GoType, b: GoType) -> bool:
    """Report whether two type descriptions denote the same Go type."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, NamedType):
        return False
    if isinstance(a, BasicType):
        return a.name == b.name  # type: ignore[attr-defined]
    if isinstance(a, (SliceType, PointerType)):
        return identical(a.elem, b.elem)  # type: ignore[attr-defined]
    if isinstance(a, ArrayType):
        assert isinstance(b, ArrayType)
        return (
            a.length == b.length
            and a.length_package is b.length_package
            and identical(a.elem, b.elem)
        )
    if isinstance(a, MapType):
        assert isinstance(b, MapType)
        return identical(a.key, b.key) and identical(a.elem, b.elem)
    if isinstance(a, ChanType):
        assert isinstance(b, ChanType)
        return a.direction is b.direction and identical(a.elem, b.elem)
    if isinstance(a, StructType):
        assert isinstance(b, StructType)
        if len(a.fields) != len(b.fields):
            return False
        for fa, fb in zip(a.fields, b.fields):
            if fa.name != fb.name or fa.embedded != fb.embedded or fa.tag != fb.tag:
                return False
            if not fa.exported and a.package is not b.package:
                return False
            if not identical(fa.type, fb.type):
                return False
        return True
    if isinstance(a, SignatureType):
        assert isinstance(b, SignatureType)
        return (
            a.variadic == b.variadic
            and len(a.params) == len(b.params)
            and len(a.results) == len(b.results)
            and all(identical(x, y) for x, y in zip(a.params, b.params))
            and all(identical(x, y) for x, y in zip(a.results, b.results))
        )
    if isinstance(a, InterfaceType):
        assert isinstance(b, InterfaceType)
        ma = {m.name: m for m in a.all_methods()}
        mb = {m.name: m for m in b.all_methods()}
        if ma.keys() != mb.keys():
            return False
        return all(identical(ma[n].signature, mb[n].signature) for n in ma)
    if isinstance(a, InstanceType):
        assert isinstance(b, InstanceType)
        return (
            identical(a.generic, b.generic)
            and len(a.args) == len(b.args)
            and all(identical(x, y) for x, y in zip(a.args, b.args))
        )
    if isinstance(a, TypeParamType):
        return False
    return False


def _universe() -> dict[str, GoType]:
    """Build the predeclared types."""
    scope: dict[str, GoType] = {name: BasicType(name) for name in BASIC_TYPE_NAMES}
    for alias, target in BASIC_ALIASES.items():
        scope[alias] = scope[target]
    error_method = Method(
        name="Error",
        signature=SignatureType(params=[], results=[scope["string"]]),
    )
    scope["error"] = NamedType(name="error", definition=InterfaceType(methods=[error_method]))
    scope["any"] = InterfaceType()
    scope["comparable"] = NamedType(name="comparable", definition=InterfaceType(constraint=True))
    return scope


UNIVERSE: dict[str, GoType] = _universe()
