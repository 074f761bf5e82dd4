"""Loading Go packages from disk into type descriptions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path

from deepcopygen.constraints import BuildContext, file_constraint
from deepcopygen.errors import LoadError
from deepcopygen.parsing.go_parser import (
    ApproxExpr,
    ArrayExpr,
    ChanExpr,
    FuncExpr,
    GoParser,
    ImportSpec,
    InterfaceExpr,
    LengthExpr,
    MapExpr,
    MethodDecl,
    PointerExpr,
    SliceExpr,
    SourceFile,
    StructExpr,
    TypeExpr,
    TypeName,
    TypeSpec,
)
from deepcopygen.types import (
    UNIVERSE,
    ArrayType,
    ChanDir,
    ChanType,
    Field,
    GoType,
    InstanceType,
    InterfaceType,
    MapType,
    Method,
    NamedType,
    Package,
    PointerType,
    SignatureType,
    SliceType,
    StructType,
    TypeParamType,
)

logger = logging.getLogger(__name__)

_MODULE_RE = re.compile(r'^\s*module\s+"?([^"\s]+)"?', re.MULTILINE)
_MAJOR_VERSION_RE = re.compile(r"^v\d+$")
_DOT_VERSION_RE = re.compile(r"\.v\d+$")


def guess_package_name(import_path: str) -> str:
    """Guess the package name for an import path that cannot be read.

    ``github.com/x/y/v2`` gives ``y`` and ``gopkg.in/yaml.v3`` gives ``yaml``.
    """
    parts = [p for p in import_path.split("/") if p]
    if len(parts) > 1 and _MAJOR_VERSION_RE.match(parts[-1]):
        parts.pop()
    name = _DOT_VERSION_RE.sub("", parts[-1]) if parts else import_path
    if "-" in name:
        name = name.rsplit("-", 1)[-1]
    return name


@dataclass
class _Scope:
    """Name lookup context for one source file."""

    loader: PackageLoader
    package: Package
    filename: str
    imports: list[ImportSpec]
    pending_aliases: set[str]
    params: frozenset[str] = frozenset()
    _qualifiers: dict[str, Package] = field(default_factory=dict)

    def with_params(self, names: list[str]) -> _Scope:
        return replace(self, params=self.params | frozenset(names))

    def lookup(self, name: str) -> GoType:
        if name in self.params:
            return TypeParamType(name)
        named = self.package.types.get(name)
        if named is not None:
            return named
        if name in self.package.aliases:
            return self.package.aliases[name]
        if name in self.pending_aliases:
            raise KeyError(f"alias {name} not yet resolved")
        for spec in self.imports:
            if spec.alias == ".":
                found = self.loader.import_package(spec.path).lookup(name)
                if found is not None:
                    return found
        if name in UNIVERSE:
            return UNIVERSE[name]
        raise KeyError(f"undefined: {name}")

    def qualified(self, qualifier: str) -> Package:
        """Return the package imported under ``qualifier`` in this file."""
        if qualifier in self._qualifiers:
            return self._qualifiers[qualifier]
        for spec in self.imports:
            if spec.alias == qualifier:
                return self._remember(qualifier, spec.path)
        implicit = [spec for spec in self.imports if spec.alias is None]
        for spec in implicit:
            if guess_package_name(spec.path) == qualifier:
                return self._remember(qualifier, spec.path)
        # Package names need not match the last path element
        for spec in implicit:
            if self.loader.import_package(spec.path).name == qualifier:
                return self._remember(qualifier, spec.path)
        raise KeyError(f"undefined: {qualifier}")

    def _remember(self, qualifier: str, path: str) -> Package:
        package = self.loader.import_package(path, alias=qualifier)
        self.package.imports[path] = package
        self._qualifiers[qualifier] = package
        return package


class PackageLoader:
    """Loads a package directory and the packages it imports.

    Packages inside the enclosing module, or vendored under it, are parsed
    from source. Anything else is described by an opaque package. Files are
    chosen the way the go command chooses them for ``context``.
    """

    def __init__(self, context: BuildContext | None = None) -> None:
        self.context = context or BuildContext.from_environment()
        self.parser = GoParser()
        self.module_root: Path | None = None
        self.module_path: str | None = None
        self._packages: dict[str, Package] = {}
        self._loading: set[str] = set()

    def load(self, directory: str | Path) -> list[Package]:
        """Load the package in ``directory``."""
        directory = Path(directory).resolve()
        if not directory.is_dir():
            raise LoadError(f"not a package directory: {directory}")
        self._find_module(directory)
        return [self._load_directory(directory, self._import_path(directory))]

    def import_package(self, path: str, alias: str | None = None) -> Package:
        """Return the package for an import path, loading it on first use."""
        package = self._packages.get(path)
        if package is not None:
            return package
        directory = self._locate(path)
        if directory is not None:
            return self._load_directory(directory, path)
        name = alias if alias not in (None, ".", "_") else guess_package_name(path)
        logger.debug("Using opaque package %s for %s", name, path)
        package = Package(name=name, path=path)  # type: ignore[arg-type]
        self._packages[path] = package
        return package

    # --- Module layout ---

    def _find_module(self, directory: Path) -> None:
        for candidate in (directory, *directory.parents):
            go_mod = candidate / "go.mod"
            if go_mod.is_file():
                try:
                    text = go_mod.read_text(encoding="utf-8")
                except OSError as e:
                    raise LoadError(f"cannot read {go_mod}: {e}") from e
                match = _MODULE_RE.search(text)
                if match is None:
                    raise LoadError(f"{go_mod}: no module declaration")
                self.module_root = candidate
                self.module_path = match.group(1)
                logger.debug("Module %s at %s", self.module_path, candidate)
                return
        self.module_root = None
        self.module_path = None

    def _import_path(self, directory: Path) -> str:
        if self.module_root is None or self.module_path is None:
            return directory.name
        relative = directory.relative_to(self.module_root).as_posix()
        if relative == ".":
            return self.module_path
        return f"{self.module_path}/{relative}"

    def _locate(self, path: str) -> Path | None:
        if self.module_root is None or self.module_path is None:
            return None
        if path == self.module_path:
            return self.module_root
        if path.startswith(self.module_path + "/"):
            candidate = self.module_root / path[len(self.module_path) + 1:]
            if candidate.is_dir():
                return candidate
        vendored = self.module_root / "vendor" / path
        if vendored.is_dir():
            return vendored
        return None

    # --- Loading ---

    def _parse_files(self, directory: Path) -> list[tuple[Path, SourceFile]]:
        files = sorted(
            p for p in directory.glob("*.go")
            if p.is_file()
            and not p.name.endswith("_test.go")
            and not p.name.startswith(("_", "."))
        )
        if not files:
            raise LoadError(f"no Go files in {directory}")
        parsed = []
        for path in files:
            if not self.context.matches_file_name(path.name):
                logger.debug(
                    "Skipping %s: not built for %s/%s", path, self.context.goos, self.context.goarch
                )
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise LoadError(f"cannot read {path}: {e}") from e
            try:
                constraint = file_constraint(text)
            except SyntaxError as e:
                raise LoadError(f"{path}: {e}") from e
            if constraint is not None and not constraint.matches(self.context.has_tag):
                logger.debug("Skipping %s: build constraints not satisfied", path)
                continue
            try:
                source = self.parser.parse(text)
            except SyntaxError as e:
                raise LoadError(f"{path}: {e}") from e
            parsed.append((path, source))
        if not parsed:
            raise LoadError(f"build constraints exclude all Go files in {directory}")
        return parsed

    def _load_directory(self, directory: Path, path: str) -> Package:
        if path in self._packages:
            return self._packages[path]
        if path in self._loading:
            raise LoadError(f"import cycle not allowed: {path}")
        self._loading.add(path)
        try:
            logger.debug("Loading package %s from %s", path, directory)
            parsed = self._parse_files(directory)
            names = {source.package for _, source in parsed}
            if len(names) > 1:
                raise LoadError(
                    f"found packages {', '.join(sorted(names))} in {directory}"
                )
            package = Package(name=parsed[0][1].package, path=path, directory=directory)
            self._resolve_package(package, parsed)
        finally:
            self._loading.discard(path)
        self._packages[path] = package
        return package

    def _resolve_package(self, package: Package, parsed: list[tuple[Path, SourceFile]]) -> None:
        """Resolve all specs into type descriptions using two-phase resolution.

        Phase 1: Pre-register stubs for every defined type so that
        self-referential and mutually referential types can resolve.
        Phase 2: Iteratively resolve aliases and populate the stubs.
        """
        alias_names = {
            spec.name for _, source in parsed for spec in source.types if spec.alias
        }
        pending: set[str] = set(alias_names)
        specs: list[tuple[TypeSpec, _Scope]] = []
        methods: list[tuple[MethodDecl, _Scope]] = []
        for path, source in parsed:
            scope = _Scope(
                loader=self,
                package=package,
                filename=path.name,
                imports=[i for i in source.imports if i.alias != "_"],
                pending_aliases=pending,
            )
            specs.extend((spec, scope) for spec in source.types)
            methods.extend((decl, scope) for decl in source.methods)

        # Phase 1: Pre-register stubs
        for spec, scope in specs:
            if spec.alias:
                continue
            if spec.name in package.types:
                raise LoadError(f"{scope.filename}:{spec.line}: {spec.name} redeclared")
            package.types[spec.name] = NamedType(
                name=spec.name,
                package=package,
                type_params=[p.name for p in spec.type_params],
                position=spec.line,
            )

        # Phase 2: Iteratively resolve
        unresolved = list(specs)
        while unresolved:
            still_unresolved: list[tuple[TypeSpec, _Scope]] = []
            failure = ""
            for spec, scope in unresolved:
                inner = scope.with_params([p.name for p in spec.type_params])
                try:
                    resolved = self._resolve(spec.type_expr, inner)
                except KeyError as e:
                    # Dependency not yet resolved
                    failure = f"{scope.filename}:{spec.line}: {e.args[0]}"
                    still_unresolved.append((spec, scope))
                    continue
                if spec.alias:
                    package.aliases[spec.name] = resolved
                    pending.discard(spec.name)
                else:
                    package.types[spec.name].definition = resolved
            if len(still_unresolved) == len(unresolved):
                raise LoadError(failure)
            unresolved = still_unresolved

        for named in package.types.values():
            self._check_cycle(named)

        for decl, scope in methods:
            self._attach_method(package, decl, scope)

    def _check_cycle(self, named: NamedType) -> None:
        seen: set[int] = set()
        current: GoType | None = named
        while isinstance(current, NamedType):
            if id(current) in seen:
                raise LoadError(f"invalid recursive type {named.qualified_name}")
            seen.add(id(current))
            current = current.definition

    def _attach_method(self, package: Package, decl: MethodDecl, scope: _Scope) -> None:
        receiver = package.lookup(decl.receiver.type_name)
        if not isinstance(receiver, NamedType) or receiver.package is not package:
            logger.debug(
                "Ignoring method %s on unknown receiver %s",
                decl.name,
                decl.receiver.type_name,
            )
            return
        inner = scope.with_params(decl.receiver.type_params)
        try:
            signature = self._resolve(decl.signature, inner)
        except KeyError as e:
            raise LoadError(f"{scope.filename}:{decl.line}: {e.args[0]}") from e
        assert isinstance(signature, SignatureType)
        receiver.methods.append(Method(
            name=decl.name,
            signature=signature,
            pointer_receiver=decl.receiver.pointer,
            receiver=receiver,
        ))

    # --- Type expressions ---

    def _resolve(self, expr: TypeExpr, scope: _Scope) -> GoType:
        """Resolve a type expression; raises KeyError for unknown names."""
        if isinstance(expr, TypeName):
            if expr.package is not None:
                found = scope.qualified(expr.package).lookup(expr.name)
                if found is None:
                    raise KeyError(f"undefined: {expr.package}.{expr.name}")
            else:
                found = scope.lookup(expr.name)
            if expr.args:
                return InstanceType(
                    generic=found,
                    args=[self._resolve(arg, scope) for arg in expr.args],
                )
            return found
        if isinstance(expr, PointerExpr):
            return PointerType(self._resolve(expr.elem, scope))
        if isinstance(expr, SliceExpr):
            return SliceType(self._resolve(expr.elem, scope))
        if isinstance(expr, ArrayExpr):
            length_package = None
            length = expr.length
            if isinstance(length, TypeName):
                if length.args:
                    raise KeyError("invalid array length")
                if length.package is not None:
                    length_package = scope.qualified(length.package)
                else:
                    length_package = scope.package
                length = length.name
            elif isinstance(length, LengthExpr):
                length_package = scope.package
                length = length.text
            elif not isinstance(length, str):
                raise KeyError("invalid array length")
            return ArrayType(
                length=length,
                elem=self._resolve(expr.elem, scope),
                length_package=length_package,
            )
        if isinstance(expr, MapExpr):
            return MapType(self._resolve(expr.key, scope), self._resolve(expr.value, scope))
        if isinstance(expr, ChanExpr):
            return ChanType(self._resolve(expr.elem, scope), ChanDir(expr.direction))
        if isinstance(expr, StructExpr):
            fields = [
                Field(
                    name=spec.name,
                    type=self._resolve(spec.type_expr, scope),
                    embedded=spec.embedded,
                    tag=spec.tag,
                    position=spec.line,
                )
                for spec in expr.fields
            ]
            return StructType(fields=fields, package=scope.package)
        if isinstance(expr, InterfaceExpr):
            return InterfaceType(
                methods=[
                    Method(name=m.name, signature=self._resolve(m.signature, scope))  # type: ignore[arg-type]
                    for m in expr.methods
                ],
                embeds=[self._resolve(e, scope) for e in expr.embeds],
                constraint=expr.constraint,
            )
        if isinstance(expr, FuncExpr):
            return SignatureType(
                params=[self._resolve(p.type_expr, scope) for p in expr.params],
                results=[self._resolve(r.type_expr, scope) for r in expr.results],
                variadic=any(p.variadic for p in expr.params),
            )
        if isinstance(expr, ApproxExpr):
            return self._resolve(expr.elem, scope)
        raise TypeError(f"unexpected type expression {expr!r}")


def load_package(path: str | Path) -> list[Package]:
    """Load the Go package in directory ``path``."""
    return PackageLoader().load(path)
