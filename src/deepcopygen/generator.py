"""Generating deep-copy methods for a package."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from deepcopygen.errors import LoadError
from deepcopygen.formatting import format_source
from deepcopygen.imports import ImportTable
from deepcopygen.loader import load_package
from deepcopygen.render import CodeWriter, TypeRenderer
from deepcopygen.resolver import locate_type
from deepcopygen.skips import EMPTY, SkipSet, pair_skips
from deepcopygen.traversal import CopyTraversal
from deepcopygen.types import NamedType, Package, StructType

logger = logging.getLogger(__name__)


def generate_function(
    package: Package,
    type_name: str,
    imports: ImportTable,
    skips: SkipSet = EMPTY,
    *,
    pointer_receiver: bool = False,
    method_name: str = "DeepCopy",
    generated: dict[NamedType, bool] | None = None,
) -> str:
    """Generate the copy method for one type of ``package``.

    The receiver is ``o`` and the copy is built in ``cp``, which starts as a
    shallow copy of the receiver.
    """
    named = locate_type(package, type_name)
    ptr = "*" if pointer_receiver else ""
    renderer = TypeRenderer(package, imports)
    traversal = CopyTraversal(
        renderer,
        skips,
        method_name=method_name,
        generated=generated if generated is not None else {named: pointer_receiver},
    )

    out = CodeWriter()
    out.line(f"// {method_name} generates a deep copy of {ptr}{named.name}")
    with out.block(f"func (o {ptr}{named.name}) {method_name}() {ptr}{named.name}"):
        out.line(f"var cp {named.name}")
        out.line(f"cp = {ptr}o")
        source = "o"
        if pointer_receiver and not isinstance(named.underlying, StructType):
            source = "(*o)"
        traversal.walk(source, "cp", "", named, out, initial=True)
        out.line("return &cp" if pointer_receiver else "return cp")
    logger.debug("Generated %s for %s", method_name, named.qualified_name)
    return out.getvalue()


def generate_file(
    package: Package,
    imports: ImportTable,
    functions: Sequence[str],
    *,
    command: str,
    gofmt: str | None = None,
) -> str:
    """Assemble generated functions into one formatted source file."""
    parts = [f"// generated by {command}; DO NOT EDIT.\n", f"package {package.name}\n"]
    block = imports.render_block()
    if block:
        parts.append(block)
    parts.extend(functions)
    return format_source("\n".join(parts), gofmt=gofmt)


def default_command() -> str:
    """Return the invoking command line, for the generated header."""
    return " ".join([Path(sys.argv[0]).name, *sys.argv[1:]])


def run(
    path: str | Path,
    types: Sequence[str],
    skips: Sequence[str | SkipSet] = (),
    pointer_receiver: bool = False,
    *,
    method_name: str = "DeepCopy",
    command: str | None = None,
    gofmt: str | None = None,
) -> str:
    """Generate copy methods for ``types`` of the package at ``path``.

    Skip occurrences pair with types by position. Every type is resolved
    before any code is generated, and nothing is returned unless all of them
    succeed.
    """
    packages = load_package(path)
    if not packages:
        raise LoadError("no package found")
    package = packages[0]

    requested = [locate_type(package, name) for name in types]
    generated = {named: pointer_receiver for named in requested}
    imports = ImportTable(package)
    functions = [
        generate_function(
            package,
            named.name,
            imports,
            skip_set,
            pointer_receiver=pointer_receiver,
            method_name=method_name,
            generated=generated,
        )
        for named, skip_set in zip(requested, pair_skips(types, skips))
    ]
    logger.info(
        "Generated %d method(s) for package %s", len(functions), package.path
    )
    return generate_file(
        package,
        imports,
        functions,
        command=command if command is not None else default_command(),
        gofmt=gofmt,
    )
