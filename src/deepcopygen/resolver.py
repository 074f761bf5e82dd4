"""Locating requested types in a loaded package."""

from __future__ import annotations

from deepcopygen.errors import ResolutionError, TypeNotFoundError
from deepcopygen.types import NamedType, Package


def locate_type(package: Package, type_name: str) -> NamedType:
    """Find the top-level named type ``type_name`` declared in ``package``.

    Only defined types of the package itself qualify; aliases and imported
    names do not.
    """
    for named in package.types.values():
        if named.package is package and named.name == type_name:
            if named.is_generic:
                raise ResolutionError(
                    f"generic type {package.name}.{type_name} is not supported"
                )
            return named
    raise TypeNotFoundError(package.name, type_name)
