"""Import table shared by every function generated in one run."""

from __future__ import annotations

import logging
import re

from deepcopygen.types import Package

logger = logging.getLogger(__name__)

_NON_IDENT_RE = re.compile(r"\W")


def derive_alias(path: str) -> str:
    """Build an identifier from an import path."""
    alias = _NON_IDENT_RE.sub("_", path)
    if alias[:1].isdigit():
        alias = "_" + alias
    return alias


class ImportTable:
    """Alias to import path mapping for the generated file.

    Entries are only added, and no two paths share an alias. The first path
    to use a package name gets it; later colliding paths get an alias derived
    from their path.
    """

    def __init__(self, local: Package) -> None:
        self.local = local
        self._paths: dict[str, str] = {}  # alias -> path
        self._aliases: dict[str, str] = {}  # path -> alias

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._aliases

    def qualify(self, package: Package) -> str | None:
        """Return the qualifier for a package, recording the import.

        None means the package is the one being generated into.
        """
        if package is self.local or package.path == self.local.path:
            return None
        alias = self._aliases.get(package.path)
        if alias is not None:
            return alias
        alias = package.name
        if alias in self._paths:
            base = derive_alias(package.path)
            alias = base
            n = 1
            while alias in self._paths:
                alias = f"{base}{n}"
                n += 1
            logger.debug("Import %s aliased as %s", package.path, alias)
        self._paths[alias] = package.path
        self._aliases[package.path] = alias
        return alias

    def alias_for(self, path: str) -> str | None:
        return self._aliases.get(path)

    def declarations(self) -> list[str]:
        """Return one import spec per path, sorted by path."""
        specs = []
        for path in sorted(self._aliases):
            alias = self._aliases[path]
            if path.rsplit("/", 1)[-1] == alias:
                specs.append(f'"{path}"')
            else:
                specs.append(f'{alias} "{path}"')
        return specs

    def render_block(self) -> str:
        """Render the import block, or an empty string with no imports."""
        if not self._aliases:
            return ""
        lines = ["import ("]
        lines.extend(f"\t{spec}" for spec in self.declarations())
        lines.append(")")
        return "\n".join(lines) + "\n"
