"""Deciding which Go files of a directory belong to the build.

A file is left out when its name ends in ``_GOOS``, ``_GOARCH`` or
``_GOOS_GOARCH`` for another platform, or when its ``//go:build`` line (or
legacy ``// +build`` lines) does not hold for the build context.
"""

from __future__ import annotations

import os
import platform
import sys
from dataclasses import dataclass, field

from deepcopygen.parsing.build_constraint import ConstraintExpr, ConstraintParser, parse_plus_build

KNOWN_OS: frozenset[str] = frozenset({
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos", "ios",
    "js", "linux", "nacl", "netbsd", "openbsd", "plan9", "solaris", "wasip1",
    "windows", "zos",
})

UNIX_OS: frozenset[str] = frozenset({
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos", "ios",
    "linux", "netbsd", "openbsd", "solaris",
})

KNOWN_ARCH: frozenset[str] = frozenset({
    "386", "amd64", "amd64p32", "arm", "armbe", "arm64", "arm64be", "loong64",
    "mips", "mipsle", "mips64", "mips64le", "mips64p32", "mips64p32le", "ppc",
    "ppc64", "ppc64le", "riscv", "riscv64", "s390", "s390x", "sparc", "sparc64",
    "wasm",
})

# platform.machine() spellings
_MACHINE_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
    "loongarch64": "loong64",
}

# An operating system also satisfies the tag of the one it derives from
_OS_IMPLIES = {"android": "linux", "illumos": "solaris", "ios": "darwin"}


def host_os() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    for name in KNOWN_OS:
        if sys.platform.startswith(name):
            return name
    return sys.platform


def host_arch() -> str:
    machine = platform.machine().lower()
    return _MACHINE_ARCH.get(machine, machine)


@dataclass(frozen=True)
class BuildContext:
    """The target platform and extra tags that build constraints are checked against."""

    goos: str
    goarch: str
    tags: frozenset[str] = field(default_factory=frozenset)
    cgo: bool = True

    @classmethod
    def from_environment(cls) -> BuildContext:
        """Use ``GOOS``/``GOARCH`` when set, else the host platform."""
        return cls(
            goos=os.environ.get("GOOS") or host_os(),
            goarch=os.environ.get("GOARCH") or host_arch(),
            cgo=os.environ.get("CGO_ENABLED", "1") != "0",
        )

    def has_tag(self, name: str) -> bool:
        if name in (self.goos, self.goarch) or name in self.tags:
            return True
        if name == "unix":
            return self.goos in UNIX_OS
        if name == _OS_IMPLIES.get(self.goos):
            return True
        if name == "gc":
            return True
        if name == "cgo":
            return self.cgo
        # Release tags; the language version is not checked
        return name.startswith("go1.")

    def matches_file_name(self, name: str) -> bool:
        """Apply the ``_GOOS``/``_GOARCH`` suffix rule to a file name."""
        stem = name[:-3] if name.endswith(".go") else name
        if "_" not in stem:
            return True
        parts = stem[stem.index("_"):].split("_")
        if len(parts) >= 2 and parts[-2] in KNOWN_OS and parts[-1] in KNOWN_ARCH:
            return self.has_tag(parts[-2]) and self.has_tag(parts[-1])
        if parts[-1] in KNOWN_OS or parts[-1] in KNOWN_ARCH:
            return self.has_tag(parts[-1])
        return True


_parser = ConstraintParser()


def file_constraint(text: str) -> ConstraintExpr | None:
    """Return the build constraint in the header of a Go source file.

    Only comments before the package clause count. A ``//go:build`` line
    wins over ``// +build`` lines.
    """
    go_build: str | None = None
    plus_build: list[str] = []
    in_block = False
    for raw in text.splitlines():
        line = raw.strip()
        if in_block:
            if "*/" in line:
                in_block = False
            continue
        if not line:
            continue
        if line.startswith("/*"):
            in_block = "*/" not in line[2:]
            continue
        if not line.startswith("//"):
            break
        comment = line[2:]
        if comment.startswith("go:build ") and go_build is None:
            go_build = comment[len("go:build "):]
        elif comment.strip().startswith("+build "):
            plus_build.append(comment.strip()[len("+build "):])
    if go_build is not None:
        return _parser.parse(go_build)
    return parse_plus_build(plus_build)
