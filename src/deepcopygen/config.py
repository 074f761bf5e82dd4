"""Generator configuration."""

from __future__ import annotations

import argparse
import shutil
from dataclasses import dataclass, field

from deepcopygen.errors import ConfigError


@dataclass
class GeneratorConfig:
    """Options for one generator run.

    ``skips`` holds one comma-separated selector list per ``-skip``
    occurrence, paired with ``types`` by position.
    """

    types: list[str] = field(default_factory=list)
    skips: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    pointer_receiver: bool = False
    output: str | None = None
    method_name: str = "DeepCopy"
    gofmt: bool = False
    verbose: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> GeneratorConfig:
        return cls(
            types=list(args.type or []),
            skips=list(args.skip or []),
            packages=list(args.package or []),
            pointer_receiver=args.pointer_receiver,
            output=args.output,
            method_name=args.method_name,
            gofmt=args.gofmt,
            verbose=args.verbose,
        )

    @property
    def package(self) -> str:
        return self.packages[0]

    def validate(self) -> None:
        """Check the configuration, raising ConfigError on the first problem."""
        if not self.types or not self.types[0]:
            raise ConfigError("no type given")
        if not self.packages:
            raise ConfigError("no package path given")
        if len(self.packages) > 1:
            raise ConfigError("only one package path may be given")
        if not self.method_name.isidentifier():
            raise ConfigError(f"invalid method name: {self.method_name!r}")
        if self.gofmt and self.gofmt_path() is None:
            raise ConfigError("gofmt not found on PATH")

    def gofmt_path(self) -> str | None:
        """Return the gofmt executable to use, or None."""
        if not self.gofmt:
            return None
        return shutil.which("gofmt")
