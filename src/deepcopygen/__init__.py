"""deepcopygen - Generate DeepCopy methods for Go types."""

from deepcopygen.config import GeneratorConfig
from deepcopygen.errors import (
    ConfigError,
    DeepCopyGenError,
    FormattingError,
    LoadError,
    OutputError,
    ResolutionError,
    TypeNotFoundError,
)
from deepcopygen.generator import generate_file, generate_function, run
from deepcopygen.loader import PackageLoader, load_package
from deepcopygen.parsing import GoParser
from deepcopygen.types import Kind, NamedType, Package

__all__ = [
    # Main API
    "run",
    "load_package",
    "GeneratorConfig",
    "generate_function",
    "generate_file",
    "PackageLoader",
    "GoParser",
    # Type descriptions
    "Kind",
    "NamedType",
    "Package",
    # Errors
    "DeepCopyGenError",
    "ConfigError",
    "LoadError",
    "ResolutionError",
    "TypeNotFoundError",
    "FormattingError",
    "OutputError",
]

__version__ = "0.1.0"
