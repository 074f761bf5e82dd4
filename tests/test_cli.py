"""Tests for the go-deepcopy command and its configuration."""

import logging

import pytest

from deepcopygen.cli import build_arg_parser, main, write_output
from deepcopygen.config import GeneratorConfig
from deepcopygen.errors import ConfigError, OutputError

TYPES = """
    package fixture

    type Plain struct {
        A int
    }

    type Inner struct {
        Tags []string
    }
"""


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    package_logger = logging.getLogger("deepcopygen")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


class TestMain:
    """Tests for running the command."""

    def test_writes_stdout(self, go_package, capsys):
        """Test that output goes to stdout by default."""
        root = go_package({"types.go": TYPES})
        assert main(["-type", "Plain", str(root)]) == 0
        out = capsys.readouterr().out
        assert out.startswith(f"// generated by go-deepcopy -type Plain {root}; DO NOT EDIT.\n")
        assert "func (o Plain) DeepCopy() Plain {" in out

    def test_writes_file(self, go_package, capsys):
        """Test writing to the file named by -o."""
        root = go_package({"types.go": TYPES})
        target = root / "deepcopy_gen.go"
        assert main(["-type", "Inner", "-o", str(target), str(root)]) == 0
        assert capsys.readouterr().out == ""
        assert "copy(cp.Tags, o.Tags)" in target.read_text()

    def test_dash_means_stdout(self, go_package, capsys):
        """Test that -o - writes to stdout."""
        root = go_package({"types.go": TYPES})
        assert main(["-type", "Plain", "-o", "-", str(root)]) == 0
        assert "func (o Plain)" in capsys.readouterr().out

    def test_multiple_types_and_skips(self, go_package, capsys):
        """Test repeated -type and -skip flags."""
        root = go_package({"types.go": TYPES})
        argv = ["-type", "Plain", "-skip", "", "-type", "Inner", "-skip", "Tags", str(root)]
        assert main(argv) == 0
        out = capsys.readouterr().out
        assert "func (o Plain)" in out
        assert "func (o Inner)" in out
        assert "o.Tags" not in out

    def test_pointer_receiver_and_method_name(self, go_package, capsys):
        """Test the receiver and method name options."""
        root = go_package({"types.go": TYPES})
        argv = ["-type", "Plain", "-pointer-receiver", "--method-name", "Clone", str(root)]
        assert main(argv) == 0
        assert "func (o *Plain) Clone() *Plain {" in capsys.readouterr().out

    def test_logs_to_stderr(self, go_package, capsys):
        """Test that progress is logged to stderr."""
        root = go_package({"types.go": TYPES})
        main(["-type", "Plain", str(root)])
        err = capsys.readouterr().err
        assert "INFO | deepcopygen.generator | Generated 1 method(s)" in err

    def test_verbose(self, go_package, capsys):
        """Test that -v enables debug logging."""
        root = go_package({"types.go": TYPES})
        main(["-v", "-type", "Plain", str(root)])
        assert logging.getLogger("deepcopygen").level == logging.DEBUG
        assert "DEBUG |" in capsys.readouterr().err


class TestMainErrors:
    """Tests for failures reported by the command."""

    def test_no_type(self, go_package, capsys):
        """Test that a missing -type is reported."""
        root = go_package({"types.go": TYPES})
        assert main([str(root)]) == 1
        assert "Error: no type given" in capsys.readouterr().err

    def test_no_package(self, capsys):
        """Test that a missing package path is reported."""
        assert main(["-type", "Plain"]) == 1
        assert "Error: no package path given" in capsys.readouterr().err

    def test_several_packages(self, capsys, tmp_path):
        """Test that more than one package path is reported."""
        assert main(["-type", "Plain", str(tmp_path), str(tmp_path)]) == 1
        assert "Error: only one package path may be given" in capsys.readouterr().err

    def test_type_not_found(self, go_package, capsys):
        """Test that an unknown type is reported and nothing is written."""
        root = go_package({"types.go": TYPES})
        target = root / "out.go"
        assert main(["-type", "Missing", "-o", str(target), str(root)]) == 1
        captured = capsys.readouterr()
        assert "Error: type not found: fixture.Missing" in captured.err
        assert captured.out == ""
        assert not target.exists()

    def test_unwritable_output(self, go_package, capsys):
        """Test that a destination that cannot be created is reported."""
        root = go_package({"types.go": TYPES})
        target = root / "missing" / "out.go"
        assert main(["-type", "Plain", "-o", str(target), str(root)]) == 1
        assert "Error: writing" in capsys.readouterr().err


class TestGeneratorConfig:
    """Tests for building and validating the configuration."""

    def test_from_args(self):
        """Test that parsed arguments map onto the configuration."""
        args = build_arg_parser().parse_args(
            ["-type", "A", "-type", "B", "-skip", "X", "-o", "out.go", "--gofmt", "pkg"]
        )
        config = GeneratorConfig.from_args(args)
        assert config.types == ["A", "B"]
        assert config.skips == ["X"]
        assert config.package == "pkg"
        assert config.output == "out.go"
        assert config.gofmt
        assert not config.pointer_receiver
        assert config.method_name == "DeepCopy"

    def test_first_problem_reported(self):
        """Test that the missing type is reported before the missing package."""
        with pytest.raises(ConfigError, match="no type given"):
            GeneratorConfig().validate()

    def test_empty_type(self):
        """Test that an empty type name counts as missing."""
        with pytest.raises(ConfigError, match="no type given"):
            GeneratorConfig(types=[""], packages=["p"]).validate()

    def test_invalid_method_name(self):
        """Test that the method name must be an identifier."""
        with pytest.raises(ConfigError, match="invalid method name"):
            GeneratorConfig(types=["T"], packages=["p"], method_name="1x").validate()

    def test_gofmt_missing(self, monkeypatch):
        """Test that --gofmt requires gofmt on PATH."""
        monkeypatch.setattr("deepcopygen.config.shutil.which", lambda name: None)
        config = GeneratorConfig(types=["T"], packages=["p"], gofmt=True)
        with pytest.raises(ConfigError, match="gofmt not found"):
            config.validate()

    def test_gofmt_path(self, monkeypatch):
        """Test that the gofmt path is only looked up when asked for."""
        monkeypatch.setattr("deepcopygen.config.shutil.which", lambda name: f"/bin/{name}")
        assert GeneratorConfig().gofmt_path() is None
        assert GeneratorConfig(gofmt=True).gofmt_path() == "/bin/gofmt"


class TestWriteOutput:
    """Tests for writing generated source."""

    def test_stdout(self, capsys):
        """Test that no destination means stdout."""
        write_output(None, "package x\n")
        assert capsys.readouterr().out == "package x\n"

    def test_error(self, tmp_path):
        """Test that a write failure raises OutputError."""
        with pytest.raises(OutputError, match="writing"):
            write_output(str(tmp_path), "package x\n")
