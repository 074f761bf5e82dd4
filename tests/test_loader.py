"""Tests for loading Go packages into type descriptions."""

import pytest

from deepcopygen.constraints import BuildContext
from deepcopygen.errors import LoadError
from deepcopygen.loader import PackageLoader, guess_package_name, load_package
from deepcopygen.types import (
    UNIVERSE,
    ArrayType,
    BasicType,
    ChanDir,
    ChanType,
    InterfaceType,
    MapType,
    NamedType,
    PointerType,
    SliceType,
    StructType,
)


class TestLoadPackage:
    """Tests for loading a single package."""

    def test_import_path_from_go_mod(self, go_package):
        """Test that the import path joins the module path and directory."""
        root = go_package({
            "fixture.go": "package fixture\n",
            "sub/dir/sub.go": "package dir\n",
        })
        assert load_package(root)[0].path == "example.com/fixture"
        assert load_package(root / "sub" / "dir")[0].path == "example.com/fixture/sub/dir"

    def test_without_go_mod(self, tmp_path):
        """Test that the directory name is the import path without a module."""
        pkg_dir = tmp_path / "standalone"
        pkg_dir.mkdir()
        (pkg_dir / "a.go").write_text("package standalone\ntype T int\n")
        package = load_package(pkg_dir)[0]
        assert package.path == "standalone"
        assert package.name == "standalone"

    def test_types_in_declaration_order(self, go_package):
        """Test that types are ordered by file name, then declaration."""
        root = go_package({
            "b.go": "package fixture\ntype B int\ntype A int\n",
            "a.go": "package fixture\ntype Z int\n",
        })
        package = load_package(root)[0]
        assert list(package.types) == ["Z", "B", "A"]

    def test_test_files_ignored(self, go_package):
        """Test that _test.go files are not read."""
        root = go_package({
            "a.go": "package fixture\ntype A int\n",
            "a_test.go": "package fixture_test\ntype B int\n",
        })
        assert list(load_package(root)[0].types) == ["A"]

    def test_struct_resolution(self, go_package):
        """Test resolving fields of every kind."""
        root = go_package({
            "a.go": """
                package fixture

                type Inner struct {
                    Tags []string
                }

                type Outer struct {
                    Name  string
                    Items []Inner
                    Ptr   *Inner
                    Attrs map[string][]int
                    Ch    <-chan int
                    Arr   [3]byte
                    Any   interface{}
                    _     int
                }
            """,
        })
        package = load_package(root)[0]
        outer = package.types["Outer"]
        struct = outer.underlying
        assert isinstance(struct, StructType)
        assert struct.package is package
        by_name = {f.name: f.type for f in struct.fields}
        assert by_name["Name"] is UNIVERSE["string"]
        assert isinstance(by_name["Items"], SliceType)
        assert by_name["Items"].elem is package.types["Inner"]
        assert isinstance(by_name["Ptr"], PointerType)
        assert isinstance(by_name["Attrs"], MapType)
        assert isinstance(by_name["Ch"], ChanType)
        assert by_name["Ch"].direction is ChanDir.RECV
        assert isinstance(by_name["Arr"], ArrayType)
        assert by_name["Arr"].elem is UNIVERSE["uint8"]
        assert isinstance(by_name["Any"], InterfaceType)
        assert [f.name for f in struct.fields][-1] == "_"

    def test_self_reference(self, go_package):
        """Test that a type can refer to itself through a pointer."""
        root = go_package({"a.go": "package fixture\ntype Node struct { Next *Node }\n"})
        node = load_package(root)[0].types["Node"]
        assert node.underlying.fields[0].type.elem is node

    def test_aliases(self, go_package):
        """Test that aliases resolve to their target, declared in any order."""
        root = go_package({
            "a.go": """
                package fixture

                type Holder struct {
                    Items List
                }

                type List = Items
                type Items = []Item
                type Item struct{}
            """,
        })
        package = load_package(root)[0]
        field_type = package.types["Holder"].underlying.fields[0].type
        assert isinstance(field_type, SliceType)
        assert field_type.elem is package.types["Item"]
        assert "List" not in package.types

    def test_methods_attached(self, go_package):
        """Test that methods attach to their receiver type."""
        root = go_package({
            "a.go": "package fixture\ntype T struct{}\n",
            "b.go": """
                package fixture

                func (t T) DeepCopy() T { return t }

                func (t *T) Clone() (*T, error) { return t, nil }
            """,
        })
        named = load_package(root)[0].types["T"]
        assert [(m.name, m.pointer_receiver) for m in named.methods] == [
            ("DeepCopy", False),
            ("Clone", True),
        ]
        assert named.methods[0].signature.results == [named]
        assert named.methods[0].receiver is named

    def test_generic_type(self, go_package):
        """Test that generic types keep their parameter names."""
        root = go_package({
            "a.go": "package fixture\ntype Box[T any] struct { V T }\n",
        })
        box = load_package(root)[0].types["Box"]
        assert box.is_generic
        assert box.type_params == ["T"]


class TestImports:
    """Tests for resolving names from other packages."""

    def test_in_module_import(self, go_package):
        """Test loading a package of the same module from source."""
        root = go_package({
            "a.go": """
                package fixture

                import "example.com/fixture/util"

                type T struct {
                    U util.Thing
                }
            """,
            "util/util.go": "package util\ntype Thing struct { X []int }\n",
        })
        package = load_package(root)[0]
        thing = package.types["T"].underlying.fields[0].type
        assert isinstance(thing, NamedType)
        assert thing.package.path == "example.com/fixture/util"
        assert not thing.package.opaque
        assert isinstance(thing.underlying, StructType)
        assert package.imports["example.com/fixture/util"] is thing.package

    def test_package_name_differs_from_directory(self, go_package):
        """Test an implicit import whose package name is not its directory."""
        root = go_package({
            "a.go": """
                package fixture

                import "example.com/fixture/v1api"

                type T struct {
                    R api.Resource
                }
            """,
            "v1api/api.go": "package api\ntype Resource struct{}\n",
        })
        resource = load_package(root)[0].types["T"].underlying.fields[0].type
        assert resource.package.name == "api"

    def test_vendored_import(self, go_package):
        """Test loading a vendored package."""
        root = go_package({
            "a.go": """
                package fixture

                import "github.com/acme/widgets"

                type T struct {
                    W *widgets.Widget
                }
            """,
            "vendor/github.com/acme/widgets/w.go": "package widgets\ntype Widget struct{ N int }\n",
        })
        widget = load_package(root)[0].types["T"].underlying.fields[0].type.elem
        expected = (root / "vendor" / "github.com" / "acme" / "widgets").resolve()
        assert widget.package.directory == expected

    def test_opaque_import(self, go_package):
        """Test that packages outside the module are opaque."""
        root = go_package({
            "a.go": """
                package fixture

                import (
                    "time"
                    yaml "gopkg.in/yaml.v3"
                )

                type T struct {
                    When time.Time
                    Node yaml.Node
                }
            """,
        })
        fields = load_package(root)[0].types["T"].underlying.fields
        when = fields[0].type
        assert when.package.opaque
        assert when.package.name == "time"
        assert when.definition is None
        assert when.underlying is None
        assert fields[1].type.package.name == "yaml"

    def test_dot_import(self, go_package):
        """Test resolving unqualified names through a dot import."""
        root = go_package({
            "a.go": """
                package fixture

                import . "example.com/fixture/util"

                type T struct {
                    U Thing
                }
            """,
            "util/util.go": "package util\ntype Thing struct{}\n",
        })
        thing = load_package(root)[0].types["T"].underlying.fields[0].type
        assert thing.package.name == "util"

    def test_foreign_package_loaded_once(self, go_package):
        """Test that two references share one foreign package."""
        root = go_package({
            "a.go": """
                package fixture

                import "example.com/fixture/util"

                type A struct { U util.Thing }
            """,
            "b.go": """
                package fixture

                import "example.com/fixture/util"

                type B struct { U *util.Thing }
            """,
            "util/util.go": "package util\ntype Thing struct{}\n",
        })
        package = load_package(root)[0]
        a = package.types["A"].underlying.fields[0].type
        b = package.types["B"].underlying.fields[0].type.elem
        assert a is b

    def test_import_cycle(self, go_package):
        """Test that an import cycle is reported."""
        root = go_package({
            "a.go": """
                package fixture

                import "example.com/fixture/sub"

                type R struct { S sub.T }
            """,
            "sub/sub.go": """
                package sub

                import "example.com/fixture"

                type T struct { R *fixture.R }
            """,
        })
        with pytest.raises(LoadError, match="import cycle"):
            load_package(root)


class TestLoadErrors:
    """Tests for load failures."""

    def test_missing_directory(self, tmp_path):
        """Test loading a directory that does not exist."""
        with pytest.raises(LoadError, match="not a package directory"):
            load_package(tmp_path / "missing")

    def test_no_go_files(self, go_package):
        """Test loading a directory without Go files."""
        root = go_package({"README.md": "nothing here\n"})
        with pytest.raises(LoadError, match="no Go files"):
            load_package(root)

    def test_parse_error_names_file(self, go_package):
        """Test that parse errors are wrapped with the file name."""
        root = go_package({"broken.go": "package fixture\ntype = int\n"})
        with pytest.raises(LoadError, match=r"broken\.go.*line 2") as exc_info:
            load_package(root)
        assert isinstance(exc_info.value.__cause__, SyntaxError)

    def test_mixed_package_names(self, go_package):
        """Test that all files must declare the same package."""
        root = go_package({"a.go": "package one\n", "b.go": "package two\n"})
        with pytest.raises(LoadError, match="found packages one, two"):
            load_package(root)

    def test_undefined_type(self, go_package):
        """Test that an unknown identifier fails the load."""
        root = go_package({"a.go": "package fixture\ntype T struct { X Missing }\n"})
        with pytest.raises(LoadError, match="undefined: Missing"):
            load_package(root)

    def test_undefined_qualifier(self, go_package):
        """Test that a qualifier without an import fails the load."""
        root = go_package({"a.go": "package fixture\ntype T struct { X util.Thing }\n"})
        with pytest.raises(LoadError, match="undefined: util"):
            load_package(root)

    def test_recursive_definition(self, go_package):
        """Test that a cycle of definitions fails the load."""
        root = go_package({"a.go": "package fixture\ntype A B\ntype B A\n"})
        with pytest.raises(LoadError, match="invalid recursive type"):
            load_package(root)

    def test_redeclared_type(self, go_package):
        """Test that a type declared twice fails the load."""
        root = go_package({
            "a.go": "package fixture\ntype A int\n",
            "b.go": "package fixture\ntype A string\n",
        })
        with pytest.raises(LoadError, match="A redeclared"):
            load_package(root)

    def test_undecodable_file(self, go_package):
        """Test that a file that is not UTF-8 fails the load with its name."""
        root = go_package({"a.go": "package fixture\n"})
        (root / "bad.go").write_bytes(b"package fixture\n\xff\n")
        with pytest.raises(LoadError, match=r"cannot read .*bad\.go") as exc_info:
            load_package(root)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)


class TestGuessPackageName:
    """Tests for naming packages that are not on disk."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("time", "time"),
            ("net/http", "http"),
            ("github.com/acme/widgets/v2", "widgets"),
            ("gopkg.in/yaml.v3", "yaml"),
            ("github.com/go-chi/chi", "chi"),
            ("github.com/acme/go-widgets", "widgets"),
        ],
    )
    def test_guess(self, path, expected):
        """Test guessing a package name from its import path."""
        assert guess_package_name(path) == expected

    def test_loader_reuses_basic_types(self, go_package):
        """Test that predeclared types are shared across packages."""
        root = go_package({"a.go": "package fixture\ntype T struct { N int }\n"})
        loader = PackageLoader()
        field_type = loader.load(root)[0].types["T"].underlying.fields[0].type
        assert isinstance(field_type, BasicType)
        assert field_type is UNIVERSE["int"]


class TestBuildConstraints:
    """Tests for choosing the files of a package."""

    LINUX = BuildContext(goos="linux", goarch="amd64")

    def test_ignored_program_left_out(self, go_package):
        """Test that a ``//go:build ignore`` generator program is not loaded."""
        root = go_package({
            "sort.go": "package sort\ntype Slice []int\n",
            "gen.go": "//go:build ignore\n\npackage main\n\ntype Slice struct{}\n",
        })
        packages = PackageLoader(self.LINUX).load(root)
        assert packages[0].name == "sort"
        assert isinstance(packages[0].types["Slice"].underlying, SliceType)

    def test_os_file_suffix(self, go_package):
        """Test that files for another operating system are left out."""
        root = go_package({
            "dir.go": "package fixture\ntype Dir struct { info *dirInfo }\n",
            "dir_unix.go": "//go:build unix\n\npackage fixture\ntype dirInfo struct { fd int }\n",
            "dir_plan9.go": "package fixture\ntype dirInfo struct { path string }\n",
            "dir_windows_amd64.go": "package fixture\ntype dirInfo struct { h uintptr }\n",
        })
        package = PackageLoader(self.LINUX).load(root)[0]
        fields = package.types["dirInfo"].underlying.fields
        assert [f.name for f in fields] == ["fd"]

    def test_plus_build_lines(self, go_package):
        """Test that legacy ``// +build`` lines are honored."""
        root = go_package({
            "a.go": "package fixture\ntype A int\n",
            "b.go": "// +build darwin,!cgo windows\n\npackage fixture\ntype A string\n",
        })
        package = PackageLoader(self.LINUX).load(root)[0]
        assert package.types["A"].underlying is UNIVERSE["int"]

    def test_all_files_excluded(self, go_package):
        """Test a directory whose every file is for another platform."""
        root = go_package({"a_windows.go": "package fixture\ntype A int\n"})
        with pytest.raises(LoadError, match="build constraints exclude all Go files"):
            PackageLoader(self.LINUX).load(root)

    def test_invalid_constraint(self, go_package):
        """Test that a malformed ``//go:build`` line fails the load."""
        root = go_package({"a.go": "//go:build linux &&\n\npackage fixture\n"})
        with pytest.raises(LoadError, match=r"a\.go.*build constraint"):
            PackageLoader(self.LINUX).load(root)
