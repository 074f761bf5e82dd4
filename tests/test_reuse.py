"""Tests for copy-method detection and calls."""

import pytest

from deepcopygen.render import CodeWriter
from deepcopygen.reuse import CopyMethod, emit_copy_call, find_copy_method
from deepcopygen.types import (
    UNIVERSE,
    InterfaceType,
    Method,
    NamedType,
    PointerType,
    SignatureType,
    StructType,
)


def with_method(name="DeepCopy", params=(), results=None, pointer_receiver=False):
    named = NamedType(name="T", definition=StructType())
    if results is None:
        results = [named]
    named.methods.append(Method(
        name=name,
        signature=SignatureType(params=list(params), results=list(results)),
        pointer_receiver=pointer_receiver,
        receiver=named,
    ))
    return named


class TestFindCopyMethod:
    """Tests for finding a reusable copy method."""

    def test_value_result(self):
        """Test a method returning the receiver type."""
        assert find_copy_method(with_method(), "DeepCopy") == CopyMethod("DeepCopy", False)

    def test_pointer_result(self):
        """Test a method returning a pointer to the receiver type."""
        named = NamedType(name="T", definition=StructType())
        named.methods.append(Method(
            name="DeepCopy",
            signature=SignatureType(results=[PointerType(named)]),
            pointer_receiver=True,
            receiver=named,
        ))
        assert find_copy_method(named, "DeepCopy") == CopyMethod("DeepCopy", True)

    def test_other_name(self):
        """Test that only the configured name is used."""
        assert find_copy_method(with_method(name="Clone"), "DeepCopy") is None
        assert find_copy_method(with_method(name="Clone"), "Clone") == CopyMethod("Clone", False)

    def test_parameters_rejected(self):
        """Test that a method taking arguments is not reused."""
        named = with_method(params=[UNIVERSE["int"]])
        assert find_copy_method(named, "DeepCopy") is None

    def test_wrong_results_rejected(self):
        """Test that a different or extra result is not reused."""
        assert find_copy_method(with_method(results=[UNIVERSE["int"]]), "DeepCopy") is None
        named = NamedType(name="T", definition=StructType())
        named.methods.append(Method(
            name="DeepCopy",
            signature=SignatureType(results=[named, UNIVERSE["error"]]),
            receiver=named,
        ))
        assert find_copy_method(named, "DeepCopy") is None

    def test_interface_method(self):
        """Test that a named interface's own method is found."""
        iface = InterfaceType()
        named = NamedType(name="Copier", definition=iface)
        iface.methods.append(Method(
            name="DeepCopy", signature=SignatureType(results=[named])
        ))
        assert find_copy_method(named, "DeepCopy") == CopyMethod("DeepCopy", False)


class TestEmitCopyCall:
    """Tests for emitting calls to copy methods."""

    @pytest.mark.parametrize(
        "returns_pointer, sink_is_pointer, expected",
        [
            (True, True, ["cp.P = o.P.DeepCopy()"]),
            (False, True, ["retV := o.P.DeepCopy()", "cp.P = &retV"]),
            (True, False, ["cp.P = *o.P.DeepCopy()"]),
            (False, False, ["cp.P = o.P.DeepCopy()"]),
        ],
    )
    def test_result_adapted_to_sink(self, returns_pointer, sink_is_pointer, expected):
        """Test each combination of result and sink shape."""
        out = CodeWriter()
        emit_copy_call(
            CopyMethod("DeepCopy", returns_pointer),
            "o.P",
            "cp.P",
            out,
            sink_is_pointer=sink_is_pointer,
        )
        assert out.lines == expected

    def test_nil_guard(self):
        """Test a nil-guarded call."""
        out = CodeWriter()
        emit_copy_call(
            CopyMethod("DeepCopy", False), "o.C", "cp.C", out,
            sink_is_pointer=False, nil_guard=True,
        )
        assert out.lines == [
            "if o.C != nil {",
            "\tcp.C = o.C.DeepCopy()",
            "}",
        ]
