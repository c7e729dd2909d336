import pytest

from oidmap.exceptions import FormatError
from oidmap.oid import Identifier, components_after, is_prefix_of


class TestParse:

    def test_dotted_text(self):
        oid = Identifier.parse("1.3.6.1.2.1.1")
        assert oid.components == (1, 3, 6, 1, 2, 1, 1)
        assert str(oid) == "1.3.6.1.2.1.1"
        assert len(oid) == 7

    def test_single_component(self):
        assert Identifier.parse("0").components == (0,)

    @pytest.mark.parametrize("text", [
        "", "1..3", ".1.3", "1.3.", "1.a.3", "1.-3", "1. 3", "1.3.6.1.²",
    ])
    def test_malformed_text_rejected(self, text):
        with pytest.raises(FormatError):
            Identifier.parse(text)

    def test_format_error_is_value_error(self):
        with pytest.raises(ValueError):
            Identifier.parse("x")

    def test_negative_component_rejected_in_constructor(self):
        with pytest.raises(FormatError):
            Identifier((1, -3))

    def test_coerce(self):
        oid = Identifier.parse("1.3")
        assert Identifier.coerce(oid) is oid
        assert Identifier.coerce("1.3") == oid
        assert Identifier.coerce([1, 3]) == oid


class TestOrdering:

    def test_component_order_not_text_order(self):
        assert Identifier.parse("1.3.6.1.2") < Identifier.parse("1.3.6.1.10")

    def test_prefix_sorts_first(self):
        assert Identifier.parse("1.3") < Identifier.parse("1.3.0") < Identifier.parse("1.4")

    def test_sorting(self):
        oids = [Identifier.parse(t) for t in ("1.3.10", "1.3.2.1", "1.3.2", "1.1")]
        assert [str(o) for o in sorted(oids)] == ["1.1", "1.3.2", "1.3.2.1", "1.3.10"]

    def test_hashable_and_equal(self):
        assert {Identifier.parse("1.3"): "x"}[Identifier((1, 3))] == "x"

    def test_immutable(self):
        oid = Identifier.parse("1.3")
        with pytest.raises(AttributeError):
            oid.components = (2,)


class TestPrefix:

    @pytest.mark.parametrize("text", ["1", "1.3.6.1", "0.0.7", "1.3.6.1.4.1.41112.1.4"])
    def test_reflexive(self, text):
        oid = Identifier.parse(text)
        assert oid.is_prefix_of(oid)
        assert is_prefix_of(oid, oid)

    def test_antisymmetric(self):
        a = Identifier.parse("1.3.6")
        b = Identifier.parse("1.3.6.1")
        assert a.is_prefix_of(b)
        assert not b.is_prefix_of(a)
        assert a != b

    def test_not_prefix_on_divergence(self):
        assert not Identifier.parse("1.3.6.1.2").is_prefix_of(Identifier.parse("1.3.6.1.20"))

    def test_empty_is_prefix_of_everything(self):
        assert Identifier(()).is_prefix_of(Identifier.parse("2.5"))

    def test_parent_and_child(self):
        oid = Identifier.parse("1.3.6")
        assert oid.parent == Identifier.parse("1.3")
        assert oid.child(1) == Identifier.parse("1.3.6.1")
        assert Identifier(()).parent is None


class TestComponentsAfter:

    def test_beyond_root(self):
        root = Identifier.parse("1.3.6.1")
        full = Identifier.parse("1.3.6.1.2.1.1.5.0")
        assert components_after(root, full) == (2, 1, 1, 5, 0)

    def test_same_identifier(self):
        oid = Identifier.parse("1.3.6.1")
        assert components_after(oid, oid) == ()

    def test_diverging_root_uses_shared_prefix(self):
        root = Identifier.parse("1.3.6.2")
        full = Identifier.parse("1.3.6.1.5")
        assert components_after(root, full) == (1, 5)
