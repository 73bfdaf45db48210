import pytest

from xtpl.callbacks import CallbackRegistry
from xtpl.conditions import compile_expression
from xtpl.template import BlockNode, ConditionalNode, DataNode, LoopNode
from xtpl.template.nodes import node_from_dict
from xtpl.variables import parse_reference

from tests.infrastructure import make_ctx


class Bag:
    """Iterable host object."""

    def __init__(self, *items):
        self._items = list(items)

    def __iter__(self):
        return iter(self._items)


def _loop(body: str, collection: str = "M", key_var="K") -> LoopNode:
    return LoopNode("V", parse_reference(collection), {0: DataNode.from_text(body)}, key_var=key_var)


class TestDataNode:

    def test_interpolates_tags(self):
        node = DataNode.from_text("Hi {NAME|strtoupper}!")
        assert node.text(make_ctx({"NAME": "bob"})) == "Hi BOB!"
        assert node.tags() == {"NAME"}
        assert node.to_source() == "Hi {NAME|strtoupper}!"

    def test_scalar_rendering(self):
        node = DataNode.from_text("[{A}][{B}][{C}][{D}]")
        assert node.text(make_ctx({"A": None, "B": True, "C": False, "D": 3})) == "[][1][][3]"

    def test_missing_variable_renders_empty(self):
        assert DataNode.from_text("x{NOPE}y").text(make_ctx()) == "xy"


class TestBlockNode:

    def setup_method(self):
        self.block = BlockNode("B", {0: DataNode.from_text("[{X}]")})

    def test_parse_accumulates_and_text_flushes(self):
        ctx = make_ctx({"X": 1})
        self.block.parse(ctx)
        ctx.vars["X"] = 2
        self.block.parse(ctx)
        assert self.block.text(ctx) == "[1][2]"
        assert self.block.text(ctx) == ""

    def test_reset_discards_buffer(self):
        ctx = make_ctx({"X": 1})
        self.block.parse(ctx)
        self.block.reset()
        assert self.block.text(ctx) == ""

    def test_unparsed_child_block_renders_empty(self):
        parent = BlockNode("P", {0: DataNode.from_text("<"), "B": self.block, 1: DataNode.from_text(">")})
        ctx = make_ctx({"X": 1})
        parent.parse(ctx)
        assert parent.text(ctx) == "<>"

    def test_parent_parse_flushes_child(self):
        parent = BlockNode("P", {"B": self.block})
        ctx = make_ctx({"X": 7})
        self.block.parse(ctx)
        parent.parse(ctx)
        parent.parse(ctx)
        assert parent.text(ctx) == "[7]"


class TestLoopNode:

    def test_mapping(self):
        ctx = make_ctx({"M": {"a": 1, "b": 2}})
        assert _loop("{K}={V};").text(ctx) == "a=1;b=2;"

    def test_sequence_keys_are_positions(self):
        ctx = make_ctx({"M": ["x", "y"]})
        assert _loop("{K}={V};").text(ctx) == "0=x;1=y;"

    def test_value_only(self):
        ctx = make_ctx({"M": ("x", "y")})
        assert _loop("<{V}>", key_var=None).text(ctx) == "<x><y>"
        assert "K" not in ctx.vars

    def test_iterable_object(self):
        ctx = make_ctx({"M": Bag("p", "q")})
        assert _loop("{K}{V}").text(ctx) == "0p1q"

    @pytest.mark.parametrize("value", [None, 5, "text", True])
    def test_non_iterable_renders_nothing(self, value):
        ctx = make_ctx({"M": value})
        assert _loop("{V}").text(ctx) == ""

    def test_bindings_persist_after_loop(self):
        ctx = make_ctx({"M": {"a": 1, "b": 2}})
        _loop("{V}").text(ctx)
        assert ctx.vars["K"] == "b"
        assert ctx.vars["V"] == 2

    def test_collection_callbacks(self):
        registry = CallbackRegistry({"array_reverse": lambda v: list(reversed(v))})
        ctx = make_ctx({"DATA": {"rows": [1, 2, 3]}}, registry=registry)
        loop = LoopNode("V", parse_reference("DATA.rows|array_reverse"), {0: DataNode.from_text("{V}")})
        assert loop.text(ctx) == "321"

    def test_header_and_source(self):
        loop = _loop("{V}")
        assert loop.header() == "{K}, {V} IN {M}"
        assert loop.to_source() == "<!-- FOR {K}, {V} IN {M} -->\n{V}<!-- ENDFOR -->\n"


class TestConditionalNode:

    def setup_method(self):
        self.node = ConditionalNode(
            compile_expression("{N} > 1"),
            {0: DataNode.from_text("many {N}")},
            {0: DataNode.from_text("one")},
        )

    def test_branches(self):
        assert self.node.text(make_ctx({"N": 5})) == "many 5"
        assert self.node.text(make_ctx({"N": 1})) == "one"
        assert self.node.text(make_ctx()) == "one"

    def test_branch_lookup(self):
        assert self.node.branch(0) is self.node.if_children
        assert self.node.branch(1) is self.node.else_children

    def test_tags_cover_both_branches(self):
        assert self.node.tags() == {"N"}

    def test_source_without_else(self):
        node = ConditionalNode(compile_expression("{A}"), {0: DataNode.from_text("y")})
        assert node.to_source() == "<!-- IF {A} -->\ny<!-- ENDIF -->\n"


class TestSerialization:

    def test_tree_survives_dict_form(self):
        block = BlockNode("MAIN", {
            0: DataNode.from_text("<{TITLE}>"),
            1: _loop("{K}:{V} "),
            2: ConditionalNode(compile_expression("{N} == 1"), {0: DataNode.from_text("one")}),
        })
        rebuilt = node_from_dict(block.to_dict())
        ctx = make_ctx({"TITLE": "t", "M": {"a": 1}, "N": 1})
        rebuilt.parse(ctx)
        assert rebuilt.text(ctx) == "<t>a:1 one"
        assert list(rebuilt.children) == [0, 1, 2]

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            node_from_dict({"type": "bogus"})
