import io
from pathlib import Path

import pytest

from xtpl.callbacks import CallbackRegistry
from xtpl.config import EngineConfig, load_engine_config
from xtpl.errors import InvalidNodeOperation, MissingTemplateFile
from xtpl.template import DebugLog, MemoryReader, Template


NESTED = (
    "<!-- BEGIN: MAIN -->"
    "<!-- FOR {V} IN {L} --><!-- BEGIN: ITEM -->[{V}]<!-- END: ITEM --><!-- ENDFOR -->"
    "<!-- IF {A} --><!-- BEGIN: YES -->y{A}<!-- END: YES --><!-- ENDIF -->"
    "<!-- END: MAIN -->"
)


class TestFileTemplate:

    def test_page_with_rows_and_include(self, tplproj: Path):
        cfg = load_engine_config(tplproj / "xtpl.yaml")
        tpl = Template(tplproj / "themes" / "page.tpl", cfg)
        tpl.assign("TITLE", "Hello")
        tpl.assign("ROW", {"name": "a&b"})
        tpl.parse("MAIN.ROW")
        tpl.parse("MAIN")
        assert tpl.text("MAIN") == "<h1>Hello</h1>\n<ul>\n<li>a&amp;b</li>\n</ul>\n<footer>HELLO</footer>"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(MissingTemplateFile) as exc:
            Template(tmp_path / "nope.tpl")
        assert exc.value.path == tmp_path / "nope.tpl"

    def test_memory_reader(self):
        reader = MemoryReader({"page.tpl": "<!-- BEGIN: MAIN -->{X}<!-- END: MAIN -->"})
        tpl = Template("page.tpl", reader=reader)
        assert tpl.assign("X", 1).parse().text() == "1"


class TestVariables:

    def setup_method(self):
        self.tpl = Template.from_string("<!-- BEGIN: MAIN -->{USER.name} {P_a}<!-- END: MAIN -->")

    def test_dotted_assign_creates_mappings(self):
        self.tpl.assign("USER.name", "Bob")
        assert self.tpl.vars["USER"] == {"name": "Bob"}
        assert self.tpl.get("USER.name") == "Bob"

    def test_mapping_assign_with_prefix(self):
        self.tpl.assign({"a": 1}, prefix="P_")
        assert self.tpl.get("P_a") == 1
        assert "a" not in self.tpl.vars

    def test_get_unset(self):
        assert self.tpl.get("NOPE") is None
        assert self.tpl.get("USER.name") is None

    def test_render(self):
        self.tpl.assign({"USER": {"name": "Ann"}, "P_a": 2})
        assert self.tpl.parse().text() == "Ann 2"


class TestBlocks:

    def setup_method(self):
        self.tpl = Template.from_string(NESTED)

    def test_block_inside_loop_is_located(self):
        assert self.tpl.has_block("MAIN.ITEM")
        self.tpl.assign("V", "x").parse("MAIN.ITEM")
        assert self.tpl.text("MAIN.ITEM") == "[x]"
        assert self.tpl.text("MAIN.ITEM") == ""

    def test_block_inside_conditional_is_located(self):
        self.tpl.assign("A", 1).parse("MAIN.YES")
        self.tpl.parse("MAIN")
        assert self.tpl.text("MAIN") == "y1"

    def test_loop_flushes_nested_block_once(self):
        self.tpl.assign("V", "x").parse("MAIN.ITEM")
        self.tpl.assign("L", [1, 2]).parse("MAIN")
        assert self.tpl.text("MAIN") == "[x]"

    def test_loop_bindings_persist(self):
        self.tpl.assign("L", [1, 2]).parse("MAIN")
        assert self.tpl.get("V") == 2

    def test_reset(self):
        self.tpl.assign("A", 1).parse("MAIN.YES")
        self.tpl.reset("MAIN.YES")
        self.tpl.parse("MAIN")
        assert self.tpl.text("MAIN") == ""

    def test_unknown_block_is_ignored(self):
        self.tpl.parse("MAIN.NOPE").reset("NOPE")
        assert self.tpl.text("NOPE") == ""

    def test_introspection(self):
        assert self.tpl.blocks() == ["MAIN", "MAIN.ITEM", "MAIN.YES"]
        assert self.tpl.has_block("MAIN")
        assert not self.tpl.has_block("ITEM")
        assert self.tpl.get_tags() == ["A", "V"]
        assert self.tpl.has_tag("V")
        assert not self.tpl.has_tag("L")

    def test_non_block_node_rejected(self):
        self.tpl._compiled.index["LOOP"] = ("MAIN", 0)
        with pytest.raises(InvalidNodeOperation):
            self.tpl.parse("LOOP")

    def test_str_rebuilds_source(self):
        tpl = Template.from_string("<!-- BEGIN: MAIN -->Hi {X}<!-- END: MAIN -->")
        assert str(tpl) == "<!-- BEGIN: MAIN -->\nHi {X}<!-- END: MAIN -->\n"

    def test_out_writes_to_stream(self):
        tpl = Template.from_string("<!-- BEGIN: MAIN -->Hi {X}<!-- END: MAIN -->")
        buf = io.StringIO()
        tpl.assign("X", "there").parse().out(stream=buf)
        assert buf.getvalue() == "Hi there"

    def test_custom_callbacks(self):
        registry = CallbackRegistry({"money": lambda v: f"{float(v):.2f}"})
        tpl = Template.from_string("<!-- BEGIN: MAIN -->{P|money}<!-- END: MAIN -->", registry=registry)
        assert tpl.assign("P", 3).parse().text() == "3.00"

    def test_host_globals(self):
        cfg = EngineConfig(host_globals={"cfg": {"mainurl": "https://example.org"}})
        tpl = Template.from_string("<!-- BEGIN: MAIN -->{PHP.cfg.mainurl}<!-- END: MAIN -->", cfg)
        assert tpl.parse().text() == "https://example.org"


class TestDebug:

    CODE = "<!-- BEGIN: MAIN -->{TITLE}<!-- END: MAIN -->"

    def test_first_parse_is_recorded(self):
        tpl = Template.from_string(self.CODE, EngineConfig(debug=True))
        tpl.assign({"TITLE": "x" * 70, "ROW": {"a": 1}})
        tpl.parse()
        tpl.assign("TITLE", "other").parse()
        assert tpl.debug_data() == {
            "string.tpl": {"MAIN": {"ROW.a": 1, "TITLE": "x" * 60 + "..."}},
        }

    def test_nothing_recorded_without_debug(self):
        tpl = Template.from_string(self.CODE)
        tpl.assign("TITLE", "x").parse()
        assert tpl.debug_data() == {}

    def test_shared_log_across_sessions(self):
        log = DebugLog()
        cfg = EngineConfig(debug=True)
        Template.from_string(self.CODE, cfg, name="a.tpl", debug_log=log).parse()
        Template.from_string(self.CODE, cfg, name="b.tpl", debug_log=log).parse()
        assert sorted(log.data) == ["a.tpl", "b.tpl"]

    def test_debug_output_replaces_text(self):
        tpl = Template.from_string(self.CODE, EngineConfig(debug=True, debug_output=True))
        buf = io.StringIO()
        tpl.assign("TITLE", "Hi").parse().out(stream=buf)
        html = buf.getvalue()
        assert html.startswith("<h1>string.tpl</h1>")
        assert "<h2>string.tpl / MAIN</h2>" in html
        assert "<li>{TITLE} =&gt; <em>&quot;Hi&quot;</em></li>" in html
