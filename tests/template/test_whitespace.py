"""
Structural markers alone on a line leave no trace in the output.
"""

from xtpl.template import Template

from tests.infrastructure import render_string


def test_indented_loop_markers_vanish():
    code = (
        "<!-- BEGIN: MAIN -->\n"
        "<ul>\n"
        "    <!-- FOR {V} IN {L} -->\n"
        "    <li>{V}</li>\n"
        "    <!-- ENDFOR -->\n"
        "</ul>\n"
        "<!-- END: MAIN -->\n"
    )
    assert render_string(code, {"L": [1, 2]}) == "<ul>\n    <li>1</li>\n    <li>2</li>\n</ul>"


def test_crlf_lines():
    code = (
        "<!-- BEGIN: MAIN -->\r\n"
        "<p>\r\n"
        "<!-- IF {A} -->\r\n"
        "yes\r\n"
        "<!-- ENDIF -->\r\n"
        "</p>\r\n"
        "<!-- END: MAIN -->"
    )
    assert render_string(code, {"A": 1}) == "<p>\r\nyes\r\n</p>"
    assert render_string(code, {"A": 0}) == "<p>\r\n</p>"


def test_else_on_own_line():
    code = (
        "<!-- BEGIN: MAIN -->\n"
        "<!-- IF {A} -->\n"
        "  a\n"
        "<!-- ELSE -->\n"
        "  b\n"
        "<!-- ENDIF -->\n"
        "end\n"
        "<!-- END: MAIN -->"
    )
    assert render_string(code, {"A": True}) == "  a\nend"
    assert render_string(code, {"A": False}) == "  b\nend"


def test_inline_markers_keep_surrounding_text():
    code = "<!-- BEGIN: MAIN -->a <!-- IF {A} -->b<!-- ENDIF --> c<!-- END: MAIN -->"
    assert render_string(code, {"A": 1}) == "a b c"
    assert render_string(code, {"A": 0}) == "a  c"


def test_marker_followed_by_text_is_not_alone():
    code = "<!-- BEGIN: MAIN -->\nx\n  <!-- IF {A} --> y\n<!-- ENDIF -->\n<!-- END: MAIN -->"
    assert render_string(code, {"A": 1}) == "x\n   y\n"


def test_nested_block_lines():
    code = (
        "<!-- BEGIN: MAIN -->\n"
        "<table>\n"
        "  <!-- BEGIN: ROW -->\n"
        "  <tr>{ROW}</tr>\n"
        "  <!-- END: ROW -->\n"
        "</table>\n"
        "<!-- END: MAIN -->"
    )
    tpl = Template.from_string(code)
    for row in ("a", "b"):
        tpl.assign("ROW", row).parse("MAIN.ROW")
    tpl.parse("MAIN")
    assert tpl.text("MAIN") == "<table>\n  <tr>a</tr>\n  <tr>b</tr>\n</table>"
