from __future__ import annotations

from livebundle.errors import InclusionCycleError
from livebundle.tree.scan import is_commented, parse_argument, scan_directives


def test_finds_calls_with_line_positions_and_indentation() -> None:
    content = "\n".join(
        [
            "const a = 1;",
            "include('./lib/a.js');",
            "if (true) {",
            "    include(\"b.js\")",
            "}",
        ]
    )
    result = scan_directives(content, "include", "./app")

    assert sorted(result.pointers) == [2, 4]
    assert result.pointers[2].path == "./app/lib/a.js"
    assert result.pointers[2].indentation == 0
    assert result.pointers[4].path == "./app/b.js"
    assert result.pointers[4].indentation == 4
    assert result.paths == {"./app/lib/a.js", "./app/b.js"}


def test_identifier_prefix_is_not_a_call() -> None:
    content = "my_include('a.js');\nobj.include('b.js');\nx = include('c.js');"
    result = scan_directives(content, "include", ".")

    assert list(result.pointers) == [3]
    assert result.pointers[3].path == "./c.js"


def test_commented_calls_are_inert() -> None:
    content = "\n".join(
        [
            "// include('a.js')",
            "/* include('b.js')",
            "*/ include('c.js')",
            "/* note */ include('d.js')",
            "x; // later include('e.js')",
        ]
    )
    result = scan_directives(content, "include", ".")

    assert sorted(result.pointers) == [3, 4]
    assert result.pointers[3].path == "./c.js"
    assert result.pointers[4].path == "./d.js"


def test_line_comment_on_previous_line_does_not_hide_call() -> None:
    result = scan_directives("// comment\ninclude('a.js')", "include", ".")

    assert list(result.pointers) == [2]


def test_call_without_closing_paren_or_argument_is_ignored() -> None:
    result = scan_directives("include('a.js'\ninclude()", "include", ".")

    assert result.pointers == {}


def test_ancestor_targets_are_reported_as_cycles() -> None:
    content = "line\ninclude('entry.js')\ninclude('other.js')"
    result = scan_directives(
        content, "include", "./app", frozenset({"./app/entry.js"})
    )

    assert list(result.pointers) == [3]
    assert "./app/entry.js" not in result.paths
    assert len(result.cycles) == 1
    cycle = result.cycles[0]
    assert isinstance(cycle, InclusionCycleError)
    assert (cycle.path, cycle.line) == ("./app/entry.js", 2)


def test_custom_keyword() -> None:
    result = scan_directives("require_file('a.js')\ninclude('b.js')", "require_file", ".")

    assert list(result.pointers) == [1]
    assert result.pointers[1].path == "./a.js"


def test_parse_argument_strips_quotes() -> None:
    assert parse_argument("'a.js');") == "a.js"
    assert parse_argument("`dir/b.js`) + 1") == "dir/b.js"


def test_is_commented() -> None:
    assert is_commented("  // ")
    assert is_commented("/* open ")
    assert not is_commented("/* closed */ ")
    assert not is_commented("    ")
