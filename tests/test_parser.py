"""Tests for the Opal parser."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from opal import Document, Fragment, OpalParser, OpalSyntaxError, Script, parse
from opal.engine.diagnostics import ErrorReason


def parse_error(source: str, path=None) -> OpalSyntaxError:
    with pytest.raises(OpalSyntaxError) as info:
        parse(source, path)
    return info.value


class TestDocument:

    def test_end_to_end(self):
        source = '<scene name="demo">\n  <box {color} />\n</scene>\n'

        assert parse(source) == Document(
            scripts=[],
            fragments=[
                Fragment(
                    name="scene",
                    attributes={"name": "demo"},
                    children=[Fragment(name="box", bindings={"color": "color"})],
                )
            ],
        )

    def test_scene_with_script(self, scene_source):
        document = parse(scene_source)

        assert document.scripts == [
            Script(
                source='\n\tconsole.log("hello world");\n\tlet color: string = "red";\n',
                attributes={"lang": "ts"},
            )
        ]
        assert len(document.fragments) == 1

        scene = document.fragments[0]
        assert scene.attributes == {"name": "demo scene"}
        assert scene.children == [Fragment(name="box", bindings={"color": "color"})]

    @pytest.mark.parametrize("source", ["", "   ", "\n\t\n"])
    def test_empty(self, source):
        assert parse(source) == Document()

    def test_root_siblings_keep_order(self):
        document = parse("<a /><b></b>\n<c />")
        assert [fragment.name for fragment in document.fragments] == ["a", "b", "c"]

    def test_children_keep_order(self):
        document = parse("<list><x /><y><z /></y><w /></list>")
        root = document.fragments[0]

        assert [child.name for child in root.children] == ["x", "y", "w"]
        assert root.children[1].children == [Fragment(name="z")]

    def test_deep_nesting(self):
        depth = 50
        source = "".join(f"<n{i}>" for i in range(depth)) + "".join(
            f"</n{i}>" for i in reversed(range(depth))
        )
        document = parse(source)

        assert len(document.fragments) == 1
        assert len(list(document.walk())) == depth

    def test_nesting_deeper_than_recursion_limit(self, log_records):
        depth = 3000
        document = parse("<n>" * depth + "</n>" * depth)

        fragments = list(document.walk())
        assert len(fragments) == depth
        assert fragments[-1].children == []
        assert all(
            len(parent.children) == 1 and parent.children[0] is child
            for parent, child in zip(fragments, fragments[1:])
        )

        record = next(r for r in log_records if r.message == "Parsed document")
        assert record.context["fragments"] == depth

    def test_walk_order_with_siblings(self):
        document = parse("<a><b><c /></b><d /></a><e><f /></e>")
        assert [fragment.name for fragment in document.walk()] == ["a", "b", "c", "d", "e", "f"]

    def test_fragment_location(self):
        document = parse("<scene>\n  <box />\n</scene>")
        scene = document.fragments[0]

        assert (scene.line, scene.column) == (1, 1)
        assert (scene.children[0].line, scene.children[0].column) == (2, 3)

    def test_tag_name_after_whitespace(self):
        assert parse("< box />").fragments == [Fragment(name="box")]


class TestScripts:

    def test_round_trip(self):
        body = "\n  const a = { b: 1 };\n\n  if (a.b < 2) {}\n"
        document = parse(f'<script lang="ts">{body}</script>')

        assert document.scripts == [Script(source=body, attributes={"lang": "ts"})]
        assert document.scripts[0].lang == "ts"
        assert document.fragments == []

    def test_without_attributes(self):
        script = parse("<script>x()</script>").scripts[0]
        assert script.attributes == {}
        assert script.lang == ""

    def test_scripts_keep_order(self):
        document = parse("<script>a</script><scene /><script>b</script>")

        assert [script.source for script in document.scripts] == ["a", "b"]
        assert document.fragments == [Fragment(name="scene")]

    def test_quoted_terminator(self):
        document = parse('<script>let s = "</script>";</script>')
        assert document.scripts[0].source == 'let s = "</script>";'

    def test_inside_fragment(self):
        document = parse("<scene><script>x</script><box /></scene>")

        assert document.scripts == [Script(source="x")]
        assert document.fragments[0].children == [Fragment(name="box")]

    def test_self_closing_script_is_a_fragment(self):
        document = parse('<script src="a.js" />')

        assert document.scripts == []
        assert document.fragments == [Fragment(name="script", attributes={"src": "a.js"})]

    def test_unterminated(self):
        error = parse_error("<script>var x = 1;")
        assert error.reason is ErrorReason.UNTERMINATED_SCRIPT


class TestAttributes:

    def test_string_attributes(self):
        fragment = parse("""<box a="1" b='two words' c="" />""").fragments[0]
        assert fragment.attributes == {"a": "1", "b": "two words", "c": ""}

    def test_boolean_attribute(self):
        fragment = parse("<box visible castShadow/>").fragments[0]
        assert fragment.attributes == {"visible": True, "castShadow": True}

    def test_binding_expression(self):
        fragment = parse('<box size={sizes["box"] * 2} />').fragments[0]

        assert fragment.bindings == {"size": 'sizes["box"] * 2'}
        assert fragment.attributes == {}

    def test_shorthand_binding(self):
        fragment = parse("<box {color} />").fragments[0]
        assert fragment == Fragment(name="box", bindings={"color": "color"})

    def test_shorthand_with_spaces(self):
        fragment = parse("<box { color } />").fragments[0]
        assert fragment.bindings == {"color": "color"}

    def test_dotted_names(self):
        fragment = parse("<box {props.color} data.id='7' />").fragments[0]

        assert fragment.bindings == {"props.color": "props.color"}
        assert fragment.attributes == {"data.id": "7"}

    def test_attribute_and_binding_share_name(self):
        fragment = parse('<box a="1" a={b} />').fragments[0]

        assert fragment.attributes == {"a": "1"}
        assert fragment.bindings == {"a": "b"}

    def test_explicit_binding_replaces_shorthand(self):
        fragment = parse("<box {x} x={y} />").fragments[0]
        assert fragment.bindings == {"x": "y"}

    @pytest.mark.parametrize("source, column", [
        ("<box x={y} {x} />", 13),
        ("<box {x} x={y} {x} />", 17),
    ])
    def test_shorthand_after_explicit_binding(self, source, column):
        error = parse_error(source)

        assert error.reason is ErrorReason.DUPLICATE_BINDING
        assert error.message == "Binding x already set"
        assert (error.line, error.column) == (1, column)

    def test_script_tag_keeps_only_attributes(self):
        document = parse('<script lang="ts" {x} y={z}>let a = 1;</script>')
        assert document.scripts == [Script(source="let a = 1;", attributes={"lang": "ts"})]

    def test_duplicate_binding_on_script_tag(self):
        error = parse_error("<script {x} {x}></script>")
        assert error.reason is ErrorReason.DUPLICATE_BINDING

    def test_attributes_on_open_tag(self):
        document = parse('<scene name="demo" {fog}>\n</scene>')
        scene = document.fragments[0]

        assert scene.attributes == {"name": "demo"}
        assert scene.bindings == {"fog": "fog"}

    def test_duplicate_attribute(self):
        error = parse_error('<box a="1" a="2" />')

        assert error.reason is ErrorReason.DUPLICATE_ATTRIBUTE
        assert error.message == "Attribute a already set"
        assert (error.line, error.column) == (1, 12)

    def test_duplicate_boolean_attribute(self):
        error = parse_error("<box a a />")
        assert error.reason is ErrorReason.DUPLICATE_ATTRIBUTE

    @pytest.mark.parametrize("source", [
        "<box {x} {x} />",
        "<box x={a} x={b} />",
        "<box {x} x={a} x={b} />",
    ])
    def test_duplicate_binding(self, source):
        error = parse_error(source)

        assert error.reason is ErrorReason.DUPLICATE_BINDING
        assert error.message == "Binding x already set"

    def test_template_literal(self):
        error = parse_error("<box a=`x` />")
        assert error.reason is ErrorReason.UNSUPPORTED_TEMPLATE_LITERAL

    def test_missing_value(self):
        error = parse_error("<box a=1 />")

        assert error.reason is ErrorReason.EXPECTED_ATTRIBUTE_VALUE
        assert error.message == "Expected value after a="

    def test_unterminated_binding(self):
        error = parse_error("<box a={x />")
        assert error.reason is ErrorReason.UNTERMINATED_BINDING

    def test_unfinished_shorthand(self):
        error = parse_error("<box {color />")

        assert error.reason is ErrorReason.UNEXPECTED_CHARACTER
        assert error.message == "Expected } to complete shorthand binding"

    def test_invalid_attribute_name(self):
        error = parse_error("<box -a />")

        assert error.reason is ErrorReason.CAPTURE_FAILED
        assert error.label == "attribute name"


class TestComments:

    def test_comments_are_skipped(self):
        document = parse("<!-- top -->\n<scene>\n  <!-- <box /> -->\n</scene>")
        assert document.fragments == [Fragment(name="scene")]

    def test_multiline_comment(self):
        document = parse("<!--\n  one\n  two\n--><box />")

        assert document.fragments == [Fragment(name="box")]
        assert document.fragments[0].line == 4

    def test_unterminated_comment(self):
        error = parse_error("<!-- never closed")

        assert error.reason is ErrorReason.CAPTURE_FAILED
        assert error.label == "comment"


class TestStructureErrors:

    def test_mismatched_closing_tag(self):
        error = parse_error("<a><b></a></b>")

        assert error.reason is ErrorReason.MISMATCHED_CLOSING_TAG
        assert error.message == "Closing tag </a> before </b>"
        assert (error.line, error.column, error.offset) == (1, 7, 6)

    def test_closing_tag_without_opening(self):
        error = parse_error("\n</scene>")

        assert error.reason is ErrorReason.MISMATCHED_CLOSING_TAG
        assert (error.line, error.column) == (2, 1)

    def test_missing_closing_tag(self):
        error = parse_error("<scene>")

        assert error.reason is ErrorReason.MISSING_CLOSING_TAG
        assert "Did you mean to use />?" in error.message

    def test_unclosed_tag(self):
        error = parse_error("<scene>\n  <box />\n")

        assert error.reason is ErrorReason.UNCLOSED_TAG
        assert error.message == "Unclosed tag <scene>"

    @pytest.mark.parametrize("source", ["<box", '<box a="1"', "<box {x}"])
    def test_end_of_input_inside_tag(self, source):
        error = parse_error(source)

        assert error.reason is ErrorReason.UNCLOSED_TAG
        assert error.message == "Unexpected end of input inside <box> tag"

    def test_text_content(self):
        error = parse_error("<scene>text</scene>")

        assert error.reason is ErrorReason.UNEXPECTED_CHARACTER
        assert (error.line, error.column) == (1, 8)

    def test_leading_text(self):
        error = parse_error("hello")

        assert error.reason is ErrorReason.UNEXPECTED_CHARACTER
        assert (error.line, error.column) == (1, 1)

    def test_lone_angle_bracket(self):
        error = parse_error("<box />\n<")

        assert error.reason is ErrorReason.UNEXPECTED_CHARACTER
        assert error.message == "Expected tag name after <"

    def test_invalid_tag_name(self):
        error = parse_error("<1box />")

        assert error.reason is ErrorReason.CAPTURE_FAILED
        assert error.label == "tag name"

    @pytest.mark.parametrize("source", ["<box / >", "<a></a >"])
    def test_expected_close_bracket(self, source):
        error = parse_error(source)

        assert error.reason is ErrorReason.UNEXPECTED_CHARACTER
        assert error.message == "Expected >"

    def test_error_carries_path_and_excerpt(self):
        error = parse_error('<scene>\n  <box a="1" a="2" />\n</scene>\n', "src/index.opal")

        assert error.path == "src/index.opal"
        assert error.location == "src/index.opal:2:14"
        assert error.excerpt.split("\n") == [
            "  1 | <scene>",
            '> 2 |   <box a="1" a="2" />',
            "    |" + " " * 14 + "^",
            "  3 | </scene>",
        ]


class TestParserState:

    def test_parse_twice(self, scene_source):
        parser = OpalParser(scene_source)
        assert parser.parse() == parser.parse()

    def test_load(self, scene_source):
        assert OpalParser.load(scene_source) == parse(scene_source)

    def test_failure_does_not_leak_into_next_parse(self):
        with pytest.raises(OpalSyntaxError):
            parse("<a><b>")
        assert parse("<c />").fragments == [Fragment(name="c")]

    def test_concurrent_parses(self):
        sources = [f'<scene id="{i}">\n  <box {{color}} />\n</scene>' for i in range(32)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            documents = list(pool.map(parse, sources))

        for i, document in enumerate(documents):
            assert document.fragments[0].attributes == {"id": str(i)}
            assert document.fragments[0].children[0].bindings == {"color": "color"}

    def test_shared_parser_across_threads(self):
        source = "\n".join(f'<item id="{i}"><box {{color}} /></item>' for i in range(200))
        parser = OpalParser(source)
        expected = parser.parse().to_dict()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: parser.parse().to_dict(), range(16)))

        assert all(result == expected for result in results)

    def test_debug_log(self, log_records, scene_source):
        parse(scene_source, "src/index.opal")

        record = next(r for r in log_records if r.message == "Parsed document")
        assert record.logger_name == "opal.parser"
        assert record.context["path"] == "src/index.opal"
        assert record.context["fragments"] == 2
        assert record.context["scripts"] == 1
