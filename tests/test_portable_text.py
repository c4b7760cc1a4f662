"""
Tests for inline-code splitting and Portable Text rendering
"""
from portable_text import add_inline_code_marks, excerpt, render, to_plain_text


def block(*children, key="b1", style="normal", **extra):
    data = {"_type": "block", "_key": key, "style": style, "markDefs": [], "children": list(children)}
    data.update(extra)
    return data


def span(text, key="s1", marks=None):
    return {"_type": "span", "_key": key, "text": text, "marks": [] if marks is None else marks}


class TestInlineCodeMarks:
    def test_splits_backticked_text(self):
        value = [block(span("use `npm i` now", key="k1"))]
        children = add_inline_code_marks(value)[0]["children"]

        assert [c["text"] for c in children] == ["use ", "npm i", " now"]
        assert [c["marks"] for c in children] == [[], ["code"], []]
        assert [c["_key"] for c in children] == ["k1-text-0-1", "k1-code-0-2", "k1-text-end-3"]

    def test_multiple_runs_and_double_backticks(self):
        value = [block(span("``a`` and `b`"))]
        children = add_inline_code_marks(value)[0]["children"]
        assert [(c["text"], c["marks"]) for c in children] == [
            ("a", ["code"]),
            (" and ", []),
            ("b", ["code"]),
        ]

    def test_keeps_existing_marks_on_segments(self):
        value = [block(span("bold `x`", marks=["strong"]))]
        children = add_inline_code_marks(value)[0]["children"]
        assert children[0]["marks"] == ["strong"]
        assert children[1]["marks"] == ["strong", "code"]

    def test_text_segments_only_carry_marks_the_span_had(self):
        child = {"_type": "span", "_key": "k", "text": "a `b` c"}
        children = add_inline_code_marks([block(child)])[0]["children"]
        assert "marks" not in children[0]
        assert children[1]["marks"] == ["code"]
        assert "marks" not in children[2]

    def test_span_without_key_gets_generated_keys(self):
        child = {"_type": "span", "text": "`x`", "marks": []}
        children = add_inline_code_marks([block(child)])[0]["children"]
        assert children[0]["_key"].startswith("inline-span-code-0-")

    def test_unchanged_content_is_passed_through(self):
        plain = block(span("nothing to see"))
        already = block(span("npm i", marks=["code"]), key="b2")
        image = {"_type": "image", "asset": {"_ref": "image-abc-10x10-png"}}
        value = [plain, already, image]

        out = add_inline_code_marks(value)

        assert out is not value
        assert out[0] is plain
        assert out[1] is already
        assert out[2] is image

    def test_does_not_mutate_input(self):
        original = span("a `b` c")
        value = [block(original)]
        add_inline_code_marks(value)
        assert value[0]["children"] == [original]
        assert original["text"] == "a `b` c"

    def test_idempotent(self):
        value = [block(span("run `make test` then `make lint`"))]
        once = add_inline_code_marks(value)
        twice = add_inline_code_marks(once)
        assert twice == once

    def test_empty_backticks_are_left_alone(self):
        value = [block(span("an empty `` pair"))]
        assert add_inline_code_marks(value)[0] is value[0]

    def test_non_list_values(self):
        assert add_inline_code_marks(None) is None
        assert add_inline_code_marks("text") == "text"


def test_plain_text_and_excerpt():
    blocks = [block(span("Hello")), {"_type": "image"}, block(span("World"), key="b2")]
    assert to_plain_text(blocks) == "Hello\n\nWorld"
    assert excerpt(blocks) == "Hello\n\nWorld"

    long_text = [block(span("x" * 100))]
    assert excerpt(long_text) == "x" * 80 + "..."
    assert excerpt(None) == ""


class TestRender:
    def test_block_styles(self):
        html = str(render([block(span("Title"), style="h2"), block(span("Quote"), key="b2", style="blockquote")]))
        assert '<h2 class="text-3xl font-bold my-5">Title</h2>' in html
        assert "<blockquote" in html and "Quote</blockquote>" in html

    def test_unknown_style_falls_back_to_paragraph(self):
        assert str(render([block(span("hi"), style="weird")])).startswith("<p ")

    def test_text_is_escaped(self):
        html = str(render([block(span("<script>alert(1)</script>"))]))
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_decorators_and_inline_code(self):
        html = str(render([block(span("bold", marks=["strong"]), span(" and `code`", key="s2"))]))
        assert "<strong>bold</strong>" in html
        assert 'font-mono">code</span>' in html

    def test_links(self):
        mark_defs = [
            {"_key": "l1", "_type": "link", "href": "https://example.com"},
            {"_key": "l2", "_type": "link", "href": "/projects"},
        ]
        html = str(render([block(span("out", marks=["l1"]), span("in", key="s2", marks=["l2"]), markDefs=mark_defs)]))
        assert '<a href="https://example.com" target="_blank" rel="noreferrer"' in html
        assert '<a href="/projects" class="text-blue-500 hover:text-blue-700">in</a>' in html

    def test_lists_group_and_nest(self):
        blocks = [
            block(span("one"), key="l1", listItem="bullet", level=1),
            block(span("nested"), key="l2", listItem="bullet", level=2),
            block(span("two"), key="l3", listItem="bullet", level=1),
            block(span("after"), key="p1"),
        ]
        html = str(render(blocks))
        assert html.count("<ul") == 2
        assert html.count("</ul>") == 2
        assert html.index("nested") < html.index("two")
        assert html.endswith("after</p>")

    def test_numbered_list(self):
        html = str(render([block(span("first"), listItem="number", level=1)]))
        assert html.startswith('<ol class="list-decimal pl-10 mb-4"><li class="mb-2">first')

    def test_code_block_is_highlighted(self):
        html = str(render([{"_type": "code", "language": "python", "code": "print('hi')"}]))
        assert 'class="highlight"' in html
        assert "python</span>" in html

    def test_code_block_language_aliases_and_fallback(self):
        assert "sql</span>" in str(render([{"_type": "code", "language": "mysql", "code": "select 1"}]))
        html = str(render([{"_type": "code", "language": "no-such-language", "code": "<x>"}]))
        assert "&lt;x&gt;" in html

    def test_image_block(self):
        node = {"_type": "image", "alt": "A cat", "asset": {"_ref": "image-abc123-800x600-jpg"}}
        html = str(render([node]))
        assert "https://cdn.sanity.io/images/testproj/production/abc123-800x600.jpg?w=800&amp;q=80&amp;auto=format" in html
        assert 'alt="A cat"' in html

    def test_unknown_types_render_nothing(self):
        assert str(render([{"_type": "mystery"}])) == ""
        assert str(render(None)) == ""
