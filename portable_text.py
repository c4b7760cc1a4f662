"""
Portable Text helpers: inline-code splitting, plain text and HTML rendering.

Rendering goes through fixed dispatch tables keyed by block style, list type,
mark and custom block type. Unknown node types render nothing.
"""
import itertools
import re
from typing import Any, Callable, Dict, List, Optional

from markupsafe import Markup, escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from images import blur_url, build_image

INLINE_CODE_PATTERN = re.compile(r"(`+)([^`]+?)\1")


# =================
# Inline code marks
# =================

def add_inline_code_marks(value: Any) -> Any:
    """Split `backticked` text inside spans into separate spans marked `code`.

    Returns a new list; blocks and spans that need no change are passed
    through as the same objects. Running it twice changes nothing.
    """
    if not isinstance(value, list):
        return value

    counter = itertools.count(1)

    def child_key(base_key: Optional[str], suffix: str) -> str:
        n = next(counter)
        if base_key:
            return f"{base_key}-{suffix}-{n}"
        return f"inline-span-{suffix}-{n}"

    def segment(span: dict, key: str, text: str, marks: Optional[list]) -> dict:
        new = dict(span)
        new["_key"] = key
        new["text"] = text
        if marks is not None:
            new["marks"] = marks
        return new

    def transform_span(span: dict) -> list:
        text = span.get("text") if isinstance(span.get("text"), str) else ""
        marks = span.get("marks")
        if not text or (marks and "code" in marks):
            return [span]

        segments = []
        last = 0
        for i, match in enumerate(INLINE_CODE_PATTERN.finditer(text)):
            if match.start() > last:
                segments.append(segment(
                    span, child_key(span.get("_key"), f"text-{i}"),
                    text[last:match.start()], list(marks) if marks is not None else None,
                ))
            code_marks = list(marks or [])
            if "code" not in code_marks:
                code_marks.append("code")
            segments.append(segment(span, child_key(span.get("_key"), f"code-{i}"), match.group(2), code_marks))
            last = match.end()

        if not segments:
            return [span]
        if last < len(text):
            segments.append(segment(
                span, child_key(span.get("_key"), "text-end"),
                text[last:], list(marks) if marks is not None else None,
            ))
        return segments

    out = []
    for block in value:
        if not isinstance(block, dict) or block.get("_type") != "block" or not isinstance(block.get("children"), list):
            out.append(block)
            continue

        mutated = False
        children = []
        for child in block["children"]:
            if not isinstance(child, dict) or child.get("_type") != "span":
                children.append(child)
                continue
            transformed = transform_span(child)
            if len(transformed) == 1 and transformed[0] is child:
                children.append(child)
                continue
            mutated = True
            children.extend(transformed)

        if mutated:
            block = dict(block)
            block["children"] = children
        out.append(block)
    return out


# ==========
# Plain text
# ==========

def _block_text(block: dict) -> str:
    return "".join(
        child.get("text", "") for child in block.get("children") or []
        if isinstance(child, dict) and child.get("_type") == "span"
    )


def to_plain_text(blocks: Any) -> str:
    if not isinstance(blocks, list):
        return ""
    return "\n\n".join(
        _block_text(b) for b in blocks
        if isinstance(b, dict) and b.get("_type") == "block"
    )


def excerpt(blocks: Any, limit: int = 80) -> str:
    text = to_plain_text(blocks)
    if len(text) >= limit:
        return text[:limit] + "..."
    return text


# =========
# Rendering
# =========

BLOCK_STYLES: Dict[str, tuple] = {
    "normal": ("p", "mb-4 py-2 leading-7"),
    "h1": ("h1", "text-4xl font-bold my-6"),
    "h2": ("h2", "text-3xl font-bold my-5"),
    "h3": ("h3", "text-2xl font-bold my-4"),
    "h4": ("h4", "text-xl font-bold my-3"),
    "blockquote": ("blockquote", "pl-2 py-2 border-l-2 border-black italic text-gray-700"),
}

LIST_TYPES: Dict[str, tuple] = {
    "bullet": ("ul", "list-disc pl-10 mb-4"),
    "number": ("ol", "list-decimal pl-10 mb-4"),
}

DECORATORS: Dict[str, Callable[[Markup], Markup]] = {
    "strong": lambda inner: Markup("<strong>%s</strong>") % inner,
    "em": lambda inner: Markup("<em>%s</em>") % inner,
    "underline": lambda inner: Markup("<u>%s</u>") % inner,
    "strike-through": lambda inner: Markup("<s>%s</s>") % inner,
    "code": lambda inner: Markup(
        '<span class="bg-gray-100 text-gray-800 px-2 py-1 rounded-md font-mono">%s</span>'
    ) % inner,
}


def _link(inner: Markup, mark_def: dict) -> Markup:
    href = mark_def.get("href") or ""
    if href.startswith("http"):
        return Markup('<a href="%s" target="_blank" rel="noreferrer" class="text-blue-500 hover:text-blue-700">%s</a>') % (
            href, inner)
    return Markup('<a href="%s" class="text-blue-500 hover:text-blue-700">%s</a>') % (href, inner)


ANNOTATIONS: Dict[str, Callable[[Markup, dict], Markup]] = {
    "link": _link,
}

CODE_LANGUAGE_ALIASES = {"plain text": "text", "mysql": "sql"}

_code_formatter = HtmlFormatter(cssclass="highlight", style="monokai")


def render_code(node: dict) -> Markup:
    language = node.get("language") or "text"
    language = CODE_LANGUAGE_ALIASES.get(language, language)
    code = node.get("code") or ""
    try:
        lexer = get_lexer_by_name(language)
    except ClassNotFound:
        lexer = TextLexer()
    highlighted = highlight(code, lexer, _code_formatter)
    return Markup(
        '<div class="code-block rounded-lg shadow-md mb-4 overflow-hidden">'
        '<div class="p-4">%s</div>'
        '<div class="code-block__footer px-2 py-1"><span class="text-xs text-gray-400">%s</span></div>'
        '</div>'
    ) % (Markup(highlighted), language)


def render_image(node: dict) -> Markup:
    built = build_image(node, width=800, quality=80)
    if built is None:
        return Markup("")
    placeholder = built.blur_data_url or blur_url(node) or ""
    return Markup(
        '<div class="w-full h-96 relative rounded-lg shadow-md mb-4 overflow-hidden">'
        '<img src="%s" alt="%s" loading="lazy" class="object-cover w-full h-full" '
        'style="object-position: %s; background-image: url(\'%s\'); background-size: cover;" />'
        '</div>'
    ) % (built.url, node.get("alt") or " ", built.object_position, placeholder)


TYPES: Dict[str, Callable[[dict], Markup]] = {
    "image": render_image,
    "code": render_code,
}


def _render_span(span: dict, mark_defs: Dict[str, dict]) -> Markup:
    out = escape(span.get("text") or "")
    for mark in span.get("marks") or []:
        if mark in DECORATORS:
            out = DECORATORS[mark](out)
        elif mark in mark_defs:
            handler = ANNOTATIONS.get(mark_defs[mark].get("_type"))
            if handler:
                out = handler(out, mark_defs[mark])
    return out


def _render_children(block: dict) -> Markup:
    mark_defs = {d.get("_key"): d for d in block.get("markDefs") or [] if isinstance(d, dict)}
    return Markup("").join(
        _render_span(child, mark_defs)
        for child in block.get("children") or []
        if isinstance(child, dict) and child.get("_type") == "span"
    )


def _render_block(block: dict) -> Markup:
    tag, css = BLOCK_STYLES.get(block.get("style") or "normal", BLOCK_STYLES["normal"])
    return Markup('<%s class="%s">%s</%s>') % (Markup(tag), css, _render_children(block), Markup(tag))


def _render_list(items: List[dict]) -> Markup:
    parts: List[Markup] = []
    stack: List[list] = []  # [tag, level, li_open]

    def close_top():
        tag, _, li_open = stack.pop()
        if li_open:
            parts.append(Markup("</li>"))
        parts.append(Markup(f"</{tag}>"))

    for item in items:
        level = item.get("level") or 1
        tag, css = LIST_TYPES.get(item.get("listItem"), LIST_TYPES["bullet"])
        while stack and (stack[-1][1] > level or (stack[-1][1] == level and stack[-1][0] != tag)):
            close_top()
        if stack and stack[-1][1] == level:
            parts.append(Markup("</li>"))
        else:
            parts.append(Markup('<%s class="%s">') % (Markup(tag), css))
            stack.append([tag, level, False])
        parts.append(Markup('<li class="mb-2">') + _render_children(item))
        stack[-1][2] = True

    while stack:
        close_top()
    return Markup("").join(parts)


def render(blocks: Any) -> Markup:
    """Render a Portable Text array to HTML"""
    if not isinstance(blocks, list):
        return Markup("")
    blocks = add_inline_code_marks(blocks)

    parts: List[Markup] = []
    pending_list: List[dict] = []
    for node in blocks:
        if not isinstance(node, dict):
            continue
        if node.get("_type") == "block" and node.get("listItem"):
            pending_list.append(node)
            continue
        if pending_list:
            parts.append(_render_list(pending_list))
            pending_list = []
        if node.get("_type") == "block":
            parts.append(_render_block(node))
        elif node.get("_type") in TYPES:
            parts.append(TYPES[node["_type"]](node))
    if pending_list:
        parts.append(_render_list(pending_list))
    return Markup("\n").join(parts)


def code_styles() -> str:
    """CSS for highlighted code blocks"""
    return _code_formatter.get_style_defs(".highlight")

