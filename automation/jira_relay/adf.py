"""Markdown to Atlassian Document Format (ADF) conversion for comment bodies.

Covers the markdown the processor emits: headings, paragraphs, fenced code,
bullet and ordered lists (nested by indentation), block quotes, horizontal
rules, and the inline marks strong, em, code, strike and link.
"""

from __future__ import annotations

import re
from typing import Any

Node = dict[str, Any]

FENCE_RE = re.compile(r"^\s*(```|~~~)\s*([\w+-]*)\s*$")
HEADING_RE = re.compile(r"^\s{0,3}(#{1,6})\s+(.*?)\s*#*\s*$")
RULE_RE = re.compile(r"^\s{0,3}([-*_])(\s*\1){2,}\s*$")
QUOTE_RE = re.compile(r"^\s{0,3}>\s?(.*)$")
LIST_RE = re.compile(r"^(\s*)([-*+]|\d+[.)])\s+(.*)$")

INLINE_RE = re.compile(
    r"`(?P<code>[^`]+)`"
    r"|\*\*(?P<strong>.+?)\*\*"
    r"|__(?P<strong_alt>.+?)__"
    r"|~~(?P<strike>.+?)~~"
    r"|\[(?P<link_text>[^\]]+)\]\((?P<href>[^)\s]+)\)"
    r"|\*(?P<em>[^*\s][^*]*?)\*"
    r"|(?<![\w])_(?P<em_alt>[^_\s][^_]*?)_(?![\w])"
)


def _text(text: str, marks: list[Node]) -> Node:
    node: Node = {"type": "text", "text": text}
    if marks:
        node["marks"] = [dict(mark) for mark in marks]
    return node


def parse_inline(text: str, marks: list[Node] | None = None) -> list[Node]:
    marks = marks or []
    nodes: list[Node] = []
    pos = 0
    for match in INLINE_RE.finditer(text):
        if match.start() > pos:
            nodes.append(_text(text[pos : match.start()], marks))
        groups = match.groupdict()
        if groups["code"] is not None:
            nodes.append(_text(groups["code"], marks + [{"type": "code"}]))
        elif groups["strong"] is not None or groups["strong_alt"] is not None:
            inner = groups["strong"] if groups["strong"] is not None else groups["strong_alt"]
            nodes.extend(parse_inline(inner, marks + [{"type": "strong"}]))
        elif groups["strike"] is not None:
            nodes.extend(parse_inline(groups["strike"], marks + [{"type": "strike"}]))
        elif groups["link_text"] is not None:
            link = {"type": "link", "attrs": {"href": groups["href"]}}
            nodes.extend(parse_inline(groups["link_text"], marks + [link]))
        else:
            inner = groups["em"] if groups["em"] is not None else groups["em_alt"]
            nodes.extend(parse_inline(inner, marks + [{"type": "em"}]))
        pos = match.end()
    if pos < len(text):
        nodes.append(_text(text[pos:], marks))
    return nodes


def _paragraph(lines: list[str]) -> Node:
    text = " ".join(line.strip() for line in lines if line.strip())
    return {"type": "paragraph", "content": parse_inline(text)}


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _parse_list(lines: list[str], start: int, first: re.Match[str]) -> tuple[Node, int]:
    base_indent = len(first.group(1))
    ordered = first.group(2)[0].isdigit()
    node: Node = {"type": "orderedList" if ordered else "bulletList", "content": []}
    if ordered:
        node["attrs"] = {"order": int(first.group(2)[:-1])}

    i = start
    while i < len(lines):
        match = LIST_RE.match(lines[i])
        if not match or len(match.group(1)) != base_indent:
            break
        if match.group(2)[0].isdigit() != ordered:
            break
        item_lines = [match.group(3)]
        children: list[Node] = []
        i += 1
        while i < len(lines) and lines[i].strip():
            nested = LIST_RE.match(lines[i])
            if nested and len(nested.group(1)) > base_indent:
                child, i = _parse_list(lines, i, nested)
                children.append(child)
                continue
            if nested or _indent(lines[i]) <= base_indent:
                break
            item_lines.append(lines[i])
            i += 1
        node["content"].append({"type": "listItem", "content": [_paragraph(item_lines), *children]})
    return node, i


def _parse_blocks(lines: list[str]) -> list[Node]:
    blocks: list[Node] = []
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            blocks.append(_paragraph(paragraph))
            paragraph.clear()

    i = 0
    while i < len(lines):
        line = lines[i]
        if not line.strip():
            flush()
            i += 1
            continue

        fence = FENCE_RE.match(line)
        if fence:
            flush()
            code: list[str] = []
            i += 1
            while i < len(lines) and not lines[i].strip().startswith(fence.group(1)):
                code.append(lines[i])
                i += 1
            block: Node = {"type": "codeBlock", "content": []}
            if fence.group(2):
                block["attrs"] = {"language": fence.group(2)}
            if code:
                block["content"].append({"type": "text", "text": "\n".join(code)})
            blocks.append(block)
            i += 1
            continue

        heading = HEADING_RE.match(line)
        if heading:
            flush()
            blocks.append(
                {
                    "type": "heading",
                    "attrs": {"level": len(heading.group(1))},
                    "content": parse_inline(heading.group(2)),
                }
            )
            i += 1
            continue

        if RULE_RE.match(line):
            flush()
            blocks.append({"type": "rule"})
            i += 1
            continue

        if QUOTE_RE.match(line):
            flush()
            quoted: list[str] = []
            while i < len(lines):
                quote = QUOTE_RE.match(lines[i])
                if not quote:
                    break
                quoted.append(quote.group(1))
                i += 1
            blocks.append({"type": "blockquote", "content": _parse_blocks(quoted)})
            continue

        list_match = LIST_RE.match(line)
        if list_match:
            flush()
            node, i = _parse_list(lines, i, list_match)
            blocks.append(node)
            continue

        paragraph.append(line)
        i += 1

    flush()
    return blocks


def markdown_to_adf(markdown: str) -> Node:
    return {"type": "doc", "version": 1, "content": _parse_blocks(markdown.splitlines())}
