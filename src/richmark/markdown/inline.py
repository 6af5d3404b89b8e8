#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/markdown/inline.py
"""Inline Markdown import.

A line's text is first split around matches of the custom text-match rules
(images, autolinks); a match behind an escaping backslash is left alone. The
remaining segments are tokenized by mistune's inline parser and the token
tree is flattened into text runs carrying a format bitmask, plus link, image
and line break nodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from richmark.constants import DEFAULT_IMAGE_MAX_WIDTH
from richmark.markdown.registry import TextMatchTransformer, TransformerRegistry
from richmark.model.nodes import ImageNode, LineBreakNode, LinkNode, TextFormat, TextNode
from richmark.model.state import Transaction

logger = logging.getLogger(__name__)

_LINE_BREAK_TAGS = frozenset({"<br>", "<br/>", "<br />"})


@dataclass
class _InlineContext:
    """Output collected while walking one token list."""

    keys: list[str] = field(default_factory=list)
    html_format: TextFormat = TextFormat.NONE


class InlineMarkdownParser:
    """Parse inline Markdown into detached inline nodes.

    Parameters
    ----------
    transformers : TransformerRegistry
        Registry supplying the text-match and text-format rules
    image_max_width : int, default 800
        ``max_width`` given to imported images

    """

    def __init__(self, transformers: TransformerRegistry, image_max_width: int = DEFAULT_IMAGE_MAX_WIDTH) -> None:
        import mistune

        self.transformers = transformers
        self.image_max_width = image_max_width
        self._markdown = mistune.create_markdown(renderer=None, plugins=["strikethrough"])
        self._import_rules: list[TextMatchTransformer] = [
            rule for rule in transformers.text_match_transformers if rule.import_reg_exp is not None
        ]
        self._format_by_token: dict[str, TextFormat] = {}
        self._format_by_tag: dict[str, TextFormat] = {}
        self._close_tags: dict[str, TextFormat] = {}
        for rule in transformers.text_format_transformers:
            if rule.token_type:
                self._format_by_token.setdefault(rule.token_type, rule.format)
            elif rule.open_tag.startswith("<"):
                self._format_by_tag[rule.open_tag.lower()] = rule.format
                self._close_tags[rule.close_tag.lower()] = rule.format

    def import_text(self, txn: Transaction, text_key: str) -> list[str]:
        """Replace a raw text run by the nodes parsed from its text.

        Parameters
        ----------
        txn : Transaction
            Open transaction
        text_key : str
            Attached text run holding unparsed inline Markdown

        Returns
        -------
        list of str
            Keys of the inserted nodes, in order

        """
        node = txn.require_typed(text_key, TextNode)
        keys = self.build(txn, node.text)
        for key in keys:
            txn.insert_before(text_key, key)
        txn.remove(text_key)
        return keys

    def build(self, txn: Transaction, text: str) -> list[str]:
        """Create detached inline nodes for ``text`` and return their keys."""
        keys = self._build_segments(txn, text)
        return self._merge_runs(txn, keys)

    def _build_segments(self, txn: Transaction, text: str) -> list[str]:
        if not text:
            return []
        for rule in self._import_rules:
            if rule.import_reg_exp is None or rule.replace is None:
                continue
            match = next((m for m in rule.import_reg_exp.finditer(text) if not _is_escaped(text, m.start())), None)
            if match is None:
                continue
            before = self._build_segments(txn, text[: match.start()])
            created = rule.replace(txn, match, self)
            after = self._build_segments(txn, text[match.end() :])
            return before + created + after
        return self._parse(txn, text)

    def _parse(self, txn: Transaction, text: str) -> list[str]:
        tokens = self._markdown.inline(text, {"ref_links": {}})
        context = _InlineContext()
        self._walk(txn, tokens, TextFormat.NONE, context, in_link=False)
        return context.keys

    def _walk(
        self,
        txn: Transaction,
        tokens: list[dict[str, Any]],
        text_format: TextFormat,
        context: _InlineContext,
        in_link: bool,
    ) -> None:
        for token in tokens:
            token_type = token.get("type", "")
            children: Optional[list[dict[str, Any]]] = token.get("children")

            if token_type == "text":
                self._append_text(txn, context, token.get("raw", ""), text_format | context.html_format)
            elif token_type in self._format_by_token:
                nested_format = text_format | self._format_by_token[token_type]
                if children is not None:
                    self._walk(txn, children, nested_format, context, in_link)
                else:
                    self._append_text(txn, context, token.get("raw", ""), nested_format | context.html_format)
            elif token_type == "link" and not in_link:
                self._append_link(txn, token, text_format, context)
            elif token_type == "image":
                alt_text = _plain_text(children or [])
                if in_link:
                    self._append_text(txn, context, alt_text, text_format | context.html_format)
                else:
                    url = token.get("attrs", {}).get("url", "")
                    image = txn.create(ImageNode, src=url, alt_text=alt_text, max_width=self.image_max_width)
                    context.keys.append(image.key)
            elif token_type in ("linebreak", "softbreak"):
                context.keys.append(txn.create(LineBreakNode).key)
            elif token_type == "inline_html":
                self._handle_html(txn, token.get("raw", ""), text_format, context)
            elif children is not None:
                self._walk(txn, children, text_format, context, in_link)
            else:
                self._append_text(txn, context, token.get("raw", ""), text_format | context.html_format)

    def _append_link(
        self, txn: Transaction, token: dict[str, Any], text_format: TextFormat, context: _InlineContext
    ) -> None:
        url = token.get("attrs", {}).get("url", "")
        label = _InlineContext(html_format=context.html_format)
        self._walk(txn, token.get("children", []), text_format, label, in_link=True)
        context.html_format = label.html_format
        link = txn.create(LinkNode, children=self._merge_runs(txn, label.keys), url=url)
        context.keys.append(link.key)

    def _handle_html(self, txn: Transaction, raw: str, text_format: TextFormat, context: _InlineContext) -> None:
        tag = raw.strip().lower()
        if tag in _LINE_BREAK_TAGS:
            context.keys.append(txn.create(LineBreakNode).key)
        elif tag in self._format_by_tag:
            context.html_format |= self._format_by_tag[tag]
        elif tag in self._close_tags:
            context.html_format &= ~self._close_tags[tag]
        else:
            # Unknown tags are kept as literal text
            self._append_text(txn, context, raw, text_format | context.html_format)

    def _append_text(self, txn: Transaction, context: _InlineContext, text: str, text_format: TextFormat) -> None:
        if not text:
            return
        if context.keys:
            previous = txn.get_node(context.keys[-1])
            if isinstance(previous, TextNode) and previous.format == text_format:
                txn.update(previous.key, text=previous.text + text)
                return
        context.keys.append(txn.create(TextNode, text=text, format=text_format).key)

    def _merge_runs(self, txn: Transaction, keys: list[str]) -> list[str]:
        """Merge neighbouring detached text runs sharing a format."""
        merged: list[str] = []
        for key in keys:
            node = txn.require_node(key)
            previous = txn.get_node(merged[-1]) if merged else None
            if isinstance(node, TextNode) and isinstance(previous, TextNode) and previous.format == node.format:
                txn.update(previous.key, text=previous.text + node.text)
                txn.remove(key)
                continue
            merged.append(key)
        return merged


def _is_escaped(text: str, index: int) -> bool:
    """Whether the character at ``index`` follows an odd number of backslashes."""
    prefix = text[:index]
    return (len(prefix) - len(prefix.rstrip("\\"))) % 2 == 1


def _plain_text(tokens: list[dict[str, Any]]) -> str:
    parts: list[str] = []
    for token in tokens:
        children = token.get("children")
        if children is not None:
            parts.append(_plain_text(children))
        else:
            parts.append(token.get("raw", ""))
    return "".join(parts)


__all__ = ["InlineMarkdownParser"]
