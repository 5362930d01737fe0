"""Markdown to Notion block conversion using the mistune AST."""

from typing import Any

import mistune

from ..sync.blocks import (
    Block,
    BulletedListItem,
    Code,
    Divider,
    Heading,
    Image,
    NumberedListItem,
    Paragraph,
    Quote,
    RichText,
    Table,
    ToDo,
)
from .common import ConversionResult, markdown_to_notion_lang

# Notion accepts at most two levels of nested children per request.
MAX_NESTING_DEPTH = 2

_EXTERNAL_SCHEMES = ("http://", "https://", "mailto:")

_PLUGINS = ["table", "strikethrough", "task_lists"]


def _is_external(url: str) -> bool:
    return url.lower().startswith(_EXTERNAL_SCHEMES)


class BlockBuilder:
    """Walks mistune AST tokens and builds ``Block`` variants.

    Every block-level token kind maps to exactly one variant; kinds
    without a Notion counterpart fall back to a paragraph of their text.
    """

    def __init__(self):
        self.warnings: list[str] = []

    # ------------------------------------------------------------------
    # Block level
    # ------------------------------------------------------------------

    def blocks(self, tokens: list[dict[str, Any]], depth: int = 0) -> list[Block]:
        result: list[Block] = []
        for token in tokens:
            result.extend(self.block(token, depth))
        return result

    def block(self, token: dict[str, Any], depth: int) -> list[Block]:
        token_type = token.get("type", "")

        if token_type == "blank_line":
            return []
        if token_type in ("paragraph", "block_text"):
            return self.paragraph(token)
        if token_type == "heading":
            return [self.heading(token)]
        if token_type == "block_code":
            info = (token.get("attrs") or {}).get("info")
            return [
                Code(
                    text=token.get("raw", "").rstrip("\n"),
                    language=markdown_to_notion_lang(info),
                )
            ]
        if token_type == "block_quote":
            return [self.quote(token, depth)]
        if token_type == "list":
            return self.list_items(token, depth)
        if token_type == "thematic_break":
            return [Divider()]
        if token_type == "table":
            return [self.table(token)]

        # block_html, block_error and anything a plugin adds
        text = self.plain_text(token).strip()
        if not text:
            return []
        return [Paragraph(rich_text=(RichText(text=text),))]

    def paragraph(self, token: dict[str, Any]) -> list[Block]:
        children = token.get("children") or []
        meaningful = [
            c for c in children
            if not (c.get("type") == "text" and not c.get("raw", "").strip())
        ]
        # A paragraph holding only an image becomes an image block.
        if len(meaningful) == 1 and meaningful[0].get("type") == "image":
            image = meaningful[0]
            url = (image.get("attrs") or {}).get("url", "")
            alt = self.plain_text(image)
            if _is_external(url) and not url.lower().startswith("mailto:"):
                caption = (RichText(text=alt),) if alt else ()
                return [Image(url=url, caption=caption)]
            self.warnings.append(f"Image '{url}' is not an absolute URL; kept as text")
            return [Paragraph(rich_text=(RichText(text=alt or url),))]

        spans = self.inline(children)
        if not spans:
            return []
        return [Paragraph(rich_text=tuple(spans))]

    def heading(self, token: dict[str, Any]) -> Block:
        level = (token.get("attrs") or {}).get("level", 1)
        if level > 3:
            self.warnings.append(f"Heading level {level} clamped to 3")
            level = 3
        return Heading(
            level=level,
            rich_text=tuple(self.inline(token.get("children") or [])),
        )

    def quote(self, token: dict[str, Any], depth: int) -> Block:
        inner = self.blocks(token.get("children") or [], depth + 1)
        rich_text: tuple[RichText, ...] = ()
        if inner and isinstance(inner[0], Paragraph):
            rich_text = inner[0].rich_text
            inner = inner[1:]
        return Quote(rich_text=rich_text, children=self._nest(inner, depth))

    def list_items(self, token: dict[str, Any], depth: int) -> list[Block]:
        ordered = (token.get("attrs") or {}).get("ordered", False)
        result: list[Block] = []
        for item in token.get("children") or []:
            result.extend(self.list_item(item, ordered, depth))
        return result

    def list_item(
        self, token: dict[str, Any], ordered: bool, depth: int
    ) -> list[Block]:
        children = token.get("children") or []
        rich_text: tuple[RichText, ...] = ()
        rest = children
        if children and children[0].get("type") in ("paragraph", "block_text"):
            rich_text = tuple(self.inline(children[0].get("children") or []))
            rest = children[1:]
        nested = self.blocks(rest, depth + 1)

        if depth >= MAX_NESTING_DEPTH and nested:
            self.warnings.append(
                f"List nested deeper than {MAX_NESTING_DEPTH} levels flattened"
            )
            item = self._list_block(token, ordered, rich_text, ())
            return [item] + nested
        return [self._list_block(token, ordered, rich_text, tuple(nested))]

    def _nest(self, blocks: list[Block], depth: int) -> tuple[Block, ...]:
        if depth >= MAX_NESTING_DEPTH and blocks:
            self.warnings.append(
                f"Quote nested deeper than {MAX_NESTING_DEPTH} levels dropped"
            )
            return ()
        return tuple(blocks)

    @staticmethod
    def _list_block(
        token: dict[str, Any],
        ordered: bool,
        rich_text: tuple[RichText, ...],
        children: tuple[Block, ...],
    ) -> Block:
        if token.get("type") == "task_list_item":
            checked = bool((token.get("attrs") or {}).get("checked"))
            return ToDo(rich_text=rich_text, checked=checked, children=children)
        if ordered:
            return NumberedListItem(rich_text=rich_text, children=children)
        return BulletedListItem(rich_text=rich_text, children=children)

    def table(self, token: dict[str, Any]) -> Block:
        rows: list[tuple[tuple[RichText, ...], ...]] = []
        has_header = False
        for section in token.get("children") or []:
            if section.get("type") == "table_head":
                has_header = True
                rows.append(self._table_cells(section))
            elif section.get("type") == "table_body":
                for row in section.get("children") or []:
                    rows.append(self._table_cells(row))
        width = max((len(row) for row in rows), default=1) or 1
        return Table(width=width, has_column_header=has_header, rows=tuple(rows))

    def _table_cells(self, row: dict[str, Any]) -> tuple[tuple[RichText, ...], ...]:
        return tuple(
            tuple(self.inline(cell.get("children") or []))
            for cell in row.get("children") or []
        )

    # ------------------------------------------------------------------
    # Inline level
    # ------------------------------------------------------------------

    def inline(
        self, tokens: list[dict[str, Any]], **style: Any
    ) -> list[RichText]:
        spans: list[RichText] = []
        for token in tokens:
            token_type = token.get("type", "")
            if token_type in ("text", "inline_html"):
                spans.append(RichText(text=token.get("raw", ""), **style))
            elif token_type == "codespan":
                spans.append(
                    RichText(text=token.get("raw", ""), **{**style, "code": True})
                )
            elif token_type == "emphasis":
                spans.extend(self.inline(token.get("children") or [], **{**style, "italic": True}))
            elif token_type == "strong":
                spans.extend(self.inline(token.get("children") or [], **{**style, "bold": True}))
            elif token_type == "strikethrough":
                spans.extend(
                    self.inline(
                        token.get("children") or [],
                        **{**style, "strikethrough": True},
                    )
                )
            elif token_type == "link":
                spans.extend(self.link(token, style))
            elif token_type == "image":
                url = (token.get("attrs") or {}).get("url", "")
                alt = self.plain_text(token) or url
                link = url if _is_external(url) else None
                spans.append(RichText(text=alt, **{**style, "link": link}))
            elif token_type == "linebreak":
                spans.append(RichText(text="\n", **style))
            elif token_type == "softbreak":
                spans.append(RichText(text=" ", **style))
            else:
                text = self.plain_text(token)
                if text:
                    spans.append(RichText(text=text, **style))
        return [span for span in spans if span.text]

    def link(self, token: dict[str, Any], style: dict[str, Any]) -> list[RichText]:
        url = (token.get("attrs") or {}).get("url", "")
        if _is_external(url):
            return self.inline(token.get("children") or [], **{**style, "link": url})
        # Notion rejects relative and anchor URLs on rich text links.
        self.warnings.append(f"Link '{url}' is not an absolute URL; kept as text")
        return self.inline(token.get("children") or [], **style)

    def plain_text(self, token: dict[str, Any]) -> str:
        """Visible text of *token* and its descendants."""
        if "children" in token:
            return "".join(self.plain_text(c) for c in token["children"])
        if token.get("type") in ("linebreak", "softbreak"):
            return "\n" if token.get("type") == "linebreak" else " "
        return token.get("raw", "") or token.get("text", "")


def convert_with_warnings(markdown_text: str) -> ConversionResult:
    """
    Convert Markdown to Notion blocks and collect lossy-conversion warnings.

    Args:
        markdown_text: Markdown formatted text

    Returns:
        ConversionResult with the block sequence and any warnings
    """
    markdown = mistune.create_markdown(renderer="ast", plugins=_PLUGINS)
    tokens = markdown(markdown_text)
    builder = BlockBuilder()
    blocks = builder.blocks(tokens)  # type: ignore[arg-type]
    return ConversionResult(blocks=blocks, warnings=builder.warnings)


def markdown_to_blocks(markdown_text: str) -> list[Block]:
    """
    Convert Markdown text to a Notion block sequence.

    Args:
        markdown_text: Markdown formatted text (front-metadata already removed)

    Returns:
        Ordered list of blocks
    """
    return convert_with_warnings(markdown_text).blocks
