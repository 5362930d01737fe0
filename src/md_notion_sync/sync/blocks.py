"""Typed Notion block variants.

Each markdown construct maps to exactly one variant, and each variant
carries only the fields its kind needs.  ``Block`` is a pydantic
discriminated union keyed on ``type``; every variant renders itself to the
JSON shape accepted by the Notion ``blocks.children.append`` endpoint via
``to_notion()``.

All models are frozen.  Sequences are tuples so blocks stay hashable and
safe to share between page values.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

# Notion rejects rich text objects whose content exceeds this length.
NOTION_TEXT_LIMIT = 2000

GITHUB_LINK_LABEL = "View source on GitHub"
GITHUB_LINK_ICON = "📄"


class RichText(BaseModel):
    """One styled span of inline text."""

    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    strikethrough: bool = False
    link: str | None = None

    model_config = {"frozen": True}

    def to_notion(self) -> list[dict[str, Any]]:
        """Render as one or more Notion rich text objects.

        Content longer than ``NOTION_TEXT_LIMIT`` is split into several
        objects sharing the same annotations.
        """
        chunks = [
            self.text[i : i + NOTION_TEXT_LIMIT]
            for i in range(0, len(self.text), NOTION_TEXT_LIMIT)
        ] or [""]
        return [
            {
                "type": "text",
                "text": {
                    "content": chunk,
                    "link": {"url": self.link} if self.link else None,
                },
                "annotations": {
                    "bold": self.bold,
                    "italic": self.italic,
                    "strikethrough": self.strikethrough,
                    "underline": False,
                    "code": self.code,
                    "color": "default",
                },
            }
            for chunk in chunks
        ]


def rich_text_to_notion(spans: tuple[RichText, ...]) -> list[dict[str, Any]]:
    """Flatten a sequence of spans into Notion rich text objects."""
    result: list[dict[str, Any]] = []
    for span in spans:
        if span.text:
            result.extend(span.to_notion())
    return result


def plain(text: str) -> tuple[RichText, ...]:
    """Shorthand for a single unstyled span."""
    return (RichText(text=text),)


def _block(kind: str, body: dict[str, Any]) -> dict[str, Any]:
    return {"object": "block", "type": kind, kind: body}


def _with_children(
    body: dict[str, Any], children: tuple[Block, ...]
) -> dict[str, Any]:
    if children:
        body["children"] = [child.to_notion() for child in children]
    return body


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


class Paragraph(BaseModel):
    type: Literal["paragraph"] = "paragraph"
    rich_text: tuple[RichText, ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        return _block(
            "paragraph", {"rich_text": rich_text_to_notion(self.rich_text)}
        )


class Heading(BaseModel):
    """Heading block.  Notion only has three levels; deeper levels clamp."""

    type: Literal["heading"] = "heading"
    level: int = Field(default=1, ge=1, le=3)
    rich_text: tuple[RichText, ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        return _block(
            f"heading_{self.level}",
            {"rich_text": rich_text_to_notion(self.rich_text)},
        )


class BulletedListItem(BaseModel):
    type: Literal["bulleted_list_item"] = "bulleted_list_item"
    rich_text: tuple[RichText, ...] = ()
    children: tuple[Block, ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        body = {"rich_text": rich_text_to_notion(self.rich_text)}
        return _block(
            "bulleted_list_item", _with_children(body, self.children)
        )


class NumberedListItem(BaseModel):
    type: Literal["numbered_list_item"] = "numbered_list_item"
    rich_text: tuple[RichText, ...] = ()
    children: tuple[Block, ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        body = {"rich_text": rich_text_to_notion(self.rich_text)}
        return _block(
            "numbered_list_item", _with_children(body, self.children)
        )


class ToDo(BaseModel):
    type: Literal["to_do"] = "to_do"
    rich_text: tuple[RichText, ...] = ()
    checked: bool = False
    children: tuple[Block, ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        body = {
            "rich_text": rich_text_to_notion(self.rich_text),
            "checked": self.checked,
        }
        return _block("to_do", _with_children(body, self.children))


class Code(BaseModel):
    type: Literal["code"] = "code"
    text: str = ""
    language: str = "plain text"

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        return _block(
            "code",
            {
                "rich_text": RichText(text=self.text).to_notion(),
                "language": self.language,
            },
        )


class Quote(BaseModel):
    type: Literal["quote"] = "quote"
    rich_text: tuple[RichText, ...] = ()
    children: tuple[Block, ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        body = {"rich_text": rich_text_to_notion(self.rich_text)}
        return _block("quote", _with_children(body, self.children))


class Callout(BaseModel):
    type: Literal["callout"] = "callout"
    rich_text: tuple[RichText, ...] = ()
    icon: str = GITHUB_LINK_ICON

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        return _block(
            "callout",
            {
                "rich_text": rich_text_to_notion(self.rich_text),
                "icon": {"type": "emoji", "emoji": self.icon},
            },
        )


class Divider(BaseModel):
    type: Literal["divider"] = "divider"

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        return _block("divider", {})


class Image(BaseModel):
    """External image.  Notion can only embed absolute http(s) URLs."""

    type: Literal["image"] = "image"
    url: str
    caption: tuple[RichText, ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        return _block(
            "image",
            {
                "type": "external",
                "external": {"url": self.url},
                "caption": rich_text_to_notion(self.caption),
            },
        )


class Table(BaseModel):
    type: Literal["table"] = "table"
    width: int = Field(ge=1)
    has_column_header: bool = True
    rows: tuple[tuple[tuple[RichText, ...], ...], ...] = ()

    model_config = {"frozen": True}

    def to_notion(self) -> dict[str, Any]:
        children = []
        for row in self.rows:
            cells = [rich_text_to_notion(cell) for cell in row]
            # Notion requires every row to have exactly table_width cells.
            cells = (cells + [[]] * self.width)[: self.width]
            children.append(_block("table_row", {"cells": cells}))
        return _block(
            "table",
            {
                "table_width": self.width,
                "has_column_header": self.has_column_header,
                "has_row_header": False,
                "children": children,
            },
        )


Block = Annotated[
    Union[
        Paragraph,
        Heading,
        BulletedListItem,
        NumberedListItem,
        ToDo,
        Code,
        Quote,
        Callout,
        Divider,
        Image,
        Table,
    ],
    Field(discriminator="type"),
]

for _model in (BulletedListItem, NumberedListItem, ToDo, Quote):
    _model.model_rebuild()


def github_link_callout(url: str) -> Callout:
    """Build the callout that points a page back at its source file."""
    return Callout(
        rich_text=(
            RichText(text=f"{GITHUB_LINK_LABEL}: "),
            RichText(text=url, link=url),
        ),
        icon=GITHUB_LINK_ICON,
    )


def plain_text(block: Any) -> str:
    """Concatenate the visible text of a block (empty for non-text kinds)."""
    if isinstance(block, Code):
        return block.text
    spans = getattr(block, "rich_text", ())
    return "".join(span.text for span in spans)
