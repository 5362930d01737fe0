"""Conversion from Markdown to Notion blocks."""

from .common import ConversionResult, markdown_to_notion_lang
from .markdown_to_blocks import (
    BlockBuilder,
    convert_with_warnings,
    markdown_to_blocks,
)

__all__ = [
    "BlockBuilder",
    "ConversionResult",
    "convert_with_warnings",
    "markdown_to_blocks",
    "markdown_to_notion_lang",
]
