"""Common types and utilities for block conversion."""

from dataclasses import dataclass, field

from ..sync.blocks import Block

# =============================================================================
# Code Block Language Mapping
# =============================================================================
#
# Markdown code fence identifiers are free-form; Notion only accepts a fixed
# set of language names on code blocks and rejects anything else.
#
# Markdown: ```py
# Notion:   {"language": "python"}
#
# - Aliases map to the Notion name
# - Names Notion already accepts pass through (lowercased)
# - Anything unknown becomes "plain text"
# =============================================================================

NOTION_PLAIN_TEXT = "plain text"

# Markdown language identifier -> Notion code language
_MARKDOWN_TO_NOTION_MAP: dict[str, str] = {
    # Shell scripting
    "sh": "shell",
    "zsh": "shell",
    "console": "shell",
    "ps1": "powershell",
    "pwsh": "powershell",
    # JavaScript / TypeScript variants
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    # C family
    "cpp": "c++",
    "cxx": "c++",
    "h": "c",
    "cs": "c#",
    "csharp": "c#",
    "objc": "objective-c",
    "fs": "f#",
    "fsharp": "f#",
    # Scripting
    "py": "python",
    "python3": "python",
    "rb": "ruby",
    "pl": "perl",
    # Systems
    "rs": "rust",
    "golang": "go",
    "kt": "kotlin",
    # Data / config
    "yml": "yaml",
    "jsonc": "json",
    "md": "markdown",
    "tf": "hcl",
    "dockerfile": "docker",
    "proto": "protobuf",
    "gql": "graphql",
    # Text/plaintext normalization
    "text": NOTION_PLAIN_TEXT,
    "txt": NOTION_PLAIN_TEXT,
    "plaintext": NOTION_PLAIN_TEXT,
    "plain": NOTION_PLAIN_TEXT,
}

# Languages accepted by the Notion API as-is
_NOTION_LANGUAGES: frozenset[str] = frozenset(
    {
        "abap",
        "arduino",
        "bash",
        "basic",
        "c",
        "c#",
        "c++",
        "clojure",
        "coffeescript",
        "css",
        "dart",
        "diff",
        "docker",
        "elixir",
        "elm",
        "erlang",
        "f#",
        "flow",
        "fortran",
        "gherkin",
        "glsl",
        "go",
        "graphql",
        "groovy",
        "haskell",
        "hcl",
        "html",
        "java",
        "javascript",
        "json",
        "julia",
        "kotlin",
        "latex",
        "less",
        "lisp",
        "livescript",
        "lua",
        "makefile",
        "markdown",
        "markup",
        "matlab",
        "mermaid",
        "nix",
        "objective-c",
        "ocaml",
        "pascal",
        "perl",
        "php",
        NOTION_PLAIN_TEXT,
        "powershell",
        "prolog",
        "protobuf",
        "python",
        "r",
        "reason",
        "ruby",
        "rust",
        "sass",
        "scala",
        "scheme",
        "scss",
        "shell",
        "sql",
        "swift",
        "toml",
        "typescript",
        "vb.net",
        "verilog",
        "vhdl",
        "visual basic",
        "webassembly",
        "xml",
        "yaml",
    }
)


def markdown_to_notion_lang(lang: str | None) -> str:
    """
    Convert a Markdown code fence language to a Notion code language.

    Only the first word of the fence info string is considered.

    Args:
        lang: Markdown language identifier (e.g., 'py', 'bash', 'js')

    Returns:
        Notion language name. Unknown or empty languages map to 'plain text'.

    Examples:
        >>> markdown_to_notion_lang("py")
        'python'
        >>> markdown_to_notion_lang("bash")
        'bash'
        >>> markdown_to_notion_lang("brainfuck")
        'plain text'
    """
    if not lang or not lang.strip():
        return NOTION_PLAIN_TEXT

    # Normalize to lowercase for consistent lookup
    lang_lower = lang.strip().split()[0].lower()

    if lang_lower in _MARKDOWN_TO_NOTION_MAP:
        return _MARKDOWN_TO_NOTION_MAP[lang_lower]
    if lang_lower in _NOTION_LANGUAGES:
        return lang_lower
    return NOTION_PLAIN_TEXT


@dataclass
class ConversionResult:
    """Result of block conversion with warnings.

    Attributes:
        blocks: Converted block sequence
        warnings: Lossy conversions (clamped headings, dropped links, ...)
    """

    blocks: list[Block] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
