"""Carveout AST Parser: tree-sitter based declaration extraction.

Public API:
    parse_file(path, project_root) → ParseResult
    parse_source(source, file_path, language) → ParseResult
    detect_language(file_path) → str | None
"""

from .models import ClassDecl, FieldDecl, ParseError, ParseResult
from .utils import detect_language, get_parser, is_supported_file, should_skip_directory

__all__ = [
    "parse_file",
    "parse_source",
    "detect_language",
    "is_supported_file",
    "should_skip_directory",
    "ClassDecl",
    "FieldDecl",
    "ParseError",
    "ParseResult",
]


def parse_file(file_path: str, project_root: str = "") -> ParseResult:
    """Parse a source file into class declarations.

    Args:
        file_path: Absolute path to the source file
        project_root: Project root for computing relative paths

    Raises:
        ValueError: If the file's language is not supported
    """
    language = detect_language(file_path)
    if not language:
        raise ValueError(f"Unsupported source file: {file_path}")
    return get_parser(language).parse_file(file_path, project_root)


def parse_source(source_text: str, file_path: str, language: str | None = None) -> ParseResult:
    """Parse source code string into class declarations.

    Args:
        source_text: Source code as string
        file_path: Relative file path (for metadata)
        language: Language identifier. If None, detected from file_path.
    """
    if language is None:
        language = detect_language(file_path)
    if not language:
        raise ValueError(f"Unsupported source file: {file_path}")
    return get_parser(language).parse_source(source_text, file_path)
