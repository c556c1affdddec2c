"""Base interface for language-specific AST parsers.

Defines the Strategy pattern base class that all language parsers implement.
Shared parsing logic lives here; language-specific extraction is delegated.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

import tree_sitter

from .models import ClassDecl, ParseError, ParseResult

logger = logging.getLogger(__name__)


class BaseLanguageParser(ABC):
    """Abstract base for language-specific tree-sitter parsers.

    Subclasses implement:
    - get_language(): returns language name string
    - get_tree_sitter_language(): returns tree-sitter Language object
    - extract_package(): returns the declared package / namespace
    - extract_classes(): walks AST tree and extracts ClassDecl objects
    - extract_imports(): extracts imported names from AST
    """

    @abstractmethod
    def get_language(self) -> str:
        """Return the language identifier (e.g., 'java')."""
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        """Return the tree-sitter Language object for this language."""
        ...

    @abstractmethod
    def extract_package(self, tree: tree_sitter.Tree, source: bytes) -> str:
        """Return the package declared by the file, or "" if none."""
        ...

    @abstractmethod
    def extract_classes(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str, package: str
    ) -> List[ClassDecl]:
        """Extract class declarations from a parsed tree-sitter AST.

        Args:
            tree: Parsed tree-sitter tree
            source: Raw source bytes
            file_path: Relative file path within the source tree
            package: Package declared by the file

        Returns:
            List of ClassDecl objects, outer classes before nested ones
        """
        ...

    @abstractmethod
    def extract_imports(self, tree: tree_sitter.Tree, source: bytes) -> List[str]:
        """Extract imported names from the AST."""
        ...

    def parse_file(self, file_path: str, project_root: str = "") -> ParseResult:
        """Parse a source file into a ParseResult.

        Unreadable files produce an empty result carrying an error-severity
        ParseError instead of raising.

        Args:
            file_path: Absolute path to the source file
            project_root: Project root for computing relative paths
        """
        if project_root and file_path.startswith(project_root):
            rel_path = file_path[len(project_root):].lstrip("/")
        else:
            rel_path = file_path

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                source_text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            return ParseResult(
                file_path=rel_path,
                language=self.get_language(),
                package="",
                classes=[],
                imports=[],
                errors=[ParseError(file_path=rel_path, line=0, message=str(e), severity="error")],
            )

        return self.parse_source(source_text, rel_path)

    def parse_source(self, source_text: str, file_path: str) -> ParseResult:
        """Parse source code string into a ParseResult.

        Args:
            source_text: Source code as string
            file_path: Relative file path (for metadata)
        """
        errors: List[ParseError] = []
        source_bytes = source_text.encode("utf-8")
        line_count = source_text.count("\n") + (1 if source_text and not source_text.endswith("\n") else 0)

        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        tree = parser.parse(source_bytes)

        if tree.root_node.has_error:
            errors.append(
                ParseError(
                    file_path=file_path,
                    line=self._first_error_line(tree.root_node),
                    message="Tree-sitter reported syntax errors in file",
                    severity="error",
                )
            )

        package = self.extract_package(tree, source_bytes)

        try:
            imports = self.extract_imports(tree, source_bytes)
        except Exception as e:
            logger.warning(f"Failed to extract imports from {file_path}: {e}")
            imports = []
            errors.append(ParseError(file_path=file_path, line=0, message=f"Import extraction failed: {e}"))

        try:
            classes = self.extract_classes(tree, source_bytes, file_path, package)
        except Exception as e:
            logger.error(f"Failed to extract classes from {file_path}: {e}")
            classes = []
            errors.append(ParseError(file_path=file_path, line=0, message=f"Class extraction failed: {e}", severity="error"))

        return ParseResult(
            file_path=file_path,
            language=self.get_language(),
            package=package,
            classes=classes,
            imports=imports,
            line_count=line_count,
            errors=errors,
        )

    @staticmethod
    def _first_error_line(node: tree_sitter.Node) -> int:
        """Return the 1-based line of the first ERROR/MISSING node, or 0."""
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type == "ERROR" or current.is_missing:
                return current.start_point.row + 1
            if current.has_error:
                stack.extend(reversed(current.children))
        return 0
