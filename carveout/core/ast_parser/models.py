"""AST Parser data models.

Defines the raw declarations extracted from a single source file.
These are pure data containers with no parsing logic.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class FieldDecl:
    """One field declaration (possibly declaring several variables)."""

    type_name: str  # "List<OrderLine>" as written
    names: Tuple[str, ...]  # ("lines",)
    is_final: bool


@dataclass
class ClassDecl:
    """A single class or interface declaration extracted by tree-sitter."""

    kind: str  # "class" | "interface"
    name: str  # "Order"
    qualified_name: str  # "com.shop.orders.Order"
    package: str  # "com.shop.orders"
    file_path: str  # Relative path within the source tree
    start_line: int
    end_line: int
    methods: List[str] = field(default_factory=list)
    fields: List[FieldDecl] = field(default_factory=list)
    annotations: List[str] = field(default_factory=list)  # "Entity", not "@Entity(...)"
    extends: List[str] = field(default_factory=list)
    implements: List[str] = field(default_factory=list)
    enclosing_class: Optional[str] = None


@dataclass
class ParseError:
    """An error encountered during parsing."""

    file_path: str
    line: int
    message: str
    severity: str = "warning"  # "warning" | "error"


@dataclass
class ParseResult:
    """Complete parse output for a single file."""

    file_path: str
    language: str
    package: str
    classes: List[ClassDecl]
    imports: List[str]  # "com.shop.catalog.Product"
    line_count: int = 0
    errors: List[ParseError] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        """True when any error-severity problem was recorded."""
        return any(e.severity == "error" for e in self.errors)
