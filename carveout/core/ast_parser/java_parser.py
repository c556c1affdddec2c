"""Java AST parser using tree-sitter.

Walks the tree-sitter AST to extract classes and interfaces (including
nested ones) together with their methods, fields, annotations, and
supertypes, plus the package and import declarations of the file.
"""

import logging
from typing import List, Optional

import tree_sitter
import tree_sitter_java

from .base import BaseLanguageParser
from .models import ClassDecl, FieldDecl

logger = logging.getLogger(__name__)

_JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

_TYPE_DECLARATIONS = ("class_declaration", "interface_declaration")


class JavaParser(BaseLanguageParser):
    """tree-sitter based Java parser.

    Extracts:
    - Class declarations -> kind="class"
    - Interface declarations -> kind="interface"
    - Method names (constructors excluded), in declaration order
    - Field declarations with declared type and final-ness
      (interface constants are implicitly final)
    - Annotation names, extends / implements lists
    """

    def get_language(self) -> str:
        return "java"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _JAVA_LANGUAGE

    def extract_package(self, tree: tree_sitter.Tree, source: bytes) -> str:
        """Extract package name from the compilation unit."""
        for child in tree.root_node.children:
            if child.type == "package_declaration":
                # package com.example.foo;
                text = self._text(child, source).strip()
                return text.replace("package ", "", 1).rstrip(";").strip()
        return ""

    def extract_imports(self, tree: tree_sitter.Tree, source: bytes) -> List[str]:
        """Extract single-type and on-demand import names.

        ``import static`` declarations are ignored; they never name a type.
        """
        imports = []
        for child in tree.root_node.children:
            if child.type != "import_declaration":
                continue
            text = self._text(child, source).strip().rstrip(";").strip()
            text = text[len("import"):].strip()
            if text.startswith("static "):
                continue
            imports.append(text.replace(" ", ""))
        return imports

    def extract_classes(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str, package: str
    ) -> List[ClassDecl]:
        """Extract top-level and nested class/interface declarations."""
        classes: List[ClassDecl] = []
        for child in tree.root_node.children:
            if child.type in _TYPE_DECLARATIONS:
                self._extract_type(child, source, file_path, package, None, classes)
        return classes

    # =========================================================================
    # Extractors
    # =========================================================================

    def _extract_type(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        package: str,
        enclosing: Optional[str],
        out: List[ClassDecl],
    ) -> None:
        """Extract one class/interface and recurse into nested declarations."""
        name = self._get_child_text(node, "name", source)
        if not name:
            return

        local_name = f"{enclosing}.{name}" if enclosing else name
        qualified_name = f"{package}.{local_name}" if package else local_name
        is_interface = node.type == "interface_declaration"

        decl = ClassDecl(
            kind="interface" if is_interface else "class",
            name=name,
            qualified_name=qualified_name,
            package=package,
            file_path=file_path,
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            annotations=self._extract_annotations(node, source),
            enclosing_class=enclosing,
        )
        if is_interface:
            decl.extends = self._extract_type_list(node, "extends_interfaces", source)
        else:
            decl.extends = self._extract_superclass(node, source)
            decl.implements = self._extract_type_list(node, "super_interfaces", source)
        out.append(decl)

        body = node.child_by_field_name("body")
        if body is None:
            return

        nested = []
        for child in body.children:
            if child.type == "method_declaration":
                method_name = self._get_child_text(child, "name", source)
                if method_name:
                    decl.methods.append(method_name)
            elif child.type == "field_declaration":
                field_decl = self._extract_field(child, source, implicitly_final=False)
                if field_decl:
                    decl.fields.append(field_decl)
            elif child.type == "constant_declaration":
                field_decl = self._extract_field(child, source, implicitly_final=True)
                if field_decl:
                    decl.fields.append(field_decl)
            elif child.type in _TYPE_DECLARATIONS:
                nested.append(child)

        for child in nested:
            self._extract_type(child, source, file_path, package, local_name, out)

    def _extract_field(
        self, node: tree_sitter.Node, source: bytes, implicitly_final: bool
    ) -> Optional[FieldDecl]:
        """Extract a field declaration: declared type, variable names, final-ness."""
        type_node = node.child_by_field_name("type")
        if type_node is None:
            return None

        names = []
        for declarator in node.children_by_field_name("declarator"):
            var_name = self._get_child_text(declarator, "name", source)
            if var_name:
                names.append(var_name)

        is_final = implicitly_final
        for child in node.children:
            if child.type == "modifiers":
                is_final = is_final or any(m.type == "final" for m in child.children)

        type_name = " ".join(self._text(type_node, source).split())
        return FieldDecl(type_name=type_name, names=tuple(names), is_final=is_final)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _text(node: tree_sitter.Node, source: bytes) -> str:
        return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    @staticmethod
    def _get_child_text(node: tree_sitter.Node, field_name: str, source: bytes) -> Optional[str]:
        child = node.child_by_field_name(field_name)
        if child:
            return source[child.start_byte:child.end_byte].decode("utf-8", errors="replace")
        return None

    def _extract_superclass(self, node: tree_sitter.Node, source: bytes) -> List[str]:
        """Extract the ``extends`` clause of a class declaration."""
        for child in node.children:
            if child.type == "superclass":
                for sub in child.children:
                    if sub.is_named:
                        return [self._text(sub, source)]
        return []

    def _extract_type_list(self, node: tree_sitter.Node, clause: str, source: bytes) -> List[str]:
        """Extract the types of an implements / interface-extends clause."""
        types = []
        for child in node.children:
            if child.type != clause:
                continue
            for sub in child.children:
                if sub.type == "type_list":
                    types.extend(self._text(t, source) for t in sub.children if t.is_named)
        return types

    def _extract_annotations(self, node: tree_sitter.Node, source: bytes) -> List[str]:
        """Extract annotation names from the declaration's modifiers.

        ``@Table(name = "orders")`` yields ``"Table"``.
        """
        annotations = []
        for child in node.children:
            if child.type != "modifiers":
                continue
            for mod_child in child.children:
                if mod_child.type in ("marker_annotation", "annotation"):
                    name = self._get_child_text(mod_child, "name", source)
                    if name and name not in annotations:
                        annotations.append(name)
        return annotations
