"""Tests for the Structural Model Builder.

Tests cover:
- Recursive walk with skipped tool directories
- Broken and duplicate files recorded as warnings, never fatal
- Package materialization from class declarations only
- Edge kinds (inheritance / composition / aggregation) and resolution
- Idempotence across runs
"""

import re

import pytest

from carveout.core.errors import ParseSkipped
from carveout.core.structure import (
    DependencyKind,
    FileFacts,
    StructuralModelBuilder,
    class_id,
    erase_type,
)


# ── Fixtures ──────────────────────────────────────────────────────────────

ORDER = """
package com.shop.orders;

import com.shop.catalog.Product;

@Entity
public class Order extends BaseEntity {
    private final OrderLine primaryLine;
    private Product featured;
    private Customer customer;

    public void place() {}
}
"""

ORDER_LINE = """
package com.shop.orders;

public class OrderLine {
    private final int quantity;
}
"""

PRODUCT = """
package com.shop.catalog;

public class Product {
    private String sku;
}
"""

BROKEN = """
package com.shop.orders;

public class Broken {
    void oops( {
}
"""


def _write(root, rel_path, content):
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def _make_tree(root):
    _write(root, "src/com/shop/orders/Order.java", ORDER)
    _write(root, "src/com/shop/orders/OrderLine.java", ORDER_LINE)
    _write(root, "src/com/shop/catalog/Product.java", PRODUCT)
    return root


def _edge(model, source, target_name, kind):
    return [
        e for e in model.dependencies
        if e.source_name == source and e.target_name == target_name and e.kind == kind
    ]


# ── Tests ─────────────────────────────────────────────────────────────────


class TestBuild:

    def test_classes_and_packages(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        assert {c.qualified_name for c in model.classes} == {
            "com.shop.orders.Order",
            "com.shop.orders.OrderLine",
            "com.shop.catalog.Product",
        }
        # com.shop declares no class and is never materialized
        assert [p.name for p in model.packages] == ["com.shop.catalog", "com.shop.orders"]
        assert model.packages[1].path == "com/shop/orders"
        assert model.warnings == ()

    def test_class_fact_contents(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        order = model.by_qualified_name("com.shop.orders.Order")
        assert order.id == class_id("com.shop.orders.Order")
        assert order.package == "com.shop.orders"
        assert order.methods == ("place",)
        assert order.fields == ("primaryLine", "featured", "customer")
        assert order.annotations == ("Entity",)
        assert order.supertypes == ("BaseEntity",)
        assert order.file_path == "src/com/shop/orders/Order.java"

    def test_sub_packages(self, tmp_path):
        _make_tree(tmp_path)
        _write(tmp_path, "src/com/shop/Shop.java", "package com.shop;\npublic class Shop {}\n")
        model = StructuralModelBuilder().build(tmp_path)
        shop = [p for p in model.packages if p.name == "com.shop"][0]
        assert shop.sub_packages == ("com.shop.catalog", "com.shop.orders")

    def test_skipped_directories(self, tmp_path):
        _make_tree(tmp_path)
        _write(tmp_path, "target/generated/Generated.java", "public class Generated {}\n")
        _write(tmp_path, ".git/Hidden.java", "public class Hidden {}\n")
        model = StructuralModelBuilder().build(tmp_path)
        names = {c.name for c in model.classes}
        assert "Generated" not in names
        assert "Hidden" not in names

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            StructuralModelBuilder().build(tmp_path / "missing")


class TestWarnings:

    def test_broken_file_is_skipped_not_fatal(self, tmp_path):
        _make_tree(tmp_path)
        _write(tmp_path, "src/com/shop/orders/Broken.java", BROKEN)
        model = StructuralModelBuilder().build(tmp_path)
        assert len(model.classes) == 3
        assert len(model.warnings) == 1
        warning = model.warnings[0]
        assert isinstance(warning, ParseSkipped)
        assert warning.file_path == "src/com/shop/orders/Broken.java"

    def test_duplicate_qualified_name_keeps_first(self, tmp_path):
        _make_tree(tmp_path)
        _write(tmp_path, "zcopy/com/shop/orders/Order.java", ORDER)
        model = StructuralModelBuilder().build(tmp_path)
        orders = [c for c in model.classes if c.qualified_name == "com.shop.orders.Order"]
        assert len(orders) == 1
        assert orders[0].file_path == "src/com/shop/orders/Order.java"
        assert len(model.warnings) == 1
        assert "Duplicate class com.shop.orders.Order" in model.warnings[0].reason

    def test_skipped_facts_are_merged_as_warnings(self):
        skipped = FileFacts("a/B.java", "", (), (), ParseSkipped("a/B.java", "boom"))
        model = StructuralModelBuilder().merge([skipped])
        assert model.classes == ()
        assert str(model.warnings[0]) == "a/B.java: boom"


class TestDependencies:

    def test_inheritance_edge_to_external_type(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        [edge] = _edge(model, "Order", "BaseEntity", DependencyKind.INHERITANCE)
        assert edge.target is None
        assert not edge.resolved

    def test_final_field_is_composition_in_same_package(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        [edge] = _edge(model, "Order", "OrderLine", DependencyKind.COMPOSITION)
        assert edge.target == class_id("com.shop.orders.OrderLine")

    def test_mutable_field_is_aggregation_resolved_by_import(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        [edge] = _edge(model, "Order", "Product", DependencyKind.AGGREGATION)
        assert edge.target == class_id("com.shop.catalog.Product")

    def test_unresolved_field_type_is_a_leaf(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        [edge] = _edge(model, "Order", "Customer", DependencyKind.AGGREGATION)
        assert edge.target is None

    def test_ambiguous_simple_name_stays_unresolved(self, tmp_path):
        _write(tmp_path, "a/Item.java", "package com.a;\npublic class Item {}\n")
        _write(tmp_path, "b/Item.java", "package com.b;\npublic class Item {}\n")
        _write(tmp_path, "c/Cart.java", "package com.c;\npublic class Cart {\n  private Item item;\n}\n")
        model = StructuralModelBuilder().build(tmp_path)
        [edge] = _edge(model, "Cart", "Item", DependencyKind.AGGREGATION)
        assert edge.target is None

    def test_same_pair_with_different_kinds_is_preserved(self, tmp_path):
        _write(tmp_path, "x/Base.java", "package x;\npublic class Base {}\n")
        _write(
            tmp_path,
            "x/Child.java",
            "package x;\npublic class Child extends Base {\n  private final Base parent;\n}\n",
        )
        model = StructuralModelBuilder().build(tmp_path)
        kinds = sorted(e.kind.value for e in model.dependencies if e.source_name == "Child")
        assert kinds == ["composition", "inheritance"]

    def test_edges_from(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        order = model.by_qualified_name("com.shop.orders.Order")
        assert len(model.edges_from(order.id)) == 4


class TestDeterminism:

    def test_rebuild_is_identical(self, tmp_path):
        _make_tree(tmp_path)
        first = StructuralModelBuilder().build(tmp_path)
        second = StructuralModelBuilder().build(tmp_path)
        assert first.classes == second.classes
        assert first.dependencies == second.dependencies
        assert first.packages == second.packages
        assert first.to_dict() == second.to_dict()

    def test_class_id_format(self):
        cid = class_id("com.shop.orders.Order")
        assert re.fullmatch(r"[0-9a-f]{16}", cid)
        assert cid == class_id("com.shop.orders.Order")
        assert cid != class_id("com.shop.orders.OrderLine")


class TestEraseType:

    @pytest.mark.parametrize("declared,erased", [
        ("Order", "Order"),
        ("List<OrderLine>", "List"),
        ("Map<String, List<Order>>", "Map"),
        ("OrderLine[]", "OrderLine"),
        ("String...", "String"),
    ])
    def test_erase(self, declared, erased):
        assert erase_type(declared) == erased


class TestLookups:

    def test_by_simple_name_and_classes_in(self, tmp_path):
        model = StructuralModelBuilder().build(_make_tree(tmp_path))
        assert [c.qualified_name for c in model.by_simple_name("Product")] == ["com.shop.catalog.Product"]
        assert {c.name for c in model.classes_in("com.shop.orders")} == {"Order", "OrderLine"}
        assert model.by_simple_name("Nope") == []

    def test_to_dict_shape(self, tmp_path):
        data = StructuralModelBuilder().build(_make_tree(tmp_path)).to_dict()
        assert set(data) == {"packages", "classes", "dependencies", "warnings"}
        order = [c for c in data["classes"] if c["name"] == "Order"][0]
        assert order["packageName"] == "com.shop.orders"
        assert {"sourceClass", "targetClass", "type", "resolved"} <= set(data["dependencies"][0])
