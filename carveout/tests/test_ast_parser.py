"""Tests for the AST parser module."""

import pytest
from carveout.core.ast_parser import (
    FieldDecl,
    ParseResult,
    detect_language,
    is_supported_file,
    parse_file,
    parse_source,
    should_skip_directory,
)


# =========================================================================
# Sample Java source fixtures
# =========================================================================

ORDER_SOURCE = '''
package com.shop.orders;

import java.util.List;
import com.shop.catalog.Product;
import static java.util.Objects.requireNonNull;

@Entity
@Table(name = "orders")
public class Order extends BaseEntity implements Serializable, Auditable {
    private final String id;
    private List<OrderLine> lines;
    private Customer customer, backupCustomer;

    public Order(String id) {
        this.id = id;
    }

    public void addLine(OrderLine line) {
        lines.add(line);
    }

    public String getId() {
        return id;
    }

    public static class Builder {
        private String id;

        public Order build() {
            return new Order(id);
        }
    }
}
'''

REPOSITORY_SOURCE = '''
package com.shop.orders;

public interface OrderRepository extends Repository<Order>, Closeable {
    int MAX_RESULTS = 10;

    Order findById(String id);
}
'''

NO_PACKAGE_SOURCE = '''
class Util {
    void help() {}
}
'''

BROKEN_SOURCE = '''
package com.shop.orders;

public class Broken {
    void oops( {
}
'''


# =========================================================================
# Class extraction
# =========================================================================

class TestClassExtraction:

    def test_package_and_imports(self):
        result = parse_source(ORDER_SOURCE, "com/shop/orders/Order.java")
        assert isinstance(result, ParseResult)
        assert result.language == "java"
        assert result.package == "com.shop.orders"
        # static imports never name a type
        assert result.imports == ["java.util.List", "com.shop.catalog.Product"]
        assert not result.failed

    def test_outer_and_nested_classes(self):
        result = parse_source(ORDER_SOURCE, "com/shop/orders/Order.java")
        names = [c.qualified_name for c in result.classes]
        assert names == ["com.shop.orders.Order", "com.shop.orders.Order.Builder"]
        builder = result.classes[1]
        assert builder.enclosing_class == "Order"
        assert builder.methods == ["build"]

    def test_methods_exclude_constructors(self):
        order = parse_source(ORDER_SOURCE, "Order.java").classes[0]
        assert order.methods == ["addLine", "getId"]

    def test_annotations_are_bare_names(self):
        order = parse_source(ORDER_SOURCE, "Order.java").classes[0]
        assert order.annotations == ["Entity", "Table"]

    def test_supertypes(self):
        order = parse_source(ORDER_SOURCE, "Order.java").classes[0]
        assert order.extends == ["BaseEntity"]
        assert order.implements == ["Serializable", "Auditable"]

    def test_fields_with_finality(self):
        order = parse_source(ORDER_SOURCE, "Order.java").classes[0]
        assert order.fields == [
            FieldDecl(type_name="String", names=("id",), is_final=True),
            FieldDecl(type_name="List<OrderLine>", names=("lines",), is_final=False),
            FieldDecl(type_name="Customer", names=("customer", "backupCustomer"), is_final=False),
        ]

    def test_line_numbers(self):
        order = parse_source(ORDER_SOURCE, "Order.java").classes[0]
        assert order.start_line < order.end_line


class TestInterfaces:

    def test_interface_kind_and_extends(self):
        repo = parse_source(REPOSITORY_SOURCE, "OrderRepository.java").classes[0]
        assert repo.kind == "interface"
        assert repo.extends == ["Repository<Order>", "Closeable"]
        assert repo.implements == []

    def test_interface_methods_and_constants(self):
        repo = parse_source(REPOSITORY_SOURCE, "OrderRepository.java").classes[0]
        assert repo.methods == ["findById"]
        # interface constants are implicitly final
        assert repo.fields == [FieldDecl(type_name="int", names=("MAX_RESULTS",), is_final=True)]


class TestEdgeCases:

    def test_default_package(self):
        result = parse_source(NO_PACKAGE_SOURCE, "Util.java")
        assert result.package == ""
        assert result.classes[0].qualified_name == "Util"

    def test_syntax_error_marks_result_failed(self):
        result = parse_source(BROKEN_SOURCE, "Broken.java")
        assert result.failed
        assert any(e.severity == "error" and e.line > 0 for e in result.errors)

    def test_unsupported_language(self):
        with pytest.raises(ValueError):
            parse_source("print('hi')", "script.py")

    def test_parse_file_relative_path(self, tmp_path):
        path = tmp_path / "com" / "shop" / "orders" / "Order.java"
        path.parent.mkdir(parents=True)
        path.write_text(ORDER_SOURCE)
        result = parse_file(str(path), str(tmp_path))
        assert result.file_path == "com/shop/orders/Order.java"
        assert result.classes[0].file_path == "com/shop/orders/Order.java"

    def test_unreadable_file_is_error_result(self, tmp_path):
        path = tmp_path / "Binary.java"
        path.write_bytes(b"\xff\xfe\x00garbage")
        result = parse_file(str(path), str(tmp_path))
        assert result.failed
        assert result.classes == []


class TestUtils:

    def test_detect_language(self):
        assert detect_language("Order.java") == "java"
        assert detect_language("Order.JAVA") == "java"
        assert detect_language("order.py") is None

    def test_is_supported_file(self):
        assert is_supported_file("a/b/Order.java")
        assert not is_supported_file("pom.xml")

    def test_skip_directories(self):
        assert should_skip_directory("target")
        assert should_skip_directory(".git")
        assert should_skip_directory(".hidden")
        assert not should_skip_directory("orders")
