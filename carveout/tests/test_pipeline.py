"""Integration tests for the modernization pipeline and CLI."""

import asyncio
import json

import pytest

from carveout.__main__ import main
from carveout.core.decomposition import BoundedContext, MicroserviceCandidate
from carveout.core.errors import OracleUnavailable
from carveout.core.pipeline import ModernizationPipeline, order_candidates
from carveout.core.planner import StranglerPlanner
from carveout.core.refactor import RefactorConfig


# ── Fixtures ──────────────────────────────────────────────────────────────


def _write(root, rel_path, content):
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def _make_shop(root):
    _write(root, "com/shop/orders/Order.java", (
        "package com.shop.orders;\n\n"
        "import com.shop.catalog.Product;\n\n"
        "@Entity\npublic class Order {\n"
        "    private final OrderLine line;\n"
        "    private Product product;\n}\n"
    ))
    _write(root, "com/shop/orders/OrderLine.java", (
        "package com.shop.orders;\n\npublic class OrderLine {\n    private int quantity;\n}\n"
    ))
    _write(root, "com/shop/orders/OrderService.java", (
        "package com.shop.orders;\n\n@Service\npublic class OrderService {\n    public void place() {}\n}\n"
    ))
    _write(root, "com/shop/catalog/Product.java", (
        "package com.shop.catalog;\n\npublic class Product {\n    private String sku;\n}\n"
    ))
    _write(root, "com/shop/catalog/Broken.java", "package com.shop.catalog;\npublic class Broken {\n")
    return root


def _make_pipeline(oracle=None, offline=False):
    return ModernizationPipeline(
        oracle=oracle,
        planner=StranglerPlanner(),
        refactor_config=RefactorConfig(),
        offline=offline,
    )


def _candidate(name, requires=()):
    return MicroserviceCandidate(name=name, bounded_context=BoundedContext(name=name), required_services=tuple(requires))


# ── Offline pipeline ──────────────────────────────────────────────────────


class TestOfflinePipeline:

    def test_analyze_falls_back_to_packages(self, tmp_path):
        report = asyncio.run(_make_pipeline().analyze(_make_shop(tmp_path)))
        assert sorted(c.name for c in report.contexts) == ["com.shop.catalog", "com.shop.orders"]
        assert sorted(c.name for c in report.candidates) == ["catalog-service", "orders-service"]
        assert len(report.model.warnings) == 1
        assert report.failed_contexts == ()

    def test_plan(self, tmp_path):
        report, plan = asyncio.run(_make_pipeline().plan(_make_shop(tmp_path)))
        assert [p.number for p in plan.phases] == [1, 2]
        assert all(len(p.steps) == 6 for p in plan.phases)

    def test_report_to_dict(self, tmp_path):
        data = asyncio.run(_make_pipeline().analyze(_make_shop(tmp_path))).to_dict()
        assert data["summary"]["classes"] == 4
        assert data["summary"]["skippedFiles"] == 1
        assert any("Broken.java" in w for w in data["warnings"])

    def test_layered_packages_all_become_candidates(self, tmp_path):
        _write(tmp_path, "com/shop/orders/model/Order.java",
               "package com.shop.orders.model;\n\npublic class Order {\n    private long id;\n}\n")
        _write(tmp_path, "com/shop/catalog/model/Product.java",
               "package com.shop.catalog.model;\n\npublic class Product {\n    private String sku;\n}\n")
        report, plan = asyncio.run(_make_pipeline().plan(tmp_path))
        assert sorted(c.name for c in report.candidates) == ["catalog-model-service", "orders-model-service"]
        assert report.failed_contexts == ()
        assert len(plan.phases) == 2

    def test_refactor_needs_oracle(self, tmp_path):
        with pytest.raises(OracleUnavailable):
            asyncio.run(_make_pipeline().refactor(_make_shop(tmp_path), tmp_path / "out"))


# ── Oracle-backed pipeline ────────────────────────────────────────────────


class TestOraclePipeline:

    def _replies(self):
        return [
            ("## CLASSES", {"boundedContexts": [
                {"name": "Catalog", "aggregateRoots": ["Product"]},
                {"name": "Ordering", "aggregateRoots": ["Order"], "entities": ["OrderLine"],
                 "services": ["OrderService"]},
            ]}),
            ('## BOUNDED CONTEXT\n{\n  "name": "Ordering"', {"microservice": {
                "name": "order-service", "apis": [{"path": "/api/orders"}],
                "events": [{"name": "PlaceOrder", "type": "COMMAND"}],
                "dependencies": ["catalog-service"],
            }}),
            ('## BOUNDED CONTEXT\n{\n  "name": "Catalog"', {"microservice": {
                "name": "catalog-service", "apis": [{"path": "/api/products"}], "events": [],
            }}),
            ("## SOURCE FILE (", lambda prompt: {"refactoring": {
                "newLocation": "src/" + prompt.split("## SOURCE FILE (", 1)[1].split(")", 1)[0],
                "steps": [],
            }}),
            ("## CURRENT IMPORTS", {"updates": []}),
        ]

    def test_plan_orders_dependencies_first(self, tmp_path, scripted_oracle):
        oracle, _ = scripted_oracle(self._replies())
        report, plan = asyncio.run(_make_pipeline(oracle).plan(_make_shop(tmp_path)))
        assert [c.name for c in report.candidates] == ["catalog-service", "order-service"]
        assert plan.phases[1].steps[0].dependencies == ("catalog-service:VALIDATE",)

    def test_refactor_moves_each_candidate(self, tmp_path, scripted_oracle):
        oracle, _ = scripted_oracle(self._replies())
        results = asyncio.run(
            _make_pipeline(oracle).refactor(_make_shop(tmp_path / "mono"), tmp_path / "out")
        )
        assert list(results) == ["catalog-service", "order-service"]
        assert all(r.ok for r in results.values())
        assert (tmp_path / "out" / "order-service" / "src" / "OrderService.java").exists()
        assert (tmp_path / "out" / "catalog-service" / "src" / "Product.java").exists()

    def test_refactor_single_candidate(self, tmp_path, scripted_oracle):
        oracle, _ = scripted_oracle(self._replies())
        results = asyncio.run(_make_pipeline(oracle).refactor(
            _make_shop(tmp_path / "mono"), tmp_path / "out", candidate_names=["catalog-service"],
        ))
        assert list(results) == ["catalog-service"]

    def test_partial_candidate_failure_is_reported(self, tmp_path, scripted_oracle):
        replies = self._replies()
        replies[2] = ('## BOUNDED CONTEXT\n{\n  "name": "Catalog"', "no json")
        # order-service then depends on a missing candidate; plan only what succeeded
        replies[1][1]["microservice"]["dependencies"] = []
        oracle, _ = scripted_oracle(replies)
        report = asyncio.run(_make_pipeline(oracle).analyze(_make_shop(tmp_path)))
        assert [c.name for c in report.candidates] == ["order-service"]
        assert [name for name, _ in report.failed_contexts] == ["Catalog"]


class TestOrderCandidates:

    def test_stable_dependency_first(self):
        ordered = order_candidates([
            _candidate("a", requires=["c"]),
            _candidate("b"),
            _candidate("c"),
        ])
        assert [c.name for c in ordered] == ["b", "c", "a"]

    def test_cycles_keep_input_order(self):
        ordered = order_candidates([_candidate("a", requires=["b"]), _candidate("b", requires=["a"])])
        assert [c.name for c in ordered] == ["a", "b"]

    def test_unknown_dependencies_do_not_block(self):
        ordered = order_candidates([_candidate("a", requires=["ghost"]), _candidate("b")])
        assert [c.name for c in ordered] == ["a", "b"]


# ── CLI ───────────────────────────────────────────────────────────────────


class TestCli:

    def test_analyze_offline(self, tmp_path, capsys):
        assert main(["--offline", "--log-level", "ERROR", "analyze", str(_make_shop(tmp_path))]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["summary"]["boundedContexts"] == 2

    def test_analyze_with_model(self, tmp_path, capsys):
        assert main(["--offline", "--log-level", "ERROR", "analyze", "--model", str(_make_shop(tmp_path))]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["structuralModel"]["classes"]) == 4

    def test_plan_offline(self, tmp_path, capsys):
        assert main(["--offline", "--log-level", "ERROR", "plan", str(_make_shop(tmp_path))]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["migrationPlan"]["phases"]) == 2

    def test_missing_source_dir(self, tmp_path, capsys):
        assert main(["--offline", "--log-level", "ERROR", "analyze", str(tmp_path / "missing")]) == 1
        assert capsys.readouterr().out == ""

    def test_refactor_offline_fails(self, tmp_path):
        assert main(["--offline", "--log-level", "ERROR", "refactor", str(_make_shop(tmp_path)), str(tmp_path / "o")]) == 1
