"""Shared fact factories for the test suite."""

from __future__ import annotations

from typing import Any

import pytest

from threatflow.facts import TypeFact


def build_type(
    name: str,
    package: str | None = "com.shop",
    kind: str | None = "class",
    annotations: Any = None,
    fields: list[dict[str, Any]] | None = None,
    methods: list[dict[str, Any]] | None = None,
    doc: str | None = None,
) -> TypeFact:
    return TypeFact.model_validate(
        {
            "name": name,
            "package": package,
            "kind": kind,
            "annotations": annotations or [],
            "fields": fields or [],
            "methods": methods or [],
            "doc": doc,
            "source_path": f"src/{name}.java",
        }
    )


def method(
    name: str,
    params: list[str] | None = None,
    returns: str = "void",
    annotations: Any = None,
    doc: str | None = None,
) -> dict[str, Any]:
    return {
        "name": name,
        "parameters": [
            {"name": f"arg{i}", "type": t} for i, t in enumerate(params or [])
        ],
        "return_type": returns,
        "annotations": annotations or [],
        "doc": doc,
    }


@pytest.fixture
def make_type():
    return build_type


@pytest.fixture
def make_method():
    return method


ORDER = "com.shop.model.Order"


@pytest.fixture
def shop_facts() -> list[TypeFact]:
    """A small web shop: entity, controller, repository, REST client."""
    return [
        build_type(
            "Order",
            package="com.shop.model",
            annotations={"Entity": None},
            fields=[
                {"name": "id", "type": "Long"},
                {"name": "total", "type": "Double"},
                {"name": "items", "type": "List<Item>"},
            ],
            doc="/** A customer order. @author shop */",
        ),
        build_type(
            "User",
            package="com.shop.model",
            fields=[
                {"name": "email", "type": "String"},
                {"name": "password", "type": "String"},
            ],
        ),
        build_type(
            "OrderController",
            package="com.shop.web",
            annotations=[
                {"name": "RestController"},
                {"name": "RequestMapping", "value": '"/orders"'},
            ],
            methods=[
                method(
                    "getOrder",
                    params=["Long"],
                    returns=ORDER,
                    annotations=[{"name": "GetMapping", "value": '"/{id}"'}],
                ),
                method(
                    "createOrder",
                    params=[ORDER],
                    returns=ORDER,
                    annotations=[{"name": "PostMapping"}],
                ),
            ],
        ),
        build_type(
            "OrderRepository",
            package="com.shop.repo",
            kind="interface",
            annotations={"Repository": None},
            methods=[
                method("save", params=[ORDER], returns=ORDER),
                method("findById", params=["Long"], returns=ORDER),
            ],
        ),
        build_type(
            "PaymentRestClient",
            package="com.shop.client",
            methods=[method("charge", params=[ORDER])],
        ),
    ]
