"""
ASTKG Test Configuration
========================

Shared fixtures for all tests. Nothing here talks to FalkorDB, Qdrant or
OpenRouter: every collaborator is a mock.
"""

import pytest
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

from astkg.models import (
    ApiEndpoint,
    ASTSnapshot,
    ClassEntity,
    ClassInfo,
    EntityKind,
    MethodEntity,
    MethodInfo,
    SimilarEntity,
)


# ============================================================================
# Builders
# ============================================================================

def make_class(name: str, package: str = "com.shop.orders", description: Optional[str] = None,
               entity_id: Optional[str] = None) -> ClassEntity:
    return ClassEntity(
        id=entity_id or f"{package}.{name}",
        name=name,
        full_name=f"{package}.{name}",
        package_name=package,
        description=description,
    )


def make_method(name: str, class_name: str = "OrderService", description: Optional[str] = None,
                entity_id: Optional[str] = None) -> MethodEntity:
    return MethodEntity(
        id=entity_id or f"{class_name}.{name}()",
        name=name,
        signature=f"{class_name}.{name}()",
        class_name=class_name,
        package_name="com.shop.orders",
        description=description,
    )


def similar(name: str, score: float, kind: EntityKind) -> SimilarEntity:
    return SimilarEntity(name=name, score=score, kind=kind)


def make_snapshot() -> ASTSnapshot:
    return ASTSnapshot(
        classes=[
            ClassInfo(name="BaseService", full_name="com.shop.BaseService", package_name="com.shop"),
            ClassInfo(
                name="OrderService",
                full_name="com.shop.orders.OrderService",
                package_name="com.shop.orders",
                file_path="src/OrderService.java",
                extends_class="BaseService",
            ),
            ClassInfo(
                name="OrderController",
                full_name="com.shop.orders.OrderController",
                package_name="com.shop.orders",
            ),
        ],
        methods=[
            MethodInfo(
                name="processOrder",
                full_signature="com.shop.orders.OrderService.processOrder(Order)",
                class_name="OrderService",
                arguments=["Order"],
                calls_to=[
                    "com.shop.orders.OrderService.validateOrder(Order)",
                    "java.util.List.add(Object)",
                ],
            ),
            MethodInfo(
                name="validateOrder",
                full_signature="com.shop.orders.OrderService.validateOrder(Order)",
                class_name="com.shop.orders.OrderService",
                arguments=["Order"],
            ),
            MethodInfo(
                name="createOrder",
                full_signature="com.shop.orders.OrderController.createOrder(OrderRequest)",
                class_name="OrderController",
                arguments=["OrderRequest"],
            ),
        ],
        api_endpoints=[
            ApiEndpoint(
                path="/orders",
                method="post",
                controller_class="OrderController",
                handler_method="createOrder",
            ),
        ],
    )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def test_config():
    """Get test environment configuration."""
    from astkg.config import get_environment_config, TEST_ENV
    return get_environment_config(TEST_ENV)


# Mock FalkorDB client for unit tests
@pytest.fixture
def mock_falkordb():
    """Mock FalkorDB client for unit tests."""
    client = MagicMock()
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.query = AsyncMock(return_value=[])

    async def query_batched(cypher, rows, batch_size=500, param_name="rows"):
        return len(rows)

    client.query_batched = AsyncMock(side_effect=query_batched)
    return client


@pytest.fixture
def sample_snapshot() -> ASTSnapshot:
    return make_snapshot()


@pytest.fixture
def sample_classes() -> List[ClassEntity]:
    return [
        make_class("OrderService", description="Coordinates order placement"),
        make_class("PaymentGateway", package="com.shop.payments"),
        make_class("RefundPolicy", package="com.shop.payments", description="Refund eligibility rules"),
    ]


@pytest.fixture
def sample_methods() -> List[MethodEntity]:
    return [
        make_method("processOrder", description="Validates and persists an order"),
        make_method("refund", class_name="PaymentGateway"),
        make_method("isEligible", class_name="RefundPolicy"),
    ]


@pytest.fixture
def mock_registry(sample_classes, sample_methods):
    registry = MagicMock()
    registry.get_all_classes = AsyncMock(return_value=sample_classes)
    registry.get_all_methods = AsyncMock(return_value=sample_methods)
    return registry


@pytest.fixture
def mock_embeddings():
    service = MagicMock()
    service.encode_query_async = AsyncMock(return_value=[0.1, 0.2, 0.3, 0.4])

    async def encode_batch(texts, is_query=False, show_progress_bar=False):
        return [[0.1, 0.2, 0.3, 0.4] for _ in texts]

    service.encode_batch_async = AsyncMock(side_effect=encode_batch)
    return service


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.generate = AsyncMock(return_value="CLASS: OrderService\nMETHOD: processOrder\n")
    llm.close = AsyncMock()
    return llm


# Builders as fixtures, for tests that need many entities
@pytest.fixture(name="make_class")
def make_class_fixture():
    return make_class


@pytest.fixture(name="make_method")
def make_method_fixture():
    return make_method


@pytest.fixture(name="similar")
def similar_fixture():
    return similar
