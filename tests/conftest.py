"""Shared fixtures for orderbot tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from orderbot.core.classifier import ClassificationResult, OrderType
from orderbot.core.pipeline import DispatchPipeline
from orderbot.memory.user_registry import InMemoryUserRegistry


def make_result(order_type: OrderType = OrderType.NEW_ORDER, confidence: float = 0.9,
                extracted_info: str = "2x nasi goreng",
                suggested_reply: str = "Pesanan diterima.") -> ClassificationResult:
    return ClassificationResult(order_type, confidence, extracted_info, suggested_reply)


@pytest.fixture(name="make_result")
def make_result_fixture():
    return make_result


@pytest.fixture()
def classifier() -> MagicMock:
    c = MagicMock()
    c.classify.return_value = make_result()
    return c


@pytest.fixture()
def store() -> MagicMock:
    s = MagicMock()
    s.add.return_value = {"success": True, "rowNumber": 7}
    s.update.return_value = {"success": True, "originalMessage": "2x nasi goreng"}
    s.cancel.return_value = {"success": True, "originalMessage": "2x nasi goreng"}
    s.search.return_value = {"success": True, "orders": [], "count": 0}
    s.get_broadcast.return_value = {"success": True, "broadcastMessage": "Promo hari ini!"}
    return s


@pytest.fixture()
def registry() -> InMemoryUserRegistry:
    return InMemoryUserRegistry()


@pytest.fixture()
def pipeline(classifier: MagicMock, store: MagicMock, registry: InMemoryUserRegistry) -> DispatchPipeline:
    return DispatchPipeline(classifier, store, registry)
