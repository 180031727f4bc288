"""Shared fixtures for the rxcalc test suite."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from rxcalc.schemas.models import PackageInfo
from rxcalc.services.response_cache import clear_cache


@pytest.fixture(autouse=True)
def empty_response_cache():
    """Upstream responses must never leak between tests."""
    clear_cache()
    yield
    clear_cache()


def fake_response(payload: Optional[Dict[str, Any]] = None, status_code: int = 200, reason: str = "OK") -> MagicMock:
    """Stand-in for a requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.text = "" if payload is None else str(payload)
    response.json.return_value = payload if payload is not None else {}
    return response


def package(size: float, status: str = "active", code: Optional[str] = None, **extra: Any) -> PackageInfo:
    code = code if code is not None else f"12345-{size:g}-01"
    return PackageInfo(
        product_code=code.rsplit("-", 1)[0] if code else "",
        package_code=code,
        description=f"{size:g} TABLET in 1 BOTTLE",
        size=size,
        status=status,
        marketing_start_date="20200101",
        **extra,
    )


@pytest.fixture
def bottle_catalog() -> List[PackageInfo]:
    """100, 30 and 500 count bottles plus an inactive 60 count bottle."""
    return [
        package(100, code="12345-101-01"),
        package(30, code="12345-101-02"),
        package(500, code="12345-101-03"),
        package(60, status="inactive", code="12345-101-04", marketing_end_date="20220101"),
    ]


def fda_product(product_ndc: str, packages: List[Dict[str, Any]], **fields: Any) -> Dict[str, Any]:
    product = {
        "product_ndc": product_ndc,
        "generic_name": "LISINOPRIL",
        "brand_name": "Lisinopril",
        "marketing_start_date": "20100101",
        "listing_expiration_date": "29991231",
        "packaging": packages,
    }
    product.update(fields)
    return product
