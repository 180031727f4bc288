import logging
import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import requests

from rxcalc.core.settings import (
    FDA_NDC_BASE_URL,
    HTTP_TIMEOUT_S,
    NDC_CODE_SEARCH_LIMIT,
    NDC_SEARCH_LIMIT,
    USER_AGENT,
)
from rxcalc.schemas.models import CatalogResult, PackageInfo, PackageStatus, UpstreamError
from rxcalc.services.response_cache import get_cached, set_cached
from rxcalc.utils.ndc_format import format_ndc_11, ndc_digits

LOG = logging.getLogger(__name__)

DEFAULT_PACKAGE_SIZE = 1.0

_UNIT_WORDS = r"(?:tablet|capsule|pill|ml|mg|g|dose|unit)"

# "100 TABLET in 1 BOTTLE", "contains 30 capsules in ...", "5mL in 1 VIAL"
PACKAGE_SIZE_PATTERNS = [
    re.compile(r"^(\d+(?:\.\d+)?)\s+[a-zA-Z]+"),
    re.compile(rf"(\d+(?:\.\d+)?)\s+{_UNIT_WORDS}s?\s", re.I),
    re.compile(rf"(\d+(?:\.\d+)?)\s*{_UNIT_WORDS}", re.I),
]

_DATE_FORMATS = ("%Y%m%d", "%Y-%m-%d")

class NdcDirectoryError(RuntimeError):
    def __init__(self, error: UpstreamError):
        super().__init__(error.message)
        self.error = error

def _upstream_error(exc: Exception, context: str) -> UpstreamError:
    if isinstance(exc, NdcDirectoryError):
        return exc.error
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return UpstreamError(
            code="NETWORK_ERROR",
            message="Network connection failed",
            details="Unable to connect to FDA NDC API. Please check your internet connection.",
        )
    return UpstreamError(
        code="UNKNOWN_ERROR",
        message="An unexpected error occurred",
        details=f"{context}: {exc}" if str(exc) else context,
    )

def _get_json(params: Dict[str, str]) -> Dict[str, Any]:
    """
    Query the openFDA NDC endpoint with caching.
    A 404 from openFDA means "no matches" and comes back as empty results.
    Raises NdcDirectoryError on any other failure.
    """
    cache_key = requests.Request("GET", FDA_NDC_BASE_URL, params=params).prepare().url
    cached = get_cached(cache_key)
    if cached is not None:
        LOG.debug("NDC cache hit: %s", cache_key)
        return cached

    LOG.info("NDC request: GET %s", params)
    try:
        r = requests.get(
            FDA_NDC_BASE_URL,
            params=params,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            timeout=HTTP_TIMEOUT_S,
        )
    except requests.RequestException as e:
        raise NdcDirectoryError(_upstream_error(e, "ndc search")) from e

    if r.status_code == 404:
        return {"results": []}

    if r.status_code >= 400:
        LOG.warning("FDA NDC API returned %s: %s", r.status_code, r.text[:200])
        raise NdcDirectoryError(UpstreamError(
            code=f"HTTP_{r.status_code}",
            message=r.reason or "HTTP request failed",
            details=f"HTTP {r.status_code} error occurred while calling FDA NDC API",
        ))

    try:
        data = r.json()
    except ValueError as e:
        raise NdcDirectoryError(_upstream_error(e, "ndc search")) from e

    if data.get("error"):
        err = data["error"] or {}
        raise NdcDirectoryError(UpstreamError(
            code=err.get("code") or "FDA_ERROR",
            message=err.get("message") or "FDA API returned an error",
        ))

    set_cached(cache_key, data)
    return data

def extract_package_size(description: Optional[str]) -> float:
    """Dispense units per package, read from its description (default 1)."""
    if not description or not isinstance(description, str):
        return DEFAULT_PACKAGE_SIZE

    for pattern in PACKAGE_SIZE_PATTERNS:
        m = pattern.search(description)
        if not m:
            continue
        size = float(m.group(1))
        if size > 0 and math.isfinite(size):
            return size

    LOG.debug("No package size in %r, using %s", description, DEFAULT_PACKAGE_SIZE)
    return DEFAULT_PACKAGE_SIZE

def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None

def determine_package_status(
    start_date: Optional[str],
    end_date: Optional[str] = None,
    listing_expiration_date: Optional[str] = None,
    today: Optional[date] = None,
) -> PackageStatus:
    today = today or date.today()

    start = _parse_date(start_date)
    if start and today < start:
        return "inactive"

    end = _parse_date(end_date)
    if end and today > end:
        return "inactive"

    # listing expiration is the more reliable signal of the two
    expiration = _parse_date(listing_expiration_date)
    if expiration and today > expiration:
        return "inactive"

    return "active"

def packages_from_results(results: List[Dict[str, Any]], today: Optional[date] = None) -> List[PackageInfo]:
    packages: List[PackageInfo] = []
    for product in results or []:
        status = determine_package_status(
            product.get("marketing_start_date"),
            product.get("marketing_end_date"),
            product.get("listing_expiration_date"),
            today=today,
        )
        for pkg in product.get("packaging") or []:
            packages.append(PackageInfo(
                product_code=product.get("product_ndc") or "",
                package_code=pkg.get("package_ndc") or "",
                description=pkg.get("description") or "",
                size=extract_package_size(pkg.get("description")),
                status=status,
                is_sample=bool(pkg.get("sample", False)),
                marketing_start_date=product.get("marketing_start_date"),
                marketing_end_date=product.get("marketing_end_date"),
            ))
    return packages

def _invalid(message: str, details: str) -> CatalogResult:
    return CatalogResult(
        succeeded=False,
        error=UpstreamError(code="INVALID_INPUT", message=message, details=details),
    )

def _not_found(message: str, details: str) -> CatalogResult:
    return CatalogResult(
        succeeded=False,
        error=UpstreamError(code="NO_NDCS_FOUND", message=message, details=details),
    )

def search_by_drug_name(drug_name: str) -> CatalogResult:
    name = (drug_name or "").strip()
    if len(name) < 2:
        return _invalid("Invalid drug name", "Drug name must be at least 2 characters long")

    try:
        data = _get_json({
            "search": f'(generic_name:"{name}") OR (brand_name:"{name}")',
            "limit": str(NDC_SEARCH_LIMIT),
        })
        results = data.get("results") or []
        if not results:
            return _not_found("No NDCs found for this drug name", f'No NDCs found in FDA database for "{name}"')

        packages = packages_from_results(results)
        LOG.info("Found %d NDC package(s) for %r", len(packages), name)
        return CatalogResult(succeeded=True, packages=packages)
    except Exception as e:
        LOG.warning("NDC search by name failed for %r: %s", name, e)
        return CatalogResult(succeeded=False, error=_upstream_error(e, "search_by_drug_name"))

def search_by_ndc_code(ndc_code: str) -> CatalogResult:
    raw = (ndc_code or "").strip()
    if len(raw) < 10:
        return _invalid("Invalid NDC code", "NDC code must be at least 10 digits long")

    digits = ndc_digits(raw)
    try:
        data = _get_json({"search": f"product_ndc:{digits}", "limit": str(NDC_CODE_SEARCH_LIMIT)})
        results = data.get("results") or []

        formatted = format_ndc_11(digits)
        if not results and formatted:
            data = _get_json({"search": f'product_ndc:"{formatted}"', "limit": str(NDC_CODE_SEARCH_LIMIT)})
            results = data.get("results") or []

        # an 11 digit code is usually a package NDC rather than a product NDC
        if not results and formatted:
            data = _get_json({"search": f'packaging.package_ndc:"{formatted}"', "limit": str(NDC_CODE_SEARCH_LIMIT)})
            results = data.get("results") or []

        if not results:
            return _not_found("NDC code not found", f'No NDC found in FDA database for "{raw}"')

        packages = packages_from_results(results)
        LOG.info("Found %d NDC package(s) for code %s", len(packages), raw)
        return CatalogResult(succeeded=True, packages=packages)
    except Exception as e:
        LOG.warning("NDC search by code failed for %r: %s", raw, e)
        return CatalogResult(succeeded=False, error=_upstream_error(e, "search_by_ndc_code"))

def search_by_rxcui(rxcui: str) -> CatalogResult:
    # openFDA's NDC endpoint has no RxCUI search field
    if not (rxcui or "").strip():
        return _invalid("Invalid RxCUI", "RxCUI must be provided and cannot be empty")
    return CatalogResult(
        succeeded=False,
        rxcui=rxcui.strip(),
        error=UpstreamError(
            code="UNSUPPORTED_SEARCH",
            message="Direct RxCUI search not supported by FDA NDC API",
            details="Please use drug name searches instead.",
        ),
    )
