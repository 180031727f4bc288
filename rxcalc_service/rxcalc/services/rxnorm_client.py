import logging
from typing import Any, Dict, Optional

import requests

from rxcalc.core.settings import HTTP_TIMEOUT_S, RXNORM_BASE_URL, USER_AGENT
from rxcalc.schemas.models import DrugNormalizationResult, NdcStatusResult, UpstreamError
from rxcalc.services.response_cache import get_cached, set_cached
from rxcalc.utils.ndc_format import looks_like_ndc, ndc_11_digits

LOG = logging.getLogger(__name__)

class RxNormError(RuntimeError):
    def __init__(self, error: UpstreamError):
        super().__init__(error.message)
        self.error = error

def _upstream_error(exc: Exception, context: str) -> UpstreamError:
    if isinstance(exc, RxNormError):
        return exc.error
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return UpstreamError(
            code="NETWORK_ERROR",
            message="Network connection failed",
            details="Unable to connect to RxNorm API. Please check your internet connection.",
        )
    return UpstreamError(
        code="UNKNOWN_ERROR",
        message="An unexpected error occurred",
        details=f"{context}: {exc}" if str(exc) else context,
    )

def _get_json(endpoint: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    GET an RxNav REST endpoint (JSON variant) with caching.
    Raises RxNormError on any transport or HTTP failure.
    """
    endpoint = endpoint if endpoint.endswith(".json") else f"{endpoint}.json"
    url = f"{RXNORM_BASE_URL}{endpoint}"
    cache_key = requests.Request("GET", url, params=params or {}).prepare().url

    cached = get_cached(cache_key)
    if cached is not None:
        LOG.debug("RxNorm cache hit: %s", cache_key)
        return cached

    LOG.info("RxNorm request: GET %s %s", endpoint, params or {})
    try:
        r = requests.get(
            url,
            params=params or {},
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            timeout=HTTP_TIMEOUT_S,
        )
    except requests.RequestException as e:
        raise RxNormError(_upstream_error(e, endpoint)) from e

    if r.status_code >= 400:
        LOG.warning("RxNorm %s returned %s: %s", endpoint, r.status_code, r.text[:200])
        raise RxNormError(UpstreamError(
            code=f"HTTP_{r.status_code}",
            message=r.reason or "HTTP request failed",
            details=f"HTTP {r.status_code} error occurred while calling RxNorm API",
        ))

    try:
        data = r.json()
    except ValueError as e:
        raise RxNormError(_upstream_error(e, endpoint)) from e

    set_cached(cache_key, data)
    return data

def _ndc_rxcui(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    status = (data or {}).get("ndcStatus") or {}
    return status if status.get("rxcui") else None

def normalize_drug(drug_input: str) -> DrugNormalizationResult:
    """
    Resolve a drug name or NDC to an RxCUI. Never raises.
    """
    cleaned = (drug_input or "").strip()

    if len(cleaned) < 2:
        return DrugNormalizationResult(
            succeeded=False,
            drug_name=cleaned,
            error=UpstreamError(
                code="INVALID_INPUT",
                message="Invalid drug input",
                details="Drug name or NDC must be at least 2 characters long",
            ),
        )

    try:
        if looks_like_ndc(cleaned):
            # RxNav wants the 11 digit form without hyphens
            ndc = ndc_11_digits(cleaned)
            status = _ndc_rxcui(_get_json("/ndcstatus", {"ndc": ndc}))
            if status is None:
                LOG.info("No rxcui for NDC %s, retrying with altpkg=1", ndc)
                status = _ndc_rxcui(_get_json("/ndcstatus", {"ndc": ndc, "altpkg": "1"}))
            if status is None:
                return DrugNormalizationResult(
                    succeeded=False,
                    drug_name=cleaned,
                    error=UpstreamError(
                        code="NDC_NOT_FOUND",
                        message="NDC not found in RxNorm database",
                        details=f"The NDC {cleaned} was not found or is invalid. "
                                "The NDC may be inactive or not in the RxNorm database.",
                    ),
                )
            return DrugNormalizationResult(
                succeeded=True,
                rxcui=str(status["rxcui"]),
                drug_name=status.get("conceptName") or cleaned,
            )

        data = _get_json("/rxcui", {"name": cleaned})
        ids = ((data or {}).get("idGroup") or {}).get("rxnormId") or []
        if not ids:
            return DrugNormalizationResult(
                succeeded=False,
                drug_name=cleaned,
                error=UpstreamError(
                    code="DRUG_NOT_FOUND",
                    message="Drug not found in RxNorm database",
                    details=f'No matching drug found for "{cleaned}". '
                            "Try being more specific with the drug name and strength.",
                ),
            )
        return DrugNormalizationResult(succeeded=True, rxcui=str(ids[0]), drug_name=cleaned)

    except Exception as e:
        LOG.warning("Drug normalization failed for %r: %s", cleaned, e)
        return DrugNormalizationResult(
            succeeded=False,
            drug_name=cleaned,
            error=_upstream_error(e, "normalize_drug"),
        )

def get_ndc_status(ndc: str) -> NdcStatusResult:
    if not looks_like_ndc(ndc):
        raise RxNormError(UpstreamError(code="INVALID_INPUT", message="Invalid NDC format"))

    data = _get_json("/ndcstatus", {"ndc": ndc_11_digits(ndc)})
    status = (data or {}).get("ndcStatus") or {}
    raw = status.get("ndcStatus") or "unknown"
    return NdcStatusResult(
        rxcui=status.get("rxcui") or "",
        ndc=ndc,
        status={"ACTIVE": "active", "RETIRED": "inactive"}.get(raw, "unknown"),
    )

def get_drug_properties(rxcui: str) -> Dict[str, Any]:
    if not (rxcui or "").strip():
        raise RxNormError(UpstreamError(code="INVALID_INPUT", message="RxCUI is required"))
    return _get_json(f"/rxcui/{rxcui.strip()}/properties")

def search_drugs(term: str) -> Dict[str, Any]:
    term = (term or "").strip()
    if len(term) < 2:
        raise RxNormError(UpstreamError(
            code="INVALID_INPUT",
            message="Search term must be at least 2 characters long",
        ))
    return _get_json("/drugs", {"name": term})
