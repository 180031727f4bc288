# rxcalc/agent/nodes.py
import logging
from typing import Any, Dict

from rxcalc.agent.state import DispenseState
from rxcalc.schemas.models import PackageInfo
from rxcalc.services.ndc_client import search_by_drug_name, search_by_ndc_code
from rxcalc.services.quantity import compute_quantity, optimize_packages
from rxcalc.services.rxnorm_client import normalize_drug
from rxcalc.utils.ndc_format import looks_like_ndc

LOG = logging.getLogger(__name__)

def _audit(state: DispenseState, event: str, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    audit = list(state.get("audit") or [])
    audit.append({"event": event, **(extra or {})})
    return {"audit": audit}

def _fail(state: DispenseState, step: str, message: str) -> Dict[str, Any]:
    LOG.warning("Dispense pipeline stopped at %s: %s", step, message)
    return {
        "failed_step": step,
        "error_message": message,
        **_audit(state, f"{step}.failed", {"error": message}),
    }

def normalize_node(state: DispenseState) -> Dict[str, Any]:
    result = normalize_drug(state.get("drug_input") or "")
    out: Dict[str, Any] = {"drug": result.model_dump()}
    if not result.succeeded:
        msg = result.error.message if result.error else "Drug normalization failed"
        out.update(_fail(state, "normalize", msg))
        return out
    out.update(_audit(state, "normalize.done", {"rxcui": result.rxcui}))
    return out

def catalog_node(state: DispenseState) -> Dict[str, Any]:
    drug_input = (state.get("drug_input") or "").strip()
    if looks_like_ndc(drug_input):
        result = search_by_ndc_code(drug_input)
    else:
        name = (state.get("drug") or {}).get("drug_name") or drug_input
        result = search_by_drug_name(name)

    out: Dict[str, Any] = {"packages": [p.model_dump() for p in result.packages]}
    if not result.succeeded:
        msg = result.error.message if result.error else "Package catalog lookup failed"
        out.update(_fail(state, "catalog", msg))
        return out
    out.update(_audit(state, "catalog.done", {"count": len(result.packages)}))
    return out

def quantity_node(state: DispenseState) -> Dict[str, Any]:
    result = compute_quantity(state.get("sig") or "", state.get("days_supply", 0))
    out: Dict[str, Any] = {"quantity": result.model_dump()}
    if not result.succeeded:
        out.update(_fail(state, "quantity", result.error_message or "Quantity calculation failed"))
        return out
    out.update(_audit(state, "quantity.done", {"total_quantity": result.total_quantity, "unit": result.unit}))
    return out

def optimize_node(state: DispenseState) -> Dict[str, Any]:
    # sample packages are not dispensable
    packages = [PackageInfo(**p) for p in state.get("packages") or []]
    packages = [p for p in packages if not p.is_sample]

    total = (state.get("quantity") or {}).get("total_quantity", 0)
    result = optimize_packages(total, packages)
    out: Dict[str, Any] = {"optimization": result.model_dump()}
    if not result.succeeded:
        out.update(_fail(state, "optimize", result.error_message or "Package optimization failed"))
        return out
    out.update(_audit(state, "optimize.done", {
        "total_packages": result.total_packages,
        "waste": result.waste,
    }))
    return out

def route_after_step(state: DispenseState) -> str:
    # conditional edge target
    return "stop" if state.get("failed_step") else "next"
