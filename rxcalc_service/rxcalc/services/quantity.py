import logging
import math
from typing import Iterable, List, Optional

from rxcalc.schemas.models import (
    OptimizationErrorCode,
    OptimizationResult,
    PackageCandidate,
    PackageInfo,
    ParsedInstruction,
    QuantityResult,
    UNKNOWN_PACKAGE_DESCRIPTION,
)
from rxcalc.services.sig_parser import parse_sig

LOG = logging.getLogger(__name__)

# PRN prescriptions are rarely used every day of the supply
PRN_DISCOUNT_FACTOR = 0.7
PRN_MAX_REDUCTION = 10

UNPARSEABLE_SIG_MESSAGE = "Could not parse dosage instructions from SIG"
INVALID_DAYS_SUPPLY_MESSAGE = "Days supply must be a finite number"

OPTIMIZATION_MESSAGES = {
    "INVALID_QUANTITY": "Invalid quantity needed for optimization",
    "NO_NDC_DATA": "No NDC data available for optimization",
    "NO_ACTIVE_NDCS": "No active NDCs available for optimization",
    "NO_VALID_ACTIVE_NDCS": "No valid active NDCs available for optimization",
}


def apply_prn_discount(raw_quantity: float) -> float:
    # Not floored at 0: small totals may come out at or below zero.
    return max(raw_quantity * PRN_DISCOUNT_FACTOR, raw_quantity - PRN_MAX_REDUCTION)


def compute_quantity(instruction_text: str, days_supply: float) -> QuantityResult:
    """
    Total units to dispense for a SIG over days_supply days, rounded up.
    days_supply <= 0 is not rejected; the result is simply non-positive.
    A missing or non-numeric days_supply gives a failure result with days_supply 0.
    """
    if not _finite_number(days_supply):
        LOG.warning("Invalid days supply %r", days_supply)
        return QuantityResult(
            succeeded=False,
            parsed=ParsedInstruction(original_text=instruction_text if isinstance(instruction_text, str) else ""),
            days_supply=0,
            error_message=INVALID_DAYS_SUPPLY_MESSAGE,
        )

    parsed: Optional[ParsedInstruction] = None
    try:
        parsed = parse_sig(instruction_text)

        if not parsed.dosage_instructions:
            LOG.warning("Could not parse SIG %r", instruction_text)
            return QuantityResult(
                succeeded=False,
                total_quantity=0,
                unit="",
                parsed=parsed,
                days_supply=days_supply,
                error_message=UNPARSEABLE_SIG_MESSAGE,
            )

        raw = parsed.total_daily_dose * days_supply
        adjusted = apply_prn_discount(raw) if parsed.is_as_needed else raw
        unit = parsed.dosage_instructions[0].unit

        LOG.debug(
            "Quantity for %r: daily=%s days=%s prn=%s raw=%s adjusted=%s",
            instruction_text, parsed.total_daily_dose, days_supply, parsed.is_as_needed, raw, adjusted,
        )

        return QuantityResult(
            succeeded=True,
            total_quantity=math.ceil(adjusted),  # never under-dispense
            unit=unit,
            parsed=parsed,
            days_supply=days_supply,
        )
    except Exception as e:
        LOG.exception("Quantity calculation failed for %r", instruction_text)
        return QuantityResult(
            succeeded=False,
            total_quantity=0,
            unit="",
            parsed=parsed or ParsedInstruction(original_text=str(instruction_text or "")),
            days_supply=days_supply,
            error_message=str(e) or "Unknown error occurred",
        )


def calculate_efficiency(quantity_needed: float, package_size: float) -> float:
    """Waste as a fraction of the quantity needed; 0 is a perfect fit."""
    packages_required = math.ceil(quantity_needed / package_size)
    waste = packages_required * package_size - quantity_needed
    return waste / quantity_needed


def _is_usable(pkg: PackageInfo) -> bool:
    size = pkg.size
    return bool(pkg.package_code) and size is not None and math.isfinite(size) and size > 0


def _finite_number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and math.isfinite(value)


def _valid_quantity(q) -> bool:
    return _finite_number(q) and q > 0


def build_candidates(quantity_needed: float, packages: Iterable[PackageInfo]) -> List[PackageCandidate]:
    candidates = [
        PackageCandidate(
            package_code=p.package_code,
            package_size=p.size,
            description=p.description or UNKNOWN_PACKAGE_DESCRIPTION,
            status=p.status,
            quantity_needed=quantity_needed,
            packages_required=math.ceil(quantity_needed / p.size),
            efficiency=calculate_efficiency(quantity_needed, p.size),
        )
        for p in packages
    ]
    # sorted() is stable, so ties keep catalog order
    return sorted(candidates, key=lambda c: c.efficiency)


def select_combination(candidates: List[PackageCandidate], quantity_needed: float) -> List[PackageCandidate]:
    """
    Pick the package(s) to dispense.
    Current policy is a single package size: the lowest-efficiency candidate,
    first one on ties.
    """
    if not candidates:
        return []

    best = candidates[0]
    best_efficiency = calculate_efficiency(quantity_needed, best.package_size)
    for c in candidates:
        efficiency = calculate_efficiency(quantity_needed, c.package_size)
        if efficiency < best_efficiency:
            best, best_efficiency = c, efficiency

    best.packages_required = math.ceil(quantity_needed / best.package_size)
    best.efficiency = best_efficiency
    return [best]


def _failure(code: OptimizationErrorCode, quantity_needed, message: Optional[str] = None) -> OptimizationResult:
    LOG.warning("Package optimization failed: %s", code)
    total = quantity_needed if _valid_quantity(quantity_needed) else 0
    return OptimizationResult(
        succeeded=False,
        total_quantity=total,
        error_code=code,
        error_message=message or OPTIMIZATION_MESSAGES.get(code, "Unknown error occurred"),
    )


def optimize_packages(quantity_needed: float, catalog: Optional[List[PackageInfo]]) -> OptimizationResult:
    """
    Choose the package that covers quantity_needed with the least overfill.
    Inactive or malformed catalog entries are dropped, not deprioritized.
    """
    if not _valid_quantity(quantity_needed):
        return _failure("INVALID_QUANTITY", quantity_needed)

    if not catalog:
        return _failure("NO_NDC_DATA", quantity_needed)

    try:
        active = [p for p in catalog if p.status == "active"]
        if not active:
            return _failure("NO_ACTIVE_NDCS", quantity_needed)

        usable = [p for p in active if _is_usable(p)]
        if not usable:
            return _failure("NO_VALID_ACTIVE_NDCS", quantity_needed)

        candidates = build_candidates(quantity_needed, usable)
        combination = select_combination(candidates, quantity_needed)

        total_packages = sum(c.packages_required for c in combination)
        total_provided = sum(c.packages_required * c.package_size for c in combination)
        waste = max(0, total_provided - quantity_needed)

        LOG.info(
            "Optimized %s units over %d candidate(s): %s x %s (waste %s)",
            quantity_needed, len(candidates),
            combination[0].packages_required, combination[0].package_code, waste,
        )

        return OptimizationResult(
            succeeded=True,
            candidates=candidates,
            optimal_combination=combination,
            total_quantity=quantity_needed,
            total_packages=total_packages,
            waste=waste,
        )
    except Exception as e:
        LOG.exception("Package optimization raised")
        return _failure("UNEXPECTED_ERROR", quantity_needed, str(e) or None)


def filter_active_packages(packages: List[PackageInfo]) -> List[PackageInfo]:
    return [p for p in packages if p.status == "active" and not p.is_sample]


def sort_packages_by_size(packages: List[PackageInfo]) -> List[PackageInfo]:
    # size-less entries sort last
    return sorted(packages, key=lambda p: (p.size is None, p.size or 0))
