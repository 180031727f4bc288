# rxcalc/api/routes_calc.py
from fastapi import APIRouter

from rxcalc.agent.graph import run_dispense_plan
from rxcalc.schemas.models import (
    DispensePlan, DispenseRequest,
    OptimizationResult, OptimizeRequest,
    ParsedInstruction, ParseRequest,
    QuantityResult, QuantityRequest,
)
from rxcalc.services.quantity import compute_quantity, optimize_packages
from rxcalc.services.sig_parser import parse_sig

router = APIRouter(prefix="/calc", tags=["calc"])

# Results come back with 200 even when succeeded is false; the body says why.

@router.post("/parse", response_model=ParsedInstruction)
def calc_parse(req: ParseRequest):
    return parse_sig(req.sig)

@router.post("/quantity", response_model=QuantityResult)
def calc_quantity(req: QuantityRequest):
    return compute_quantity(req.sig, req.days_supply)

@router.post("/optimize", response_model=OptimizationResult)
def calc_optimize(req: OptimizeRequest):
    return optimize_packages(req.quantity_needed, req.packages)

@router.post("/dispense", response_model=DispensePlan)
def calc_dispense(req: DispenseRequest):
    return run_dispense_plan(req.drug, req.sig, req.days_supply)
