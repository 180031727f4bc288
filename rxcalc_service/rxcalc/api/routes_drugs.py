# rxcalc/api/routes_drugs.py
from typing import Optional

from fastapi import APIRouter, HTTPException

from rxcalc.schemas.models import CatalogResult, DrugNormalizationResult
from rxcalc.services.ndc_client import search_by_drug_name, search_by_ndc_code
from rxcalc.services.quantity import filter_active_packages, sort_packages_by_size
from rxcalc.services.rxnorm_client import normalize_drug

router = APIRouter(tags=["drugs"])

@router.get("/drugs/normalize", response_model=DrugNormalizationResult)
def drugs_normalize(q: str):
    return normalize_drug(q)

@router.get("/ndc/search", response_model=CatalogResult)
def ndc_search(
    name: Optional[str] = None,
    code: Optional[str] = None,
    active_only: bool = False,
    sort_by_size: bool = False,
):
    if bool(name) == bool(code):
        raise HTTPException(status_code=400, detail="Provide exactly one of name or code.")

    result = search_by_drug_name(name) if name else search_by_ndc_code(code)

    packages = result.packages
    if active_only:
        packages = filter_active_packages(packages)
    if sort_by_size:
        packages = sort_packages_by_size(packages)
    return result.model_copy(update={"packages": packages})
