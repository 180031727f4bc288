from typing import Any, Dict, List, TypedDict

class DispenseState(TypedDict, total=False):
    # inputs
    drug_input: str
    sig: str
    days_supply: float

    # step outputs (model_dump() dicts)
    drug: Dict[str, Any]
    packages: List[Dict[str, Any]]
    quantity: Dict[str, Any]
    optimization: Dict[str, Any]

    # failure bookkeeping
    failed_step: str
    error_message: str
    audit: List[Dict[str, Any]]
