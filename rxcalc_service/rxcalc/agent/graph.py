# rxcalc/agent/graph.py
from langgraph.graph import START, END, StateGraph

from rxcalc.agent.state import DispenseState
from rxcalc.agent.nodes import normalize_node, catalog_node, quantity_node, optimize_node, route_after_step
from rxcalc.schemas.models import (
    DispensePlan,
    DrugNormalizationResult,
    OptimizationResult,
    QuantityResult,
)

builder = StateGraph(DispenseState)

builder.add_node("normalize", normalize_node)
builder.add_node("catalog", catalog_node)
builder.add_node("quantity", quantity_node)
builder.add_node("optimize", optimize_node)

builder.add_edge(START, "normalize")

# every step may end the run early
builder.add_conditional_edges("normalize", route_after_step, {"next": "catalog", "stop": END})
builder.add_conditional_edges("catalog", route_after_step, {"next": "quantity", "stop": END})
builder.add_conditional_edges("quantity", route_after_step, {"next": "optimize", "stop": END})
builder.add_edge("optimize", END)

# no checkpointer: prescriptions are not persisted
dispense_graph = builder.compile()

def run_dispense_plan(drug_input: str, sig: str, days_supply: float) -> DispensePlan:
    final = dispense_graph.invoke({
        "drug_input": drug_input,
        "sig": sig,
        "days_supply": days_supply,
        "audit": [],
    })

    drug = final.get("drug")
    quantity = final.get("quantity")
    optimization = final.get("optimization")

    return DispensePlan(
        succeeded=not final.get("failed_step"),
        failed_step=final.get("failed_step"),
        drug=DrugNormalizationResult(**drug) if drug else None,
        catalog_size=len(final.get("packages") or []),
        quantity=QuantityResult(**quantity) if quantity else None,
        optimization=OptimizationResult(**optimization) if optimization else None,
        error_message=final.get("error_message"),
        audit=final.get("audit", []),
    )
