from fastapi import FastAPI

from rxcalc.api.routes_calc import router as calc_router
from rxcalc.api.routes_drugs import router as drugs_router
from rxcalc.core.logging_config import configure_logging
from rxcalc.core.settings import LOG_LEVEL

configure_logging(LOG_LEVEL)

app = FastAPI(title="RxCalc (SIG quantity + NDC packaging)", version="1.0")

app.include_router(calc_router)
app.include_router(drugs_router)

@app.get("/health")
def health():
    return {"ok": True}
@app.get("/")
def root():
    return {"ok": True, "service": "RxCalc (SIG quantity + NDC packaging)"}
