import os

from rxcalc.core.env import load_env

load_env()

RXNORM_BASE_URL = os.getenv("RXNORM_BASE_URL", "https://rxnav.nlm.nih.gov/REST").rstrip("/")
FDA_NDC_BASE_URL = os.getenv("FDA_NDC_BASE_URL", "https://api.fda.gov/drug/ndc.json")

HTTP_TIMEOUT_S = float(os.getenv("HTTP_TIMEOUT_S", "10"))
CACHE_TTL_S = float(os.getenv("CACHE_TTL_S", "300"))  # 5 minutes

NDC_SEARCH_LIMIT = int(os.getenv("NDC_SEARCH_LIMIT", "50"))
NDC_CODE_SEARCH_LIMIT = int(os.getenv("NDC_CODE_SEARCH_LIMIT", "20"))

USER_AGENT = os.getenv("USER_AGENT", "RxCalc/1.0")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
