# rxcalc/utils/ndc_format.py
from __future__ import annotations

import re

# 11 digits bare, or one of the labeler-product-package hyphenations
_NDC_RE = re.compile(r"^(?:\d{11}|\d{5}-\d{4}-\d{2}|\d{5}-\d{3}-\d{2}|\d{4}-\d{4}-\d{2}|\d{5}-\d{4}-\d{1})$")

# segment widths of the 11 digit 5-4-2 form
_SEGMENT_WIDTHS = (5, 4, 2)

def ndc_digits(code: str) -> str:
    return re.sub(r"[^0-9]", "", code or "")

def looks_like_ndc(code: str) -> bool:
    return bool(_NDC_RE.match((code or "").strip()))

def ndc_11_digits(code: str) -> str:
    """
    11 digit form of an NDC. Hyphenated 10 digit codes (4-4-2, 5-3-2, 5-4-1)
    are zero-padded in the short segment; anything else is returned as digits.
    """
    cleaned = (code or "").strip()
    parts = cleaned.split("-")
    if len(parts) != 3 or not looks_like_ndc(cleaned):
        return ndc_digits(cleaned)
    return "".join(p.zfill(w) for p, w in zip(parts, _SEGMENT_WIDTHS))

def format_ndc_11(code: str) -> str | None:
    """
    5-4-2 hyphenation of an 11 digit NDC ("00071015523" -> "00071-0155-23").
    Returns None when the code does not have exactly 11 digits.
    """
    digits = ndc_digits(code)
    if len(digits) != 11:
        return None
    return f"{digits[:5]}-{digits[5:9]}-{digits[9:]}"
