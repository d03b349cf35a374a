"""
EMS API — Response Classes
============================

What:  JSONResponse variant that writes Decimal values as exact JSON numbers.
Why:   Pay rates are DECIMAL(19, 4). Going through float drops digits past the
       15th, and pydantic's JSON mode writes Decimal as a string.
How:   Handlers dump their models in python mode (Decimal intact) and return
       this response directly; simplejson renders Decimal verbatim.
"""

from typing import Any

import simplejson
from starlette.responses import JSONResponse


class ExactJSONResponse(JSONResponse):
    """JSONResponse rendered with simplejson, Decimal-preserving."""

    def render(self, content: Any) -> bytes:
        return simplejson.dumps(
            content,
            use_decimal=True,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")
