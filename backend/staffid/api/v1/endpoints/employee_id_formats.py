from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from staffid.models.employee_id import FormatRequest, FormatValidation, ParseRequest, PlaceholderHelp
from staffid.services.id_format import parse_employee_id, placeholder_help, preview_examples, preview_format, validate_format

router = APIRouter(prefix="/employee-id-formats", tags=["employee-id-formats"])


@router.get("/placeholders", response_model=list[PlaceholderHelp])
async def list_placeholders():
    return placeholder_help()


@router.post("/validate", response_model=FormatValidation)
async def validate(request: FormatRequest):
    valid, errors = validate_format(request.format)
    if not valid:
        return FormatValidation(valid=False, errors=errors)
    return FormatValidation(
        valid=True,
        preview=preview_format(request.format),
        examples=preview_examples(request.format),
    )


@router.post("/parse")
async def parse(request: ParseRequest) -> dict[str, Any]:
    parts = parse_employee_id(request.employee_id, request.format)
    return {"matches": bool(parts), "parts": parts}
