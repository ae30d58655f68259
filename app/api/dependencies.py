"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import HTTPException, Request, status

from app.failure_codes import INVALID_JSON
from app.validators import ImportValidationError, ValidationErrorDetail


async def get_import_payload(request: Request) -> Any:
    """
    Parse the raw JSON request body without schema coercion.

    Structural checks belong to the import validator, so only undecodable
    bodies are rejected here.
    """

    body = await request.body()
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        error = ImportValidationError(
            message="Request body is not valid JSON.",
            errors=[ValidationErrorDetail(field="body", message=str(exc), code=INVALID_JSON)],
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error.to_dict(),
        ) from exc
