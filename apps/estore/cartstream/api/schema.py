"""Serve JSON schema contracts."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ..util.schema import contract_path, load_schema

router = APIRouter(tags=["schema"])


@router.get("/schema/contracts/{name}")
async def get_schema_contract(name: str) -> dict:
    if not contract_path(name).is_file():
        raise HTTPException(status_code=404, detail="Schema not found")
    return load_schema(name)
