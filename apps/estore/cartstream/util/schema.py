"""JSON schema contracts for payloads that leave the service."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

CONTRACTS_DIR = Path(__file__).resolve().parents[1] / "contracts"

CART_EVENT = "cart_event"


def contract_path(name: str) -> Path:
    return CONTRACTS_DIR / f"{name}.schema.json"


def load_schema(name: str) -> dict[str, Any]:
    with contract_path(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def _validator(name: str) -> Draft202012Validator:
    schema = load_schema(name)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


class ContractViolation(Exception):
    """A payload does not satisfy its published contract."""

    def __init__(self, contract: str, message: str, path: str) -> None:
        self.contract = contract
        self.path = path
        where = f" at {path}" if path else ""
        super().__init__(f"{contract}{where}: {message}")


def check_contract(document: dict[str, Any], name: str = CART_EVENT) -> None:
    """Raise :class:`ContractViolation` with the most relevant schema error."""
    error = best_match(_validator(name).iter_errors(document))
    if error is None:
        return
    path = ".".join(str(part) for part in error.absolute_path)
    raise ContractViolation(name, error.message, path)
