from __future__ import annotations

import json
import runpy
from pathlib import Path

import pytest
from jsonschema.exceptions import SchemaError, ValidationError

from squad_auction.validation.validator import SchemaRegistry, get_schema_registry

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "validate_schemas.py"


def test_script_loads_every_command_schema():
    validate = runpy.run_path(str(SCRIPT))["validate"]
    assert validate() == [
        "bid",
        "bidder_create",
        "bidder_update",
        "close",
        "force_resolve",
        "item_create",
        "item_update",
        "match",
        "start",
    ]


def test_script_rejects_malformed_schema(tmp_path):
    (tmp_path / "broken.json").write_text(json.dumps({"type": 5}))
    validate = runpy.run_path(str(SCRIPT))["validate"]
    with pytest.raises(SchemaError):
        validate(tmp_path)


def test_registry_rejects_unknown_schema_name():
    with pytest.raises(ValueError):
        get_schema_registry().validate("auction", {})


def test_item_create_requires_known_tier():
    registry = get_schema_registry()
    registry.validate("item_create", {"id": "p9", "name": "Player", "category": "A"})
    with pytest.raises(ValidationError):
        registry.validate("item_create", {"id": "p9", "name": "Player", "category": "D"})
    with pytest.raises(ValidationError):
        registry.validate("item_create", {"id": "p9", "name": "Player", "category": "A", "photo": "x"})


def test_registry_lists_loaded_names(tmp_path):
    (tmp_path / "ping.json").write_text(json.dumps({"type": "object"}))
    assert SchemaRegistry(tmp_path).names == ["ping"]
