"""
SoundPost v1 status.json validation helpers.

Lives outside the runtime package (tools/) and needs the test extra.
Schemas are looked up as schemas/<name>.schema.json.
"""

import json
from pathlib import Path

import jsonschema


SCHEMA_DIR = Path(__file__).parent.parent / "schemas"


def load_schema(schema_name: str = "status") -> dict:
    """Load schemas/<schema_name>.schema.json."""
    schema_path = SCHEMA_DIR / f"{schema_name}.schema.json"
    with open(schema_path, "r") as f:
        return json.load(f)


def validate_document(document: dict, schema: dict) -> list[str]:
    """
    Validate a document against a Draft-07 schema.

    Returns:
        List of "<path>: <message>" strings (empty if valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    return [
        f"{'.'.join(str(p) for p in error.absolute_path) or '(root)'}: {error.message}"
        for error in validator.iter_errors(document)
    ]
