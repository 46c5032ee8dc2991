"""Meta-validate every command payload schema by loading them into the registry."""

from pathlib import Path

from squad_auction.validation.validator import SchemaRegistry

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "squad_auction" / "schemas"


def validate(schema_dir: Path = SCHEMA_DIR) -> list[str]:
    registry = SchemaRegistry(schema_dir)
    return registry.names


if __name__ == "__main__":
    for name in validate():
        print(f"ok {name}")
