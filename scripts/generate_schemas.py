"""Generate JSON schemas from Pydantic models and save to schemas/ directory."""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ranksync.kernel.dump import PersistedDump
from ranksync.kernel.table import DataTable
from ranksync.settings import VisualSettings


def generate_schemas():
    """Generate JSON schemas for the persisted dump, inbound table and host settings."""
    schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    for name, model in (
        ("persisted_dump", PersistedDump),
        ("data_table", DataTable),
        ("visual_settings", VisualSettings),
    ):
        schema = model.model_json_schema(by_alias=True)
        schema_path = schemas_dir / f"{name}.schema.json"
        with open(schema_path, 'w', encoding='utf-8') as f:
            json.dump(schema, f, indent=2, ensure_ascii=False)
        print(f"Generated: {schema_path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
