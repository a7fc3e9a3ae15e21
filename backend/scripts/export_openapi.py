import json
import sys
from pathlib import Path


def main() -> int:
    backend_root = Path(__file__).resolve().parents[1]
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))

    from stockledger.main import app  # noqa: WPS433

    output_dir = backend_root / "openapi"
    output_dir.mkdir(parents=True, exist_ok=True)
    output_file = output_dir / "openapi.json"

    schema = app.openapi()
    output_file.write_text(
        json.dumps(schema, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    print(f"OpenAPI exported to: {output_file}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
