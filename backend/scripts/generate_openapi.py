"""Print the OpenAPI schema of the coupon API as JSON.

Usage: python backend/scripts/generate_openapi.py > openapi.json
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from coupon_manager.main import app  # noqa: E402

if __name__ == "__main__":
    print(json.dumps(app.openapi(), indent=2))
