"""Utility: dump the demo seed (users with dev tokens, orders, knowledge) for local development.

Run from the project root:

python tools/dump_seed.py

This prints JSON to stdout and writes `tmp_seed.json` in the current folder.
"""
import json
from pathlib import Path
from scootcare.seed import USERS, ORDERS, KNOWLEDGE

OUT = Path("tmp_seed.json")
seed = {"users": USERS, "orders": ORDERS, "knowledge": KNOWLEDGE}
print(json.dumps(seed, indent=2))
OUT.write_text(json.dumps(seed, indent=2))
print(f"Wrote {OUT.resolve()}")
