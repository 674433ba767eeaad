"""
One-shot verification: runs a single scanner cycle against the live feeds and
prints the resulting snapshot, then writes it to output/snapshot.json.

Run with:
    PYTHONPATH=. python scripts/run_once.py [config.yaml]
"""

import json
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from catalyst_scanner.core.config import ScannerConfig, load_config  # noqa: E402
from catalyst_scanner.pipeline.engine import ScannerEngine  # noqa: E402

DIVIDER = "=" * 100


def main() -> int:
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"
    config = ScannerConfig.from_dict(load_config(config_path))
    engine = ScannerEngine(config)

    try:
        snapshot = engine.run_cycle()
    finally:
        engine.shutdown()

    if snapshot is None:
        print("ERROR: every feed failed; see output/scanner.log")
        return 1

    print(f"\n{DIVIDER}")
    print(f"  Cycle {snapshot.cycle}  |  {len(snapshot)} catalysts  |  feeds={len(config.feeds.urls)}")
    print(DIVIDER)
    for r in snapshot:
        headline = r.headline[:48] + ".." if len(r.headline) > 50 else r.headline
        print(
            f"  {r.timestamp_local:18}  {r.symbol:6}  {r.price:>7}  "
            f"{r.percent_change:+7.2f}%  {r.float_display:>8}  [{r.tier:7}]  {headline}"
        )
    print()

    os.makedirs("output", exist_ok=True)
    path = os.path.join("output", "snapshot.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in snapshot], f, indent=2, ensure_ascii=False)
    print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
