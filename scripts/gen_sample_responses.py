#!/usr/bin/env python3
"""Generate sample form-response workbooks for ``answerboard import``.

One sheet per class, laid out like a form export:
- Row 1: header (タイムスタンプ, メールアドレス, クラス, 名前, 回答, 理由)
- Row 2+: one answer per student

Useful for trying the board locally in memory mode, or for filling a
development database with realistic row counts.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

HEADER = ["タイムスタンプ", "メールアドレス", "クラス", "名前", "回答", "理由"]

OPINIONS = ["光合成", "呼吸", "蒸散", "発芽", "受粉", "分解"]
REASONS = [
    "葉が緑だから",
    "教科書に書いてあった",
    "実験で確かめた",
    "",
    "前の授業で習った",
]
GIVEN_NAMES = ["Aoi", "Ben", "Chie", "Daiki", "Emi", "Fumi", "Goro", "Hana"]


def generate_responses(class_name: str, rows: int, seed: int = 42) -> pd.DataFrame:
    """Responses of one class, oldest first."""
    rng = np.random.default_rng(seed)
    start = pd.Timestamp("2024-04-01 09:00")
    offsets = np.sort(rng.integers(0, 45 * 60, rows))
    slug = class_name.lower().replace("-", "")
    data = {
        "タイムスタンプ": [(start + pd.Timedelta(seconds=int(s))).isoformat() for s in offsets],
        "メールアドレス": [f"s{slug}{i:03d}@school.example" for i in range(1, rows + 1)],
        "クラス": [class_name] * rows,
        "名前": [f"{GIVEN_NAMES[i % len(GIVEN_NAMES)]}{i:03d}" for i in range(1, rows + 1)],
        "回答": rng.choice(OPINIONS, rows).tolist(),
        "理由": rng.choice(REASONS, rows).tolist(),
    }
    return pd.DataFrame(data, columns=HEADER)


def create_response_workbook(
    output_path: Path,
    classes: list[str],
    rows: int,
    seed: int = 42,
) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for i, class_name in enumerate(classes):
            df = generate_responses(class_name, rows, seed + i)
            # ヘッダーは 1 行目 (index は出力しない)
            df.to_excel(writer, sheet_name=class_name, index=False)

    print(f"Created workbook: {output_path}")
    print(f"  Sheets: {len(classes)} ({', '.join(classes)})")
    print(f"  Rows per sheet: {rows} (+ 1 header row)")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate sample form-response workbooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/responses/science.xlsx
  %(prog)s data/responses/big.xlsx --rows 2000 --classes 1-A 1-B 1-C
        """,
    )
    parser.add_argument("output", type=Path, help="Output .xlsx path")
    parser.add_argument("--rows", type=int, default=30, help="Responses per class (default: 30)")
    parser.add_argument("--classes", nargs="+", default=["1-A", "1-B"], help="Class / sheet names")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--dry-run", action="store_true", help="Print the plan without writing")
    args = parser.parse_args(argv)

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if args.output.suffix.lower() != ".xlsx":
        print("Error: output must be an .xlsx file", file=sys.stderr)
        return 1

    if args.dry_run:
        print(f"Would create {args.output}: {len(args.classes)} sheets x {args.rows} rows")
        return 0

    try:
        create_response_workbook(args.output, args.classes, args.rows, args.seed)
    except OSError as e:
        print(f"Error creating workbook: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
