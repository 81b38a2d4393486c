#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
from pathlib import Path


def _query(position: int) -> dict:
    return {
        "query_path": "Rohbau > Mauerarbeiten",
        "query-oz": f"01.02.{position:04d}",
        "query-kurztext": f"Mauerwerk KS 17,5 cm, Pos. {position}",
        "query_text": "Kalksandstein-Mauerwerk, d = 17,5 cm, inkl. Mörtel, liefern und einbauen.",
        "query-einheit": "m2",
        "query-menge": "125,5",
        "query-preis": None,
    }


def _candidate(prefix: str, price: str, sources: list[str], score: float) -> dict:
    return {
        f"{prefix}-quellen": "; ".join(sources),
        f"{prefix}_path": "Rohbau > Mauerarbeiten",
        f"{prefix}-oz": "; ".join(f"02.01.{index:04d}" for index in range(1, len(sources) + 1)),
        f"{prefix}-kurztext": "KS-Mauerwerk 17,5 cm",
        f"{prefix}_text": "Kalksandstein-Mauerwerk aus Vergleichsprojekt.",
        f"{prefix}-einheit": "m2",
        f"{prefix}-menge": "120",
        f"{prefix}-preis": price,
        f"{prefix}_score": score,
    }


def build_records(count: int) -> list[dict]:
    records = []
    for position in range(1, count + 1):
        records.append(
            {
                "Query": _query(position),
                "Rank1": _candidate("rank1", "58,40", ["LV_Schule.json", "LV_Kita.json"], 0.91234),
                "Rank2": _candidate("rank2", "55.10; 61.00", ["LV_Halle.json", "LV_Buero.json"], 0.87),
                "Rank3": _candidate("rank3", "1.234,50", ["LV_Wohnbau.json"], 0.8),
                "selectedCandidateKey": None,
            }
        )
    return records


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample review dataset (JSON list of records)")
    parser.add_argument("--output", required=True, help="output file path (.json)")
    parser.add_argument("--records", type=int, default=3, help="number of records")
    args = parser.parse_args()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(build_records(args.records), ensure_ascii=False, indent=2), encoding="utf-8")

    print(f"Sample dataset written: {output}")


if __name__ == "__main__":
    main()
