from __future__ import annotations

import csv
import json
import math
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .projection import ProjectionSolution


def _round_vec(v: Sequence[float], ndigits: int = 6) -> List[float]:
    return [round(float(x), ndigits) for x in v]


def face_id(index: int | None) -> str | None:
    if index is None:
        return None
    return f"Face{index + 1}"


def serialize_solutions(
    points: Sequence[Sequence[float]],
    solutions: Sequence[ProjectionSolution],
) -> List[Dict[str, Any]]:
    if len(points) != len(solutions):
        raise ValueError(f"{len(points)} query points but {len(solutions)} solutions")
    out = []
    for idx, (point, sol) in enumerate(zip(points, solutions), start=1):
        distance = None
        if sol.is_done and math.isfinite(sol.distance):
            distance = round(float(sol.distance), 8)
        out.append(
            {
                "point_id": f"P{idx}",
                "query_point": _round_vec(point),
                "is_done": bool(sol.is_done),
                "face_id": face_id(sol.face_index),
                "distance": distance,
                "solution_point": _round_vec(sol.point),
                "solution_uv": _round_vec(sol.uv),
                "solution_normal": _round_vec(sol.normal),
            }
        )
    return out


CSV_FIELDS = [
    "point_id",
    "query_point",
    "is_done",
    "face_id",
    "distance",
    "solution_point",
    "solution_uv",
    "solution_normal",
]

_JSON_ENCODED_FIELDS = ["query_point", "solution_point", "solution_uv", "solution_normal"]


def write_projections_csv(records: List[Dict[str, Any]], csv_path: Path) -> None:
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        for row in records:
            item = {k: row.get(k) for k in CSV_FIELDS}
            for key in _JSON_ENCODED_FIELDS:
                if item.get(key) is not None:
                    item[key] = json.dumps(item[key])
            w.writerow(item)


def write_report_json(
    report_path: Path,
    source_info: Dict[str, Any],
    counts: Dict[str, int],
    records: List[Dict[str, Any]],
) -> None:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report = {
        "source": source_info,
        "counts": counts,
        "projection_total": len(records),
        "projection_done": sum(1 for r in records if r.get("is_done")),
        "projections": records,
    }

    report_path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
