from __future__ import annotations

import argparse
import csv
import functools
import logging
import re
from pathlib import Path
from typing import List, Tuple

from .projection import PointOnFacesProjection
from .projection_report import serialize_solutions, write_projections_csv, write_report_json
from .shape_loader import load_shape
from .surface_projector import SurfaceProjector
from .surface_source import count_topology


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Project points on the nearest face of a B-Rep model")
    p.add_argument("--input", required=True, help="Input geometry file (.stp/.step, .igs/.iges, .brep)")
    p.add_argument(
        "--point",
        nargs=3,
        type=float,
        action="append",
        default=[],
        metavar=("X", "Y", "Z"),
        help="Query point, repeatable",
    )
    p.add_argument("--points-csv", default=None, help="CSV file of query points (x,y,z per row, header optional)")
    p.add_argument("--out", default="out", help="Output directory")
    p.add_argument(
        "--output-stem",
        default=None,
        help="Output name stem (default: input filename stem). e.g. 'sample' -> projections_sample.csv/report_sample.json",
    )
    p.add_argument("--workers", type=int, default=1, help="Threads used to project on faces in parallel")
    p.add_argument("--tolerance", type=float, default=None, help="Point projection tolerance (default: OCCT confusion)")
    p.add_argument("--log-level", default="INFO", help="DEBUG/INFO/WARN/ERROR")
    return p


def output_paths(input_path: str, out_dir: Path, output_stem: str | None = None) -> Tuple[Path, Path]:
    """Projection CSV and JSON report paths, named after a filesystem-safe stem."""
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", output_stem or Path(input_path).stem).strip("._-") or "model"
    return out_dir / f"projections_{stem}.csv", out_dir / f"report_{stem}.json"


def read_points_csv(csv_path: Path) -> List[Tuple[float, float, float]]:
    points: List[Tuple[float, float, float]] = []
    with csv_path.open("r", newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            cells = [c.strip() for c in row]
            if not any(cells) or cells[0].startswith("#"):
                continue
            xyz = cells[:3]
            if len(xyz) < 3 or not all(xyz):
                raise ValueError(f"{csv_path}:{line_no}: expected x,y,z")
            try:
                points.append((float(xyz[0]), float(xyz[1]), float(xyz[2])))
            except ValueError:
                if not points:
                    continue  # header
                raise ValueError(f"{csv_path}:{line_no}: non-numeric coordinate in {row}")
    return points


def run(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logger = logging.getLogger("faceproj")

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_csv, out_report = output_paths(args.input, out_dir, args.output_stem)

    try:
        points = [tuple(p) for p in args.point]
        if args.points_csv:
            points.extend(read_points_csv(Path(args.points_csv)))
        if not points:
            logger.error("No query point given (use --point X Y Z or --points-csv)")
            return 2

        logger.info("Loading geometry: %s", args.input)
        shape, source_info = load_shape(args.input)
        counts = count_topology(shape)

        factory = functools.partial(SurfaceProjector, tolerance=args.tolerance)
        with PointOnFacesProjection(projector_factory=factory, workers=args.workers) as projection:
            logger.info("Preparing projectors on %d face(s)", counts["faces"])
            projection.prepare(shape)

            logger.info("Projecting %d point(s)", len(points))
            solutions = [projection.compute(p).solution() for p in points]

        records = serialize_solutions(points, solutions)
        missed = sum(1 for r in records if not r["is_done"])
        if missed:
            logger.warning("%d point(s) could not be projected on any face", missed)

        logger.info("Writing reports")
        write_projections_csv(records, out_csv)
        write_report_json(report_path=out_report, source_info=source_info, counts=counts, records=records)

        logger.info("Done. outputs: %s, %s", out_report.resolve(), out_csv.resolve())
        return 0

    except Exception:
        logger.exception("Failed to project points")
        return 1


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    raise SystemExit(run(args))


if __name__ == "__main__":
    main()
