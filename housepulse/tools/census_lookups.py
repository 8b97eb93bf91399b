"""
Build the postcode → dominant language / occupation tables from Census
DataPacks (General Community Profile, postal areas).

G13 (language used at home) is split across G13A..G13E, G60 (occupation)
across G60A/G60B. Each row is one postal area ("POA2000"); counts are summed
per category across all files and the largest category wins.

Usage:
    python -m housepulse.tools.census_lookups DATAPACK_DIR [--out DIR]
"""

import argparse
import csv
import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from ..core.config import RESOURCES_DIR
from ..core.logging import configure_logging

logger = logging.getLogger(__name__)

LANGUAGE_FILES = [f"2021Census_G13{s}_AUST_POA.csv" for s in "ABCDE"]
OCCUPATION_FILES = ["2021Census_G60A_AUST_POA.csv", "2021Census_G60B_AUST_POA.csv"]

LANGUAGE_NAMES = {
    "Guj": "Gujarati",
    "Sinhal": "Sinhala",
    "Macedon": "Macedonian",
    "Canton": "Cantonese",
    "Filipin": "Filipino",
    "AIndLng": "Australian Indigenous Languages",
    "Japan": "Japanese",
    "Oth": "Other",
}

# Column fragment → occupation category (first match wins)
OCCUPATION_CATEGORIES = {
    "Managers": "Managers",
    "Professionals": "Professionals",
    "TechnicTrades_Wrs": "Technicians and Trades Workers",
    "TechnicTrades_W": "Technicians and Trades Workers",
    "CommunPersnlSvc_W": "Community and Personal Service Workers",
    "ClericalAdminis_W": "Clerical and Administrative Workers",
    "Sales_W": "Sales Workers",
    "Mach_oper_drivers": "Machinery Operators and Drivers",
    "Labourers": "Labourers",
}

Tally = Dict[str, Dict[str, int]]


def language_for_column(header: str) -> Optional[str]:
    """MSEO_Tot → English, MOL_IAL_Hindi_Tot → Hindi; aggregates → None."""
    if not header.endswith("_Tot") or "UOLSE" in header or "_Tot_Tot" in header:
        return None
    if header == "MSEO_Tot":
        return "English"
    if not header.startswith("MOL_"):
        return None
    last = header[len("MOL_"):-len("_Tot")].split("_")[-1]
    if not last or last == "Tot":
        return None
    return LANGUAGE_NAMES.get(last, last)


def occupation_for_column(header: str) -> Optional[str]:
    for fragment, category in OCCUPATION_CATEGORIES.items():
        if fragment in header:
            return category
    return None


def _count(cell: str) -> int:
    if not cell or cell == "..":
        return 0
    try:
        return int(cell)
    except ValueError:
        return 0


def tally_files(paths: Iterable[Path], categorize: Callable[[str], Optional[str]]) -> Tally:
    tally: Tally = defaultdict(lambda: defaultdict(int))
    for path in paths:
        if not path.exists():
            logger.info("Skipping %s (not found)", path.name)
            continue
        with path.open(newline="", encoding="utf-8-sig") as fh:
            reader = csv.reader(fh)
            headers = next(reader, None)
            if not headers:
                continue
            categories = [categorize(h) for h in headers]
            rows = 0
            for row in reader:
                if not row:
                    continue
                postcode = row[0].replace("POA", "")
                for cell, category in zip(row[1:], categories[1:]):
                    count = _count(cell)
                    if category and count > 0:
                        tally[postcode][category] += count
                rows += 1
        logger.info("Processed %d postal areas from %s", rows, path.name)
    return tally


def top_categories(tally: Tally) -> Dict[str, str]:
    """Largest category per postcode; ties go to the first one counted."""
    out = {}
    for postcode, counts in tally.items():
        if counts:
            out[postcode] = max(counts.items(), key=lambda kv: kv[1])[0]
    return out


def build_tables(datapack_dir: Path, out_dir: Path) -> tuple[Dict[str, str], Dict[str, str]]:
    languages = top_categories(tally_files((datapack_dir / f for f in LANGUAGE_FILES), language_for_column))
    occupations = top_categories(tally_files((datapack_dir / f for f in OCCUPATION_FILES), occupation_for_column))
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "census-language.json").write_text(json.dumps(languages, indent=2), encoding="utf-8")
    (out_dir / "census-occupation.json").write_text(json.dumps(occupations, indent=2), encoding="utf-8")
    logger.info("Wrote %d language and %d occupation entries to %s", len(languages), len(occupations), out_dir)
    return languages, occupations


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("datapack_dir", type=Path, help="Directory holding the POA DataPack CSVs")
    parser.add_argument("--out", type=Path, default=RESOURCES_DIR, help="Output directory for the JSON tables")
    args = parser.parse_args(argv)

    configure_logging()
    if not args.datapack_dir.is_dir():
        logger.error("Not a directory: %s", args.datapack_dir)
        return 1
    build_tables(args.datapack_dir, args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
