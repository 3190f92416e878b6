"""Loads the candlestick pattern taxonomy shipped alongside the service."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from app.schemas import Pattern

logger = logging.getLogger(__name__)


def load_patterns(path: str | Path) -> list[Pattern]:
    """Read ``name,category,direction,description`` rows from a CSV file.

    The first row is a header. Rows with fewer than four columns are skipped.
    """
    patterns: list[Pattern] = []
    with Path(path).open(newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        next(reader, None)
        for row in reader:
            if len(row) < 4:
                continue
            name, category, direction, description = (cell.strip() for cell in row[:4])
            patterns.append(
                Pattern(
                    name=name,
                    category=category,
                    direction=direction,
                    description=description,
                )
            )
    logger.info("Loaded %d candlestick patterns", len(patterns))
    return patterns


__all__ = ["load_patterns"]
