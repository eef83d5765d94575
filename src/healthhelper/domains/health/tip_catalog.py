"""Tip catalog loader: reads the hand-authored seed list from YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from healthhelper.core.storage.tips import TipSeed

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "resources" / "health_tips.yaml"


def load_tip_catalog(path: str | Path = DEFAULT_CATALOG_PATH) -> list[TipSeed]:
    """Parse the tip catalog YAML into seed entries, ordered by id.

    Raises:
        ValueError: If an entry is missing a field or ids are duplicated.
    """
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    seeds: list[TipSeed] = []
    seen: set[int] = set()
    for entry in data.get("tips", []):
        try:
            seed = TipSeed(
                id=int(entry["id"]),
                title=str(entry["title"]).strip(),
                content=str(entry["content"]).strip(),
                category=str(entry["category"]).strip(),
            )
        except KeyError as exc:
            raise ValueError(f"Tip entry in {path} is missing field {exc}") from exc
        if seed.id in seen:
            raise ValueError(f"Duplicate tip id {seed.id} in {path}")
        seen.add(seed.id)
        seeds.append(seed)

    logger.debug("Loaded %d tip definitions from %s", len(seeds), path)
    return sorted(seeds, key=lambda s: s.id)
