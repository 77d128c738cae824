"""
Static source map: transcript file name -> public URL and display date.

Bundled as JSON (app/data/source_map.json, or SOURCE_MAP_PATH). Read once per
path; never written by the app.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel

from app.core.config import SOURCE_MAP_PATH

logger = logging.getLogger(__name__)


class SourceEntry(BaseModel):
    url: str = ""
    date: str = ""


@lru_cache(maxsize=None)
def load_source_map(path: Path = SOURCE_MAP_PATH) -> dict[str, SourceEntry]:
    """Load the map. A missing file gives an empty map (every citation then has empty URL/date)."""
    if not path.is_file():
        logger.warning("[source_map] file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"Source map must be a JSON object: {path}")
    entries = {str(name): SourceEntry.model_validate(value) for name, value in raw.items()}
    logger.info("[source_map] loaded %d entries from %s", len(entries), path)
    return entries
