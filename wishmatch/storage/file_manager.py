# wishmatch/storage/file_manager.py

"""Handles saving catalog runs to disk."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from wishmatch.config.settings import Settings

logger = logging.getLogger("wishmatch.storage")


class FileManager:
    """Handles saving catalog runs to disk."""

    def __init__(self) -> None:
        self.results_dir: Path = Settings.RESULTS_DIR
        self.results_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("FileManager initialised, results_dir=%s", self.results_dir)

    def save_json(self, data: dict[str, Any], label: str) -> Path:
        """Save *data* to a timestamped JSON file named after *label*."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        safe_label = "".join(
            ch if ch.isalnum() or ch in "-_" else "_" for ch in label
        )[:40]
        filepath = self.results_dir / f"{safe_label}_{timestamp}.json"

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info("Saved %s results to %s", label, filepath)
        return filepath
