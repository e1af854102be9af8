from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config_path: Path | str | None = None, level: int = logging.INFO) -> None:
    """Configure logging from a YAML dictConfig, or basicConfig when no file is available."""
    config_file = Path(config_path) if config_path else None
    if config_file is None or not config_file.exists():
        logging.basicConfig(level=level, format=DEFAULT_FORMAT)
        return

    with config_file.open("r", encoding="utf-8") as stream:
        config_dict: Dict[str, Any] = yaml.safe_load(stream)

    log_file = config_dict.get("handlers", {}).get("file", {}).get("filename")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(config_dict)
