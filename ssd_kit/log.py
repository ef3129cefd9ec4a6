"""
Logging setup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union


def setup_logging(level: str = "INFO", log_path: Optional[Union[str, Path]] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_path is not None:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
