import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
OUTPUT_DIR = Path(os.getenv("OFW_OUTPUT_DIR", str(PROJECT_ROOT / "output")))

# Threading: a gap longer than this starts a new conversation
THREAD_INACTIVITY_DAYS = float(os.getenv("THREAD_INACTIVITY_DAYS", "30"))

# Rapid-fire detection window
RAPID_FIRE_SECONDS = int(os.getenv("RAPID_FIRE_SECONDS", "1800"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def load_exclude_patterns(config_path: Optional[Path] = None) -> List[str]:
    """Load name-substring exclusions from config/exclude.yaml.

    Patterns only hide names in rendered tables; the core never drops data
    based on a name. Returns lowercase, non-empty patterns.
    """
    config_path = config_path or CONFIG_DIR / "exclude.yaml"
    if not config_path.exists():
        logger.debug("No exclude.yaml found at %s, using empty list", config_path)
        return []
    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}
    return [str(p).strip().lower() for p in data.get("exclude", []) if str(p).strip()]
