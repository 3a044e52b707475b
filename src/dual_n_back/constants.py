import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DATA_DIR = BASE_DIR / "data"
PREFERENCES_PATH = Path(
    os.environ.get("DUAL_N_BACK_PREFS", DATA_DIR / "preferences.json")
)

DEFAULT_N = 2
DEFAULT_SEQUENCE_LENGTH = 10
DEFAULT_ALPHABET_SIZE = 9
DEFAULT_MATCH_PERCENTAGE = 30
DEFAULT_STEP_INTERVAL_MS = 2000
START_DELAY_MS = 500
