"""
Configuration for the regression workbook publisher.
Values come from the environment (or a local .env file).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent.parent
OUTPUT_DIR = Path(os.getenv("REGBOOK_OUTPUT_DIR", BASE_DIR / "output"))
WORKBOOK_NAME = os.getenv("REGBOOK_WORKBOOK", "regression_results.xlsx")
WORKBOOK_PATH = OUTPUT_DIR / WORKBOOK_NAME

# Data generation
N_OBS = int(os.getenv("REGBOOK_N_OBS", "100"))

# Unset means every run draws fresh data
_seed = os.getenv("REGBOOK_DATA_SEED")
DATA_SEED = int(_seed) if _seed else None

# Sheets
REGRESSION_SHEETS = ("Regression1", "Regression2")
SUMMARY_SHEET = os.getenv("REGBOOK_SUMMARY_SHEET", "Summary")
SEED_SUMMARY = os.getenv("REGBOOK_SEED_SUMMARY", "1") == "1"

# Logging
LOG_LEVEL = os.getenv("REGBOOK_LOG_LEVEL", "INFO").upper()
