"""
Business logic constants for fitrkr.

These values are stable across environments (dev/staging/prod) and do not
need env-var overrides. For tunables that a deployment may change (billing
period lengths, trial length, streak tolerance), see config.py.
"""

import re

SECONDS_PER_DAY = 24 * 60 * 60

# --- Unit conversion factors ---
LB_TO_KG = 0.453592
KG_TO_LB = 2.20462
CM_PER_INCH = 2.54
INCHES_PER_FOOT = 12

# --- Body fat percentage bounds ---
BODY_FAT_MIN = 0.0
BODY_FAT_MAX = 100.0

# --- Identity validation ---
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
USERNAME_PATTERN = re.compile(r"^[a-z0-9_]+$")  # lower-cased before matching
NAME_PART_MIN_LENGTH = 2
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")

# --- Currency codes accepted for payments ---
CURRENCY_CODE_LENGTH = 3
