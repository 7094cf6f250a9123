# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for secrets. This file should contain only safe overrides.
"""

# Example: talk to the hosted backend instead of the local SQLite file
# BACKEND = "rest"

# Example: emulate a database where the priority migration never ran
# OMIT_COLUMNS = ["priority"]

# Example: learn missing columns once at startup instead of on the first failed write
# PROBE_SCHEMA = True
