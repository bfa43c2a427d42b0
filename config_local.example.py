# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for secrets. This file should contain only safe overrides.
"""

# Example: run without the console (nothing else to run yet)
# CONSOLE_ENABLED = False

# Example: change model order
# LLM_MODELS = [
#     "gpt-4o-audio-preview",
#     "gpt-4o-mini",
# ]

# Example: override the local data directory (prefer env vars)
# from pathlib import Path
# DATA_DIR = Path(".local/clippy")  # databases and the log file move with it
