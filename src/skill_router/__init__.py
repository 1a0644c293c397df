"""Skill Router - skill activation and post-edit checks for AI coding assistants.

Two hook pipelines:
- Prompt analysis: match the user's prompt against skill rules and append
  a reminder of the most relevant guidelines.
- Post-action: after an edit, format changed files, run the build check,
  scan for risky patterns, and log the run.
"""

__version__ = "0.3.0"
