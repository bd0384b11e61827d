"""Audit trail — one JSON object per line, size-rotated, age-swept.

Layout:
    <log_dir>/
    ├── audit.log        # active segment
    ├── audit.log.1      # newest rotated segment
    └── audit.log.N      # oldest kept segment
"""
