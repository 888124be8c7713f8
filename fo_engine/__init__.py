"""
FO Qualification Engine - Two-Stage Family Office Pipeline
==========================================================
Separates true family offices from look-alike entities and scores them:
  Stage 1: Heuristic Firewall (free pattern checks)
  Stage 2: Entity Classification (model call only when uncertain)
  Stage 3: FO Match Scoring (model call only past the gate)
Batch runs are summarised by the run reporter.
"""

__version__ = "1.0.0"
__author__ = "FO Qualification Team"
