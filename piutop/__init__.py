"""
PIU Top Ranking Engine - Core Package

This package contains the core modules for:
- Result ingestion and normalization (piutop.ingestion)
- Chart leaderboards and battles (piutop.leaderboard)
- Player profiles, achievements and experience (piutop.profiles)
- Elo rating computation and ranking changes (piutop.elo)
- Shared configuration and utilities
"""

from piutop.config import *
