"""
GitClock - Mirror local working-directory changes into a daily changelog on GitHub.

A CLI tool that:
1. Detects local git changes on a timer (or on demand)
2. Computes per-file line additions/deletions
3. Appends one row per changed file to a per-day CHANGELOG_<date>.md
4. Ensures the target GitHub repository exists before syncing

Usage:
    gitclock init           # Write a sample gitclock.yml
    gitclock login          # Authenticate with GitHub (OAuth or --token)
    gitclock interval 45    # Change the sync interval (minimum 30 minutes)
    gitclock status         # Show detected local changes
    gitclock sync           # Run one sync cycle now
    gitclock watch          # Sync on a timer until interrupted
"""

__version__ = "0.1.0"
__author__ = "GitClock"
