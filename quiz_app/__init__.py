"""
General Knowledge Quiz: category-balanced question selection, timed quiz
sessions, a local player profile and achievements, presented through Discord.
"""

__version__ = "2.0.0"
