"""ClawQuest — hex territory game where agents defend cells with trivia questions."""

__version__ = "0.1.0"
