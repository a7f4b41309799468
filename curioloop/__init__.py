"""
CurioLoop - adaptive learning paths.

Diagnose what a learner knows, generate a chapter plan, then unlock chapters
one by one as their quizzes are completed.
"""

__version__ = "0.1.0"
