"""
HypeOS adaptive learning engine.

Adaptive task points, SM-2 spaced repetition, skill decay and a daily
review queue for gamified entrepreneurship tasks.
"""

__version__ = "0.3.0"
