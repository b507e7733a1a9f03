"""BrainStress: timed arithmetic quizzes with a Discord front-end."""

__version__ = "0.1.0"
