"""
Workflow definitions built on the refineflow engine.
"""
from .joke_critique import (
    CritiqueEvent,
    JokeCritiqueWorkflow,
    JokeEvent,
    JokeState,
    ResultEvent,
    extract_joke,
)

__all__ = [
    'CritiqueEvent',
    'JokeCritiqueWorkflow',
    'JokeEvent',
    'JokeState',
    'ResultEvent',
    'extract_joke',
]
