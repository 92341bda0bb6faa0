"""
catalog.py - Static task, reward and question lists

Catalogs are read-only inputs. Each list loads on its own: a source that is
missing or unreadable degrades to an empty list (logged as a warning) without
affecting the others.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
import json
import logging
import os

from .core import Task, Reward, Question, PointsError, UnknownCatalogItem
from .codec import load_catalog, task_from_dict, reward_from_dict, question_from_dict

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Catalog:
    """The three catalog lists the controller works from."""
    tasks: Tuple[Task, ...] = field(default_factory=tuple)
    rewards: Tuple[Reward, ...] = field(default_factory=tuple)
    questions: Tuple[Question, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for name in ("tasks", "rewards", "questions"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    def find_task(self, code: str) -> Task:
        for task in self.tasks:
            if task.code == code:
                return task
        raise UnknownCatalogItem(f"Unknown task: {code!r}")

    def find_reward(self, code: str) -> Reward:
        for reward in self.rewards:
            if reward.code == code:
                return reward
        raise UnknownCatalogItem(f"Unknown reward: {code!r}")


def load_catalog_file(path: Optional[str], parser: Callable[[Dict[str, Any]], T]) -> List[T]:
    """
    Load one catalog list from a JSON file.

    Returns an empty list when the path is unset, missing, unreadable, or
    holds something other than a list of objects.
    """
    if not path:
        return []
    if not os.path.exists(path):
        logger.warning("Catalog file %s not found, using an empty list", path)
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return load_catalog(raw, parser)
    except (OSError, json.JSONDecodeError, PointsError, AttributeError) as e:
        logger.warning("Catalog file %s could not be loaded (%s), using an empty list", path, e)
        return []


def load_catalog_files(
    tasks_path: Optional[str] = None,
    rewards_path: Optional[str] = None,
    questions_path: Optional[str] = None,
) -> Catalog:
    """Load all three catalog lists; each degrades independently."""
    return Catalog(
        tasks=load_catalog_file(tasks_path, task_from_dict),
        rewards=load_catalog_file(rewards_path, reward_from_dict),
        questions=load_catalog_file(questions_path, question_from_dict),
    )
