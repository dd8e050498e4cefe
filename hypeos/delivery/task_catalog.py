"""
Task Catalog: Gamified Task Loader.

Loads the task catalog the engine scores from a JSON file containing either
a list of tasks or an object with a "tasks" list.

Features:
- Groups tasks by category
- Skips malformed entries with a warning instead of failing the whole file
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from hypeos.core.exceptions import CatalogError
from hypeos.core.models import Task


class TaskCatalog:
    """
    A collection of catalog tasks.

    Usage:
        catalog = TaskCatalog.load(Path("tasks.json"))
        task = catalog.get(3)
    """

    def __init__(self, tasks: list[Task] | None = None):
        self._tasks: dict[int, Task] = {}
        self._by_category: dict[str, list[int]] = {}
        self.skipped: int = 0
        for task in tasks or []:
            self.add(task)

    @classmethod
    def load(cls, path: Path) -> TaskCatalog:
        """
        Load a catalog from a JSON file.

        Args:
            path: Path to the JSON file

        Returns:
            TaskCatalog

        Raises:
            CatalogError: The file is missing, unreadable or not a task list
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load {path}: {e}")
            raise CatalogError(f"Cannot read task catalog {path}: {e}") from e

        tasks_list = data.get("tasks") if isinstance(data, dict) else data
        if not isinstance(tasks_list, list):
            raise CatalogError(f"{path} does not contain a task list")

        catalog = cls()
        for task_data in tasks_list:
            try:
                catalog.add(Task.from_dict(task_data))
            except (KeyError, TypeError, ValueError) as e:
                catalog.skipped += 1
                logger.warning(f"Skipping malformed task in {path}: {e}")

        logger.info(
            f"TaskCatalog loaded: {len(catalog)} tasks in {len(catalog.categories)} categories "
            f"({catalog.skipped} skipped)"
        )
        return catalog

    def add(self, task: Task) -> None:
        if task.id in self._tasks:
            logger.warning(f"Duplicate task id {task.id}, keeping the last definition")
            self._by_category[self._tasks[task.id].category].remove(task.id)
        self._tasks[task.id] = task
        self._by_category.setdefault(task.category, []).append(task.id)

    def get(self, task_id: int) -> Task | None:
        return self._tasks.get(task_id)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    @property
    def categories(self) -> list[str]:
        return sorted(c for c, ids in self._by_category.items() if ids)

    def by_category(self, category: str) -> list[Task]:
        return [self._tasks[i] for i in self._by_category.get(category, [])]

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())
