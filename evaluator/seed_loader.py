"""
Seed data loader from YAML
"""
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from evaluator.models import Admin, Collection, Evaluation, Group, Student, Task

logger = logging.getLogger(__name__)


SEED_MODELS = {
    Collection.GROUPS.value: Group,
    Collection.STUDENTS.value: Student,
    Collection.TASKS.value: Task,
    Collection.EVALUATIONS.value: Evaluation,
    Collection.ADMINS.value: Admin,
}


def load_seed(yaml_path: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load seed documents for the in-memory store

    YAML format:
        groups:
          - {id: g1, name: Alpha}
        students:
          - {id: s1, name: Rahim, roll: "01", groupId: g1, academicGroup: Science}
        tasks:
          - {id: t1, name: Essay, maxScore: 100, date: "2025-01-10"}
        evaluations:
          - id: e1
            taskId: t1
            groupId: g1
            scores:
              s1: {taskScore: 40, teamworkScore: 8, optionMarks: {...}}

    Args:
        yaml_path: Path to YAML file

    Returns:
        Dictionary mapping collection name to raw documents

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a collection is unknown or a document is invalid
    """
    path = Path(yaml_path)

    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {yaml_path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    seed = {}
    for collection, docs in data.items():
        model = SEED_MODELS.get(collection)
        if model is None:
            raise ValueError(f"Unknown collection in seed file: {collection}")

        docs = docs or []
        for index, doc in enumerate(docs):
            try:
                model.model_validate(doc)
            except ValueError as e:
                raise ValueError(f"{collection}[{index}]: invalid document: {e}") from e
        seed[collection] = docs

    logger.info(
        f"✅ Loaded seed data from {yaml_path}: "
        + ", ".join(f"{len(docs)} {name}" for name, docs in seed.items())
    )

    return seed
