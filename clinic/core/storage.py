# clinic/core/storage.py
"""
Data loading and persistence layer.

Builds the ScheduleData snapshot the engine works on, either from the
database or from a JSON seed file.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from clinic.core.config import SEED_FILE_PATH
from clinic.core.errors import StorageError
from clinic.core.models import ScheduleData
from clinic.database import repository

logger = logging.getLogger(__name__)


def _load_json(file_path: Path) -> list[Any] | dict[str, Any]:
    """
    Read and parse JSON with robust error handling.
    Args:
        file_path: Path to the JSON file
    Returns:
        Parsed JSON data as list or dict
    Raises:
        StorageError: If file cannot be read or JSON is invalid
    """
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.exception("Failed to read JSON file %s", file_path)
        raise StorageError(f"Could not read JSON file {file_path}: {e}") from e

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.exception("Invalid JSON in file %s", file_path)
        raise StorageError(f"Invalid JSON in file {file_path}: {e}") from e


def load_seed_file(file_path: Path | str | None = None) -> ScheduleData:
    """
    Load a complete schedule snapshot from a JSON seed file.

    The file is one object whose keys are the ScheduleData collections
    ("locations", "providers", "plans", "slots", ...). Missing keys are
    treated as empty.
    Args:
        file_path: Path to the seed file, defaults to SEED_FILE_PATH
    Returns:
        Validated snapshot
    Raises:
        StorageError: If the file cannot be loaded or does not validate
    """
    path = Path(file_path or SEED_FILE_PATH)
    data = _load_json(path)
    try:
        if not isinstance(data, dict):
            raise TypeError("Expected seed object with one list per entity")
        snapshot = ScheduleData.model_validate(data)
    except (TypeError, ValidationError) as e:
        logger.exception("Failed to parse seed data from %s", path)
        raise StorageError(f"Could not parse seed data from {path}: {e}") from e

    logger.info(
        "Loaded seed %s: %d providers, %d plans, %d assignments",
        path,
        len(snapshot.providers),
        len(snapshot.plans),
        len(snapshot.assignments),
    )
    return snapshot


def load_schedule_data(session: Session) -> ScheduleData:
    """
    Read every entity from the database into one snapshot.

    Raises:
        StorageError: If a stored row no longer validates
    """
    try:
        collections = {name: repo.list(session) for name, repo in repository.ALL_REPOSITORIES}
        return ScheduleData(**collections)
    except ValidationError as e:
        logger.exception("Stored schedule data failed validation")
        raise StorageError(f"Stored schedule data is invalid: {e}") from e


def seed_database(session: Session, data: ScheduleData) -> dict[str, int]:
    """
    Upsert every entity of a snapshot and commit.

    Returns:
        Number of rows written per collection
    """
    counts: dict[str, int] = {}
    try:
        for name, repo in repository.ALL_REPOSITORIES:
            items = getattr(data, name)
            for item in items:
                repo.upsert(session, item)
            counts[name] = len(items)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Seeded database: %s", ", ".join(f"{k}={v}" for k, v in counts.items()))
    return counts
