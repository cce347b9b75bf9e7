"""YAML-backed record store with atomic writes to data/records.yaml."""

import logging
import shutil
import tempfile
from pathlib import Path

import yaml

from oracle.storage.memory import InMemoryRecordStore, Records

logger = logging.getLogger(__name__)


def load_records(path: Path) -> Records:
    """Load the record set from a YAML file, or an empty one if it doesn't exist."""
    if not path.exists():
        logger.info(f"Records file not found: {path}. Starting with empty records.")
        return Records()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)

        if not raw_data:
            logger.warning(f"Empty records file: {path}. Starting with empty records.")
            return Records()

        records = Records(**raw_data)
        logger.debug(
            f"Loaded {len(records.agents)} agents, {len(records.topics)} topics, "
            f"{len(records.forecasts)} forecasts from {path}"
        )
        return records

    except yaml.YAMLError as e:
        logger.error(f"Corrupted YAML in records file: {e}")
        raise
    except Exception as e:
        logger.error(f"Failed to load records: {e}")
        raise


def save_records(records: Records, path: Path) -> None:
    """Atomically save the record set.

    Writes to a temporary file in the same directory and renames it over the
    target, so a crash mid-write leaves the previous file intact.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    records_dict = records.model_dump(mode="json")

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            delete=False,
            suffix=".yaml",
            encoding="utf-8",
        ) as temp_file:
            yaml.dump(
                records_dict,
                temp_file,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )
            temp_path = Path(temp_file.name)

        shutil.move(str(temp_path), str(path))
        logger.debug(f"Saved records to {path}")

    except Exception as e:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        logger.error(f"Failed to save records: {e}")
        raise


class YamlRecordStore(InMemoryRecordStore):
    """RecordStore persisted to a single YAML file after every write."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(load_records(path))

    def _changed(self) -> None:
        save_records(self.records, self.path)
