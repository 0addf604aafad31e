"""Loader: YAML configuration and JSON snapshot serialization.

The refresh job writes three files into the output directory:

- ``data.json``: the normalized record array
- ``meta.json``: the snapshot metadata document
- ``raw.csv``: the downloaded export, unmodified

The dashboard reads the first two back.  A snapshot that cannot be read
in full raises ``SnapshotLoadError``; the engine is never handed partial
data.
"""

import json
import logging
from pathlib import Path

import yaml

from perfdash.errors import ConfigError, ContractViolationError, SnapshotLoadError

from .models import DashboardConfig, Metadata, Record


logger = logging.getLogger(__name__)

DATA_FILENAME = "data.json"
META_FILENAME = "meta.json"
RAW_FILENAME = "raw.csv"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def save_config(config: DashboardConfig, path: str | Path) -> None:
    """Serialize a DashboardConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(path: str | Path) -> DashboardConfig:
    """Deserialize a DashboardConfig from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    try:
        return DashboardConfig.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config in {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def save_snapshot(records, metadata: Metadata, output_dir: str | Path,
                  raw_csv: str | None = None) -> dict[str, Path]:
    """Write data.json, meta.json and (optionally) raw.csv.

    Returns:
        Dict mapping ``"data"``, ``"meta"`` and ``"raw"`` to written paths.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = {}

    data_path = output_dir / DATA_FILENAME
    with open(data_path, "w") as f:
        json.dump([r.to_dict() for r in records], f, indent=2)
    written["data"] = data_path

    meta_path = output_dir / META_FILENAME
    with open(meta_path, "w") as f:
        json.dump(metadata.to_dict(), f, indent=2)
    written["meta"] = meta_path

    if raw_csv is not None:
        raw_path = output_dir / RAW_FILENAME
        raw_path.write_text(raw_csv)
        written["raw"] = raw_path

    logger.info("Wrote snapshot of %d records to %s", metadata.row_count, output_dir)
    return written


def _read_json(path: Path):
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError as exc:
        raise SnapshotLoadError(f"Snapshot file not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise SnapshotLoadError(f"Could not read snapshot {path}: {exc}") from exc


def load_records(path: str | Path) -> list[Record]:
    """Load the record array from a data.json file."""
    path = Path(path)
    data = _read_json(path)
    if not isinstance(data, list):
        raise SnapshotLoadError(f"Expected a JSON array of records in {path}")
    try:
        return [Record.from_dict(d) for d in data]
    except (ContractViolationError, TypeError, ValueError) as exc:
        raise SnapshotLoadError(f"Corrupt record in {path}: {exc}") from exc


def load_metadata(path: str | Path) -> Metadata | None:
    """Load meta.json; a missing metadata file is not an error."""
    path = Path(path)
    if not path.exists():
        return None
    data = _read_json(path)
    if not isinstance(data, dict):
        raise SnapshotLoadError(f"Expected a JSON object in {path}")
    try:
        return Metadata.from_dict(data)
    except (TypeError, ValueError, AttributeError) as exc:
        raise SnapshotLoadError(f"Corrupt metadata in {path}: {exc}") from exc


def load_snapshot(data_dir: str | Path) -> tuple[list[Record], Metadata | None]:
    """Load records and metadata from a snapshot directory."""
    data_dir = Path(data_dir)
    records = load_records(data_dir / DATA_FILENAME)
    metadata = load_metadata(data_dir / META_FILENAME)
    logger.debug("Loaded %d records from %s", len(records), data_dir)
    return records, metadata
