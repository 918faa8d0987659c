import csv
import os
from typing import Dict, List

from analyzer_errors import ConfigError

DEFAULT_CONFIG_FILE = "config.csv"

MIN_DEPTH = 1
MAX_DEPTH = 100

_TRUE_VALUES = ("1", "t", "true")
_FALSE_VALUES = ("0", "f", "false")


class AnalyzerConfig:
    """
    Settings for one analysis run, read from a two-column CSV file:

        package_name,ffmpeg
        repository_url,https://archive.ubuntu.com/ubuntu/dists/noble/main/binary-amd64/Packages.gz
        test_mode,false
        version,
        max_depth,5

    An empty version means "no preference" (first record in the index).
    """
    __slots__ = ("package_name", "repository_url", "test_mode", "version", "max_depth")

    def __init__(
        self,
        package_name: str,
        repository_url: str,
        test_mode: bool = False,
        version: str = "",
        max_depth: int = 5,
    ):
        self.package_name = package_name
        self.repository_url = repository_url
        self.test_mode = test_mode
        self.version = version or ""
        self.max_depth = max_depth


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(value)


def read_config_rows(path: str) -> Dict[str, str]:
    """Read `key,value` rows into a dict. Later rows override earlier ones."""
    if not os.path.isfile(path):
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            records = list(csv.reader(f, skipinitialspace=True))
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise ConfigError(f"Error reading configuration file {path}: {e}") from e

    if not any(records):
        raise ConfigError(f"Configuration file is empty: {path}")

    rows: Dict[str, str] = {}
    for i, record in enumerate(records, start=1):
        if not record:
            # blank line
            continue
        if len(record) < 2:
            raise ConfigError(f"Invalid format on line {i}: not enough columns")
        key = record[0].strip()
        value = record[1].strip()
        if not key:
            raise ConfigError(f"Empty key on line {i}")
        rows[key] = value
    return rows


def validate_config(rows: Dict[str, str]) -> AnalyzerConfig:
    """
    Check every required key and collect ALL problems before failing, so a
    user fixes the file in one pass instead of one error per run.
    """
    errors: List[str] = []

    package_name = rows.get("package_name")
    if package_name is None:
        errors.append("required parameter package_name is missing")
    elif not package_name:
        errors.append("package_name must not be empty")

    repository_url = rows.get("repository_url")
    if repository_url is None:
        errors.append("required parameter repository_url is missing")
    elif not repository_url:
        errors.append("repository_url must not be empty")

    test_mode = False
    test_mode_str = rows.get("test_mode")
    if test_mode_str is None:
        errors.append("required parameter test_mode is missing")
    else:
        try:
            test_mode = _parse_bool(test_mode_str)
        except ValueError:
            errors.append(f"invalid test_mode value: {test_mode_str} (expected true/false)")

    version = rows.get("version")
    if version is None:
        errors.append("required parameter version is missing")

    max_depth = 0
    max_depth_str = rows.get("max_depth")
    if max_depth_str is None:
        errors.append("required parameter max_depth is missing")
    else:
        try:
            max_depth = int(max_depth_str)
        except ValueError:
            errors.append(f"invalid max_depth value: {max_depth_str} (expected an integer)")
        else:
            if max_depth < MIN_DEPTH:
                errors.append(f"max_depth must be greater than 0, got: {max_depth}")
            elif max_depth > MAX_DEPTH:
                errors.append(f"max_depth is too large (maximum {MAX_DEPTH}), got: {max_depth}")

    if errors:
        raise ConfigError("Configuration validation errors:\n  - " + "\n  - ".join(errors))

    return AnalyzerConfig(
        package_name=package_name,
        repository_url=repository_url,
        test_mode=test_mode,
        version=version,
        max_depth=max_depth,
    )


def load_config(path: str = DEFAULT_CONFIG_FILE) -> AnalyzerConfig:
    return validate_config(read_config_rows(path))
