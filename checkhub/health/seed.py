"""Seed file loader — populates an empty registry from checks.yaml.

Format::

    checks:
      - name: Google DNS Ping
        owner: DevOps Team
        command: ping -c 4 google.com
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .errors import ValidationError
from .registry import HealthCheckRegistry

logger = logging.getLogger(__name__)


def load_seed_entries(path: Path) -> list[dict[str, Any]]:
    """Parse the seed file and return raw check entries."""
    if not path.exists():
        logger.warning("Seed file not found: %s", path)
        return []

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to parse %s: %s", path, e)
        return []

    if not isinstance(raw, dict):
        logger.error("Seed file %s must be a mapping with a 'checks' list", path)
        return []
    return [e for e in raw.get("checks") or [] if isinstance(e, dict)]


def seed_registry(registry: HealthCheckRegistry, path: Path) -> int:
    """Create the seed checks if the registry is empty. Returns how many were created."""
    if registry.count():
        logger.debug("Registry not empty, skipping seed file %s", path)
        return 0

    created = 0
    for entry in load_seed_entries(path):
        try:
            registry.create(
                str(entry.get("name") or ""),
                str(entry.get("owner") or ""),
                str(entry.get("command") or ""),
            )
            created += 1
        except ValidationError as e:
            logger.warning("Skipping malformed seed entry: %s", e)

    logger.info("Seeded %d health checks from %s", created, path)
    return created
