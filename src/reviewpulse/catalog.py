"""Load the catalog of supported apps from ``apps.yml``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from reviewpulse.models import AppOption

logger = logging.getLogger(__name__)


def load_apps(apps_path: Path) -> dict[str, AppOption]:
    """Parse ``apps.yml`` and return app-id → :class:`AppOption`.

    Expected layout::

        apps:
          swiggy:
            name: Swiggy
            package: in.swiggy.android
    """
    if not apps_path.exists():
        logger.warning("App catalog not found, no apps loaded: %s", apps_path)
        return {}

    with open(apps_path) as fh:
        cfg: dict[str, Any] = yaml.safe_load(fh) or {}

    apps: dict[str, AppOption] = {}
    for app_id, entry in (cfg.get("apps") or {}).items():
        entry = entry or {}
        apps[app_id] = AppOption(
            id=app_id,
            name=entry.get("name") or app_id.capitalize(),
            package=entry.get("package", ""),
        )
    logger.debug("Loaded %d apps from %s", len(apps), apps_path)
    return apps
