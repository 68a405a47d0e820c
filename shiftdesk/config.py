"""
Engine settings. Every tunable of the shift engine lives here; a YAML or JSON
settings file may override any key.
"""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .adapters.config_loader import load_config
from .domain.service_types import AUTO_PUBLISH_SERVICE_TYPES, DEFAULT_SERVICE_TYPES

logger = logging.getLogger(__name__)

CONFIG: Dict[str, Any] = {
    # Seed vocabulary; new types typed by schedulers are appended at runtime
    "service_types": list(DEFAULT_SERVICE_TYPES),

    # Saved without an explicit scope, these are published straight away
    "auto_publish_service_types": sorted(AUTO_PUBLISH_SERVICE_TYPES),

    # Only active staff with these roles can be put on a shift
    "assignable_roles": ["cleaner", "supervisor"],

    # Used when a shift is saved without times
    "default_start_time": "10:00",
    "default_end_time": "14:00",

    # Comment recorded when an approval is given without one
    "approval_comment": "Quality Verified.",

    # Unparseable dates raise instead of silently becoming "today"
    "strict_dates": True,
}


def load_settings(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Return CONFIG overlaid with the settings file at *path*, if any.

    Unknown keys are dropped with a warning.
    """

    settings = copy.deepcopy(CONFIG)
    if path:
        overrides = load_config(path)
        unknown = sorted(set(overrides) - set(CONFIG))
        if unknown:
            logger.warning("Ignoring unknown settings in %s: %s", path, ", ".join(unknown))
        settings.update({key: value for key, value in overrides.items() if key in CONFIG})
    return settings
