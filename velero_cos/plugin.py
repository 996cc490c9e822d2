"""Entry points that build the plugins with process-configured logging."""

from __future__ import annotations

import logging
from typing import Optional

from velero_cos.config import Config, load_config
from velero_cos.core.logging import setup_logger
from velero_cos.restore.item_action import RestoreItemAction
from velero_cos.storage.object_store import ObjectStore

LOGGER_ROOT = "velero_cos"


def plugin_logger(component: str, config: Optional[Config] = None) -> logging.Logger:
    """
    Logger for one plugin component, formatted per LOG_FORMAT/LOG_LEVEL.

    Args:
        component: Suffix under the package logger (e.g. "object_store")
        config: Process config; read from the environment when omitted
    """
    return setup_logger(f"{LOGGER_ROOT}.{component}", config or load_config())


def new_object_store(config: Optional[Config] = None) -> ObjectStore:
    return ObjectStore(logger=plugin_logger("object_store", config))


def new_restore_item_action(config: Optional[Config] = None) -> RestoreItemAction:
    return RestoreItemAction(logger=plugin_logger("restore", config))
