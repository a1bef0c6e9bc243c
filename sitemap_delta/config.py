import json
import logging
import os
from typing import Any, Dict, List, Optional

from sitemap_delta.errors import InvalidInput
from sitemap_delta.url_utils import normalize_site_root

logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "targets": [],
    "user_agent": "Mozilla/5.0 (compatible; SitemapMonitor/1.0;)",
    "timeout": 10,
    "max_retries": 3,
    "retry_delay": 1.0,
    "max_index_depth": 3,
    "max_sitemap_workers": 4,
    "max_concurrent_domains": 4,
    "data_directory": "output",
    "log_file": "sitemap_delta.log",
}

POSITIVE_INT_KEYS = ["max_retries", "max_sitemap_workers", "max_concurrent_domains"]
NON_NEGATIVE_NUMBER_KEYS = ["timeout", "retry_delay", "max_index_depth"]


def load_config(path: str = CONFIG_FILE_PATH, required: bool = False) -> Optional[Dict[str, Any]]:
    """
    Loads the configuration from a JSON file, merged over DEFAULT_CONFIG.

    A missing file yields the defaults unless `required` is set. Returns None
    when the file exists but cannot be decoded or fails validation.
    """
    if not os.path.exists(path):
        if required:
            logger.error(f"Configuration file not found: {path}")
            return None
        logger.warning(f"Configuration file not found: {path}. Using defaults.")
        return dict(DEFAULT_CONFIG)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from {path}: {e}")
        return None
    except OSError as e:
        logger.error(f"Could not read configuration file {path}: {e}")
        return None

    logger.info(f"Successfully loaded configuration from {path}")
    if not validate_config(config_data):
        return None
    return {**DEFAULT_CONFIG, **config_data}


def validate_config(config: Dict[str, Any]) -> bool:
    """Validates the structure and content of the configuration."""
    if not isinstance(config, dict):
        logger.error("Configuration must be a dictionary.")
        return False

    targets = config.get("targets", [])
    if not isinstance(targets, list):
        logger.error("'targets' must be a list.")
        return False

    for i, target_entry in enumerate(targets):
        if isinstance(target_entry, dict):
            site_root = target_entry.get("site_root")
        else:
            site_root = target_entry
        if not isinstance(site_root, str) or not site_root.strip():
            logger.error(f"Target entry at index {i} must be a site root string or an object with 'site_root'.")
            return False
        try:
            normalize_site_root(site_root)
        except InvalidInput as e:
            logger.error(f"Target entry at index {i}: {e}")
            return False

    for key in POSITIVE_INT_KEYS:
        if key in config and (not isinstance(config[key], int) or isinstance(config[key], bool) or config[key] < 1):
            logger.error(f"'{key}' must be a positive integer.")
            return False

    for key in NON_NEGATIVE_NUMBER_KEYS:
        value = config.get(key)
        if key in config and (not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0):
            logger.error(f"'{key}' must be a non-negative number.")
            return False

    if "user_agent" in config and (not isinstance(config["user_agent"], str) or not config["user_agent"].strip()):
        logger.warning("'user_agent' is not a non-empty string. The default one will be used.")

    logger.debug("Configuration validation successful.")
    return True


def get_target_site_roots(config: Dict[str, Any]) -> List[str]:
    """Normalized site roots of every enabled target, in config order."""
    site_roots = []
    for target in config.get("targets", []):
        if isinstance(target, dict):
            if target.get("enabled") is False:
                logger.info(f"Target {target.get('site_root')}: disabled in config, skipping")
                continue
            site_root = target.get("site_root")
        else:
            site_root = target
        root = normalize_site_root(site_root)
        if root not in site_roots:
            site_roots.append(root)
    return site_roots
