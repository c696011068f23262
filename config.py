# config.py
import os
import copy
import json
import logging
from pathlib import Path

logger = logging.getLogger("pos_system.config")

# Default configuration
DEFAULT_CONFIG = {
    "catalog": {
        "path": "assets/catalog.json"
    },
    "store": {
        "id": None
    },
    "receipt": {
        "receipt_dir": "receipts",
        "formats": ["txt"]
    },
    "ui": {
        "theme": "default",
        "currency": "$"
    },
    "logging": {
        "level": "INFO",
        "file": "logs/pos.log",
        "max_size": 1048576,
        "backup_count": 3
    }
}


def merge_config(base: dict, override: dict) -> dict:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path="config.json"):
    """Load configuration from JSON file or create default if not exists"""
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                raise ValueError("top-level value must be an object")
            logger.info(f"Configuration loaded from {config_path}")
            return merge_config(DEFAULT_CONFIG, user_config)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading config {config_path}: {e}; using defaults")
            return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(DEFAULT_CONFIG, f, indent=4)
    logger.info(f"Created default configuration at {config_path}")
    return copy.deepcopy(DEFAULT_CONFIG)


def setup_directories(config):
    """Create required directories if they don't exist."""
    dir_mappings = {
        'receipt_dir': config.get('receipt', {}).get('receipt_dir', 'receipts'),
        'log_dir': os.path.dirname(config.get('logging', {}).get('file', 'logs/pos.log'))
    }

    for dir_key, dir_path in dir_mappings.items():
        if not dir_path:
            continue
        path = Path(dir_path)
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created directory: {path}")
        else:
            logger.debug(f"Directory already exists: {path}")
