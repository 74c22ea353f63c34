"""
Configuration Manager for conntree
Handles tree settings and the persisted connection tree
"""

import copy
import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Tuple

from .platform_utils import get_config_dir

logger = logging.getLogger(__name__)

# Increment this whenever the configuration format changes
CONFIG_VERSION = 1

_VALID_SORT_DIRECTIONS = ("asc", "desc")


class Config:
    """Configuration manager for conntree"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or os.path.join(get_config_dir(), 'config.json')
        self._listeners: List[Callable[[str, Any], None]] = []
        self.config_data = self.load_json_config()

    def connect_setting_changed(self, callback: Callable[[str, Any], None]):
        """Register ``callback(key, value)`` to run after every ``set_setting``."""
        self._listeners.append(callback)

    def load_json_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config = json.load(f)

                if not isinstance(config, dict):
                    raise ValueError("configuration root must be an object")

                # Purge outdated configurations
                stored_version = config.get('config_version', 0)
                if stored_version < CONFIG_VERSION:
                    backup_file = f"{self.config_file}.bak"
                    try:
                        os.replace(self.config_file, backup_file)
                        logger.warning(
                            "Outdated config version %s detected; backing up to %s and regenerating defaults",
                            stored_version,
                            backup_file,
                        )
                    except OSError:
                        os.remove(self.config_file)
                        logger.warning(
                            "Outdated config version %s detected; old config removed and new defaults generated",
                            stored_version,
                        )

                    config = self.get_default_config()
                    self.save_json_config(config)
                else:
                    config, updated = self._ensure_config_defaults(config)
                    if updated:
                        self.save_json_config(config)

                return config
            else:
                # Create default config
                default_config = self.get_default_config()
                self.save_json_config(default_config)
                return default_config
        except Exception as e:
            logger.error(f"Failed to load JSON config: {e}")
            return self.get_default_config()

    def save_json_config(self, config_data: Dict[str, Any] = None):
        """Save configuration to JSON file"""
        try:
            if config_data is None:
                config_data = self.config_data

            os.makedirs(os.path.dirname(self.config_file) or '.', exist_ok=True)
            tmp_file = f"{self.config_file}.tmp"
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(config_data, f, indent=2)
            os.replace(tmp_file, self.config_file)

            logger.debug("Configuration saved to JSON file")
        except Exception as e:
            logger.error(f"Failed to save JSON config: {e}")

    def get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values"""
        return {
            'config_version': CONFIG_VERSION,
            'tree': {
                'max_nesting_depth': 5,
                'sort_by': 'custom',
                'sort_direction': 'asc',
                'enable_reorder': True,
                'debug_enabled': False,
            },
            'ui': {
                'autoscroll_margin': 48.0,
                'autoscroll_max_velocity': 28.0,
                'autoscroll_interval_ms': 16,
            },
            'connection_tree': [],
        }

    def _ensure_config_defaults(self, config: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """Ensure newly added keys exist in the provided config dict."""
        updated = False
        defaults = self.get_default_config()

        for section in ('tree', 'ui'):
            current = config.get(section)
            if not isinstance(current, dict):
                config[section] = copy.deepcopy(defaults[section])
                updated = True
                continue
            for key, value in defaults[section].items():
                if key not in current:
                    current[key] = value
                    updated = True

        tree_cfg = config['tree']
        depth = tree_cfg.get('max_nesting_depth')
        if not isinstance(depth, int) or isinstance(depth, bool) or depth < 1:
            logger.warning(f"Invalid tree.max_nesting_depth {depth!r}; using default")
            tree_cfg['max_nesting_depth'] = defaults['tree']['max_nesting_depth']
            updated = True

        if tree_cfg.get('sort_direction') not in _VALID_SORT_DIRECTIONS:
            tree_cfg['sort_direction'] = defaults['tree']['sort_direction']
            updated = True

        if not isinstance(tree_cfg.get('enable_reorder'), bool):
            tree_cfg['enable_reorder'] = bool(tree_cfg.get('enable_reorder'))
            updated = True

        if not isinstance(config.get('connection_tree'), list):
            config['connection_tree'] = []
            updated = True

        return config, updated

    def get_setting(self, key: str, default=None):
        """Get a setting value"""
        try:
            # Navigate nested dictionary
            keys = key.split('.')
            value = self.config_data
            for k in keys:
                if isinstance(value, dict) and k in value:
                    value = value[k]
                else:
                    return default
            return value
        except Exception as e:
            logger.error(f"Failed to get setting {key}: {e}")
            return default

    def set_setting(self, key: str, value: Any):
        """Set a setting value"""
        keys = key.split('.')
        current = self.config_data
        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value
        self.save_json_config()

        for callback in list(self._listeners):
            try:
                callback(key, value)
            except Exception as e:
                logger.error(f"Setting listener failed for {key}: {e}")

    def get_tree_config(self) -> Dict[str, Any]:
        """Return the tree section merged over its defaults."""
        merged = dict(self.get_default_config()['tree'])
        merged.update(self.get_setting('tree', {}) or {})
        return merged
