import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Pick up SKI_BALANCE_CONFIG (and DB settings) from a local .env file
load_dotenv()

DEFAULT_CONFIG_FILE_PATH = Path(__file__).resolve().parents[1] / 'configs' / 'game_balance.json'
CONFIG_FILE_PATH = os.getenv('SKI_BALANCE_CONFIG', str(DEFAULT_CONFIG_FILE_PATH))

def load_config(path=None):
    """
    Loads the main game balance config file.
    """
    path = path or CONFIG_FILE_PATH
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        return config
    except FileNotFoundError:
        print(f"FATAL ERROR: Could not find config file at {path}")
        return None
    except Exception as e:
        print(f"FATAL ERROR: Could not parse config file {path}: {e}")
        return None

# Load the config ONCE when the module is first imported
BALANCE_CONFIG = load_config()

# Marks a missing key so a stored None is still a value
_MISSING = object()

def find_config_value(data, key_path, default=None):
    """
    Walks a 'dot.path' through nested dicts. Returns default when any step
    is missing or is not a dict. Never prints.
    """
    value = data
    for key in key_path.split('.'):
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value

# We can also add a simple helper here to get nested keys safely
def get_config(key_path, default=None):
    """
    Safely gets a value from the loaded config using a 'dot.path'.
    Example: get_config('outcome.base_fatigue')
    """
    if not BALANCE_CONFIG:
        return default

    value = find_config_value(BALANCE_CONFIG, key_path, _MISSING)
    if value is _MISSING:
        print(f"Warning: Could not find config key: {key_path}")
        return default
    return value

def config_section(name):
    """
    Returns a top-level config section as a dict, or {} when the section is
    missing or the config failed to load. Used by tables that resolve their
    own defaults key by key.
    """
    if not isinstance(BALANCE_CONFIG, dict):
        return {}
    section = BALANCE_CONFIG.get(name)
    return section if isinstance(section, dict) else {}
