import yaml
import os
import platform

def load_config():
    # Assuming this file is at 'repo/<mcp-server>/utils/config.py', we go up one level.
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

    # Platform-specific config mapping
    config_map = {
        'Darwin': 'config.mac.yaml',
        'Windows': 'config.windows.yaml'
    }

    system = platform.system()
    platform_config = config_map.get(system)

    # Use platform-specific config if it exists, otherwise fall back to config.yaml
    candidate_files = [platform_config, 'config.yaml'] if platform_config else ['config.yaml']

    for filename in candidate_files:
        config_path = os.path.join(repo_root, filename)
        if os.path.exists(config_path):
            with open(config_path, 'r') as file:
                try:
                    return yaml.safe_load(file)
                except yaml.YAMLError as e:
                    raise ValueError(f"Error parsing '{filename}': {e}")

    raise FileNotFoundError("No valid configuration file found (checked platform-specific and default).")

def load_correlation_config(config=None):
    """
    Returns the 'correlation' section of the configuration with defaults applied.

    Args:
        config: An already loaded configuration dict. When omitted, config.yaml is loaded.
    """
    if config is None:
        config = load_config()
    section = (config or {}).get("correlation") or {}
    return {
        "pattern_cache_size": int(section.get("pattern_cache_size", 1000)),
        "html_parser": section.get("html_parser", "html.parser"),
        "boundary_length": int(section.get("boundary_length", 4)),
        "exclude_domains": list(section.get("exclude_domains") or []),
    }

if __name__ == '__main__':
    # For testing purposes, print both configurations.
    config = load_config()
    print("Loaded general configuration:")
    print(config)
    print("Correlation settings:")
    print(load_correlation_config(config))
