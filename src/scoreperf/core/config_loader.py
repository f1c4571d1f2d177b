import os
import yaml

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")
DEFAULT_CONFIG_PATH = os.path.join(TEMPLATES_DIR, "config.yaml")
DEFAULT_STYLE_PATH = os.path.join(TEMPLATES_DIR, "figure_style.yaml")

def load_config(config_path: str = None) -> dict:
    """
    Load configuration from provided path or default template.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}
