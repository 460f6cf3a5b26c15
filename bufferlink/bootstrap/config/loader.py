import os
from pathlib import Path

CONFIG_ENV = "BUFFERLINKCONFIG"
DEFAULT_CONFIG_NAME = "bufferlink.yaml"


def get_configfile() -> Path | None:
    """
    Locate the optional YAML configuration file.

    Priority: BUFFERLINKCONFIG environment variable > ./bufferlink.yaml.
    An explicitly named file that does not exist is an error; a missing
    default file just means "environment and defaults only".
    """
    raw = os.getenv(CONFIG_ENV)

    if raw is None:
        file = Path.cwd() / DEFAULT_CONFIG_NAME
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            f"  - Fix or unset the {CONFIG_ENV} environment variable\n"
            f"  - Or place a '{DEFAULT_CONFIG_NAME}' file in the current working directory."
        )

    return file
