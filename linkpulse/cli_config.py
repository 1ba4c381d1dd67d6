"""Configuration loading helpers for CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Optional

from dotenv import dotenv_values

from .config import ENV_VARIABLES

ENV_FILE_VARIABLE = "LINKPULSE_ENV_FILE"
ENV_PREFIX = "LINKPULSE_"

ReadEnv = Callable[[Path], Dict[str, Optional[str]]]


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
    env_file: Optional[Path] = None,
    read_env: ReadEnv = dotenv_values,
) -> Optional[Path]:
    """Load .env configuration and return the file that was loaded.

    Search order:
    1. ``env_file`` (``--env-file`` or ``$LINKPULSE_ENV_FILE`` for the CLI)
    2. .env in current working directory
    3. ``config_env_file`` (``~/.config/linkpulse/.env`` for the CLI)

    If nothing is found and .env.example exists next to the package, it is
    copied to ``config_env_file`` as a starting point. ``LINKPULSE_*`` keys
    that linkpulse does not read are reported, since a misspelled key would
    otherwise be ignored silently.
    """
    if env_file is not None:
        if env_file.is_file():
            return _load(env_file, load_env, read_env)
        logging.warning("Env file %s not found, ignoring it", env_file)

    for candidate in (cwd / ".env", config_env_file):
        if candidate.is_file():
            return _load(candidate, load_env, read_env)

    example_file = Path(__file__).parent.parent / ".env.example"
    if not example_file.is_file():
        return None

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        copy_file(example_file, config_env_file)
    except OSError as exc:
        logging.debug("Could not create %s: %s", config_env_file, exc)
        return None

    logging.info(
        "Created config file at %s from .env.example. "
        "Edit it to change the default timeout, retries or user agent.",
        config_env_file,
    )
    return _load(config_env_file, load_env, read_env)


def _load(path: Path, load_env: Callable[[Path], bool], read_env: ReadEnv) -> Path:
    load_env(path)
    known = ENV_VARIABLES | {ENV_FILE_VARIABLE}
    for name in sorted(read_env(path)):
        if name.startswith(ENV_PREFIX) and name not in known:
            logging.warning("Unknown setting %s in %s", name, path)
    logging.debug("Loaded configuration from %s", path)
    return path
