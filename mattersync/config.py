"""Runtime configuration.

Settings that belong to the machine (where the vault lives, timeouts, log
level) come from environment variables, optionally kept in a ``.env`` file.
Settings that belong to the sync itself live in the state file, see
``mattersync.state``.
"""

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def _default_config_dir() -> Path:
    override = os.environ.get("MATTERSYNC_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME", "").strip() or Path.home() / ".config"
    return Path(base) / "mattersync"


def _find_env_file(config_dir: Path) -> Path:
    # A .env in the working directory wins only if the config dir has none
    candidate = config_dir / ".env"
    local = Path.cwd() / ".env"
    if not candidate.exists() and local.exists():
        return local
    return candidate


CONFIG_DIR = _default_config_dir()
CONFIG_DIR.mkdir(parents=True, exist_ok=True)

ENV_PATH = _find_env_file(CONFIG_DIR)
load_dotenv(ENV_PATH)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"Error: {name} must be a whole number, got {raw!r}")
        sys.exit(1)


def save_to_env(key: str, value: str) -> None:
    """Set one key in the .env file, keeping every other line as it was."""
    lines = ENV_PATH.read_text().splitlines() if ENV_PATH.exists() else []
    entry = f"{key}={value}"

    prefix = f"{key}="
    if any(line.startswith(prefix) for line in lines):
        lines = [entry if line.startswith(prefix) else line for line in lines]
    else:
        lines.append(entry)

    ENV_PATH.write_text("\n".join(lines) + "\n")
    # May hold a vault path on a shared machine
    ENV_PATH.chmod(0o600)
    os.environ[key] = value


# Required for syncing, checked lazily via ensure_loaded()
OBSIDIAN_VAULT_PATH: str = os.environ.get("OBSIDIAN_VAULT_PATH", "").strip()

# Persisted sync state. Point this inside a shared vault to sync across devices.
STATE_PATH: Path = Path(
    os.environ.get("MATTER_STATE_PATH", "").strip() or CONFIG_DIR / "data.json"
).expanduser()

HTTP_TIMEOUT: int = _env_int("HTTP_TIMEOUT", 30)
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").strip().upper()


_loaded = False


def ensure_loaded() -> None:
    """Check that a vault is configured. Exits with a hint if not."""
    global _loaded, OBSIDIAN_VAULT_PATH
    if _loaded:
        return
    OBSIDIAN_VAULT_PATH = os.environ.get("OBSIDIAN_VAULT_PATH", "").strip()
    if not OBSIDIAN_VAULT_PATH:
        if ENV_PATH.exists():
            print(f"Error: OBSIDIAN_VAULT_PATH is not set. Fill it in {ENV_PATH}")
        else:
            print("Error: No vault configured. Run 'mattersync --vault PATH' first.")
        sys.exit(1)
    _loaded = True


def setup_logging() -> None:
    """Configure the root logger. Call once at each entry point."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Connection pool chatter drowns out the sync log at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
