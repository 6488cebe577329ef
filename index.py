"""
Main entry point for the application.
"""

import os
import subprocess
from typing import Any
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

DEV_TRUTHY_VALUES = {"1", "true", "yes", "on"}
DEV_FALSEY_VALUES = {"0", "false", "no", "off"}


def env_or_default(name: str, default: str) -> Any:
    """Get an environment variable, falling back to ``default`` when unset."""
    value = os.getenv(name)
    if value is None:
        return default
    return value


def parse_bool_env(name: str, default: str = "false") -> bool:
    """Parse an environment variable into a strict boolean."""
    normalized = env_or_default(name, default).strip().lower()
    if normalized in DEV_TRUTHY_VALUES:
        return True
    if normalized in DEV_FALSEY_VALUES:
        return False
    raise RuntimeError(
        f"Environment variable '{name}' must be one of: true/false, 1/0, yes/no, on/off"
    )


port = int(env_or_default("PORT", "3001"))
dev = parse_bool_env("DEV")
# Normalize DEV for child processes that read the environment directly.
os.environ["DEV"] = "true" if dev else "false"

try:
    logger.info(f"Starting MediaRelay on port {port} (dev={dev})")
    subprocess.run(
        [
            "uvicorn",
            "mediarelay.server:app",
            *(["--reload"] if dev else []),
            "--host",
            env_or_default("HOST", "0.0.0.0"),
            "--port",
            str(port),
        ],
        cwd=os.getcwd(),
        check=True,
    )
except KeyboardInterrupt:
    logger.info("Server stopped by user.")
except Exception as e:
    logger.exception(f"An error occurred while starting the server: {e}")
    raise
