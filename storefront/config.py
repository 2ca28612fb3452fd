from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Dict, Optional

# ----------------------------
# Constants
# ----------------------------
PRODUCTION_DOMAIN = "stealthdma.com"
PRODUCTION_HOSTS = ("stealthdma.com", "www.stealthdma.com")
PRODUCTION_SITE_BASE = "https://stealthdma.com"
DEVELOPMENT_SITE_BASE = "http://localhost:3000"
PRODUCTION_STATS_BASE = "https://determined-learning-production.up.railway.app"

CORS_ORIGINS = [
    "https://stealthdma.com",
    "https://www.stealthdma.com",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

DEFAULT_PORT = 3000
DEFAULT_MOCK_SECRET = "supersecret"


# ----- simple .env reader (KEY=VALUE, ignore blanks and # comment lines)
def read_env_file(path: str) -> Dict[str, str]:
    env = {}
    with open(path, "r") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            k, v = line.split("=", 1)
            env[k.strip()] = v.strip().strip('"').strip("'")
    return env


def load_env_file(path: str = ".env") -> int:
    """Copy values from a .env file into os.environ without overriding.

    Returns the number of variables that were set. A missing file is not an
    error.
    """
    if not os.path.isfile(path):
        return 0
    n = 0
    for k, v in read_env_file(path).items():
        if k not in os.environ:
            os.environ[k] = v
            n += 1
    return n


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    mock_secret: str = DEFAULT_MOCK_SECRET
    port: int = DEFAULT_PORT
    site_dir: Optional[str] = None
    log_level: str = "INFO"

    @property
    def uses_stripe(self) -> bool:
        return bool(self.stripe_secret_key)

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            stripe_secret_key=env.get("STRIPE_SECRET_KEY", ""),
            stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET", ""),
            mock_secret=env.get("MOCK_SECRET", DEFAULT_MOCK_SECRET),
            port=int(env.get("PORT", DEFAULT_PORT)),
            site_dir=env.get("SITE_DIR") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
        )
