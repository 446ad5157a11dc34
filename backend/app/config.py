from __future__ import annotations
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Real environment wins over the repo .env.
load_dotenv(dotenv_path=BASE_DIR / ".env", override=False)


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    data_dir: Path = BASE_DIR / "data"
    public_dir: Path = BASE_DIR / "public"
    admin_password: str = "admin"
    log_level: str = "INFO"
    page_delay: float = 0.4
    batch_delay: float = 0.2
    timeout: float = 30.0

    @property
    def projects_file(self) -> Path:
        return self.data_dir / "projects.json"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        if env_file is not None:
            load_dotenv(dotenv_path=env_file, override=False)
        env = os.environ
        return cls(
            host=env.get("HOST", cls.host),
            port=int(env.get("PORT", cls.port)),
            data_dir=Path(env.get("DATA_DIR", str(cls.data_dir))),
            public_dir=Path(env.get("PUBLIC_DIR", str(cls.public_dir))),
            admin_password=env.get("ADMIN_PASSWORD", cls.admin_password),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
            page_delay=float(env.get("SUNO_PAGE_DELAY", cls.page_delay)),
            batch_delay=float(env.get("SUNO_BATCH_DELAY", cls.batch_delay)),
            timeout=float(env.get("SUNO_TIMEOUT", cls.timeout)),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
