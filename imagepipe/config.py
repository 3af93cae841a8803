from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default) == "1"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read once from the environment by the app factory."""

    upload_dir: Path = Path("uploads")
    max_file_size: int = 10 * 1024 * 1024
    max_batch_size: int = 10
    max_upload_files: int = 5
    public_base_url: str | None = None
    allowed_mime_types: tuple[str, ...] = (
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/gif",
    )
    supabase_disabled: bool = True
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    use_local_db: bool = False
    postgres: dict[str, str] = field(default_factory=dict)
    cors_origins: tuple[str, ...] = ()
    log_level: str = "INFO"
    env: str = "development"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            upload_dir=Path(os.getenv("UPLOAD_DIR", "uploads")),
            max_file_size=int(os.getenv("MAX_FILE_SIZE", str(10 * 1024 * 1024))),
            max_batch_size=int(os.getenv("MAX_BATCH_SIZE", "10")),
            max_upload_files=int(os.getenv("MAX_UPLOAD_FILES", "5")),
            public_base_url=os.getenv("PUBLIC_BASE_URL") or None,
            supabase_disabled=_env_flag("SUPABASE_DISABLED", "1"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
            use_local_db=_env_flag("USE_LOCAL_DB"),
            postgres={
                "host": os.getenv("POSTGRES_HOST", "localhost"),
                "port": os.getenv("POSTGRES_PORT", "5432"),
                "database": os.getenv("POSTGRES_DB", "imagepipe"),
                "user": os.getenv("POSTGRES_USER", "imagepipe"),
                "password": os.getenv("POSTGRES_PASSWORD", "imagepipe_dev_password"),
            },
            cors_origins=tuple(
                o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            env=os.getenv("ENV", "development"),
        )
