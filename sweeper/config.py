"""Server configuration read from the environment."""
import os
from dataclasses import dataclass


@dataclass
class ServerConfig:
    """Settings for the relay server process."""
    host: str = '0.0.0.0'
    port: int = 3000
    production: bool = False
    static_dir: str = 'dist'
    heartbeat_seconds: float = 15
    mailbox_size: int = 256

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", 3000)),
            production=os.getenv("SWEEPER_ENV", "development") == "production",
            static_dir=os.path.abspath(os.getenv("STATIC_DIR", "dist")),
            heartbeat_seconds=float(os.getenv("HEARTBEAT_SECONDS", 15)),
            mailbox_size=int(os.getenv("MAILBOX_SIZE", 256)),
        )
