"""Configuration management for Saldo.

Reads configuration from ~/.config/saldo.toml and creates default config if needed.
"""

import os
from pathlib import Path
from dataclasses import dataclass
import tomllib
import tomli_w


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    log_level: str
    log_dir: Path
    archive_enabled: bool
    archive_dir: Path
    llm_enabled: bool = False
    llm_provider: str = "openai"
    llm_openai_api_key: str = ""
    llm_openai_model: str = "gpt-4o-mini"
    duplicate_window_days: int = 90
    confidence_threshold: float = 0.7
    similarity_threshold: float = 0.7
    history_limit: int = 500
    ai_examples_limit: int = 100
    ai_batch_limit: int = 50
    ai_concurrency: int = 5
    undo_delay_seconds: float = 5.0

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "saldo"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="saldo.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
            archive_enabled=True,
            archive_dir=base_dir / "archives",
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "saldo.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def get_seed_dir() -> Path:
    """Get the path to the seed data directory."""
    return Path(__file__).parent / "db" / "seed"


def load_config() -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Returns:
        Config object with loaded or default values.
    """
    config_path = get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    return parse_config(data)


def parse_config(data: dict) -> Config:
    """Build a Config from parsed TOML data, filling defaults for missing keys.

    Args:
        data: Dictionary as returned by tomllib.

    Returns:
        Config object.
    """
    defaults = Config.default()
    base_dir = Path(data.get("base_dir", defaults.base_dir))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", defaults.db_filename)

    log_config = data.get("logging", {})
    log_level = log_config.get("level", defaults.log_level)
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    archive_config = data.get("archive", {})
    archive_enabled = archive_config.get("enabled", True)
    archive_dir = Path(archive_config.get("archive_dir", base_dir / "archives"))

    llm_config = data.get("llm", {})
    openai_config = llm_config.get("openai", {})
    api_key = openai_config.get("api_key", "") or os.environ.get("OPENAI_API_KEY", "")

    import_config = data.get("import", {})
    cat_config = data.get("categorization", {})
    review_config = data.get("review", {})

    return Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        log_level=log_level,
        log_dir=log_dir,
        archive_enabled=archive_enabled,
        archive_dir=archive_dir,
        llm_enabled=llm_config.get("enabled", defaults.llm_enabled),
        llm_provider=llm_config.get("provider", defaults.llm_provider),
        llm_openai_api_key=api_key,
        llm_openai_model=openai_config.get("model", defaults.llm_openai_model),
        duplicate_window_days=import_config.get(
            "duplicate_window_days", defaults.duplicate_window_days
        ),
        confidence_threshold=cat_config.get(
            "confidence_threshold", defaults.confidence_threshold
        ),
        similarity_threshold=cat_config.get(
            "similarity_threshold", defaults.similarity_threshold
        ),
        history_limit=cat_config.get("history_limit", defaults.history_limit),
        ai_examples_limit=min(
            cat_config.get("ai_examples_limit", defaults.ai_examples_limit), 100
        ),
        ai_batch_limit=cat_config.get("ai_batch_limit", defaults.ai_batch_limit),
        ai_concurrency=cat_config.get("ai_concurrency", defaults.ai_concurrency),
        undo_delay_seconds=review_config.get(
            "undo_delay_seconds", defaults.undo_delay_seconds
        ),
    )


def _write_config(config: Config) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
    """
    config_path = get_config_path()

    # Ensure config directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # The API key is left out on purpose so it can come from OPENAI_API_KEY
    data = {
        "base_dir": str(config.base_dir),
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
        "archive": {
            "enabled": config.archive_enabled,
            "archive_dir": str(config.archive_dir),
        },
        "llm": {
            "enabled": config.llm_enabled,
            "provider": config.llm_provider,
            "openai": {"model": config.llm_openai_model},
        },
        "import": {
            "duplicate_window_days": config.duplicate_window_days,
        },
        "categorization": {
            "confidence_threshold": config.confidence_threshold,
            "similarity_threshold": config.similarity_threshold,
            "history_limit": config.history_limit,
            "ai_examples_limit": config.ai_examples_limit,
            "ai_batch_limit": config.ai_batch_limit,
            "ai_concurrency": config.ai_concurrency,
        },
        "review": {
            "undo_delay_seconds": config.undo_delay_seconds,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
