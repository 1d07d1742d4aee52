"""
Centralized settings for the cafe POS.

Values come from CAFE_POS_* environment variables (optionally via a .env file).
Nothing is read at import time; call Settings.load() explicitly.
"""
import os
from decimal import Decimal
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DATA_MODES = ('demo', 'csv')


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _get_env(*keys: str, default: Optional[str] = None) -> Optional[str]:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_bool(*keys: str, default: bool = False) -> bool:
    v = _get_env(*keys)
    if v is None:
        return default
    return v.lower() in ('true', '1', 'yes', 'on')


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    project_root: Path

    # "demo" keeps everything in memory, "csv" persists to data_dir
    data_mode: str = 'demo'
    data_dir: Optional[Path] = None

    # Organization used when no session says otherwise
    default_org_id: str = 'demo-restaurant'

    # Pricing options
    quick_discount_percent: Decimal = Decimal('10')
    clamp_total: bool = False
    enforce_offer_scope: bool = False

    log_level: str = 'INFO'

    def __post_init__(self):
        if self.data_mode not in DATA_MODES:
            raise ValueError(
                f"Unknown data mode '{self.data_mode}'. Expected one of {', '.join(DATA_MODES)}"
            )
        if self.data_dir is None:
            self.data_dir = self.project_root / 'data'

    @property
    def demo_mode(self) -> bool:
        return self.data_mode == 'demo'

    @classmethod
    def load(cls, project_root: Optional[Path] = None, env_file: Optional[Path] = None) -> 'Settings':
        """Load settings from the environment (and .env, if present)."""
        root = project_root or get_project_root()
        load_dotenv(dotenv_path=env_file or root / '.env')

        data_dir = _get_env('CAFE_POS_DATA_DIR')

        return cls(
            project_root=root,
            data_mode=(_get_env('CAFE_POS_DATA_MODE', default='demo') or 'demo').lower(),
            data_dir=Path(data_dir) if data_dir else None,
            default_org_id=_get_env('CAFE_POS_ORG_ID', default='demo-restaurant'),
            quick_discount_percent=Decimal(_get_env('CAFE_POS_QUICK_DISCOUNT_PERCENT', default='10')),
            clamp_total=_get_bool('CAFE_POS_CLAMP_TOTALS'),
            enforce_offer_scope=_get_bool('CAFE_POS_ENFORCE_OFFER_SCOPE'),
            log_level=(_get_env('CAFE_POS_LOG_LEVEL', default='INFO') or 'INFO').upper(),
        )


# Settings cached for entry points (scripts, Streamlit); services take them injected
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the settings loaded for this process."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
