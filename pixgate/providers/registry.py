from typing import Callable, Dict, Optional

from ..errors import ConfigurationError
from ..settings import Settings
from .base import PixGateway
from .payevo.adapter import PayevoAdapter
from .sandbox.adapter import SandboxAdapter

# Builders take the settings so that credentials are read once, at startup
_registry: Dict[str, Callable[[Settings], PixGateway]] = {
    "payevo": PayevoAdapter.from_settings,
    "sandbox": lambda s: SandboxAdapter(validity_sec=s.PIX_VALIDITY_SEC),
}

# Provider name aliases -> canonical registry keys
_aliases = {
    "payevo_pix": "payevo",
    "payevo-pix": "payevo",
    "sandbox_pix": "sandbox",
    "dev": "sandbox",
    "fake": "sandbox",
}

def resolve_provider_name(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    n = name.strip().lower()
    key = _aliases.get(n, n)
    return key if key in _registry else None

def build_gateway(settings: Settings) -> PixGateway:
    key = resolve_provider_name(settings.PIX_PROVIDER)
    if key is None:
        raise ConfigurationError(f"unknown PIX_PROVIDER: {settings.PIX_PROVIDER!r}")
    return _registry[key](settings)
