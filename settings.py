import os
from dataclasses import dataclass
from typing import Optional

from esxcli_session import EsxiCredentials

TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigError(Exception):
    pass


@dataclass
class Settings:
    server: Optional[str] = None
    user: str = "administrator@vsphere.local"
    password: Optional[str] = None
    port: int = 443
    verify_ssl: bool = False
    esxi_user: str = "root"
    esxi_password: Optional[str] = None
    esxi_port: int = 22

    def require(self):
        missing = [name for name in ("server", "password", "esxi_password") if not getattr(self, name)]
        if missing:
            raise ConfigError("Missing required settings: " + ", ".join(missing))
        return self

    def esxi_credentials(self):
        return EsxiCredentials(self.esxi_user, self.esxi_password, self.esxi_port)


def _int(environ, name, default):
    value = environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def load_settings(environ=None):
    """Build Settings from VCENTER_* and ESXI_* environment variables."""
    if environ is None:
        environ = os.environ
    defaults = Settings()
    return Settings(
        server=environ.get("VCENTER_SERVER") or None,
        user=environ.get("VCENTER_USER") or defaults.user,
        password=environ.get("VCENTER_PASSWORD") or None,
        port=_int(environ, "VCENTER_PORT", defaults.port),
        verify_ssl=environ.get("VCENTER_VERIFY_SSL", "").strip().lower() in TRUE_VALUES,
        esxi_user=environ.get("ESXI_USER") or defaults.esxi_user,
        esxi_password=environ.get("ESXI_PASSWORD") or None,
        esxi_port=_int(environ, "ESXI_SSH_PORT", defaults.esxi_port),
    )
