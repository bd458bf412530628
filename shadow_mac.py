import logging
from dataclasses import asdict, dataclass

from pyVmomi import vim

from esxi_inventory import DEVICE_PATTERN, list_physical_nics, parent_name
from esxcli_session import open_session

logger = logging.getLogger(__name__)

# Field of "esxcli network nic get" holding the shadow MAC
VIRTUAL_ADDRESS = "Virtual Address"


@dataclass(frozen=True)
class ShadowMacRecord:
    host_name: str
    parent: str
    device_name: str
    shadow_mac: str

    def as_dict(self):
        return asdict(self)


class ShadowMacError(Exception):
    def __init__(self, host_name, message):
        self.host_name = host_name
        super().__init__(message)


class AdapterListError(ShadowMacError):
    pass


class SessionError(ShadowMacError):
    pass


def get_shadow_macs(host, credentials, pattern=DEVICE_PATTERN):
    """
    Report the shadow MAC of every physical adapter on one ESXi host.

    Args:
      host: connected vim.HostSystem.
      credentials: EsxiCredentials for the host's ESXCLI (SSH) session.
      pattern: device-name filter for the physical adapters.

    Returns:
      One ShadowMacRecord per matching adapter, in the order the host lists them.

    Raises:
      AdapterListError: the adapters could not be listed. No session is opened.
      SessionError: the ESXCLI session could not be opened. No adapter is queried.
      A failure while querying a single adapter is not caught and aborts the
      whole host.
    """
    if host is None:
        raise ValueError("host is required")
    if not isinstance(host, vim.HostSystem):
        raise TypeError(f"Expected vim.HostSystem, got {type(host).__name__}")

    host_name = host.name
    logger.info("Retrieving physical adapters of %s", host_name)
    try:
        nics = list_physical_nics(host, pattern)
    except Exception as e:
        raise AdapterListError(host_name, f"Failed to list physical adapters of {host_name}: {e}") from e

    logger.info("Opening ESXCLI session to %s", host_name)
    try:
        session = open_session(host_name, credentials)
    except Exception as e:
        raise SessionError(host_name, f"Failed to open ESXCLI session to {host_name}: {e}") from e

    records = []
    with session:
        parent = parent_name(host)
        for nic in nics:
            logger.debug("Querying %s on %s", nic, host_name)
            info = session.invoke("network.nic.get", nicname=nic)
            records.append(ShadowMacRecord(host_name, parent, nic, info[VIRTUAL_ADDRESS]))

    logger.info("%s: %d shadow MACs", host_name, len(records))
    return records


def iter_shadow_macs(hosts, credentials, pattern=DEVICE_PATTERN, continue_on_error=False, errors=None):
    """
    Yield records for each host in turn.

    With continue_on_error a failing host is logged and skipped; (host name,
    exception) pairs are appended to errors when a list is given. Otherwise
    the first failure propagates.
    """
    for host in hosts:
        try:
            records = get_shadow_macs(host, credentials, pattern)
        except Exception as e:
            if not continue_on_error:
                raise
            host_name = getattr(host, "name", repr(host))
            logger.error("Skipping %s: %s", host_name, e)
            if errors is not None:
                errors.append((host_name, e))
            continue
        yield from records


def get_shadow_macs_batch(hosts, credentials, pattern=DEVICE_PATTERN, continue_on_error=False, errors=None):
    return list(iter_shadow_macs(hosts, credentials, pattern, continue_on_error, errors))
