import fnmatch
import logging
import ssl
from contextlib import contextmanager

from pyVim.connect import SmartConnect, Disconnect
from pyVmomi import vim

logger = logging.getLogger(__name__)

# Physical adapters only; vmk* are VMkernel interfaces
DEVICE_PATTERN = "vmnic*"


class InventoryError(Exception):
    pass


@contextmanager
def connect_vsphere(server, user, password, port=443, verify_ssl=False):
    """
    Connect to vCenter (or a standalone ESXi host) and yield the service instance.

    The session is always disconnected on exit.
    """
    # LAB (self-signed): skip verification unless asked for it
    if verify_ssl:
        context = ssl.create_default_context()
    else:
        context = ssl._create_unverified_context()

    logger.debug("Connecting to %s:%s as %s", server, port, user)
    try:
        si = SmartConnect(host=server, user=user, pwd=password, port=port, sslContext=context)
    except vim.fault.InvalidLogin as e:
        raise InventoryError(f"Login to {server} failed: {e.msg}") from e
    except Exception as e:
        raise InventoryError(f"Could not connect to {server}:{port}: {e}") from e

    try:
        yield si
    finally:
        logger.debug("Disconnecting from %s", server)
        Disconnect(si)


def parent_name(host):
    parent = host.parent
    return parent.name if parent is not None else ""


def find_hosts(si, names=None, cluster=None):
    """
    Return the HostSystem objects to report on.

    names are shell-style patterns matched against the host name; without
    names every host is returned. cluster keeps only hosts whose parent
    carries that name.
    """
    content = si.RetrieveContent()
    view = content.viewManager.CreateContainerView(content.rootFolder, [vim.HostSystem], True)
    try:
        hosts = list(view.view)
    finally:
        view.Destroy()

    if cluster:
        hosts = [h for h in hosts if parent_name(h) == cluster]

    if not names:
        return hosts

    selected = []
    for pattern in names:
        matches = [h for h in hosts if fnmatch.fnmatchcase(h.name, pattern)]
        if not matches and not any(c in pattern for c in "*?["):
            raise InventoryError(f"Host not found: {pattern}")
        for h in matches:
            if h not in selected:
                selected.append(h)
    return selected


def list_physical_nics(host, pattern=DEVICE_PATTERN):
    """Device names of the host's physical adapters matching pattern, in host order."""
    config = host.config
    if config is None:
        raise InventoryError(f"No configuration available for {host.name} (is it connected?)")

    devices = [pnic.device for pnic in config.network.pnic]
    matched = [d for d in devices if fnmatch.fnmatchcase(d, pattern)]
    logger.debug("%s: %d physical adapters, %d match %s", host.name, len(devices), len(matched), pattern)
    return matched
