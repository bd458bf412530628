from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from pyVmomi import vim

from esxcli_session import EsxcliError, EsxiCredentials

NIC_GET_OUTPUT = """\
   Advertised Auto Negotiation: true
   Advertised Link Modes: Auto, 1000BaseT/Full, 100BaseT/Half, 100BaseT/Full
   Auto Negotiation: true
   Cable Type: Twisted Pair
   Current Message Level: 7
   Driver Info:
         Bus Info: 0000:0b:00:0
         Driver: nvmxnet3
         Firmware Version: N/A
         Version: 2.0.0.30
   Link Detected: true
   Link Status: Up
   Name: {nic}
   PHYAddress: 0
   Pause Autonegotiate: false
   Pause RX: false
   Pause TX: false
   Supported Ports: TP
   Supports Auto Negotiation: true
   Supports Pause: false
   Supports Wakeon: true
   Transceiver: internal
   Virtual Address: {mac}
   Wakeon: MagicPacket(tm)
"""


def make_host(name="esx01.lab.local", parent="Cluster-A", nics=("vmnic0", "vmnic1")):
    host = MagicMock(spec=vim.HostSystem)
    host.name = name
    host.parent = SimpleNamespace(name=parent) if parent is not None else None
    host.config = SimpleNamespace(
        network=SimpleNamespace(pnic=[SimpleNamespace(device=d) for d in nics])
    )
    return host


class FakeSession:
    """Stands in for an open EsxcliSession; answers network.nic.get from a table."""

    def __init__(self, macs, fail_on=None):
        self.macs = macs
        self.fail_on = fail_on
        self.calls = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_inst, exc_tb):
        self.closed = True

    def invoke(self, operation, **arguments):
        nic = arguments["nicname"]
        self.calls.append((operation, nic))
        if nic == self.fail_on:
            raise EsxcliError(f"esxcli network nic get --nicname={nic}", 1, "Unable to find NIC")
        info = {"Name": nic, "Link Status": "Up"}
        if nic in self.macs:
            info["Virtual Address"] = self.macs[nic]
        return info


@pytest.fixture
def credentials():
    return EsxiCredentials("root", "secret")
