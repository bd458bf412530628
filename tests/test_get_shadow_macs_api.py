from unittest.mock import patch

import pytest
from pyVmomi import vmodl

from esxi_inventory import InventoryError
from get_shadow_macs_api import create_app
from settings import Settings
from shadow_mac import SessionError, ShadowMacRecord

RECORDS = [ShadowMacRecord("esx01", "Cluster-A", "vmnic0", "00:50:56:5a:d3:c2")]
SETTINGS = Settings(server="vcsa.lab.local", password="secret", esxi_password="esxi-secret")


@pytest.fixture
def client():
    return create_app(SETTINGS).test_client()


@pytest.fixture
def vsphere():
    with patch("get_shadow_macs_api.connect_vsphere") as connect, \
            patch("get_shadow_macs_api.find_hosts", return_value=["esx01"]) as find_hosts, \
            patch("get_shadow_macs_api.get_shadow_macs_batch", return_value=RECORDS) as batch:
        yield connect, find_hosts, batch


def test_shadow_macs_json(client, vsphere):
    connect, find_hosts, batch = vsphere
    response = client.get("/shadow-macs?host=esx01&host=esx02&cluster=Cluster-A")

    assert response.status_code == 200
    assert response.get_json() == {"results": [RECORDS[0].as_dict()]}
    assert find_hosts.call_args[0][1:] == (["esx01", "esx02"], "Cluster-A")
    assert batch.call_args[0][2] == "vmnic*"
    assert batch.call_args.kwargs["continue_on_error"] is True


def test_failed_hosts_are_listed(client, vsphere):
    def batch(hosts, credentials, pattern, continue_on_error, errors):
        errors.append(("esx02", SessionError("esx02", "Failed to open ESXCLI session to esx02: refused")))
        return RECORDS

    vsphere[2].side_effect = batch
    body = client.get("/shadow-macs").get_json()
    assert body["errors"] == [{"host_name": "esx02", "error": "Failed to open ESXCLI session to esx02: refused"}]
    assert len(body["results"]) == 1


def test_report_page(client, vsphere):
    response = client.get("/shadow-macs/report")
    assert response.status_code == 200
    assert b"00:50:56:5a:d3:c2" in response.data
    assert b"Cluster-A" in response.data


def test_report_page_lists_skipped_hosts(client, vsphere):
    def batch(hosts, credentials, pattern, continue_on_error, errors):
        errors.append(("esx02", SessionError("esx02", "Failed to open ESXCLI session to <esx02>")))
        return RECORDS

    vsphere[2].side_effect = batch
    response = client.get("/shadow-macs/report")
    assert response.status_code == 200
    assert b"Hosts that could not be queried" in response.data
    assert b"esx02: Failed to open ESXCLI session to &lt;esx02&gt;" in response.data


def test_vsphere_fault_is_json_502(client, vsphere):
    vsphere[1].side_effect = vmodl.fault.ManagedObjectNotFound(msg="The object has already been deleted")
    response = client.get("/shadow-macs")
    assert response.status_code == 502
    assert response.get_json() == {"error": "The object has already been deleted"}


def test_inventory_error_is_502(client, vsphere):
    vsphere[1].side_effect = InventoryError("Host not found: esx99")
    response = client.get("/shadow-macs?host=esx99")
    assert response.status_code == 502
    assert response.get_json() == {"error": "Host not found: esx99"}


def test_unconfigured_server_is_500(vsphere):
    response = create_app(Settings()).test_client().get("/shadow-macs")
    assert response.status_code == 500
    assert "server" in response.get_json()["error"]
    vsphere[0].assert_not_called()
