"""End-to-end Entra ID and Intune endpoints."""
from unittest.mock import MagicMock

import pytest

from configmgr_api.core.graph import ClientCredentialProvider


@pytest.fixture()
def tenant(graph_plane):
    graph_plane.users.append({"id": "u1", "userPrincipalName": "jdoe@contoso.com", "onPremisesSamAccountName": "jdoe"})
    graph_plane.devices.append({"id": "d1", "displayName": "PC01"})
    graph_plane.groups["g1"] = {"displayName": "Pilot", "members": set()}
    graph_plane.managed_devices.append({
        "id": "m1", "deviceName": "PC01",
        "managementAgent": "configurationManagerClientMdm", "deviceEnrollmentType": "windowsAzureADJoin",
    })
    return graph_plane


def test_user_and_device_lookups(client, api_headers, tenant):
    assert client.get("/api/v1/directory/users/by-upn/jdoe@contoso.com", headers=api_headers).get_json()["data"] == {
        "userPrincipalName": "jdoe@contoso.com", "id": "u1",
    }
    assert client.get("/api/v1/directory/users/by-sam/jdoe", headers=api_headers).get_json()["data"]["id"] == "u1"
    assert client.get("/api/v1/directory/devices/PC01", headers=api_headers).get_json()["data"]["id"] == "d1"
    assert client.get("/api/v1/directory/devices/PC99", headers=api_headers).status_code == 404


def test_device_group_membership(client, api_headers, tenant):
    base = "/api/v1/directory/groups/Pilot/devices"

    assert client.get(f"{base}/PC01", headers=api_headers).get_json()["data"]["isMember"] is False
    assert client.post(base, json={"computerName": "PC01"}, headers=api_headers).get_json()["data"] == {"changed": True}
    assert client.post(base, json={"computerName": "PC01"}, headers=api_headers).get_json()["data"] == {"changed": False}
    assert tenant.groups["g1"]["members"] == {"d1"}
    assert client.delete(f"{base}/PC01", headers=api_headers).get_json()["data"] == {"changed": True}
    assert client.delete(f"{base}/PC01", headers=api_headers).get_json()["data"] == {"changed": False}


def test_user_group_membership(client, api_headers, tenant):
    base = "/api/v1/directory/groups/Pilot/users"
    assert client.post(base, json={"samAccountName": "jdoe"}, headers=api_headers).get_json()["data"]["changed"] is True
    assert tenant.groups["g1"]["members"] == {"u1"}
    assert client.delete(f"{base}/jdoe", headers=api_headers).get_json()["data"]["changed"] is True


def test_unknown_group(client, api_headers, tenant):
    resp = client.post("/api/v1/directory/groups/Nobody/devices", json={"computerName": "PC01"}, headers=api_headers)
    assert resp.status_code == 404


def test_intune_endpoints(client, api_headers, tenant):
    base = "/api/v1/directory/intune/PC01"

    assert client.get(f"{base}/exists", headers=api_headers).get_json()["data"] == {"exists": True, "computerName": "PC01"}
    assert client.get("/api/v1/directory/intune/PC99/exists", headers=api_headers).get_json()["data"]["exists"] is False
    assert client.get(f"{base}/co-managed", headers=api_headers).get_json()["data"]["coManaged"] is True

    assert client.get(f"{base}/primary-user", headers=api_headers).get_json()["data"]["userPrincipalName"] is None
    resp = client.put(f"{base}/primary-user", json={"userPrincipalName": "jdoe@contoso.com"}, headers=api_headers)
    assert resp.status_code == 200
    assert client.get(f"{base}/primary-user", headers=api_headers).get_json()["data"]["userPrincipalName"] == (
        "jdoe@contoso.com"
    )

    resp = client.put(f"{base}/category", json={"categoryName": "KIOSK"}, headers=api_headers)
    assert resp.get_json()["data"] == {"changed": True}
    assert tenant.managed_devices[0]["categoryId"] == "cat-1"


def test_unknown_category_is_500(client, api_headers, tenant):
    resp = client.put("/api/v1/directory/intune/PC01/category", json={"categoryName": "Lab"}, headers=api_headers)
    assert resp.status_code == 500


def test_unconfigured_graph_app_is_server_error(client, api_headers, graph_client, monkeypatch):
    monkeypatch.setattr(graph_client, "credentials", ClientCredentialProvider("", "", "", session=MagicMock()))

    resp = client.get("/api/v1/directory/devices/PC01", headers=api_headers)

    assert resp.status_code == 500
    assert "WWW-Authenticate" not in resp.headers
    assert resp.get_json()["errors"] == []
