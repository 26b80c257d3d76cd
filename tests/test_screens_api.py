"""
Tests for the screen API endpoints.
"""


def _open(client, list_type="ip", **extra):
    response = client.post("/api/v1/screens/", json={"list_type": list_type, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def _settled(client, screen_id):
    response = client.get(f"/api/v1/screens/{screen_id}", params={"settle": "true"})
    assert response.status_code == 200, response.text
    return response.json()


class TestListTypes:
    def test_list_types(self, client):
        response = client.get("/api/v1/list-types/")
        assert response.status_code == 200
        by_name = {entry["name"]: entry for entry in response.json()}
        assert set(by_name) == {"ip", "email", "user_agent", "country", "charset", "username", "asn"}
        assert by_name["ip"]["supports_conflicts"] is True
        assert by_name["country"]["default_sort_field"] == "name"
        assert by_name["country"]["default_sort_direction"] == "asc"
        assert "rir" in by_name["asn"]["filter_fields"]


class TestScreens:
    """Opening, reading and closing screens."""

    def test_open_screen_starts_loading(self, client, service):
        service.add_ip("10.0.0.1")
        screen = _open(client)
        assert screen["list_type"] == "ip"
        assert screen["pagination"] == "paged"
        assert screen["query"]["page_size"] == 10

        screen = _settled(client, screen["screen_id"])
        assert screen["listing"]["loading"] is False
        assert [item["value"] for item in screen["listing"]["items"]] == ["10.0.0.1"]
        assert screen["counters"]["counters"]["by_status"]["denied"] == 1

    def test_open_unknown_list_type(self, client):
        response = client.post("/api/v1/screens/", json={"list_type": "mac"})
        assert response.status_code == 422
        assert "Unknown list type" in response.json()["detail"]

    def test_unknown_screen_is_404(self, client):
        assert client.get("/api/v1/screens/nope").status_code == 404
        assert client.delete("/api/v1/screens/nope").status_code == 404

    def test_close_screen(self, client):
        screen = _open(client)
        response = client.delete(f"/api/v1/screens/{screen['screen_id']}")
        assert response.status_code == 200
        assert client.get(f"/api/v1/screens/{screen['screen_id']}").status_code == 404

    def test_screens_are_independent(self, client, service):
        service.add_ip("10.0.0.1")
        service.add_asn("AS3320")
        ip_screen = _open(client, "ip")
        asn_screen = _open(client, "asn")

        client.put(f"/api/v1/screens/{ip_screen['screen_id']}/query", json={"search": "nomatch"})
        ip_view = _settled(client, ip_screen["screen_id"])
        asn_view = _settled(client, asn_screen["screen_id"])

        assert ip_view["listing"]["items"] == []
        assert asn_view["query"]["search_term"] == ""
        assert [item["value"] for item in asn_view["listing"]["items"]] == ["AS3320"]
        assert asn_view["counters"]["counters"]["breakdowns"]["rir_counts"] == {"ripe": 1}

    def test_response_carries_trace_id(self, client):
        response = client.get("/api/v1/list-types/", headers={"X-Trace-ID": "trace-123"})
        assert response.headers["X-Trace-ID"] == "trace-123"


class TestQueryUpdates:
    def test_query_update(self, client, service):
        for i in range(1, 16):
            service.add_ip(f"10.0.0.{i}", "allowed" if i % 2 else "denied")
        screen = _open(client)
        screen_id = screen["screen_id"]

        response = client.put(
            f"/api/v1/screens/{screen_id}/query",
            json={"filters": {"status": "allowed"}, "toggle_sort": "address"},
        )
        assert response.status_code == 200
        assert response.json()["query"]["filters"] == {"status": "allowed"}

        view = _settled(client, screen_id)
        assert view["listing"]["total"] == 8
        assert {item["status"] for item in view["listing"]["items"]} == {"allowed"}

    def test_invalid_filter_is_422(self, client):
        screen = _open(client)
        response = client.put(
            f"/api/v1/screens/{screen['screen_id']}/query",
            json={"filters": {"country": "DE"}},
        )
        assert response.status_code == 422
        assert "Unknown filter" in response.json()["detail"]

    def test_search_input_is_pending_until_debounced(self, client):
        screen = _open(client)
        response = client.post(
            f"/api/v1/screens/{screen['screen_id']}/search-input",
            json={"text": "10.0"},
        )
        assert response.status_code == 202
        assert response.json()["pending_search"] == "10.0"
        assert response.json()["query"]["search_term"] == ""

    def test_load_more(self, client, service):
        for i in range(1, 6):
            service.add_ip(f"10.0.0.{i}")
        screen = _open(client, pagination="infinite")
        screen_id = screen["screen_id"]
        assert len(_settled(client, screen_id)["listing"]["items"]) == 3

        client.post(f"/api/v1/screens/{screen_id}/load-more")
        view = _settled(client, screen_id)
        assert len(view["listing"]["items"]) == 5
        assert view["listing"]["has_more"] is False


class TestMutations:
    """Rule form submission and conflict resolution over HTTP."""

    def test_submit_and_delete(self, client, service):
        screen_id = _open(client)["screen_id"]

        response = client.post(
            f"/api/v1/screens/{screen_id}/mutations",
            json={"address": "8.8.8.8", "status": "allowed"},
        )
        assert response.status_code == 200
        assert response.json()["mutation"]["status"] == "succeeded"

        view = _settled(client, screen_id)
        record = view["listing"]["items"][0]
        assert record["value"] == "8.8.8.8"

        response = client.delete(f"/api/v1/screens/{screen_id}/records/{record['id']}")
        assert response.json()["mutation"]["message"] == f"Rule {record['id']} deleted"
        assert _settled(client, screen_id)["listing"]["items"] == []

    def test_conflict_then_resolve(self, client, service):
        service.add_ip("10.1.2.3", "allowed")
        screen_id = _open(client)["screen_id"]

        response = client.post(
            f"/api/v1/screens/{screen_id}/mutations",
            json={"address": "10.0.0.0/8", "status": "denied"},
        )
        mutation = response.json()["mutation"]
        assert mutation["status"] == "conflict_pending"
        assert mutation["conflicts"][0]["conflicting"] == ["10.1.2.3"]

        response = client.post(f"/api/v1/screens/{screen_id}/conflicts/resolve")
        assert response.status_code == 200
        body = response.json()
        assert body["report"]["outcome"] == "succeeded"
        assert body["screen"]["mutation"]["status"] == "succeeded"
        assert [row["Address"] for row in service.ips.values()] == ["10.0.0.0/8"]

    def test_cancel_pending_conflict(self, client, service):
        service.add_ip("10.1.2.3", "allowed")
        screen_id = _open(client)["screen_id"]
        client.post(f"/api/v1/screens/{screen_id}/mutations", json={"address": "10.0.0.0/8"})

        response = client.post(f"/api/v1/screens/{screen_id}/mutations/cancel")
        assert response.json()["mutation"]["status"] == "idle"
        assert response.json()["mutation"]["pending"] is None

    def test_resolve_without_conflicts_is_409(self, client):
        screen_id = _open(client)["screen_id"]
        response = client.post(f"/api/v1/screens/{screen_id}/conflicts/resolve")
        assert response.status_code == 409

    def test_blank_address_rejected(self, client):
        screen_id = _open(client)["screen_id"]
        response = client.post(f"/api/v1/screens/{screen_id}/mutations", json={"address": "   "})
        assert response.status_code == 422
