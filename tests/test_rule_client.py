"""
Tests for the rule-collection HTTP client and its error mapping.
"""
import json

import httpx
import pytest

from rule_console.core.config import Settings
from rule_console.core.errors import MutationConflict, MutationRejected, TransientFetchError
from rule_console.schemas.conflict import ConflictSeverity, ConflictType, RuleDraft
from rule_console.schemas.records import RuleStatus
from rule_console.services.descriptors import get_descriptor
from rule_console.services.rule_client import RuleCollectionClient

IP = get_descriptor("ip")
ASN = get_descriptor("asn")


def _client(handler, **overrides):
    settings = Settings(RULE_SERVICE_URL="http://rules.test/api", LOG_TO_FILE=False, **overrides)
    return RuleCollectionClient.from_settings(settings, transport=httpx.MockTransport(handler))


CONFLICT_BODY = {
    "error": "Address conflicts with existing rules",
    "conflicts": [
        {
            "type": "cidr_covers_ip",
            "severity": "error",
            "conflicting": ["10.1.2.3"],
            "status": "allowed",
            "message": "10.0.0.0/8 covers 10.1.2.3",
        }
    ],
}


class TestReads:
    """Collection and stats reads."""

    @pytest.mark.asyncio
    async def test_list_page_sends_params_and_parses_records(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={
                "items": [{"ID": 7, "Address": "10.0.0.0/8", "Status": "denied", "IsCIDR": True}],
                "total": 31,
            })

        client = _client(handler)
        page = await client.list_page(IP, {"page": 2, "limit": 10, "search": "10."})
        await client.aclose()

        assert seen["path"] == "/api/ips"
        assert seen["params"] == {"page": "2", "limit": "10", "search": "10."}
        assert page.total == 31
        record = page.items[0]
        assert record.id == 7
        assert record.value == "10.0.0.0/8"
        assert record.status is RuleStatus.DENIED
        assert record.fields["IsCIDR"] is True

    @pytest.mark.asyncio
    async def test_bare_array_and_null_items_accepted(self):
        responses = iter([
            httpx.Response(200, json=[{"id": 1, "asn": "AS3320", "status": "allowed"}]),
            httpx.Response(200, json={"items": None, "total": 0}),
        ])
        client = _client(lambda request: next(responses))

        page = await client.list_page(ASN, {})
        assert page.total == 1
        assert page.items[0].value == "AS3320"

        empty = await client.list_page(ASN, {})
        assert empty.items == []
        await client.aclose()

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        client = _client(lambda request: httpx.Response(503, json={"error": "Service temporarily unavailable"}))
        with pytest.raises(TransientFetchError) as exc_info:
            await client.list_page(IP, {})
        await client.aclose()
        assert exc_info.value.message == "Service temporarily unavailable"
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(TransientFetchError, match="unreachable"):
            await client.list_page(IP, {})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_malformed_record_is_transient(self):
        client = _client(lambda request: httpx.Response(200, json={"items": [{"Address": "1.2.3.4"}], "total": 1}))
        with pytest.raises(TransientFetchError, match="Malformed"):
            await client.list_page(IP, {})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_fetch_counters_with_facets(self):
        def handler(request):
            if request.url.path == "/api/asns/stats":
                return httpx.Response(200, json={"allowed": 2, "denied": 5, "whitelisted": 1, "total": 8})
            return httpx.Response(200, json={"rir_counts": {"ripe": 6, "arin": 2}, "country_counts": {"DE": 8}})

        client = _client(handler)
        counters = await client.fetch_counters(ASN)
        await client.aclose()

        assert counters.by_status == {"allowed": 2, "denied": 5, "whitelisted": 1}
        assert counters.total == 8
        assert counters.breakdowns["rir_counts"] == {"ripe": 6, "arin": 2}

    @pytest.mark.asyncio
    async def test_malformed_stats_are_transient(self):
        client = _client(lambda request: httpx.Response(200, json={"allowed": "n/a", "total": 3}))
        with pytest.raises(TransientFetchError, match="Malformed stats"):
            await client.fetch_counters(IP)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_ping(self):
        client = _client(lambda request: httpx.Response(200, json={"status": "ok"}))
        assert await client.ping() is True
        await client.aclose()

        def handler(request):
            raise httpx.ConnectError("down", request=request)

        client = _client(handler)
        assert await client.ping() is False
        await client.aclose()


class TestWrites:
    """Create, update and delete with conflict mapping."""

    @pytest.mark.asyncio
    async def test_create_posts_body(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"ID": 9, "Address": "10.0.0.0/8", "Status": "denied"})

        client = _client(handler)
        result = await client.submit(IP, RuleDraft(address=" 10.0.0.0/8 ", status=RuleStatus.DENIED))
        await client.aclose()

        assert seen["method"] == "POST"
        assert seen["path"] == "/api/ip"
        assert seen["body"] == {"Address": "10.0.0.0/8", "Status": "denied", "IsCIDR": True}
        assert result.warnings == []
        assert result.body["ID"] == 9

    @pytest.mark.asyncio
    async def test_update_puts_to_item(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.submit(IP, RuleDraft(address="1.2.3.4", status=RuleStatus.ALLOWED, edit_id=12))
        await client.aclose()
        assert (seen["method"], seen["path"]) == ("PUT", "/api/ip/12")

    @pytest.mark.asyncio
    async def test_asn_attributes_forwarded(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={})

        client = _client(handler)
        draft = RuleDraft(address="AS3320", attributes={"rir": "ripe", "cc": "DE", "bogus": 1})
        await client.submit(ASN, draft)
        await client.aclose()
        assert seen["body"] == {"asn": "AS3320", "status": "denied", "rir": "ripe", "cc": "DE"}

    @pytest.mark.asyncio
    async def test_conflict_response_raises_mutation_conflict(self):
        client = _client(lambda request: httpx.Response(409, json=CONFLICT_BODY))
        with pytest.raises(MutationConflict) as exc_info:
            await client.submit(IP, RuleDraft(address="10.0.0.0/8"))
        await client.aclose()

        error = exc_info.value
        assert error.message == "Address conflicts with existing rules"
        assert error.status_code == 409
        conflict = error.conflicts[0]
        assert conflict.type is ConflictType.CIDR_COVERS_IP
        assert conflict.severity is ConflictSeverity.ERROR
        assert conflict.conflicting == ["10.1.2.3"]

    @pytest.mark.asyncio
    async def test_success_with_warnings(self):
        body = {
            "ID": 3,
            "conflicts": [{"type": "ip_in_cidr", "severity": "warning", "conflicting": ["10.0.0.0/8"]}],
        }
        client = _client(lambda request: httpx.Response(201, json=body))
        result = await client.submit(IP, RuleDraft(address="10.1.2.3"))
        await client.aclose()
        assert len(result.warnings) == 1
        assert result.warnings[0].severity is ConflictSeverity.WARNING

    @pytest.mark.asyncio
    async def test_error_without_conflicts_is_rejected(self):
        client = _client(lambda request: httpx.Response(500, json={"error": "Database write failed"}))
        with pytest.raises(MutationRejected) as exc_info:
            await client.submit(IP, RuleDraft(address="1.2.3.4"))
        await client.aclose()
        assert exc_info.value.message == "Database write failed"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_unauthorized_message(self):
        client = _client(lambda request: httpx.Response(401, json={"detail": "nope"}))
        with pytest.raises(MutationRejected, match="Authentication failed"):
            await client.delete(IP, 4)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_malformed_conflicts_on_error_are_rejected(self):
        body = {"error": "conflict", "conflicts": [{"type": "nonsense", "severity": "error"}]}
        client = _client(lambda request: httpx.Response(409, json=body))
        with pytest.raises(MutationRejected, match="malformed conflicts"):
            await client.submit(IP, RuleDraft(address="1.2.3.4"))
        await client.aclose()

    @pytest.mark.asyncio
    async def test_delete_path(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(200, json={"message": "deleted"})

        client = _client(handler)
        await client.delete(IP, 42)
        await client.aclose()
        assert (seen["method"], seen["path"]) == ("DELETE", "/api/ip/42")


@pytest.mark.asyncio
async def test_api_key_header_sent_when_configured():
    seen = {}

    def handler(request):
        seen["key"] = request.headers.get("X-API-Key")
        return httpx.Response(200, json=[])

    client = _client(handler, RULE_SERVICE_API_KEY="secret")
    await client.list_page(IP, {})
    await client.aclose()
    assert seen["key"] == "secret"
